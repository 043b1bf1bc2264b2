"""Custom exceptions for the reconciliation engine."""


class ReconciliationError(Exception):
    """Base exception for reconciliation errors."""

    pass


class ConfigurationError(ReconciliationError):
    """Error in configuration."""

    pass


class TransactionParseError(ReconciliationError):
    """Error parsing a transaction input file."""

    pass


class StorageError(ReconciliationError):
    """Error reading from or writing to the key-value store."""

    pass


class CategorizationError(ReconciliationError):
    """Error raised by a category classifier."""

    pass


class RecordNotFoundError(ReconciliationError):
    """No match, conflict or duplicate group exists with the given id."""

    pass
