"""Utility modules."""

from .exceptions import (
    ReconciliationError,
    ConfigurationError,
    TransactionParseError,
    StorageError,
    CategorizationError,
    RecordNotFoundError,
)
from .logging_config import configure_logging, setup_logging

__all__ = [
    "ReconciliationError",
    "ConfigurationError",
    "TransactionParseError",
    "StorageError",
    "CategorizationError",
    "RecordNotFoundError",
    "configure_logging",
    "setup_logging",
]
