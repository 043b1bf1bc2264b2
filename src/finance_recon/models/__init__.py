"""Data models for reconciliation."""

from .transaction import (
    AnyTransaction,
    AppTransaction,
    BankTransaction,
    ConflictResolution,
    ConflictType,
    DuplicateAction,
    DuplicateGroup,
    DuplicateType,
    MatchStatus,
    MatchType,
    ReconciliationConflict,
    ReconciliationMatch,
    ReconciliationSummary,
    SuggestedResolution,
    TransactionStatus,
    TransactionType,
    normalize_datetime,
    transaction_from_dict,
)
from .collection import IndexedCollection

__all__ = [
    "AnyTransaction",
    "AppTransaction",
    "BankTransaction",
    "ConflictResolution",
    "ConflictType",
    "DuplicateAction",
    "DuplicateGroup",
    "DuplicateType",
    "IndexedCollection",
    "MatchStatus",
    "MatchType",
    "ReconciliationConflict",
    "ReconciliationMatch",
    "ReconciliationSummary",
    "SuggestedResolution",
    "TransactionStatus",
    "TransactionType",
    "normalize_datetime",
    "transaction_from_dict",
]
