"""Bank transaction reconciliation engine."""

from .config import ReconConfig, load_config
from .matching.engine import ReconciliationEngine
from .models.transaction import (
    AppTransaction,
    BankTransaction,
    ReconciliationSummary,
    TransactionType,
)

__version__ = "0.1.0"

__all__ = [
    "AppTransaction",
    "BankTransaction",
    "ReconConfig",
    "ReconciliationEngine",
    "ReconciliationSummary",
    "TransactionType",
    "load_config",
]
