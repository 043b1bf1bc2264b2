"""Field-level conflict detection between the two sides of a match."""

from decimal import Decimal
from typing import Iterable, Optional
import logging

from ..config import ConflictConfig
from ..models.transaction import (
    AppTransaction,
    BankTransaction,
    ConflictType,
    ReconciliationConflict,
    ReconciliationMatch,
    SuggestedResolution,
)
from .matcher import generate_id
from .scoring import SECONDS_PER_DAY

logger = logging.getLogger(__name__)


class ConflictIdentifier:
    """Emits one conflict per disagreeing field of each two-sided match."""

    def __init__(self, config: Optional[ConflictConfig] = None):
        self.config = config or ConflictConfig()

    def identify_conflicts(
        self, matches: Iterable[ReconciliationMatch]
    ) -> list[ReconciliationConflict]:
        """
        Check every match that has both a bank and an app transaction.

        Args:
            matches: Match records to inspect

        Returns:
            Conflicts found, zero or more per match
        """
        conflicts: list[ReconciliationConflict] = []
        for match in matches:
            if match.app_transaction is None:
                continue
            conflicts.extend(
                self.find_transaction_conflicts(match, match.bank_transaction, match.app_transaction)
            )

        logger.debug(f"Identified {len(conflicts)} conflict(s)")
        return conflicts

    def find_transaction_conflicts(
        self,
        match: ReconciliationMatch,
        bank_txn: BankTransaction,
        app_txn: AppTransaction,
    ) -> list[ReconciliationConflict]:
        conflicts: list[ReconciliationConflict] = []

        if abs(bank_txn.amount - app_txn.amount) > Decimal(str(self.config.amount_tolerance)):
            conflicts.append(
                self._conflict(
                    match,
                    ConflictType.AMOUNT,
                    bank_txn.amount,
                    app_txn.amount,
                    SuggestedResolution.USE_BANK,
                    self.config.amount_confidence,
                )
            )

        date_diff_days = abs((bank_txn.date - app_txn.date).total_seconds()) / SECONDS_PER_DAY
        if date_diff_days > self.config.date_tolerance_days:
            conflicts.append(
                self._conflict(
                    match,
                    ConflictType.DATE,
                    bank_txn.date,
                    app_txn.date,
                    SuggestedResolution.USE_BANK,
                    self.config.date_confidence,
                )
            )

        if bank_txn.category and app_txn.category and bank_txn.category != app_txn.category:
            conflicts.append(
                self._conflict(
                    match,
                    ConflictType.CATEGORY,
                    bank_txn.category,
                    app_txn.category,
                    SuggestedResolution.MANUAL_REVIEW,
                    self.config.category_confidence,
                )
            )

        return conflicts

    def _conflict(
        self,
        match: ReconciliationMatch,
        conflict_type: ConflictType,
        bank_value,
        app_value,
        suggested_resolution: SuggestedResolution,
        confidence: float,
    ) -> ReconciliationConflict:
        return ReconciliationConflict(
            id=generate_id("conflict"),
            match_id=match.id,
            bank_transaction_id=match.bank_transaction.id,
            app_transaction_id=match.app_transaction.id,
            conflict_type=conflict_type,
            bank_value=bank_value,
            app_value=app_value,
            suggested_resolution=suggested_resolution,
            confidence=confidence,
        )
