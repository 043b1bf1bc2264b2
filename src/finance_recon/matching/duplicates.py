"""Duplicate detection within each source and across weak fuzzy matches."""

from decimal import Decimal
from typing import Iterable, Optional, Sequence
import logging

from ..config import DuplicateConfig
from ..models.transaction import (
    AnyTransaction,
    AppTransaction,
    BankTransaction,
    DuplicateAction,
    DuplicateGroup,
    DuplicateType,
    MatchType,
    ReconciliationMatch,
)
from .matcher import generate_id
from .similarity import similarity

logger = logging.getLogger(__name__)


class DuplicateDetector:
    """Groups transactions that look like the same real-world event."""

    def __init__(self, config: Optional[DuplicateConfig] = None):
        self.config = config or DuplicateConfig()

    def detect_duplicates(
        self,
        bank_txns: Sequence[BankTransaction],
        app_txns: Sequence[AppTransaction],
        matches: Iterable[ReconciliationMatch],
    ) -> list[DuplicateGroup]:
        """
        Scan bank transactions, then app transactions, then weak fuzzy matches.

        Args:
            bank_txns: Bank transactions of the current batch (not modified)
            app_txns: App transactions of the current batch (not modified)
            matches: Existing match records

        Returns:
            Duplicate groups in detection order
        """
        groups = self.detect_in_set(bank_txns, DuplicateAction.KEEP_BANK)
        groups += self.detect_in_set(app_txns, DuplicateAction.KEEP_APP)
        groups += self.detect_cross_set(matches)
        return groups

    def duplicate_similarity(self, txn1: AnyTransaction, txn2: AnyTransaction) -> float:
        """Weighted agreement on amount, timestamp (to the minute) and description."""
        score = 0.0

        if abs(txn1.amount - txn2.amount) < Decimal("0.01"):
            score += self.config.amount_weight

        if abs((txn1.date - txn2.date).total_seconds()) < self.config.date_window_seconds:
            score += self.config.date_weight

        score += self.config.description_weight * similarity(
            (txn1.description or "").lower(), (txn2.description or "").lower()
        )
        return round(score, 6)

    def detect_in_set(
        self,
        transactions: Sequence[AnyTransaction],
        suggested_action: DuplicateAction,
    ) -> list[DuplicateGroup]:
        """
        Pairwise scan of one source.

        A transaction that joins a group is not compared again, so each
        transaction belongs to at most one group per pass.
        """
        grouped: set[str] = set()
        groups: list[DuplicateGroup] = []

        for i, txn1 in enumerate(transactions):
            if txn1.id in grouped:
                continue

            cluster: list[AnyTransaction] = [txn1]
            for txn2 in transactions[i + 1:]:
                if txn2.id in grouped or txn2.id == txn1.id:
                    continue
                if self.duplicate_similarity(txn1, txn2) >= self.config.similarity_threshold:
                    cluster.append(txn2)

            if len(cluster) > 1:
                grouped.update(t.id for t in cluster)
                groups.append(
                    DuplicateGroup(
                        id=generate_id("duplicate"),
                        transactions=cluster,
                        duplicate_type=DuplicateType.EXACT,
                        confidence=self.config.exact_group_confidence,
                        suggested_action=suggested_action,
                    )
                )

        if groups:
            logger.debug(
                f"Found {len(groups)} duplicate group(s) among {len(transactions)} "
                f"transactions ({suggested_action.value})"
            )
        return groups

    def detect_cross_set(self, matches: Iterable[ReconciliationMatch]) -> list[DuplicateGroup]:
        """Weak fuzzy matches may be one event recorded twice rather than a pairing."""
        groups: list[DuplicateGroup] = []

        for match in matches:
            if match.match_type != MatchType.FUZZY or match.app_transaction is None:
                continue
            if match.is_reviewed:
                continue
            if match.confidence >= self.config.potential_match_ceiling:
                continue

            groups.append(
                DuplicateGroup(
                    id=generate_id("duplicate"),
                    transactions=[match.bank_transaction, match.app_transaction],
                    duplicate_type=DuplicateType.POTENTIAL,
                    confidence=match.confidence,
                    suggested_action=DuplicateAction.MERGE,
                )
            )

        return groups
