"""
Two-pass matcher: exact first-fit, then fuzzy best-fit.

Exact pairings are rare and unambiguous, so the first qualifying app
transaction wins. Fuzzy pairings compete, so every candidate is scored and
the highest confidence wins.
"""

from typing import Iterable, Optional
import logging
import uuid

from ..config import MatchingConfig
from ..models.collection import IndexedCollection
from ..models.transaction import (
    AppTransaction,
    BankTransaction,
    MatchStatus,
    MatchType,
    ReconciliationMatch,
)
from .scoring import MatchScore, MatchScorer

logger = logging.getLogger(__name__)


def generate_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:16]}"


def matched_transaction_ids(
    matches: Iterable[ReconciliationMatch],
) -> tuple[set[str], set[str]]:
    """Bank and app ids that already sit on either side of a match record."""
    bank_ids: set[str] = set()
    app_ids: set[str] = set()
    for match in matches:
        bank_ids.add(match.bank_transaction.id)
        if match.app_transaction is not None:
            app_ids.add(match.app_transaction.id)
    return bank_ids, app_ids


class Matcher:
    """Pairs bank transactions with app transactions that are not yet matched."""

    def __init__(self, config: Optional[MatchingConfig] = None, scorer: Optional[MatchScorer] = None):
        self.config = config or MatchingConfig()
        self.scorer = scorer or MatchScorer(self.config)

    def find_matches(
        self,
        bank_txns: list[BankTransaction],
        app_txns: list[AppTransaction],
        matches: IndexedCollection[ReconciliationMatch],
    ) -> list[ReconciliationMatch]:
        """
        Run the exact pass and then the fuzzy pass.

        Args:
            bank_txns: Bank transactions of the current batch
            app_txns: App transactions of the current batch
            matches: Match collection; new records are added to it

        Returns:
            Match records created by both passes, in creation order
        """
        exact = self.find_exact_matches(bank_txns, app_txns, matches)
        fuzzy = self.find_fuzzy_matches(bank_txns, app_txns, matches)
        return exact + fuzzy

    def find_exact_matches(
        self,
        bank_txns: list[BankTransaction],
        app_txns: list[AppTransaction],
        matches: IndexedCollection[ReconciliationMatch],
    ) -> list[ReconciliationMatch]:
        """First-fit pass accepting pairs with exact confidence >= threshold."""
        matched_bank, matched_app = matched_transaction_ids(matches)
        created: list[ReconciliationMatch] = []

        for bank_txn in bank_txns:
            if bank_txn.id in matched_bank:
                continue

            for app_txn in app_txns:
                if app_txn.id in matched_app:
                    continue

                score = self.scorer.exact_score(bank_txn, app_txn)
                if score.confidence >= self.config.exact_threshold:
                    match = self._record(
                        matches, bank_txn, app_txn, score, MatchType.EXACT, MatchStatus.MATCHED
                    )
                    created.append(match)
                    matched_bank.add(bank_txn.id)
                    matched_app.add(app_txn.id)
                    break

        logger.debug(f"Exact pass: {len(created)} matches")
        return created

    def find_fuzzy_matches(
        self,
        bank_txns: list[BankTransaction],
        app_txns: list[AppTransaction],
        matches: IndexedCollection[ReconciliationMatch],
    ) -> list[ReconciliationMatch]:
        """
        Best-fit pass over the pools left by the exact pass.

        Pairs scoring in [fuzzy_threshold, fuzzy_accept_threshold) are
        recorded with status conflict so a reviewer confirms them.
        """
        matched_bank, matched_app = matched_transaction_ids(matches)
        created: list[ReconciliationMatch] = []

        for bank_txn in bank_txns:
            if bank_txn.id in matched_bank:
                continue

            best_app: Optional[AppTransaction] = None
            best_score: Optional[MatchScore] = None

            for app_txn in app_txns:
                if app_txn.id in matched_app:
                    continue

                score = self.scorer.fuzzy_score(bank_txn, app_txn)
                if score.confidence < self.config.fuzzy_threshold:
                    continue
                if best_score is None or score.confidence > best_score.confidence:
                    best_app, best_score = app_txn, score

            if best_app is None or best_score is None:
                continue

            status = (
                MatchStatus.MATCHED
                if best_score.confidence >= self.config.fuzzy_accept_threshold
                else MatchStatus.CONFLICT
            )
            match = self._record(matches, bank_txn, best_app, best_score, MatchType.FUZZY, status)
            created.append(match)
            matched_bank.add(bank_txn.id)
            matched_app.add(best_app.id)

        logger.debug(
            f"Fuzzy pass: {len(created)} matches "
            f"({sum(1 for m in created if m.status == MatchStatus.CONFLICT)} need review)"
        )
        return created

    def _record(
        self,
        matches: IndexedCollection[ReconciliationMatch],
        bank_txn: BankTransaction,
        app_txn: AppTransaction,
        score: MatchScore,
        match_type: MatchType,
        status: MatchStatus,
    ) -> ReconciliationMatch:
        match = ReconciliationMatch(
            id=generate_id("match"),
            bank_transaction=bank_txn,
            app_transaction=app_txn,
            match_type=match_type,
            # Configured weights may sum past 1
            confidence=min(score.confidence, 1.0),
            match_reasons=list(score.reasons),
            status=status,
        )
        matches.add(match)
        return match
