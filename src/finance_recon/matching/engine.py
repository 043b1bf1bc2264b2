"""
Reconciliation engine that sequences matching, duplicate detection,
conflict detection and auto-categorization over one batch.
"""

from datetime import datetime
from typing import Callable, Optional, TypeVar, Union
import asyncio
import logging

from ..categorization.classifier import CategoryClassifier
from ..config import ReconConfig
from ..models.collection import IndexedCollection
from ..models.transaction import (
    AppTransaction,
    BankTransaction,
    ConflictResolution,
    DuplicateGroup,
    MatchStatus,
    MatchType,
    ReconciliationConflict,
    ReconciliationMatch,
    ReconciliationSummary,
)
from ..storage.store import InMemoryStore, KeyValueStore
from ..utils.exceptions import (
    CategorizationError,
    ReconciliationError,
    RecordNotFoundError,
    StorageError,
)
from .conflicts import ConflictIdentifier
from .duplicates import DuplicateDetector
from .matcher import Matcher, generate_id, matched_transaction_ids

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT")


class ReconciliationEngine:
    """
    Owns the match, conflict and duplicate collections of one user session.

    Collaborators are injected: a key-value store for durability and an
    optional category classifier. State is loaded from the store once, at
    construction, and written back wholesale at the end of every run.
    """

    def __init__(
        self,
        config: Optional[ReconConfig] = None,
        store: Optional[KeyValueStore] = None,
        classifier: Optional[CategoryClassifier] = None,
    ):
        """
        Initialize the reconciliation engine.

        Args:
            config: Application configuration
            store: Durable store for the three record collections
            classifier: Categorizer applied to unmatched bank transactions
        """
        self.config = config or ReconConfig()
        self.store = store if store is not None else InMemoryStore()
        self.classifier = classifier

        self.matcher = Matcher(self.config.matching)
        self.duplicate_detector = DuplicateDetector(self.config.duplicates)
        self.conflict_identifier = ConflictIdentifier(self.config.conflicts)

        self._matches: IndexedCollection[ReconciliationMatch] = IndexedCollection()
        self._conflicts: IndexedCollection[ReconciliationConflict] = IndexedCollection()
        self._duplicates: IndexedCollection[DuplicateGroup] = IndexedCollection()
        self._run_lock = asyncio.Lock()
        self.last_summary: Optional[ReconciliationSummary] = None

        self._load_state()

    async def reconcile(
        self,
        bank_transactions: list[BankTransaction],
        app_transactions: list[AppTransaction],
    ) -> ReconciliationSummary:
        """
        Reconcile one batch of bank transactions against app transactions.

        Runs are serialized: clearing unreviewed state is destructive and
        must not interleave with another run.

        Args:
            bank_transactions: Transactions reported by the bank
            app_transactions: Transactions recorded in the application

        Returns:
            Summary computed from the in-memory state, even when persisting fails
        """
        async with self._run_lock:
            return await self._run(list(bank_transactions), list(app_transactions))

    async def _run(
        self,
        bank_txns: list[BankTransaction],
        app_txns: list[AppTransaction],
    ) -> ReconciliationSummary:
        start_time = datetime.now()
        logger.info(
            f"Starting reconciliation: {len(bank_txns)} bank txns, {len(app_txns)} app txns"
        )

        self._clear_previous_state()

        new_matches = self.matcher.find_matches(bank_txns, app_txns, self._matches)

        for group in self.duplicate_detector.detect_duplicates(bank_txns, app_txns, self._matches):
            self._duplicates.add(group)

        self._add_conflicts(self.conflict_identifier.identify_conflicts(self._matches))

        categorized = await self._categorize_unmatched(bank_txns)

        self._persist()

        summary = self.generate_summary(bank_txns, app_txns)
        self.last_summary = summary

        elapsed = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"Reconciliation complete in {elapsed:.2f}s: {len(new_matches)} new matches, "
            f"{summary.matched} matched, {summary.conflicts} conflicts, "
            f"{summary.duplicates} duplicate groups, {categorized} categorized"
        )
        return summary

    def _clear_previous_state(self) -> None:
        """Drop automatic results; reviewed matches and resolved records are sticky."""
        dropped = self._matches.retain(lambda m: m.is_reviewed)
        dropped_conflicts = self._conflicts.retain(lambda c: c.is_resolved)
        dropped_duplicates = self._duplicates.retain(lambda d: d.is_resolved)
        logger.debug(
            f"Cleared {dropped} matches, {dropped_conflicts} conflicts and "
            f"{dropped_duplicates} duplicate groups; kept {len(self._matches)} reviewed matches"
        )

    def _add_conflicts(self, conflicts: list[ReconciliationConflict]) -> None:
        resolved = {c.pair_key: c.id for c in self._conflicts if c.is_resolved}

        for conflict in conflicts:
            previous = resolved.get(conflict.pair_key)
            if previous:
                conflict.previously_resolved_id = previous
                logger.warning(
                    f"Conflict {conflict.conflict_type.value} between bank "
                    f"{conflict.bank_transaction_id} and app {conflict.app_transaction_id} "
                    f"was already resolved as {previous}"
                )
            self._conflicts.add(conflict)

    async def _categorize_unmatched(self, bank_txns: list[BankTransaction]) -> int:
        """
        Ask the classifier about every bank transaction left without a match.

        Each call is bounded by the configured timeout. A timeout or error
        skips that transaction only.

        Returns:
            Number of transactions that received a category
        """
        settings = self.config.categorization
        if self.classifier is None or not settings.enabled:
            return 0

        matched_bank, _ = matched_transaction_ids(self._matches)
        categorized = 0

        for bank_txn in bank_txns:
            if bank_txn.id in matched_bank:
                continue

            try:
                classification = await asyncio.wait_for(
                    self.classifier.classify(bank_txn), timeout=settings.timeout_seconds
                )
            except asyncio.TimeoutError:
                logger.warning(
                    f"Categorization of bank transaction {bank_txn.id} timed out "
                    f"after {settings.timeout_seconds}s"
                )
                continue
            except CategorizationError as e:
                logger.warning(f"Could not categorize bank transaction {bank_txn.id}: {e}")
                continue
            except Exception as e:
                logger.error(f"Failed to categorize bank transaction {bank_txn.id}: {e}")
                continue

            if classification.confidence >= settings.min_confidence:
                bank_txn.category = classification.suggested_category
                categorized += 1

        return categorized

    def generate_summary(
        self,
        bank_transactions: list[BankTransaction],
        app_transactions: list[AppTransaction],
    ) -> ReconciliationSummary:
        """
        Derive counts and accuracy from the current collections.

        Only matches whose bank side belongs to this batch count as matched,
        so reviewed matches from earlier batches cannot push accuracy past 1.
        """
        bank_ids = {t.id for t in bank_transactions}
        matched = sum(
            1
            for m in self._matches
            if m.status == MatchStatus.MATCHED and m.bank_transaction.id in bank_ids
        )
        total_bank = len(bank_transactions)
        total_app = len(app_transactions)

        return ReconciliationSummary(
            total_bank_transactions=total_bank,
            total_app_transactions=total_app,
            matched=matched,
            unmatched=max(0, total_bank + total_app - matched * 2),
            conflicts=sum(1 for c in self._conflicts if not c.is_resolved),
            duplicates=sum(1 for d in self._duplicates if not d.is_resolved),
            accuracy=matched / total_bank if total_bank > 0 else 0.0,
            last_reconciliation=datetime.now(),
        )

    # Read accessors

    def get_matches(self) -> list[ReconciliationMatch]:
        return self._matches.values()

    def get_conflicts(self) -> list[ReconciliationConflict]:
        return self._conflicts.values()

    def get_duplicate_groups(self) -> list[DuplicateGroup]:
        return self._duplicates.values()

    # Manual review

    def resolve_conflict(
        self, conflict_id: str, resolution: Union[ConflictResolution, str]
    ) -> ReconciliationConflict:
        """
        Record a reviewer's resolution for a conflict.

        Raises:
            RecordNotFoundError: If no conflict has this id
            ValueError: If ``resolution`` is not a valid conflict resolution
        """
        conflict = self._require(self._conflicts, conflict_id, "conflict")
        conflict.resolution = ConflictResolution(resolution)
        conflict.resolved_at = datetime.now()
        self._persist()
        return conflict

    def resolve_duplicate(self, duplicate_id: str, resolution: str) -> DuplicateGroup:
        """
        Record a reviewer's decision for a duplicate group.

        Raises:
            RecordNotFoundError: If no duplicate group has this id
        """
        group = self._require(self._duplicates, duplicate_id, "duplicate group")
        group.resolution = resolution
        group.resolved_at = datetime.now()
        self._persist()
        return group

    def review_match(
        self,
        match_id: str,
        reviewer: str,
        status: Optional[Union[MatchStatus, str]] = None,
    ) -> ReconciliationMatch:
        """
        Confirm or re-label a match. Reviewed matches survive later runs.

        Raises:
            RecordNotFoundError: If no match has this id
            ValueError: If the new status breaks the match invariants
        """
        match = self._require(self._matches, match_id, "match")
        if status is not None:
            new_status = MatchStatus(status)
            if new_status == MatchStatus.MATCHED and match.app_transaction is None:
                raise ValueError("A match without an app transaction cannot be 'matched'")
            match.status = new_status
        match.reviewed_at = datetime.now()
        match.reviewed_by = reviewer
        self._persist()
        return match

    def create_manual_match(
        self,
        bank_transaction: BankTransaction,
        app_transaction: AppTransaction,
        reviewer: str,
    ) -> ReconciliationMatch:
        """
        Pair two transactions by hand, replacing automatic matches on either side.

        Raises:
            ReconciliationError: If either side already belongs to a reviewed match
        """
        for existing in self._matches:
            involved = existing.bank_transaction.id == bank_transaction.id or (
                existing.app_transaction is not None
                and existing.app_transaction.id == app_transaction.id
            )
            if involved and existing.is_reviewed:
                raise ReconciliationError(
                    f"Transaction already belongs to reviewed match {existing.id}"
                )

        self._matches.retain(
            lambda m: m.bank_transaction.id != bank_transaction.id
            and (m.app_transaction is None or m.app_transaction.id != app_transaction.id)
        )

        now = datetime.now()
        match = ReconciliationMatch(
            id=generate_id("match"),
            bank_transaction=bank_transaction,
            app_transaction=app_transaction,
            match_type=MatchType.MANUAL,
            confidence=1.0,
            match_reasons=[f"matched manually by {reviewer}"],
            status=MatchStatus.MATCHED,
            created_at=now,
            reviewed_at=now,
            reviewed_by=reviewer,
        )
        self._matches.add(match)
        self._persist()
        return match

    @staticmethod
    def _require(collection: IndexedCollection, record_id: str, kind: str):
        record = collection.get(record_id)
        if record is None:
            raise RecordNotFoundError(f"No {kind} with id {record_id!r}")
        return record

    # Persistence

    def _load_state(self) -> None:
        keys = self.config.storage
        self._matches = self._load_collection(keys.matches_key, ReconciliationMatch.from_dict)
        self._conflicts = self._load_collection(keys.conflicts_key, ReconciliationConflict.from_dict)
        self._duplicates = self._load_collection(keys.duplicates_key, DuplicateGroup.from_dict)
        logger.debug(
            f"Loaded {len(self._matches)} matches, {len(self._conflicts)} conflicts, "
            f"{len(self._duplicates)} duplicate groups"
        )

    def _load_collection(
        self, key: str, factory: Callable[[dict], RecordT]
    ) -> IndexedCollection[RecordT]:
        try:
            raw = self.store.load(key) or []
            return IndexedCollection([factory(item) for item in raw])
        except StorageError as e:
            logger.error(f"Failed to load {key}: {e}")
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Discarding malformed {key} data: {e}")
        return IndexedCollection()

    def _persist(self) -> bool:
        """
        Write all three collections. Best-effort: failures are logged only.

        Returns:
            True if every collection was written
        """
        keys = self.config.storage
        try:
            self.store.save(keys.matches_key, [m.to_dict() for m in self._matches])
            self.store.save(keys.conflicts_key, [c.to_dict() for c in self._conflicts])
            self.store.save(keys.duplicates_key, [d.to_dict() for d in self._duplicates])
        except Exception as e:
            logger.error(f"Failed to save reconciliation data: {e}")
            return False
        return True
