"""Tests for reconciliation records and the indexed collection."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from finance_recon.models.collection import IndexedCollection
from finance_recon.models.transaction import (
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
    transaction_from_dict,
)


class TestRecordInvariants:
    def test_matched_status_requires_app_side(self, make_bank):
        with pytest.raises(ValueError):
            ReconciliationMatch(
                id="match_1",
                bank_transaction=make_bank(),
                match_type=MatchType.FUZZY,
                confidence=0.9,
                status=MatchStatus.MATCHED,
            )

    def test_bank_only_match_may_be_unmatched(self, make_bank):
        match = ReconciliationMatch(
            id="match_1",
            bank_transaction=make_bank(),
            match_type=MatchType.NONE,
            confidence=0.0,
            status=MatchStatus.UNMATCHED,
        )
        assert match.app_transaction is None
        assert not match.is_reviewed

    def test_duplicate_group_needs_two_transactions(self, make_bank):
        with pytest.raises(ValueError):
            DuplicateGroup(
                id="duplicate_1",
                transactions=[make_bank()],
                duplicate_type=DuplicateType.EXACT,
                confidence=0.95,
                suggested_action=DuplicateAction.KEEP_BANK,
            )

    def test_summary_accuracy_percent(self):
        summary = ReconciliationSummary(
            total_bank_transactions=4,
            total_app_transactions=4,
            matched=3,
            unmatched=2,
            conflicts=0,
            duplicates=0,
            accuracy=0.75,
        )
        assert summary.accuracy_percent == 75.0


class TestDateNormalization:
    def test_offset_date_is_stored_as_naive_utc(self, make_bank):
        sao_paulo = timezone(timedelta(hours=-3))
        txn = make_bank(date=datetime(2024, 1, 10, 12, 0, tzinfo=sao_paulo))

        assert txn.date == datetime(2024, 1, 10, 15, 0)
        assert txn.date.tzinfo is None

    def test_naive_date_is_unchanged(self, make_app):
        assert make_app(date="2024-01-10T12:00:00").date == datetime(2024, 1, 10, 12, 0)

    def test_from_dict_accepts_offsets(self):
        txn = AppTransaction.from_dict(
            {"id": "a1", "amount": "5", "date": "2024-01-10T23:30:00-03:00", "type": "debit"}
        )
        assert txn.date == datetime(2024, 1, 11, 2, 30)

    def test_mixed_inputs_can_be_compared(self, make_bank, make_app):
        bank = make_bank(date="2024-01-10T12:00:00+00:00")
        app = make_app(date="2024-01-10T12:00:00")

        assert bank.date - app.date == timedelta(0)


class TestSerialization:
    def test_match_round_trip(self, make_bank, make_app):
        match = ReconciliationMatch(
            id="match_1",
            bank_transaction=make_bank(merchant_name="Posto Shell", metadata={"mcc": "5541"}),
            app_transaction=make_app(category="Transport"),
            match_type=MatchType.EXACT,
            confidence=1.0,
            match_reasons=["exact amount"],
            status=MatchStatus.MATCHED,
            reviewed_at=datetime(2024, 1, 11, 9, 30),
            reviewed_by="ana",
        )

        data = match.to_dict()
        restored = ReconciliationMatch.from_dict(data)

        assert data["bank_transaction"]["amount"] == "100.00"
        assert data["bank_transaction"]["source"] == "bank"
        assert restored == match

    def test_conflict_values_are_json_friendly(self):
        conflict = ReconciliationConflict(
            id="conflict_1",
            match_id="match_1",
            bank_transaction_id="b1",
            app_transaction_id="a1",
            conflict_type=ConflictType.DATE,
            bank_value=datetime(2024, 1, 10),
            app_value=datetime(2024, 1, 13),
            suggested_resolution=SuggestedResolution.USE_BANK,
            confidence=0.8,
            resolution=ConflictResolution.IGNORE,
        )

        data = conflict.to_dict()

        assert data["bank_value"] == "2024-01-10T00:00:00"
        assert data["resolution"] == "ignore"
        assert ReconciliationConflict.from_dict(data).pair_key == ("b1", "a1", "date")

    def test_duplicate_group_keeps_transaction_sources(self, make_bank, make_app):
        group = DuplicateGroup(
            id="duplicate_1",
            transactions=[make_bank(), make_app()],
            duplicate_type=DuplicateType.POTENTIAL,
            confidence=0.75,
            suggested_action=DuplicateAction.MERGE,
        )

        restored = DuplicateGroup.from_dict(group.to_dict())

        assert isinstance(restored.transactions[0], BankTransaction)
        assert isinstance(restored.transactions[1], AppTransaction)

    def test_transaction_from_dict_defaults_to_bank(self):
        txn = transaction_from_dict(
            {"id": "b1", "amount": "-12.5", "date": "2024-01-10", "type": "debit"}
        )
        assert isinstance(txn, BankTransaction)
        assert txn.amount == Decimal("-12.5")
        assert txn.currency == "BRL"


class TestIndexedCollection:
    def test_add_and_get(self):
        collection = IndexedCollection([_Rec("x"), _Rec("y")])

        assert len(collection) == 2
        assert collection.get("y").id == "y"
        assert "x" in collection
        assert collection.get("z") is None

    def test_add_replaces_same_id_in_place(self):
        first = _Rec("x", "old")
        collection = IndexedCollection([first, _Rec("y")])

        collection.add(_Rec("x", "new"))

        assert [r.value for r in collection] == ["new", None]

    def test_retain_rebuilds_index(self):
        collection = IndexedCollection([_Rec("a"), _Rec("b"), _Rec("c")])

        removed = collection.retain(lambda r: r.id != "a")

        assert removed == 1
        assert collection.get("c").id == "c"
        assert "a" not in collection
        assert [r.id for r in collection.values()] == ["b", "c"]

    def test_clear(self):
        collection = IndexedCollection([_Rec("a")])
        collection.clear()
        assert len(collection) == 0
        assert collection.get("a") is None


class _Rec:
    def __init__(self, id, value=None):
        self.id = id
        self.value = value
