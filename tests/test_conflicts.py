"""Tests for field-level conflict detection."""

from decimal import Decimal

import pytest

from finance_recon.matching.conflicts import ConflictIdentifier
from finance_recon.models.transaction import (
    ConflictType,
    MatchStatus,
    MatchType,
    ReconciliationMatch,
    SuggestedResolution,
)


@pytest.fixture
def identifier():
    return ConflictIdentifier()


def _match(bank, app=None):
    return ReconciliationMatch(
        id="match_1",
        bank_transaction=bank,
        app_transaction=app,
        match_type=MatchType.FUZZY if app else MatchType.NONE,
        confidence=0.9 if app else 0.0,
        status=MatchStatus.MATCHED if app else MatchStatus.UNMATCHED,
    )


class TestConflictIdentifier:
    def test_amount_disagreement(self, identifier, make_bank, make_app):
        match = _match(make_bank(amount="200.00"), make_app(amount="180.00"))

        conflicts = identifier.identify_conflicts([match])

        assert len(conflicts) == 1
        conflict = conflicts[0]
        assert conflict.conflict_type == ConflictType.AMOUNT
        assert conflict.suggested_resolution == SuggestedResolution.USE_BANK
        assert conflict.confidence == 0.9
        assert conflict.bank_value == Decimal("200.00")
        assert conflict.app_value == Decimal("180.00")
        assert conflict.match_id == "match_1"
        assert (conflict.bank_transaction_id, conflict.app_transaction_id) == ("b1", "a1")

    def test_date_more_than_a_day_apart(self, identifier, make_bank, make_app):
        match = _match(make_bank(), make_app(date="2024-01-12T12:00:00"))

        conflicts = identifier.identify_conflicts([match])

        assert [c.conflict_type for c in conflicts] == [ConflictType.DATE]
        assert conflicts[0].suggested_resolution == SuggestedResolution.USE_BANK
        assert conflicts[0].confidence == 0.8

    def test_exactly_one_day_is_not_a_conflict(self, identifier, make_bank, make_app):
        match = _match(make_bank(), make_app(date="2024-01-11T12:00:00"))
        assert identifier.identify_conflicts([match]) == []

    def test_category_disagreement_needs_manual_review(self, identifier, make_bank, make_app):
        match = _match(make_bank(category="Transport"), make_app(category="Food"))

        conflicts = identifier.identify_conflicts([match])

        assert [c.conflict_type for c in conflicts] == [ConflictType.CATEGORY]
        assert conflicts[0].suggested_resolution == SuggestedResolution.MANUAL_REVIEW
        assert conflicts[0].confidence == 0.6

    def test_missing_category_on_one_side_is_not_a_conflict(self, identifier, make_bank, make_app):
        match = _match(make_bank(category="Transport"), make_app())
        assert identifier.identify_conflicts([match]) == []

    def test_one_conflict_per_differing_field(self, identifier, make_bank, make_app):
        match = _match(
            make_bank(amount="200.00", category="Transport"),
            make_app(amount="180.00", date="2024-01-13T12:00:00", category="Food"),
        )

        conflicts = identifier.identify_conflicts([match])

        assert {c.conflict_type for c in conflicts} == {
            ConflictType.AMOUNT,
            ConflictType.DATE,
            ConflictType.CATEGORY,
        }
        assert len({c.id for c in conflicts}) == 3

    def test_bank_only_match_is_skipped(self, identifier, make_bank):
        assert identifier.identify_conflicts([_match(make_bank())]) == []
