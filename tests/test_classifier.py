"""Tests for the rule-based category classifier."""

import asyncio
from decimal import Decimal

import pytest

from finance_recon.categorization.classifier import (
    AmountRange,
    CategoryRule,
    RuleBasedClassifier,
)


def classify(classifier, transaction):
    return asyncio.run(classifier.classify(transaction))


class TestDefaultRules:
    def test_fuel_station(self, make_bank):
        result = classify(RuleBasedClassifier(), make_bank(description="Posto Shell"))

        assert result.suggested_category == "Transport"
        assert result.suggested_subcategory == "Fuel"
        # keywords 2/7 * 0.4 + merchant pattern 0.5, scaled by rule confidence 0.95
        assert result.confidence == pytest.approx(0.583571, abs=1e-6)
        assert result.needs_review is True

    def test_merchant_pattern_after_prefix(self, make_bank):
        txn = make_bank(description="Compra", merchant_name="Compra Shell")
        result = classify(RuleBasedClassifier(), txn)

        assert result.suggested_category == "Transport"
        assert "merchant pattern" in result.suggestions[0].reason

    def test_unknown_transaction_falls_back(self, make_bank):
        result = classify(RuleBasedClassifier(), make_bank(description="qwzx"))

        assert result.suggested_category == "Other"
        assert result.confidence == 0.1
        assert result.suggestions == []

    def test_merchant_name_is_considered(self, make_bank):
        txn = make_bank(description="compra cartao", merchant_name="NETFLIX.COM")
        result = classify(RuleBasedClassifier(), txn)

        assert result.suggested_category == "Services"
        assert result.suggested_subcategory == "Streaming"


class TestCustomRules:
    @pytest.fixture
    def gym_rule(self):
        return CategoryRule(
            name="Gym",
            category="Health",
            subcategory="Fitness",
            keywords=["academia"],
            merchant_patterns=["SMARTFIT*"],
            confidence=1.0,
        )

    def test_keyword_and_merchant_pattern(self, make_bank, gym_rule):
        classifier = RuleBasedClassifier(rules=[gym_rule])
        result = classify(classifier, make_bank(description="smartfit academia"))

        assert result.suggested_category == "Health"
        assert result.confidence == pytest.approx(0.9)
        assert result.suggestions[0].rule_id == gym_rule.id
        assert gym_rule.usage_count == 1

    def test_merchant_pattern_matches_inside_text(self, make_bank, gym_rule):
        classifier = RuleBasedClassifier(rules=[gym_rule])
        result = classify(classifier, make_bank(description="pagamento smartfit"))

        assert result.suggested_category == "Health"
        assert result.confidence == pytest.approx(0.5)
        assert result.suggestions[0].reason == "merchant pattern"

    def test_amount_range_adds_to_score(self, make_bank, gym_rule):
        gym_rule.amount_ranges = [AmountRange(min=Decimal("50"), max=Decimal("150"))]
        classifier = RuleBasedClassifier(rules=[gym_rule])

        in_range = classify(classifier, make_bank(description="academia", amount="-99.90"))
        out_of_range = classify(classifier, make_bank(description="academia", amount="500"))

        assert in_range.confidence == pytest.approx(0.5)
        assert out_of_range.confidence == pytest.approx(0.4)

    def test_inactive_rule_is_skipped(self, make_bank, gym_rule):
        gym_rule.is_active = False
        classifier = RuleBasedClassifier(rules=[gym_rule])

        result = classify(classifier, make_bank(description="smartfit academia"))

        assert result.suggested_category == "Other"

    def test_add_and_remove_rule(self, make_bank, gym_rule):
        classifier = RuleBasedClassifier(rules=[])
        classifier.add_rule(gym_rule)
        assert classifier.rules == [gym_rule]

        classifier.remove_rule(gym_rule.id)
        assert classifier.rules == []
        assert classify(classifier, make_bank(description="academia")).suggested_category == "Other"

    def test_suggestions_deduplicated_by_category(self, make_bank):
        rules = [
            CategoryRule(name="a", category="Food", keywords=["pizza"], confidence=0.9),
            CategoryRule(name="b", category="Food", keywords=["pizza"], confidence=0.6),
            CategoryRule(name="c", category="Leisure", keywords=["pizza"], confidence=0.8),
        ]
        classifier = RuleBasedClassifier(rules=rules)

        suggestions = classifier.suggest(make_bank(description="pizza"))

        assert [(s.category, s.rule_id) for s in suggestions] == [
            ("Food", rules[0].id),
            ("Leisure", rules[2].id),
        ]
