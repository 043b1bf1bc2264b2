"""
Scoring strategies for bank/app transaction pairs.
Each strategy sums weighted signals into a confidence and explains itself.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from ..config import MatchingConfig
from ..models.transaction import AppTransaction, BankTransaction
from .similarity import similarity

SECONDS_PER_DAY = 24 * 60 * 60

# Weighted sums of floats drift in the last bits; thresholds compare rounded values
CONFIDENCE_PRECISION = 6


@dataclass
class MatchScore:
    """Confidence of a pairing plus the reasons that contributed to it."""

    confidence: float = 0.0
    reasons: list[str] = field(default_factory=list)

    def add(self, weight: float, reason: str) -> None:
        self.confidence = round(self.confidence + weight, CONFIDENCE_PRECISION)
        self.reasons.append(reason)


def days_between(bank_txn: BankTransaction, app_txn: AppTransaction) -> float:
    """Absolute distance between the two transaction timestamps, in days."""
    return abs((bank_txn.date - app_txn.date).total_seconds()) / SECONDS_PER_DAY


def amount_difference(bank_txn: BankTransaction, app_txn: AppTransaction) -> Decimal:
    return abs(bank_txn.amount - app_txn.amount)


def _lower(text: Optional[str]) -> str:
    return (text or "").lower()


class ScoringStrategy(ABC):
    """Abstract base class for pair scoring strategies."""

    def __init__(self, config: Optional[MatchingConfig] = None):
        self.config = config or MatchingConfig()

    @abstractmethod
    def score(self, bank_txn: BankTransaction, app_txn: AppTransaction) -> MatchScore:
        """
        Score one bank transaction against one app transaction.

        Args:
            bank_txn: Transaction reported by the bank
            app_txn: Transaction recorded in the application

        Returns:
            MatchScore with the summed confidence and contributing reasons
        """
        pass


class ExactScoreStrategy(ScoringStrategy):
    """
    Near-perfect agreement on amount, date, description and reference.
    Without a shared reference the score tops out at 0.90.
    """

    def score(self, bank_txn: BankTransaction, app_txn: AppTransaction) -> MatchScore:
        weights = self.config.exact_weights
        result = MatchScore()

        if amount_difference(bank_txn, app_txn) < Decimal(str(self.config.amount_epsilon)):
            result.add(weights.amount, "exact amount")

        if days_between(bank_txn, app_txn) <= self.config.exact_date_tolerance_days:
            result.add(weights.date, "compatible date")

        desc_similarity = similarity(_lower(bank_txn.description), _lower(app_txn.description))
        if desc_similarity >= self.config.exact_description_similarity:
            result.add(weights.description, "similar description")

        if bank_txn.reference and app_txn.reference and bank_txn.reference == app_txn.reference:
            result.add(weights.reference, "identical reference")

        return result


class FuzzyScoreStrategy(ScoringStrategy):
    """Tolerant scoring for amount drift, late postings and partial text overlap."""

    def score(self, bank_txn: BankTransaction, app_txn: AppTransaction) -> MatchScore:
        weights = self.config.fuzzy_weights
        result = MatchScore()

        amount_diff = amount_difference(bank_txn, app_txn)
        tolerance = max(
            abs(bank_txn.amount) * Decimal(str(self.config.fuzzy_amount_tolerance_percent)) / 100,
            Decimal(str(self.config.fuzzy_amount_tolerance_min)),
        )
        if amount_diff <= tolerance:
            result.add(weights.amount, f"amount within tolerance (difference: {amount_diff:.2f})")

        days_diff = days_between(bank_txn, app_txn)
        window = self.config.fuzzy_date_tolerance_days
        if days_diff <= window:
            result.add(weights.date * (1 - days_diff / window), f"close date ({days_diff:.1f} days)")

        desc_similarity = similarity(_lower(bank_txn.description), _lower(app_txn.description))
        if desc_similarity >= self.config.fuzzy_description_similarity:
            result.add(
                weights.description * desc_similarity,
                f"similar description ({desc_similarity:.0%})",
            )

        if bank_txn.merchant_name and app_txn.merchant_name:
            merchant_similarity = similarity(
                bank_txn.merchant_name.lower(), app_txn.merchant_name.lower()
            )
            if merchant_similarity >= self.config.fuzzy_merchant_similarity:
                result.add(weights.merchant, "similar merchant")

        if bank_txn.type == app_txn.type:
            result.add(weights.type, "compatible transaction type")

        return result


class MatchScorer:
    """Pure scoring front end used by the matcher."""

    def __init__(self, config: Optional[MatchingConfig] = None):
        config = config or MatchingConfig()
        self.exact = ExactScoreStrategy(config)
        self.fuzzy = FuzzyScoreStrategy(config)

    def exact_score(self, bank_txn: BankTransaction, app_txn: AppTransaction) -> MatchScore:
        return self.exact.score(bank_txn, app_txn)

    def fuzzy_score(self, bank_txn: BankTransaction, app_txn: AppTransaction) -> MatchScore:
        return self.fuzzy.score(bank_txn, app_txn)
