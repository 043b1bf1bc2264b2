"""
Shared fixtures for the reconciliation test suite.

Test strategy:
1. Unit tests for each stage (similarity, scoring, matcher, duplicates, conflicts)
2. Engine tests with in-memory or temp-file stores and fake classifiers
3. No real banking or classifier services
"""

import asyncio
from datetime import datetime
from decimal import Decimal

import pytest

from finance_recon.categorization.classifier import CategoryClassifier, Classification
from finance_recon.models.transaction import (
    AppTransaction,
    BankTransaction,
    TransactionType,
)


def _when(value):
    return datetime.fromisoformat(value) if isinstance(value, str) else value


@pytest.fixture
def make_bank():
    """Factory for bank transactions with sensible defaults."""

    def factory(
        id="b1",
        amount="100.00",
        date="2024-01-10T12:00:00",
        description="Posto Shell",
        type=TransactionType.DEBIT,
        **kwargs,
    ) -> BankTransaction:
        return BankTransaction(
            id=id,
            account_id=kwargs.pop("account_id", "acc-1"),
            amount=Decimal(amount),
            description=description,
            date=_when(date),
            type=type,
            **kwargs,
        )

    return factory


@pytest.fixture
def make_app():
    """Factory for app transactions with sensible defaults."""

    def factory(
        id="a1",
        amount="100.00",
        date="2024-01-10T12:00:00",
        description="Posto Shell",
        type=TransactionType.DEBIT,
        **kwargs,
    ) -> AppTransaction:
        return AppTransaction(
            id=id,
            amount=Decimal(amount),
            description=description,
            date=_when(date),
            type=type,
            **kwargs,
        )

    return factory


class FixedClassifier(CategoryClassifier):
    """Returns the same classification for every transaction."""

    def __init__(self, category="Services", confidence=0.9):
        self.category = category
        self.confidence = confidence
        self.calls: list[str] = []

    async def classify(self, transaction):
        self.calls.append(transaction.id)
        return Classification(
            transaction_id=transaction.id,
            suggested_category=self.category,
            confidence=self.confidence,
        )


class FailingClassifier(CategoryClassifier):
    """Raises ``error`` for the listed ids (all ids when none are listed)."""

    def __init__(self, error=None, fail_ids=None):
        self.error = error or RuntimeError("classifier unavailable")
        self.fail_ids = fail_ids

    async def classify(self, transaction):
        if self.fail_ids is None or transaction.id in self.fail_ids:
            raise self.error
        return Classification(
            transaction_id=transaction.id, suggested_category="Services", confidence=0.9
        )


class SlowClassifier(CategoryClassifier):
    async def classify(self, transaction):
        await asyncio.sleep(1)
        return Classification(
            transaction_id=transaction.id, suggested_category="Late", confidence=1.0
        )
