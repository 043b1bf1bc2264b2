"""
Category classification for bank transactions.

The engine only needs ``CategoryClassifier.classify``. ``RuleBasedClassifier``
is the default implementation: keyword and merchant-pattern rules scored
against the description and merchant name.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional
import fnmatch
import logging
import uuid

from ..models.transaction import AnyTransaction

logger = logging.getLogger(__name__)

FALLBACK_CATEGORY = "Other"
FALLBACK_CONFIDENCE = 0.1
MAX_SUGGESTIONS = 5


@dataclass
class AmountRange:
    min: Optional[Decimal] = None
    max: Optional[Decimal] = None

    def contains(self, amount: Decimal) -> bool:
        return (self.min is None or amount >= self.min) and (
            self.max is None or amount <= self.max
        )


@dataclass
class CategoryRule:
    """Keyword and merchant-pattern rule mapping transactions to a category."""

    name: str
    category: str
    keywords: list[str] = field(default_factory=list)
    merchant_patterns: list[str] = field(default_factory=list)
    subcategory: Optional[str] = None
    amount_ranges: list[AmountRange] = field(default_factory=list)
    confidence: float = 0.9
    is_active: bool = True
    usage_count: int = 0
    id: str = field(default_factory=lambda: f"rule_{uuid.uuid4().hex[:12]}")


@dataclass
class CategorySuggestion:
    category: str
    confidence: float
    reason: str
    subcategory: Optional[str] = None
    rule_id: Optional[str] = None


@dataclass
class Classification:
    """Outcome of classifying one transaction; suggestions are ranked best first."""

    transaction_id: str
    suggested_category: str
    confidence: float
    suggested_subcategory: Optional[str] = None
    suggestions: list[CategorySuggestion] = field(default_factory=list)

    @property
    def needs_review(self) -> bool:
        return self.confidence < 0.6


class CategoryClassifier(ABC):
    """Abstract interface for transaction categorization."""

    @abstractmethod
    async def classify(self, transaction: AnyTransaction) -> Classification:
        """
        Suggest a category for a transaction.

        Args:
            transaction: Transaction to classify

        Returns:
            Classification with the best suggestion and its confidence

        Raises:
            CategorizationError: If classification cannot be performed
        """
        pass


def default_rules() -> list[CategoryRule]:
    """Built-in rules for common Brazilian merchants and payment rails."""
    return [
        CategoryRule(
            name="Supermarkets",
            keywords=["supermercado", "mercado", "extra", "carrefour", "pao de acucar", "walmart"],
            merchant_patterns=["SUPERMERCADO*", "MERCADO*", "EXTRA*", "CARREFOUR*"],
            confidence=0.9,
            category="Food",
            subcategory="Groceries",
        ),
        CategoryRule(
            name="Restaurants",
            keywords=["restaurante", "lanchonete", "pizzaria", "hamburgueria", "ifood", "uber eats"],
            merchant_patterns=["RESTAURANTE*", "LANCHONETE*", "IFOOD*", "UBER EATS*"],
            confidence=0.85,
            category="Food",
            subcategory="Restaurant",
        ),
        CategoryRule(
            name="Bakery",
            keywords=["padaria", "panificadora", "confeitaria"],
            merchant_patterns=["PADARIA*", "PANIFICADORA*"],
            confidence=0.9,
            category="Food",
            subcategory="Bakery",
        ),
        CategoryRule(
            name="Fuel",
            keywords=["posto", "gasolina", "etanol", "diesel", "shell", "petrobras", "ipiranga"],
            merchant_patterns=["POSTO*", "SHELL*", "PETROBRAS*", "IPIRANGA*"],
            confidence=0.95,
            category="Transport",
            subcategory="Fuel",
        ),
        CategoryRule(
            name="Public transport",
            keywords=["metro", "onibus", "trem", "bilhete unico", "cartao transporte"],
            merchant_patterns=["METRO*", "CPTM*", "EMTU*"],
            confidence=0.9,
            category="Transport",
            subcategory="Public",
        ),
        CategoryRule(
            name="Ride hailing",
            keywords=["uber", "taxi", "99", "cabify"],
            merchant_patterns=["UBER*", "TAXI*", "99*", "CABIFY*"],
            confidence=0.95,
            category="Transport",
            subcategory="Ride hailing",
        ),
        CategoryRule(
            name="Pharmacy",
            keywords=["farmacia", "drogaria", "droga raia", "drogasil", "pacheco"],
            merchant_patterns=["FARMACIA*", "DROGARIA*", "DROGA RAIA*", "DROGASIL*"],
            confidence=0.9,
            category="Health",
            subcategory="Pharmacy",
        ),
        CategoryRule(
            name="Medical",
            keywords=["clinica", "hospital", "medico", "dentista", "consulta"],
            merchant_patterns=["CLINICA*", "HOSPITAL*", "DR.*", "DRA.*"],
            confidence=0.85,
            category="Health",
            subcategory="Appointment",
        ),
        CategoryRule(
            name="Education",
            keywords=["escola", "universidade", "faculdade", "colegio", "curso"],
            merchant_patterns=["ESCOLA*", "UNIVERSIDADE*", "FACULDADE*"],
            confidence=0.9,
            category="Education",
            subcategory="Tuition",
        ),
        CategoryRule(
            name="Entertainment",
            keywords=["cinema", "teatro", "show", "ingresso"],
            merchant_patterns=["CINEMA*", "TEATRO*", "INGRESSO*"],
            confidence=0.9,
            category="Leisure",
            subcategory="Entertainment",
        ),
        CategoryRule(
            name="Streaming",
            keywords=["netflix", "spotify", "amazon prime", "disney plus", "youtube premium"],
            merchant_patterns=["NETFLIX*", "SPOTIFY*", "AMAZON PRIME*", "DISNEY*"],
            confidence=0.95,
            category="Services",
            subcategory="Streaming",
        ),
        CategoryRule(
            name="Telecom",
            keywords=["vivo", "tim", "claro", "oi", "internet", "telefone"],
            merchant_patterns=["VIVO*", "TIM*", "CLARO*", "OI*"],
            confidence=0.9,
            category="Services",
            subcategory="Telecom",
        ),
        CategoryRule(
            name="Home improvement",
            keywords=["casa e construcao", "leroy merlin", "c&c", "telhanorte"],
            merchant_patterns=["LEROY MERLIN*", "C&C*", "TELHANORTE*"],
            confidence=0.9,
            category="Home",
            subcategory="Construction",
        ),
        CategoryRule(
            name="PIX",
            keywords=["pix", "transferencia pix"],
            merchant_patterns=["PIX*", "TRANSFERENCIA PIX*"],
            confidence=0.8,
            category="Transfer",
            subcategory="PIX",
        ),
    ]


class RuleBasedClassifier(CategoryClassifier):
    """
    Scores every active rule and ranks the resulting suggestions.

    Merchant patterns are case-insensitive globs matched anywhere in the
    merchant name or description, so "SHELL*" also fits "Compra Shell".
    """

    def __init__(self, rules: Optional[list[CategoryRule]] = None):
        self._rules: dict[str, CategoryRule] = {}
        for rule in default_rules() if rules is None else rules:
            self.add_rule(rule)

    @property
    def rules(self) -> list[CategoryRule]:
        return list(self._rules.values())

    def add_rule(self, rule: CategoryRule) -> CategoryRule:
        self._rules[rule.id] = rule
        return rule

    def remove_rule(self, rule_id: str) -> None:
        self._rules.pop(rule_id, None)

    async def classify(self, transaction: AnyTransaction) -> Classification:
        suggestions = self.suggest(transaction)
        best = suggestions[0] if suggestions else None

        return Classification(
            transaction_id=transaction.id,
            suggested_category=best.category if best else FALLBACK_CATEGORY,
            suggested_subcategory=best.subcategory if best else None,
            confidence=best.confidence if best else FALLBACK_CONFIDENCE,
            suggestions=suggestions,
        )

    def suggest(self, transaction: AnyTransaction) -> list[CategorySuggestion]:
        """Rank rule suggestions for a transaction, best first, at most five."""
        description = (transaction.description or "").lower()
        merchant = (transaction.merchant_name or "").lower()
        amount = abs(transaction.amount)

        suggestions: list[CategorySuggestion] = []
        for rule in self._rules.values():
            if not rule.is_active:
                continue

            score, reasons = self._score_rule(rule, description, merchant, amount)
            if score <= 0.2:
                continue

            rule.usage_count += 1
            suggestions.append(
                CategorySuggestion(
                    category=rule.category,
                    subcategory=rule.subcategory,
                    confidence=min(score * rule.confidence, 1.0),
                    reason="; ".join(reasons),
                    rule_id=rule.id,
                )
            )

        suggestions.sort(key=lambda s: s.confidence, reverse=True)
        return self._deduplicate(suggestions)[:MAX_SUGGESTIONS]

    def _score_rule(
        self, rule: CategoryRule, description: str, merchant: str, amount: Decimal
    ) -> tuple[float, list[str]]:
        score = 0.0
        reasons: list[str] = []

        keyword_hits = [
            k for k in rule.keywords if k.lower() in description or k.lower() in merchant
        ]
        if keyword_hits and rule.keywords:
            score += 0.4 * len(keyword_hits) / len(rule.keywords)
            reasons.append(f"keywords: {', '.join(keyword_hits)}")

        if any(
            fnmatch.fnmatchcase(text, f"*{pattern.lower()}")
            for pattern in rule.merchant_patterns
            for text in (merchant, description)
            if text
        ):
            score += 0.5
            reasons.append("merchant pattern")

        if rule.amount_ranges and any(r.contains(amount) for r in rule.amount_ranges):
            score += 0.1
            reasons.append("amount in expected range")

        return score, reasons

    @staticmethod
    def _deduplicate(suggestions: list[CategorySuggestion]) -> list[CategorySuggestion]:
        seen: set[tuple[str, str]] = set()
        unique: list[CategorySuggestion] = []
        for suggestion in suggestions:
            key = (suggestion.category, suggestion.subcategory or "")
            if key in seen:
                continue
            seen.add(key)
            unique.append(suggestion)
        return unique
