"""Transaction categorization collaborators."""

from .classifier import (
    AmountRange,
    CategoryClassifier,
    CategoryRule,
    CategorySuggestion,
    Classification,
    RuleBasedClassifier,
    default_rules,
)

__all__ = [
    "AmountRange",
    "CategoryClassifier",
    "CategoryRule",
    "CategorySuggestion",
    "Classification",
    "RuleBasedClassifier",
    "default_rules",
]
