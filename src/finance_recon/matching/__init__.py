"""Matching engine and its stages."""

from .conflicts import ConflictIdentifier
from .duplicates import DuplicateDetector
from .engine import ReconciliationEngine
from .matcher import Matcher
from .scoring import (
    ExactScoreStrategy,
    FuzzyScoreStrategy,
    MatchScore,
    MatchScorer,
    ScoringStrategy,
)
from .similarity import similarity

__all__ = [
    "ConflictIdentifier",
    "DuplicateDetector",
    "ExactScoreStrategy",
    "FuzzyScoreStrategy",
    "MatchScore",
    "MatchScorer",
    "Matcher",
    "ReconciliationEngine",
    "ScoringStrategy",
    "similarity",
]
