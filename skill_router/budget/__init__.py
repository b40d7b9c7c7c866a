"""
Token budget for progressive disclosure.

Exports:
- ContextBudgetTracker: three-tier budget with deterministic eviction
- TokenEstimator / ApproximateTokenEstimator: content cost estimation
- FileContentProvider / LocalFileContentProvider: execution-tier file reads
"""

from skill_router.budget.content import (
    FileContentProvider,
    InMemoryContentProvider,
    LocalFileContentProvider,
)
from skill_router.budget.token_estimator import ApproximateTokenEstimator, TokenEstimator
from skill_router.budget.tracker import (
    ActivationResult,
    BudgetedItem,
    BudgetRecommendation,
    BudgetStatus,
    BudgetTier,
    ContextBudgetTracker,
    DeactivationResult,
    LoadResult,
    UnloadResult,
)

__all__ = [
    "ContextBudgetTracker",
    "BudgetTier",
    "BudgetedItem",
    "BudgetStatus",
    "BudgetRecommendation",
    "LoadResult",
    "ActivationResult",
    "DeactivationResult",
    "UnloadResult",
    "TokenEstimator",
    "ApproximateTokenEstimator",
    "FileContentProvider",
    "LocalFileContentProvider",
    "InMemoryContentProvider",
]
