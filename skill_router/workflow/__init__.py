"""
Workflow phase management.

- PhaseSequencer: gate enforcing spec-forge -> planning -> work -> review
- PhaseContextManager: per-phase execution file loading through the budget
"""

from skill_router.workflow.phase_context import (
    OptimizationResult,
    PhaseContextManager,
    PhaseContextResult,
    PreloadResult,
    TransitionOptions,
    TransitionRecommendations,
)
from skill_router.workflow.sequencer import (
    DEFAULT_PHASE_SEQUENCE,
    PhaseCompletion,
    PhaseSequencer,
    PhaseValidation,
    ValidationType,
    WorkflowStatus,
)

__all__ = [
    "PhaseSequencer",
    "PhaseValidation",
    "PhaseCompletion",
    "WorkflowStatus",
    "ValidationType",
    "DEFAULT_PHASE_SEQUENCE",
    "PhaseContextManager",
    "TransitionOptions",
    "PhaseContextResult",
    "OptimizationResult",
    "PreloadResult",
    "TransitionRecommendations",
]
