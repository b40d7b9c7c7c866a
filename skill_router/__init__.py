"""
Skill Activation Router

Routes natural-language requests to skill bundles and keeps their
instructions inside a fixed token budget through progressive disclosure:

- Discovery: skill metadata only (~50 tokens/skill)
- Activation: full SKILL.md instructions (capped per skill)
- Execution: supporting files loaded on demand (capped per file)

A four-phase engineering workflow (spec-forge -> planning -> work -> review)
gates which phase skills may be activated.

Usage:
    from skill_router import create_router

    router = create_router()
    analysis = router.analyze("create requirements for login")
    router.transition_phase("spec-forge")
"""

from skill_router.errors import (
    BudgetExceeded,
    ErrorCode,
    NotFoundError,
    RouterError,
    SequenceViolation,
    ValidationError,
)
from skill_router.logging_config import setup_logging, setup_logging_from_config
from skill_router.router import (
    AnalysisResult,
    RouterState,
    SkillActivation,
    SkillActivationRouter,
    TransitionResult,
    create_router,
)
from skill_router.tool import create_router_tools

__version__ = "1.0.0"

__all__ = [
    # Router
    "SkillActivationRouter",
    "RouterState",
    "AnalysisResult",
    "TransitionResult",
    "SkillActivation",
    "create_router",
    # Tools
    "create_router_tools",
    # Logging
    "setup_logging",
    "setup_logging_from_config",
    # Errors
    "ErrorCode",
    "RouterError",
    "ValidationError",
    "SequenceViolation",
    "BudgetExceeded",
    "NotFoundError",
]
