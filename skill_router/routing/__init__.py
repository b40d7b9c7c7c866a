"""
Skill routing.

Pipeline for one input:

    find_matches -> adjust -> resolve

- triggers: tiered trigger table (exact / primary / semantic / contextual)
- scorer: length-ratio confidence scorer and text normalization
- matcher: tiered phrase matching
- adjuster: session-aware bonuses with recorded adjustments
- precedence: per-skill deduplication and deterministic ranking
"""

from skill_router.routing.adjuster import adjust
from skill_router.routing.matcher import ScoringMode, find_matches
from skill_router.routing.models import MatchResult, SessionContext, SessionUpdate
from skill_router.routing.precedence import resolve
from skill_router.routing.scorer import normalize, score
from skill_router.routing.triggers import (
    Trigger,
    TriggerTable,
    TriggerTier,
    load_trigger_table,
)

__all__ = [
    "Trigger",
    "TriggerTable",
    "TriggerTier",
    "load_trigger_table",
    "MatchResult",
    "SessionContext",
    "SessionUpdate",
    "ScoringMode",
    "score",
    "normalize",
    "find_matches",
    "adjust",
    "resolve",
]
