"""
Session-aware confidence adjustments.

Each rule is applied independently to every match and recorded in the
match's ``adjustments`` list. Confidence is clamped to 100 after each step.
"""

import logging
from collections import Counter
from typing import List

from skill_router.routing.models import MatchResult, SessionContext
from skill_router.routing.scorer import normalize
from skill_router.routing.triggers import TriggerTable

logger = logging.getLogger(__name__)

SEQUENTIAL_BONUS = 10
ERROR_CONTEXT_BONUS = 15
URGENCY_BONUS = 8
REPETITION_BONUS = 5

MAX_CONFIDENCE = 100


def _bump(confidence: int, bonus: int) -> int:
    return max(0, min(MAX_CONFIDENCE, confidence + bonus))


def adjust(
    matches: List[MatchResult],
    user_input: str,
    session: SessionContext,
    table: TriggerTable,
) -> List[MatchResult]:
    """Apply session-derived bonuses to raw matches.

    The input list is not mutated; adjusted copies are returned in the
    same order.
    """
    text = normalize(user_input)
    skill_counts = Counter(m.skill for m in matches)

    next_skill = None
    if session.last_activity:
        next_skill = table.next_skill_after(session.last_activity)

    urgent = any(keyword in text for keyword in table.urgency_keywords)

    adjusted: List[MatchResult] = []
    for match in matches:
        confidence = match.confidence
        reasons = list(match.adjustments)
        persona = match.persona
        priority = match.priority

        if next_skill is not None and next_skill == match.skill:
            confidence = _bump(confidence, SEQUENTIAL_BONUS)
            reasons.append("Sequential workflow progression")

        for phrase, cfg in table.error_phrases.items():
            if normalize(phrase) in text and cfg.skill == match.skill:
                confidence = _bump(confidence, ERROR_CONTEXT_BONUS)
                reasons.append(f"Error-driven activation ({phrase})")
                if cfg.persona:
                    persona = cfg.persona

        if urgent:
            confidence = _bump(confidence, URGENCY_BONUS)
            reasons.append("Urgency detected")
            priority = "high"

        if skill_counts[match.skill] > 1:
            confidence = _bump(confidence, REPETITION_BONUS)
            reasons.append("Multiple intent indicators")

        adjusted.append(match.model_copy(update={
            "confidence": confidence,
            "original_confidence": match.confidence,
            "adjustments": reasons,
            "persona": persona,
            "priority": priority,
        }))

        if reasons:
            logger.debug(
                f"Adjusted {match.skill} '{match.trigger}': {match.confidence} -> {confidence} ({', '.join(reasons)})"
            )

    return adjusted


__all__ = [
    "adjust",
    "SEQUENTIAL_BONUS",
    "ERROR_CONTEXT_BONUS",
    "URGENCY_BONUS",
    "REPETITION_BONUS",
]
