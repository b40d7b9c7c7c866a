"""
Tiered trigger matching.

Scans the trigger table tier by tier (exact, primary, semantic, contextual)
and emits one ``MatchResult`` per trigger phrase found in the input.

Two scoring modes exist:

- ``tiered``: confidence is the trigger's tuned base confidence
- ``length_ratio``: confidence is ``round(score(input, phrase) * 100)``

A router instance uses exactly one mode for every match it ranks.
"""

import logging
from enum import Enum
from typing import Callable, List, Optional

from skill_router.routing.models import MatchResult
from skill_router.routing.scorer import normalize, score
from skill_router.routing.triggers import TIER_ORDER, Trigger, TriggerTable, TriggerTier

logger = logging.getLogger(__name__)


class ScoringMode(str, Enum):
    TIERED = "tiered"
    LENGTH_RATIO = "length_ratio"


def _reasoning(trigger: Trigger) -> str:
    reasoning = f'{trigger.tier.label} for "{trigger.phrase}"'
    if trigger.tier == TriggerTier.CONTEXTUAL and trigger.context:
        reasoning += f" ({trigger.context})"
    return reasoning


def find_matches(
    user_input: str,
    table: TriggerTable,
    scoring: ScoringMode = ScoringMode.TIERED,
    phase_of: Optional[Callable[[str], Optional[str]]] = None,
) -> List[MatchResult]:
    """Find every trigger contained in ``user_input``.

    Pure function over the table and the input.

    Args:
        user_input: Raw user input
        table: Trigger table to scan
        scoring: Scoring mode used to compute confidence
        phase_of: Optional lookup from skill id to workflow phase

    Returns:
        Matches in tier priority order, then table order
    """
    text = normalize(user_input)
    scoring = ScoringMode(scoring)
    results: List[MatchResult] = []

    if not text:
        return results

    for tier in TIER_ORDER:
        for trigger in table.by_tier(tier):
            if normalize(trigger.phrase) not in text:
                continue

            if scoring == ScoringMode.LENGTH_RATIO:
                confidence = round(score(text, trigger.phrase) * 100)
            else:
                confidence = trigger.confidence

            results.append(MatchResult(
                skill=trigger.skill,
                confidence=max(0, min(confidence, 100)),
                trigger=trigger.phrase,
                tier=trigger.tier,
                reasoning=_reasoning(trigger),
                context=trigger.context,
                phase=phase_of(trigger.skill) if phase_of else None,
            ))

    logger.debug(f"{len(results)} trigger matches for input '{text[:50]}'")
    return results


__all__ = ["ScoringMode", "find_matches"]
