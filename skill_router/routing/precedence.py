"""
Precedence rules for ranking adjusted matches.

1. Keep one match per skill: highest confidence, ties go to the higher tier.
2. Order by high priority first, then confidence, then tier rank.
3. Return the top ``limit`` results.

Matches equal on all three keys keep no guaranteed relative order.
"""

from typing import Dict, List

from skill_router.routing.models import MatchResult

DEFAULT_LIMIT = 3


def _beats(candidate: MatchResult, current: MatchResult) -> bool:
    if candidate.confidence != current.confidence:
        return candidate.confidence > current.confidence
    return candidate.tier.rank > current.tier.rank


def sort_key(match: MatchResult):
    return (
        0 if match.is_high_priority else 1,
        -match.confidence,
        -match.tier.rank,
    )


def resolve(matches: List[MatchResult], limit: int = DEFAULT_LIMIT) -> List[MatchResult]:
    """Deduplicate by skill and rank deterministically."""
    best: Dict[str, MatchResult] = {}
    for match in matches:
        current = best.get(match.skill)
        if current is None or _beats(match, current):
            best[match.skill] = match

    ranked = sorted(best.values(), key=sort_key)
    if limit is None or limit < 0:
        return ranked
    return ranked[:limit]


__all__ = ["resolve", "sort_key", "DEFAULT_LIMIT"]
