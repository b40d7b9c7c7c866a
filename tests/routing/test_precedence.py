"""
Tests for precedence resolution.
"""

from skill_router.routing.models import MatchResult
from skill_router.routing.precedence import resolve
from skill_router.routing.triggers import TriggerTier


def match(skill, confidence, tier=TriggerTier.PRIMARY, priority=None, trigger=None):
    return MatchResult(
        skill=skill,
        confidence=confidence,
        trigger=trigger or f"{skill}-{tier.value}-{confidence}",
        tier=tier,
        priority=priority,
    )


class TestResolve:
    def test_one_result_per_skill(self):
        ranked = resolve([
            match("planning", 80, TriggerTier.SEMANTIC),
            match("planning", 90),
            match("git-workflow", 85),
        ])

        assert [m.skill for m in ranked] == ["planning", "git-workflow"]
        assert ranked[0].confidence == 90

    def test_equal_confidence_prefers_higher_tier(self):
        ranked = resolve([
            match("planning", 84, TriggerTier.SEMANTIC, trigger="semantic"),
            match("planning", 84, TriggerTier.PRIMARY, trigger="primary"),
        ])
        assert ranked[0].trigger == "primary"

    def test_high_priority_first(self):
        ranked = resolve([
            match("planning", 99, TriggerTier.EXACT),
            match("testing-framework", 60, TriggerTier.CONTEXTUAL, priority="high"),
        ])
        assert [m.skill for m in ranked] == ["testing-framework", "planning"]

    def test_tier_breaks_confidence_ties_across_skills(self):
        ranked = resolve([
            match("planning", 90, TriggerTier.SEMANTIC),
            match("git-workflow", 90, TriggerTier.PRIMARY),
        ])
        assert [m.skill for m in ranked] == ["git-workflow", "planning"]

    def test_top_three_by_default(self):
        ranked = resolve([match(f"skill-{i}", 50 + i) for i in range(6)])
        assert [m.skill for m in ranked] == ["skill-5", "skill-4", "skill-3"]

    def test_custom_and_unbounded_limit(self):
        matches = [match(f"skill-{i}", 50 + i) for i in range(6)]
        assert len(resolve(matches, limit=1)) == 1
        assert len(resolve(matches, limit=None)) == 6

    def test_empty(self):
        assert resolve([]) == []

    def test_deterministic(self):
        matches = [match("a", 70), match("b", 90, TriggerTier.SEMANTIC), match("c", 90)]
        assert resolve(matches) == resolve(list(reversed(matches)))
