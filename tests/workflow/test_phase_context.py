"""
Tests for phase-aware execution file loading.
"""

import pytest

from skill_router.budget import BudgetTier, ContextBudgetTracker, InMemoryContentProvider
from skill_router.errors import NotFoundError
from skill_router.workflow.phase_context import PhaseContextManager, TransitionOptions

FILES = {
    "a.md": "a" * 400,    # 100 tokens
    "b.md": "b" * 200,    # 50 tokens
    "c.md": "c" * 400,    # 100 tokens
    "mem.md": "m" * 40,   # 10 tokens
    "s1.md": "s" * 80,    # 20 tokens
}


def make_manager(ceiling=8000, discovery_cost=50):
    budget = ContextBudgetTracker(
        ceiling=ceiling,
        discovery_cost=discovery_cost,
        content_provider=InMemoryContentProvider(FILES),
    )
    manager = PhaseContextManager(
        budget,
        phase_files={
            "spec-forge": ["a.md", "b.md"],
            "planning": ["c.md"],
            "work": ["missing.md", "c.md"],
        },
        supporting_files={"spec-forge": ["s1.md"]},
        core_files=["mem.md"],
        phase_skills={"spec-forge": "ears-specification", "planning": "planning", "work": "git-workflow"},
    )
    return budget, manager


class TestTransitionTo:
    def test_first_transition_loads_phase_and_core_files(self):
        budget, manager = make_manager()

        result = manager.transition_to("spec-forge")

        assert result.previous_phase is None
        assert result.files_loaded == ["a.md", "b.md", "mem.md"]
        assert result.tokens_loaded == 160
        assert result.success
        assert budget.is_known("ears-specification")
        assert budget.execution_files("ears-specification") == ["a.md", "b.md", "mem.md"]
        assert manager.current_phase == "spec-forge"

    def test_transition_unloads_previous_but_keeps_core(self):
        budget, manager = make_manager()
        manager.transition_to("spec-forge")

        result = manager.transition_to("planning")

        assert result.previous_phase == "spec-forge"
        assert sorted(result.files_unloaded) == ["a.md", "b.md"]
        assert result.tokens_freed == 150
        assert result.files_loaded == ["c.md"]
        assert result.net_token_change == -50
        assert budget.is_loaded("mem.md")
        assert not budget.is_loaded("a.md")
        assert manager.loaded_files == {"mem.md": "planning", "c.md": "planning"}

    def test_keep_previous_files(self):
        budget, manager = make_manager()
        manager.transition_to("spec-forge")

        result = manager.transition_to("planning", TransitionOptions(unload_previous=False))

        assert result.files_unloaded == []
        assert budget.is_loaded("a.md")

    def test_without_core_files(self):
        budget, manager = make_manager()

        manager.transition_to("spec-forge", TransitionOptions(maintain_core=False))

        assert not budget.is_loaded("mem.md")

    def test_supporting_files(self):
        budget, manager = make_manager()

        result = manager.transition_to("spec-forge", TransitionOptions(preload_supporting=True))

        assert "s1.md" in result.files_loaded
        assert result.tokens_loaded == 180

    def test_missing_file_is_reported_not_raised(self):
        budget, manager = make_manager()

        result = manager.transition_to("work")

        assert not result.success
        assert [e.path for e in result.errors] == ["missing.md"]
        assert result.errors[0].code == "NOT_FOUND"
        assert budget.is_loaded("c.md")
        assert manager.current_phase == "work"

    def test_owner_over_budget_is_reported_not_raised(self):
        budget, manager = make_manager(ceiling=100)
        budget.load_discovery("one")
        budget.load_discovery("two")

        result = manager.transition_to("spec-forge")

        assert not result.success
        assert [(e.path, e.code) for e in result.errors] == [("ears-specification", "BUDGET_EXCEEDED")]
        assert result.files_loaded == []
        assert not budget.is_known("ears-specification")
        assert manager.current_phase == "spec-forge"

    def test_unknown_phase(self):
        _, manager = make_manager()
        with pytest.raises(NotFoundError):
            manager.transition_to("deploy")

    def test_history(self):
        _, manager = make_manager()
        manager.transition_to("spec-forge")
        manager.transition_to("planning")

        assert [(h["from"], h["to"]) for h in manager.history] == [(None, "spec-forge"), ("spec-forge", "planning")]


class TestPreload:
    def test_preload_when_room(self):
        budget, manager = make_manager()

        result = manager.preload("planning")

        assert result.preloaded
        assert result.files_loaded == ["c.md"]
        assert budget.is_known("planning")

    def test_preload_refused_when_utilization_high(self):
        budget, manager = make_manager(ceiling=100)
        budget.load_discovery("one")
        budget.load_discovery("two")

        result = manager.preload("planning")

        assert not result.preloaded
        assert "Insufficient context space" in result.reason
        assert budget.tier_tokens(BudgetTier.EXECUTION) == 0

    def test_preload_refused_when_owner_cannot_be_discovered(self):
        budget, manager = make_manager(ceiling=100, discovery_cost=60)
        budget.load_discovery("one")

        result = manager.preload("planning")

        assert not result.preloaded
        assert result.errors[0].code == "BUDGET_EXCEEDED"
        assert "planning" in result.reason
        assert budget.total_tokens == 60


class TestOptimizeAndRecommendations:
    def test_optimize_unloads_other_phase_files(self):
        budget, manager = make_manager(ceiling=400)
        manager.transition_to("spec-forge")
        manager.preload("planning")
        assert budget.status().utilization_percent == 90.0

        recommendations = manager.recommendations()
        assert not recommendations.can_transition
        assert "optimize-context" in [r.action for r in recommendations.recommendations]

        result = manager.optimize()

        assert result.applied
        assert result.files_unloaded == ["c.md"]
        assert result.tokens_freed == 100
        assert result.utilization_after == 65.0
        assert budget.is_loaded("a.md")

    def test_optimize_noop_below_threshold(self):
        _, manager = make_manager()
        manager.transition_to("spec-forge")

        result = manager.optimize()

        assert not result.applied
        assert result.utilization_before == result.utilization_after

    def test_recommendations_when_healthy(self):
        _, manager = make_manager()
        recommendations = manager.recommendations()
        assert recommendations.can_transition
        assert recommendations.recommendations == []


class TestStatus:
    def test_status_and_reset(self):
        _, manager = make_manager()
        manager.transition_to("spec-forge")

        status = manager.status()
        assert status["current_phase"] == "spec-forge"
        assert status["phase_file_count"] == 3
        assert status["available_phases"] == ["spec-forge", "planning", "work"]

        manager.reset()
        assert manager.current_phase is None
        assert manager.loaded_files == {}
        assert manager.history == []
