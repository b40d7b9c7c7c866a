"""
Tests for the context budget tracker.
"""

import pytest

from skill_router.budget import (
    BudgetTier,
    ContextBudgetTracker,
    InMemoryContentProvider,
)
from skill_router.errors import BudgetExceeded, NotFoundError


def big(n_tokens):
    """Content costing ``n_tokens`` at 4 chars per token."""
    return "x" * (n_tokens * 4)


@pytest.fixture
def tracker():
    return ContextBudgetTracker(content_provider=InMemoryContentProvider({
        "small.md": big(100),
        "large.md": big(5000),
        "other.md": big(300),
    }))


class TestDiscovery:
    def test_fixed_cost(self, tracker):
        result = tracker.load_discovery("planning", {"name": "planning"})

        assert result.tokens_used == 50
        assert tracker.total_tokens == 50
        assert tracker.get_item(BudgetTier.DISCOVERY, "planning").content == {"name": "planning"}

    def test_repeat_is_free(self, tracker):
        tracker.load_discovery("planning")
        result = tracker.load_discovery("planning")

        assert result.already_loaded
        assert tracker.total_tokens == 50


class TestActivation:
    def test_requires_discovery(self, tracker):
        with pytest.raises(NotFoundError):
            tracker.activate("planning", "instructions")

    def test_cost_from_content(self, tracker):
        tracker.load_discovery("planning")
        result = tracker.activate("planning", big(200))

        assert result.tokens_used == 200
        assert tracker.total_tokens == 250
        assert tracker.is_active("planning")

    def test_cost_capped(self, tracker):
        tracker.load_discovery("planning")
        assert tracker.activate("planning", big(5000)).tokens_used == 1000

    def test_without_content_charges_cap(self, tracker):
        tracker.load_discovery("planning")
        assert tracker.activate("planning").tokens_used == 1000

    def test_empty_content_still_costs(self, tracker):
        tracker.load_discovery("planning")
        assert tracker.activate("planning", "").tokens_used == 1

    def test_already_active_is_noop(self, tracker):
        tracker.load_discovery("planning")
        tracker.activate("planning", big(200))

        result = tracker.activate("planning", big(900))

        assert result.already_active
        assert result.tokens_used == 0
        assert tracker.total_tokens == 250


class TestDeactivation:
    def test_frees_exact_cost(self, tracker):
        tracker.load_discovery("planning")
        tracker.activate("planning", big(321))
        before = tracker.total_tokens

        result = tracker.deactivate("planning")

        assert result.tokens_freed == 321
        assert tracker.total_tokens == before - 321
        assert tracker.is_known("planning")
        assert not tracker.is_active("planning")

    def test_never_activated(self, tracker):
        tracker.load_discovery("git-workflow")
        before = tracker.total_tokens

        result = tracker.deactivate("work")

        assert result.already_inactive
        assert result.tokens_freed == 0
        assert tracker.total_tokens == before

    def test_idempotent(self, tracker):
        tracker.load_discovery("planning")
        tracker.activate("planning", big(10))
        tracker.deactivate("planning")
        assert tracker.deactivate("planning").already_inactive

    def test_monotonic_over_sequence(self, tracker):
        names = [f"skill-{i}" for i in range(6)]
        for name in names:
            tracker.load_discovery(name)
            tracker.activate(name, big(150 * (names.index(name) + 1)))

        for name in reversed(names):
            cost = tracker.get_item(BudgetTier.ACTIVATION, name).token_cost
            before = tracker.total_tokens
            tracker.deactivate(name)
            assert tracker.total_tokens == before - cost
            assert tracker.total_tokens < before


class TestEviction:
    def test_ninth_activation_evicts_least_recently_activated(self):
        tracker = ContextBudgetTracker(discovery_cost=0)
        names = [f"skill-{i}" for i in range(10)]
        for name in names:
            tracker.load_discovery(name)

        for index, name in enumerate(names):
            result = tracker.activate(name, big(1000))
            if index < 8:
                assert result.evicted_skills == []
            elif index == 8:
                assert result.evicted_skills == ["skill-0"]
            assert tracker.total_tokens <= 8000

        status = tracker.status()
        assert status.active_skills == names[2:]
        assert status.total_tokens == 8000

    def test_ceiling_holds_with_discovery_costs(self):
        tracker = ContextBudgetTracker()
        names = [f"skill-{i}" for i in range(10)]
        evicted = []
        for name in names:
            tracker.load_discovery(name)
            result = tracker.activate(name, big(1000))
            evicted.extend(result.evicted_skills)
            assert tracker.status().total_tokens <= 8000

        assert evicted == names[:len(evicted)]
        assert tracker.is_active("skill-9")

    def test_execution_files_evicted_before_skills(self):
        tracker = ContextBudgetTracker(
            ceiling=1500,
            content_provider=InMemoryContentProvider({"a.md": big(400), "b.md": big(400)}),
        )
        tracker.load_discovery("planning")
        tracker.load_discovery("git-workflow")
        tracker.activate("planning", big(300))
        tracker.load_execution_file("a.md", "planning")
        tracker.load_execution_file("b.md", "planning")
        # 100 + 300 + 800 = 1200

        result = tracker.activate("git-workflow", big(600))

        assert result.evicted_files == ["a.md"]
        assert result.evicted_skills == []
        assert tracker.is_active("planning")
        assert tracker.total_tokens == 1400

    def test_exceeded_evicts_nothing(self):
        tracker = ContextBudgetTracker(
            ceiling=1200,
            content_provider=InMemoryContentProvider({"large.md": big(5000)}),
        )
        tracker.load_discovery("planning")
        tracker.activate("planning", big(500))
        before = tracker.status()

        with pytest.raises(BudgetExceeded) as exc_info:
            tracker.load_execution_file("large.md", "planning")

        error = exc_info.value
        assert error.code == "BUDGET_EXCEEDED"
        assert error.details["item_id"] == "large.md"
        assert error.details["tokens_needed"] == 2000
        assert error.details["tokens_available"] == 650
        assert tracker.status() == before
        assert tracker.is_active("planning")

    def test_discovery_never_evicted(self):
        tracker = ContextBudgetTracker(ceiling=1100)
        tracker.load_discovery("planning")
        tracker.load_discovery("git-workflow")
        tracker.activate("planning", big(1000))

        tracker.activate("git-workflow", big(1000))

        assert tracker.is_known("planning")
        assert not tracker.is_active("planning")


class TestExecutionFiles:
    def test_requires_known_owner(self, tracker):
        with pytest.raises(NotFoundError):
            tracker.load_execution_file("small.md", "planning")

    def test_missing_file(self, tracker):
        tracker.load_discovery("planning")
        with pytest.raises(NotFoundError):
            tracker.load_execution_file("nope.md", "planning")
        assert tracker.total_tokens == 50

    def test_load_and_cache(self, tracker):
        tracker.load_discovery("planning")

        first = tracker.load_execution_file("small.md", "planning")
        second = tracker.load_execution_file("small.md", "planning")

        assert first.tokens_used == 100
        assert second.already_loaded
        assert second.tokens_used == 0
        assert tracker.total_tokens == 150

    def test_execution_cap(self, tracker):
        tracker.load_discovery("planning")
        assert tracker.load_execution_file("large.md", "planning").tokens_used == 2000

    def test_unload(self, tracker):
        tracker.load_discovery("planning")
        tracker.load_execution_file("small.md", "planning")
        tracker.load_execution_file("other.md", "planning")

        result = tracker.unload_execution_files(["small.md", "not-loaded.md"])

        assert result.unloaded == ["small.md"]
        assert result.files_unloaded == 1
        assert result.tokens_freed == 100
        assert tracker.execution_files() == ["other.md"]

    def test_unload_single_path(self, tracker):
        tracker.load_discovery("planning")
        tracker.load_execution_file("small.md", "planning")
        assert tracker.unload_execution_files("small.md").tokens_freed == 100


class TestStatus:
    def test_snapshot(self, tracker):
        tracker.load_discovery("planning")
        tracker.load_discovery("git-workflow")
        tracker.activate("planning", big(200))
        tracker.load_execution_file("small.md", "planning")

        status = tracker.status()

        assert status.total_tokens == 400
        assert status.available_tokens == 7600
        assert status.utilization_percent == 5.0
        assert status.tokens_by_tier == {"discovery": 100, "activation": 200, "execution": 100}
        assert status.active_skills == ["planning"]
        assert status.inactive_skills == ["git-workflow"]
        assert status.execution_files == ["small.md"]

    def test_status_is_pure(self, tracker):
        tracker.load_discovery("planning")
        assert tracker.status() == tracker.status()

    def test_total_is_sum_of_items(self, tracker):
        tracker.load_discovery("planning")
        tracker.activate("planning", big(123))
        tracker.load_execution_file("other.md", "planning")

        expected = sum(item.token_cost for t in BudgetTier for item in tracker.items(t))
        assert tracker.total_tokens == expected


class TestRecommendations:
    def test_healthy(self, tracker):
        assert tracker.recommendations() == []

    def test_high_utilization_and_many_skills(self):
        tracker = ContextBudgetTracker(ceiling=5000)
        for i in range(5):
            tracker.load_discovery(f"skill-{i}")
            tracker.activate(f"skill-{i}", big(800))

        actions = [r.action for r in tracker.recommendations()]

        assert "deactivate-unused-skills" in actions
        assert "use-specific-subskills" in actions

    def test_many_files(self):
        files = {f"f{i}.md": big(10) for i in range(6)}
        tracker = ContextBudgetTracker(content_provider=InMemoryContentProvider(files))
        tracker.load_discovery("planning")
        for path in files:
            tracker.load_execution_file(path, "planning")

        assert [r.action for r in tracker.recommendations()] == ["unload-unused-files"]


def test_reset(tracker):
    tracker.load_discovery("planning")
    tracker.activate("planning", big(10))

    tracker.reset()

    assert tracker.total_tokens == 0
    assert not tracker.is_known("planning")
