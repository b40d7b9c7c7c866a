"""
Configuration system tests.
"""

import pytest
import yaml
from pydantic import ValidationError

import config as config_module
from config import (
    BudgetConfig,
    Config,
    ConfigManager,
    LoggingConfig,
    RoutingConfig,
    SkillsConfig,
    WorkflowConfig,
    get_config,
    get_config_manager,
    reload_config,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Drop SKILL_ROUTER_* variables from the real environment."""
    import os
    for key in list(os.environ):
        if key.startswith("SKILL_ROUTER_"):
            monkeypatch.delenv(key)


class TestRoutingConfig:
    def test_default_values(self):
        config = RoutingConfig()
        assert config.scoring == "tiered"
        assert config.top_k == 3
        assert config.recent_activity_limit == 5
        assert config.trigger_table_path is None

    def test_invalid_scoring(self):
        with pytest.raises(ValidationError):
            RoutingConfig(scoring="fuzzy")

    def test_top_k_positive(self):
        with pytest.raises(ValidationError):
            RoutingConfig(top_k=0)


class TestBudgetConfig:
    def test_default_values(self):
        config = BudgetConfig()
        assert config.ceiling == 8000
        assert config.discovery_cost == 50
        assert config.activation_cap == 1000
        assert config.execution_cap == 2000
        assert config.chars_per_token == 4.0

    def test_caps_cannot_exceed_ceiling(self):
        with pytest.raises(ValidationError):
            BudgetConfig(ceiling=500)


class TestWorkflowConfig:
    def test_default_values(self):
        config = WorkflowConfig()
        assert config.phase_sequence == ["spec-forge", "planning", "work", "review"]
        assert config.phase_skills["work"] == "git-workflow"
        assert set(config.phase_files) == set(config.phase_sequence)
        assert ".ai/memory/lessons.md" in config.core_files

    def test_defaults_are_independent_copies(self):
        first = WorkflowConfig()
        first.phase_files["work"].append("extra.md")
        assert "extra.md" not in WorkflowConfig().phase_files["work"]

    def test_empty_sequence(self):
        with pytest.raises(ValidationError):
            WorkflowConfig(phase_sequence=[], phase_skills={})

    def test_phase_skills_must_reference_sequence(self):
        with pytest.raises(ValidationError):
            WorkflowConfig(phase_skills={"deploy": "deployer"})


class TestSkillsAndLoggingConfig:
    def test_skills_defaults(self):
        config = SkillsConfig()
        assert config.skills_dirs == ["./skills", "./.ai/skills"]
        assert len(config.required_skills) == 6
        assert config.discover_on_start

    def test_logging_defaults(self):
        config = LoggingConfig()
        assert config.level == "INFO"
        assert config.backup_count == 5


class TestConfig:
    def test_default_config(self):
        config = Config()
        assert config.environment == "development"
        assert config.debug is False
        assert isinstance(config.routing, RoutingConfig)
        assert isinstance(config.budget, BudgetConfig)

    def test_invalid_environment(self):
        with pytest.raises(ValidationError):
            Config(environment="staging")


class TestConfigManager:
    def test_missing_file_gives_defaults(self, tmp_path):
        manager = ConfigManager(str(tmp_path / "missing.yaml"))
        assert manager.load() == Config()

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text(yaml.safe_dump({
            "environment": "test",
            "routing": {"scoring": "length_ratio", "top_k": 5},
            "budget": {"ceiling": 16000},
        }))

        config = ConfigManager(str(path)).load()

        assert config.environment == "test"
        assert config.routing.scoring == "length_ratio"
        assert config.routing.top_k == 5
        assert config.budget.ceiling == 16000
        assert config.budget.activation_cap == 1000

    def test_env_overrides(self, tmp_path, monkeypatch):
        path = tmp_path / "settings.yaml"
        path.write_text(yaml.safe_dump({"budget": {"ceiling": 16000, "discovery_cost": 60}}))
        monkeypatch.setenv("SKILL_ROUTER_BUDGET__CEILING", "12000")
        monkeypatch.setenv("SKILL_ROUTER_DEBUG", "true")
        monkeypatch.setenv("SKILL_ROUTER_SKILLS__SKILLS_DIRS", "a, b")

        config = ConfigManager(str(path)).load()

        assert config.budget.ceiling == 12000
        assert config.budget.discovery_cost == 60
        assert config.debug is True
        assert config.skills.skills_dirs == ["a", "b"]

    def test_single_item_list_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SKILL_ROUTER_SKILLS__SKILLS_DIRS", "./skills")
        monkeypatch.setenv("SKILL_ROUTER_SKILLS__REQUIRED_SKILLS", "42")

        config = ConfigManager(str(tmp_path / "missing.yaml")).load()

        assert config.skills.skills_dirs == ["./skills"]
        assert config.skills.required_skills == ["42"]

    def test_env_override_does_not_mutate_yaml_dict(self, tmp_path, monkeypatch):
        manager = ConfigManager(str(tmp_path / "missing.yaml"))
        original = {"budget": {"ceiling": 16000}}
        monkeypatch.setenv("SKILL_ROUTER_BUDGET__CEILING", "9000")

        merged = manager._override_from_env(original)

        assert merged["budget"]["ceiling"] == 9000
        assert original["budget"]["ceiling"] == 16000

    @pytest.mark.parametrize("raw,expected", [
        ("true", True),
        ("No", False),
        ("42", 42),
        ("4.5", 4.5),
        ("a,b", ["a", "b"]),
        ("plain", "plain"),
    ])
    def test_parse_env_value(self, raw, expected):
        assert ConfigManager._parse_env_value(raw) == expected

    def test_load_is_cached_and_reload(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text(yaml.safe_dump({"routing": {"top_k": 2}}))
        manager = ConfigManager(str(path))

        first = manager.load()
        assert manager.load() is first

        path.write_text(yaml.safe_dump({"routing": {"top_k": 4}}))
        assert manager.reload().routing.top_k == 4

    def test_save(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text(yaml.safe_dump({"routing": {"top_k": 2}}))
        manager = ConfigManager(str(path))
        manager.load()

        out = tmp_path / "out" / "saved.yaml"
        manager.save(str(out))

        saved = yaml.safe_load(out.read_text())
        assert saved["routing"]["top_k"] == 2
        assert ConfigManager(str(out)).load() == manager.load()


class TestGlobalConfig:
    def test_global_accessors(self, tmp_path, monkeypatch):
        path = tmp_path / "settings.yaml"
        path.write_text(yaml.safe_dump({"routing": {"top_k": 7}}))
        monkeypatch.setattr(config_module.config, "_config_manager", None)

        config = get_config(str(path))

        assert config.routing.top_k == 7
        assert get_config() is config
        assert get_config_manager().config_path == str(path)

        path.write_text(yaml.safe_dump({"routing": {"top_k": 8}}))
        assert reload_config().routing.top_k == 8
