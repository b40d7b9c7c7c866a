"""
Configuration management.

Loads settings from YAML with environment variable overrides
(``SKILL_ROUTER_`` prefix, ``__`` between nesting levels).
"""

import os
import yaml
from pathlib import Path
from typing import Any, Dict, List, Optional, get_args, get_origin
from pydantic import BaseModel, Field, field_validator, model_validator
from dotenv import load_dotenv

# Load .env
load_dotenv()

ENV_PREFIX = "SKILL_ROUTER_"

DEFAULT_PHASE_FILES: Dict[str, List[str]] = {
    "spec-forge": [
        ".ai/workflows/ears-workflow.md",
        ".ai/templates/requirements-template.md",
        ".ai/templates/ears-validation.md",
        ".ai/templates/incose-validation.md",
        ".ai/prompts/testability-analysis.md",
        ".ai/prompts/correctness-properties.md",
    ],
    "planning": [
        ".ai/workflows/planning.md",
        ".ai/roles/architect.md",
        ".ai/docs/plans/README.md",
        ".ai/memory/decisions.md",
    ],
    "work": [
        ".ai/workflows/execution.md",
        ".ai/protocols/git-worktree.md",
        ".ai/roles/builder.md",
        ".ai/protocols/testing.md",
        ".ai/skills/git-worktree/README.md",
    ],
    "review": [
        ".ai/workflows/review.md",
        ".ai/roles/auditor.md",
        ".ai/docs/reviews/README.md",
    ],
}

DEFAULT_SUPPORTING_FILES: Dict[str, List[str]] = {
    "spec-forge": [
        ".ai/docs/requirements/README.md",
        ".ai/prompts/round-trip-detection.md",
        ".ai/templates/lessons.template.md",
    ],
    "planning": [
        ".ai/docs/design/README.md",
        ".ai/templates/decisions.template.md",
        ".ai/protocols/migrations.md",
    ],
    "work": [
        ".ai/skills/git-worktree/examples.md",
        ".ai/skills/git-worktree/git-worktree.sh",
        ".ai/docs/tasks/README.md",
    ],
    "review": [
        ".ai/docs/reviews/README.md",
        ".ai/protocols/testing.md",
    ],
}

DEFAULT_CORE_FILES: List[str] = [
    ".ai/memory/lessons.md",
    ".ai/memory/decisions.md",
]


class RoutingConfig(BaseModel):
    """Trigger matching and ranking"""

    scoring: str = Field(default="tiered", description="Scoring mode: tiered or length_ratio")
    top_k: int = Field(default=3, ge=1, description="Maximum recommendations per analysis")
    recent_activity_limit: int = Field(default=5, ge=1, description="Session activities kept for adjustment")
    trigger_table_path: Optional[str] = Field(
        default=None,
        description="YAML trigger table; built-in table when unset",
    )

    @field_validator("scoring")
    @classmethod
    def validate_scoring(cls, v: str) -> str:
        valid_modes = ["tiered", "length_ratio"]
        if v not in valid_modes:
            raise ValueError(f"Invalid scoring mode: {v}. Must be one of {valid_modes}")
        return v


class BudgetConfig(BaseModel):
    """Token budget"""

    ceiling: int = Field(default=8000, gt=0, description="Maximum tokens loaded at once")
    discovery_cost: int = Field(default=50, ge=0, description="Fixed cost per discovered skill")
    activation_cap: int = Field(default=1000, gt=0, description="Maximum cost per active skill")
    execution_cap: int = Field(default=2000, gt=0, description="Maximum cost per execution file")
    chars_per_token: float = Field(default=4.0, gt=0, description="Characters per token for estimation")

    @model_validator(mode="after")
    def validate_caps(self) -> "BudgetConfig":
        if self.activation_cap > self.ceiling or self.execution_cap > self.ceiling:
            raise ValueError("Per-item caps cannot exceed the ceiling")
        return self


class WorkflowConfig(BaseModel):
    """Workflow phases"""

    phase_sequence: List[str] = Field(
        default_factory=lambda: ["spec-forge", "planning", "work", "review"],
        description="Ordered workflow phases",
    )
    phase_skills: Dict[str, str] = Field(
        default_factory=lambda: {
            "spec-forge": "ears-specification",
            "planning": "planning",
            "work": "git-workflow",
            "review": "testing-framework",
        },
        description="Skill that drives each phase",
    )
    phase_files: Dict[str, List[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_PHASE_FILES.items()},
        description="Execution files loaded while a phase is current",
    )
    supporting_files: Dict[str, List[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_SUPPORTING_FILES.items()},
        description="Optional files preloaded when there is room",
    )
    core_files: List[str] = Field(
        default_factory=lambda: list(DEFAULT_CORE_FILES),
        description="Project memory files kept across phases",
    )
    load_phase_files: bool = Field(default=True, description="Load phase files on transition")

    @model_validator(mode="after")
    def validate_phases(self) -> "WorkflowConfig":
        if not self.phase_sequence:
            raise ValueError("phase_sequence cannot be empty")
        unknown = [p for p in self.phase_skills if p not in self.phase_sequence]
        if unknown:
            raise ValueError(f"phase_skills references unknown phases: {unknown}")
        return self


class SkillsConfig(BaseModel):
    """Skill discovery"""

    skills_dirs: List[str] = Field(
        default_factory=lambda: ["./skills", "./.ai/skills"],
        description="Skill directories, later ones override earlier ones",
    )
    required_skills: List[str] = Field(
        default_factory=lambda: [
            "engineering-workflow",
            "ears-specification",
            "planning",
            "git-workflow",
            "testing-framework",
            "project-reset",
        ],
        description="Skills checked by installation validation",
    )
    project_root: str = Field(default=".", description="Base for relative execution file paths")
    discover_on_start: bool = Field(default=True, description="Load discovery metadata when the router starts")


class LoggingConfig(BaseModel):
    """Logging"""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s", description="Log format")
    file: Optional[str] = Field(default="./logs/skill_router.log", description="Log file path")
    max_bytes: int = Field(default=10485760, description="Maximum log file size (10MB)")
    backup_count: int = Field(default=5, description="Rotated log files kept")


class Config(BaseModel):
    """Skill router configuration"""

    environment: str = Field(default="development", description="Environment (development, production, test)")
    debug: bool = Field(default=False, description="Debug mode")

    routing: RoutingConfig = Field(default_factory=RoutingConfig)
    budget: BudgetConfig = Field(default_factory=BudgetConfig)
    workflow: WorkflowConfig = Field(default_factory=WorkflowConfig)
    skills: SkillsConfig = Field(default_factory=SkillsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        valid_envs = ["development", "production", "test"]
        if v not in valid_envs:
            raise ValueError(f"Invalid environment: {v}. Must be one of {valid_envs}")
        return v


def _expects_list(parts: List[str]) -> bool:
    """True if the nested ``Config`` field named by ``parts`` is a list."""
    model = Config
    for index, part in enumerate(parts):
        field = model.model_fields.get(part)
        if field is None:
            return False
        annotation = field.annotation
        if index == len(parts) - 1:
            if get_origin(annotation) is list:
                return True
            return any(get_origin(arg) is list for arg in get_args(annotation))
        if not (isinstance(annotation, type) and issubclass(annotation, BaseModel)):
            return False
        model = annotation
    return False


class ConfigManager:
    """
    Configuration manager.

    Loads YAML configuration and applies environment variable overrides.
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Args:
            config_path: YAML configuration path, searched for when omitted
        """
        self.config_path = config_path or self._find_config_file()
        self._config: Optional[Config] = None

    @staticmethod
    def _find_config_file() -> str:
        """
        Find the configuration file.

        Search order:
        1. ./config/settings.yaml
        2. ./settings.yaml
        3. ~/.config/skill_router/settings.yaml
        """
        possible_paths = [
            "./config/settings.yaml",
            "./settings.yaml",
            os.path.expanduser("~/.config/skill_router/settings.yaml"),
        ]

        for path in possible_paths:
            if os.path.exists(path):
                return path

        return "./config/settings.yaml"

    def load_yaml(self) -> Dict[str, Any]:
        """Load the YAML file; a missing file yields an empty dict."""
        if not os.path.exists(self.config_path):
            return {}

        with open(self.config_path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    def _override_from_env(self, config_dict: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply environment variable overrides.

        Nested keys use ``__`` between levels, for example:
        SKILL_ROUTER_ROUTING__SCORING=length_ratio
        SKILL_ROUTER_BUDGET__CEILING=16000
        """
        result = config_dict.copy()

        for env_key, env_value in os.environ.items():
            if not env_key.startswith(ENV_PREFIX):
                continue

            key = env_key[len(ENV_PREFIX):].replace("__", ".").lower()
            parts = key.split(".")

            current = result
            for part in parts[:-1]:
                if not isinstance(current.get(part), dict):
                    current[part] = {}
                else:
                    current[part] = dict(current[part])
                current = current[part]
            if _expects_list(parts):
                current[parts[-1]] = [item.strip() for item in env_value.split(",") if item.strip()]
            else:
                current[parts[-1]] = self._parse_env_value(env_value)

        return result

    @staticmethod
    def _parse_env_value(value: str) -> Any:
        """Parse booleans, numbers and comma-separated lists."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        if "," in value:
            return [item.strip() for item in value.split(",") if item.strip()]

        return value

    def load(self) -> Config:
        """Load (and cache) the configuration."""
        if self._config is not None:
            return self._config

        yaml_config = self.load_yaml()
        merged_config = self._override_from_env(yaml_config)
        self._config = Config(**merged_config)
        return self._config

    def reload(self) -> Config:
        self._config = None
        return self.load()

    def save(self, path: Optional[str] = None) -> None:
        """
        Save the current configuration as YAML.

        Args:
            path: Destination, defaults to the loaded configuration path
        """
        save_path = Path(path or self.config_path)
        save_path.parent.mkdir(parents=True, exist_ok=True)

        config_dict = self.load().model_dump(exclude_none=True)

        with open(save_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(config_dict, f, allow_unicode=True, default_flow_style=False)


# Global configuration manager
_config_manager: Optional[ConfigManager] = None


def get_config(config_path: Optional[str] = None) -> Config:
    """Global configuration object."""
    global _config_manager

    if _config_manager is None:
        _config_manager = ConfigManager(config_path)

    return _config_manager.load()


def get_config_manager() -> ConfigManager:
    global _config_manager

    if _config_manager is None:
        _config_manager = ConfigManager()

    return _config_manager


def reload_config() -> Config:
    """Reload the global configuration."""
    global _config_manager

    if _config_manager is not None:
        return _config_manager.reload()

    return get_config()
