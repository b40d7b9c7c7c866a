"""
Configuration package.

Exports configuration models and the global accessors.
"""

from .config import (
    Config,
    ConfigManager,
    RoutingConfig,
    BudgetConfig,
    WorkflowConfig,
    SkillsConfig,
    LoggingConfig,
    get_config,
    get_config_manager,
    reload_config,
)

__all__ = [
    "Config",
    "ConfigManager",
    "RoutingConfig",
    "BudgetConfig",
    "WorkflowConfig",
    "SkillsConfig",
    "LoggingConfig",
    "get_config",
    "get_config_manager",
    "reload_config",
]
