"""
Skill discovery.

Skills are directories holding a SKILL.md file: YAML frontmatter (name,
description, version, phase, ...) followed by markdown instructions.

Usage:
    from skill_router.skills import SkillLoader, SkillRegistry

    loader = SkillLoader([Path("skills")])
    registry = SkillRegistry(loader)
    registry.list_skill_names()
"""

from skill_router.skills.loader import InvalidSkillError, SkillLoader, parse_frontmatter
from skill_router.skills.models import Skill, SkillFrontmatter, SkillMetadata
from skill_router.skills.registry import SkillRegistry
from skill_router.skills.validator import (
    InstallationIssue,
    InstallationReport,
    InstallationValidator,
)

__all__ = [
    "Skill",
    "SkillFrontmatter",
    "SkillMetadata",
    "SkillLoader",
    "InvalidSkillError",
    "parse_frontmatter",
    "SkillRegistry",
    "InstallationValidator",
    "InstallationReport",
    "InstallationIssue",
]
