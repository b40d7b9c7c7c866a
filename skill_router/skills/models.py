"""
Skill data models.

Defines:
- SkillFrontmatter: YAML frontmatter from SKILL.md
- SkillMetadata: Minimal metadata for the discovery tier
- Skill: Complete skill with instructions for the activation tier
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class SkillFrontmatter(BaseModel):
    """YAML frontmatter parsed from SKILL.md files.

    The metadata section at the top of each SKILL.md file, enclosed in
    YAML delimiters (---).
    """

    name: str = Field(
        ...,
        description="Skill name (lowercase, hyphens or underscores)",
        pattern=r"^[a-z][a-z0-9_-]*$",
    )
    description: str = Field(
        ...,
        description="What the skill does AND when to use it; shown during discovery.",
    )
    version: str = Field(
        default="1.0.0",
        description="Skill version (semantic versioning)",
    )
    display_name: Optional[str] = Field(
        None,
        description="Human-readable display name (e.g., 'EARS Specification')",
    )
    phase: Optional[str] = Field(
        None,
        description="Workflow phase this skill drives (e.g., 'spec-forge'); None for utility skills",
    )
    category: Optional[str] = Field(
        None,
        description="Skill category for grouping (e.g., 'workflow', 'utility')",
    )
    tags: List[str] = Field(
        default_factory=list,
        description="Tags for categorization and search",
    )
    triggers: List[str] = Field(
        default_factory=list,
        description="Example phrases that should activate this skill",
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate skill name format."""
        if not v or len(v) > 50:
            raise ValueError("Skill name must be 1-50 characters")
        return v

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        """Validate description length."""
        if not v.strip():
            raise ValueError("Description cannot be empty")
        if len(v) > 500:
            raise ValueError("Description must be <= 500 characters")
        return v

    @field_validator("version", mode="before")
    @classmethod
    def validate_version(cls, v: Any) -> str:
        """Validate version format (basic check)."""
        # YAML reads `version: 1.0` as a float
        v = str(v)
        parts = v.split(".")
        if len(parts) < 2:
            raise ValueError("Version should follow semantic versioning (e.g., 1.0.0)")
        return v


@dataclass
class SkillMetadata:
    """Discovery-tier metadata (~50 tokens per skill).

    Only what's needed to recognise and recommend a skill.
    """

    name: str  # "ears-specification"
    description: str
    path: Path  # Path to SKILL.md
    version: str  # "1.0.0"
    phase: Optional[str] = None  # "spec-forge"
    category: Optional[str] = None
    display_name: Optional[str] = None
    triggers: List[str] = field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        """Opaque discovery payload handed to the budget tracker."""
        return {
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "phase": self.phase,
        }


class Skill(BaseModel):
    """Complete skill with all content, loaded only on activation."""

    metadata: SkillFrontmatter
    instructions: str  # Markdown content after the frontmatter
    base_dir: Path  # Directory containing SKILL.md

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def references_dir(self) -> Path:
        return self.base_dir / "references"

    def has_references(self) -> bool:
        return self.references_dir.exists() and self.references_dir.is_dir()

    def reference_files(self) -> List[Path]:
        """Markdown reference files shipped with the skill, sorted by name."""
        if not self.has_references():
            return []
        return sorted(self.references_dir.glob("*.md"))


__all__ = ["SkillFrontmatter", "SkillMetadata", "Skill"]
