"""
Skill Loader.

Discovers and loads skills from SKILL.md files in one or more directories.
Progressive disclosure:
- Discovery: load metadata only (~50 tokens/skill)
- Activation: load full skill instructions on demand
"""

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml
from pydantic import ValidationError as PydanticValidationError

from skill_router.errors import ValidationError
from skill_router.skills.models import Skill, SkillFrontmatter, SkillMetadata

logger = logging.getLogger(__name__)

FRONTMATTER_PATTERN = re.compile(r"^---\n(.*?)\n---\n?", re.DOTALL)


class InvalidSkillError(ValidationError):
    """Raised when a SKILL.md file is invalid."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message, field="frontmatter", details={"path": str(path)} if path else None)


def parse_frontmatter(content: str, source: Optional[Path] = None) -> Tuple[SkillFrontmatter, str]:
    """Split a SKILL.md document into validated frontmatter and body.

    Raises:
        InvalidSkillError: Missing delimiters, bad YAML or invalid fields
    """
    label = str(source) if source else "<skill>"
    match = FRONTMATTER_PATTERN.match(content.replace("\r\n", "\n"))
    if not match:
        raise InvalidSkillError(f"{label}: Missing YAML frontmatter (must start with ---)", source)

    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError as e:
        raise InvalidSkillError(f"{label}: Invalid YAML: {e}", source)

    if not isinstance(data, dict):
        raise InvalidSkillError(f"{label}: Frontmatter must be a mapping", source)

    try:
        frontmatter = SkillFrontmatter(**data)
    except PydanticValidationError as e:
        raise InvalidSkillError(f"{label}: Validation error: {e}", source)

    body = content.replace("\r\n", "\n")[match.end():].strip()
    return frontmatter, body


class SkillLoader:
    """Scan and load skills from multiple source directories.

    Directories are searched in order, with later directories overriding
    earlier ones if there are duplicate skill names.
    """

    def __init__(self, skills_dirs: List[Path]):
        """
        Args:
            skills_dirs: Directories to search for skills.
                        Earlier directories have lower priority.
                        Example: [Path("skills"), Path(".ai/skills")]
        """
        self.skills_dirs = [Path(d) for d in skills_dirs]
        self.load_errors: Dict[Path, str] = {}

    def load_all_metadata(self) -> Dict[str, SkillMetadata]:
        """Load only skill metadata (discovery tier).

        Invalid skills are skipped and recorded in ``load_errors``.

        Returns:
            Dict mapping skill_name -> SkillMetadata
        """
        metadata_dict: Dict[str, SkillMetadata] = {}
        self.load_errors = {}

        for directory in self.skills_dirs:
            if not directory.is_dir():
                logger.debug(f"Skills directory not found: {directory}")
                continue

            for skill_md in sorted(directory.rglob("SKILL.md")):
                try:
                    metadata = self._parse_metadata(skill_md)
                except InvalidSkillError as e:
                    logger.warning(f"Failed to load {skill_md}: {e.message}")
                    self.load_errors[skill_md] = e.message
                    continue
                except OSError as e:
                    logger.warning(f"Cannot read {skill_md}: {e}")
                    self.load_errors[skill_md] = str(e)
                    continue
                # Later directories override earlier ones
                metadata_dict[metadata.name] = metadata

        logger.debug(f"Discovered {len(metadata_dict)} skills in {len(self.skills_dirs)} directories")
        return metadata_dict

    def load_skill_full(self, skill_name: str) -> Optional[Skill]:
        """Load full skill content (activation tier).

        Returns:
            Complete Skill, or None if not found

        Raises:
            InvalidSkillError: If the skill exists but is invalid
        """
        skill_md_path = self._find_skill_file(skill_name)
        if skill_md_path is None:
            return None

        content = skill_md_path.read_text(encoding="utf-8")
        frontmatter, instructions = parse_frontmatter(content, skill_md_path)
        return Skill(
            metadata=frontmatter,
            instructions=instructions,
            base_dir=skill_md_path.parent,
        )

    def _find_skill_file(self, skill_name: str) -> Optional[Path]:
        """Find a skill's SKILL.md file by name.

        Searches directories in reverse order (highest priority first).
        """
        for directory in reversed(self.skills_dirs):
            skill_path = directory / skill_name / "SKILL.md"
            if skill_path.exists():
                return skill_path

            if not directory.is_dir():
                continue
            for candidate in directory.rglob("SKILL.md"):
                if candidate.parent.name == skill_name:
                    return candidate

        return None

    def _parse_metadata(self, skill_md_path: Path) -> SkillMetadata:
        content = skill_md_path.read_text(encoding="utf-8")
        frontmatter, _ = parse_frontmatter(content, skill_md_path)

        return SkillMetadata(
            name=frontmatter.name,
            description=frontmatter.description,
            path=skill_md_path,
            version=frontmatter.version,
            phase=frontmatter.phase,
            category=frontmatter.category,
            display_name=frontmatter.display_name,
            triggers=list(frontmatter.triggers),
        )

    def list_all_skills(self) -> List[str]:
        return sorted(self.load_all_metadata().keys())

    def get_skill_path(self, skill_name: str) -> Optional[Path]:
        """Directory of a skill, or None if not found."""
        skill_md = self._find_skill_file(skill_name)
        if skill_md:
            return skill_md.parent
        return None


__all__ = ["SkillLoader", "InvalidSkillError", "parse_frontmatter"]
