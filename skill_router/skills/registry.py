"""
Skill Registry.

Caches discovered skill metadata and answers lookups for the router.
"""

from typing import Dict, List, Optional

from skill_router.skills.loader import SkillLoader
from skill_router.skills.models import Skill, SkillMetadata


class SkillRegistry:
    """Central registry for all available skills.

    The registry caches skill metadata and provides methods to:
    - Look up metadata and the workflow phase of a skill
    - Load full skill content on activation
    - Format the skills list for tool descriptions
    """

    def __init__(self, loader: SkillLoader):
        self.loader = loader
        self._metadata_cache: Optional[Dict[str, SkillMetadata]] = None

    def get_all_metadata(self) -> Dict[str, SkillMetadata]:
        """All skill metadata, loaded on first access."""
        if self._metadata_cache is None:
            self._metadata_cache = self.loader.load_all_metadata()
        return self._metadata_cache

    def get_formatted_skills_list(self) -> str:
        """Compact ``"name": description`` lines, workflow phases first.

        Example:
            "ears-specification": Create EARS-compliant requirements ...
            "planning": Implementation planning ...
        """
        metadata_dict = self.get_all_metadata()
        phase_skills = [m for m in metadata_dict.values() if m.phase]
        utility_skills = [m for m in metadata_dict.values() if not m.phase]

        lines: List[str] = []
        for skill in phase_skills + utility_skills:
            lines.append(f'"{skill.name}": {skill.description}')
        return "\n".join(lines)

    def get_skill_metadata(self, skill_name: str) -> Optional[SkillMetadata]:
        return self.get_all_metadata().get(skill_name)

    def get_skill_full(self, skill_name: str) -> Optional[Skill]:
        """Load full skill content.

        Raises:
            InvalidSkillError: If the skill exists but is invalid
        """
        return self.loader.load_skill_full(skill_name)

    def skill_exists(self, skill_name: str) -> bool:
        return skill_name in self.get_all_metadata()

    def list_skill_names(self) -> List[str]:
        return sorted(self.get_all_metadata().keys())

    def phase_of(self, skill_name: str) -> Optional[str]:
        """Workflow phase declared by a skill, or None for utility skills."""
        metadata = self.get_skill_metadata(skill_name)
        return metadata.phase if metadata else None

    def skill_for_phase(self, phase: str) -> Optional[str]:
        """First skill (by name) declaring ``phase``."""
        for name in self.list_skill_names():
            if self.get_all_metadata()[name].phase == phase:
                return name
        return None

    def invalidate_cache(self) -> None:
        """Force reload of metadata on next access."""
        self._metadata_cache = None


__all__ = ["SkillRegistry"]
