"""
Installation validation for skill packages.

Checks that the required skills are installed with valid frontmatter and
that the project memory files are usable, and attaches troubleshooting
and recovery steps for the most severe problem found.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field

from skill_router.skills.loader import InvalidSkillError, SkillLoader, parse_frontmatter

logger = logging.getLogger(__name__)


class IssueType:
    MISSING_FILES = "missing-files"
    INVALID_YAML = "invalid-yaml"
    CORRUPTED_MEMORY = "corrupted-memory"
    MISSING_MEMORY = "missing-memory"
    CONTEXT_OVERFLOW = "context-overflow"


SEVERITY_ORDER = ["critical", "high", "medium", "low"]

TROUBLESHOOTING_STEPS: Dict[str, List[str]] = {
    IssueType.MISSING_FILES: [
        "Verify the skills directory exists in your project root",
        "Check that all required SKILL.md files are present",
        "Ensure the skill package was completely copied/installed",
        "Run installation validation to identify specific missing files",
    ],
    IssueType.INVALID_YAML: [
        "Open the problematic SKILL.md file in a text editor",
        "Check YAML frontmatter syntax (indentation, quotes, brackets)",
        "Validate required fields: name, description, version",
        "Use a YAML validator to identify syntax errors",
    ],
    IssueType.CONTEXT_OVERFLOW: [
        "Use specific sub-skill activation instead of full workflow",
        "Clear unnecessary context from previous sessions",
        "Consider breaking large tasks into smaller phases",
        "Use progressive disclosure by activating skills incrementally",
    ],
}

DEFAULT_TROUBLESHOOTING = [
    "Check the skill installation documentation",
    "Verify all required files are present and accessible",
    "Try restarting your IDE or development environment",
]

RECOVERY_OPTIONS: Dict[str, List[str]] = {
    IssueType.MISSING_FILES: [
        "Reinstall the complete skill package",
        "Copy missing files from a working installation",
        "Download the latest version from the repository",
    ],
    IssueType.INVALID_YAML: [
        "Fix YAML syntax errors manually",
        "Restore from a backup version",
        "Copy from a working skill installation",
    ],
    IssueType.CORRUPTED_MEMORY: [
        "Restore memory files from backup",
        "Reset to template versions (loses history)",
        "Use project-reset skill with memory option",
    ],
}

DEFAULT_RECOVERY = [
    "Try restarting the activation process",
    "Consult the troubleshooting documentation",
]


class InstallationIssue(BaseModel):
    type: str
    message: str
    severity: str
    path: Optional[str] = None


class InstallationReport(BaseModel):
    """Result of ``InstallationValidator.validate``."""

    valid: bool
    errors: List[InstallationIssue] = Field(default_factory=list)
    warnings: List[InstallationIssue] = Field(default_factory=list)
    missing: List[str] = Field(default_factory=list)
    summary: str
    troubleshooting: List[str] = Field(default_factory=list)
    recovery: List[str] = Field(default_factory=list)


def troubleshooting_for(issue_type: str) -> List[str]:
    return list(TROUBLESHOOTING_STEPS.get(issue_type, DEFAULT_TROUBLESHOOTING))


def recovery_for(issue_type: str) -> List[str]:
    return list(RECOVERY_OPTIONS.get(issue_type, DEFAULT_RECOVERY))


class InstallationValidator:
    """Validate a skill installation.

    Args:
        loader: Loader over the configured skill directories
        required_skills: Skills that must be installed
        project_root: Base for ``memory_files``
        memory_files: Project memory files (missing ones are warnings)
    """

    def __init__(
        self,
        loader: SkillLoader,
        required_skills: List[str],
        project_root: Union[str, Path] = ".",
        memory_files: Optional[List[str]] = None,
    ):
        self.loader = loader
        self.required_skills = list(required_skills)
        self.project_root = Path(project_root)
        self.memory_files = list(memory_files or [])

    def validate(self) -> InstallationReport:
        errors: List[InstallationIssue] = []
        warnings: List[InstallationIssue] = []
        missing: List[str] = []

        if not any(d.is_dir() for d in self.loader.skills_dirs):
            dirs = ", ".join(str(d) for d in self.loader.skills_dirs)
            errors.append(InstallationIssue(
                type=IssueType.MISSING_FILES,
                message=f"No skills directory found (searched: {dirs})",
                severity="critical",
            ))

        for skill_name in self.required_skills:
            skill_dir = self.loader.get_skill_path(skill_name)
            if skill_dir is None:
                errors.append(InstallationIssue(
                    type=IssueType.MISSING_FILES,
                    message=f"Required skill missing: {skill_name}",
                    severity="critical",
                ))
                missing.append(skill_name)
                continue

            skill_md = skill_dir / "SKILL.md"
            try:
                frontmatter, _ = parse_frontmatter(skill_md.read_text(encoding="utf-8"), skill_md)
            except InvalidSkillError as e:
                errors.append(InstallationIssue(
                    type=IssueType.INVALID_YAML,
                    message=f"Invalid frontmatter in {skill_name}: {e.message}",
                    severity="high",
                    path=str(skill_md),
                ))
                continue
            except OSError as e:
                errors.append(InstallationIssue(
                    type=IssueType.MISSING_FILES,
                    message=f"Cannot read {skill_md}: {e}",
                    severity="critical",
                    path=str(skill_md),
                ))
                continue

            if frontmatter.name != skill_name:
                warnings.append(InstallationIssue(
                    type=IssueType.INVALID_YAML,
                    message=f"Skill directory '{skill_name}' declares name '{frontmatter.name}'",
                    severity="low",
                    path=str(skill_md),
                ))

        for memory_file in self.memory_files:
            memory_path = self.project_root / memory_file
            if not memory_path.is_file():
                warnings.append(InstallationIssue(
                    type=IssueType.MISSING_MEMORY,
                    message=f"Memory file missing: {memory_file} (will be created automatically)",
                    severity="low",
                    path=str(memory_path),
                ))
                continue
            problem = self._check_memory_file(memory_path)
            if problem:
                errors.append(InstallationIssue(
                    type=IssueType.CORRUPTED_MEMORY,
                    message=f"Corrupted memory file: {memory_file} ({problem})",
                    severity="medium",
                    path=str(memory_path),
                ))

        report = InstallationReport(
            valid=not errors,
            errors=errors,
            warnings=warnings,
            missing=missing,
            summary=self._summary(errors, warnings),
        )
        if errors:
            worst = min(errors, key=lambda e: SEVERITY_ORDER.index(e.severity))
            report.troubleshooting = troubleshooting_for(worst.type)
            report.recovery = recovery_for(worst.type)

        logger.info(f"Installation validation: {report.summary}")
        return report

    @staticmethod
    def _check_memory_file(path: Path) -> Optional[str]:
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            return str(e)
        if not content.strip():
            return "empty file"
        if "#" not in content and len(content) > 100:
            return "invalid markdown structure"
        return None

    @staticmethod
    def _summary(errors: List[InstallationIssue], warnings: List[InstallationIssue]) -> str:
        counts = {severity: 0 for severity in SEVERITY_ORDER}
        for error in errors:
            counts[error.severity] += 1

        if counts["critical"]:
            return f"❌ Installation invalid: {counts['critical']} critical error(s) found"
        if counts["high"]:
            return f"⚠️ Installation issues: {counts['high']} high-priority error(s) found"
        if counts["medium"]:
            return f"⚠️ Installation warnings: {counts['medium']} medium-priority issue(s) found"
        if warnings:
            return f"✅ Installation valid with {len(warnings)} warning(s)"
        return "✅ Installation valid - all checks passed"


__all__ = [
    "InstallationValidator",
    "InstallationReport",
    "InstallationIssue",
    "IssueType",
    "troubleshooting_for",
    "recovery_for",
]
