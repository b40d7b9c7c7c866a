"""
Pytest configuration and shared fixtures.
"""

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent.parent.resolve()
BUNDLED_SKILLS_DIR = PROJECT_ROOT / "skills"


def pytest_configure(config):
    """Put the project root first on sys.path before collection."""
    project_root_str = str(PROJECT_ROOT)
    if project_root_str not in sys.path:
        sys.path.insert(0, project_root_str)


if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


def make_skill(base_dir: Path, name: str, description: str = None, phase: str = None,
               body: str = None, version: str = "1.0.0") -> Path:
    """Write ``base_dir/<name>/SKILL.md`` and return the skill directory."""
    skill_dir = base_dir / name
    skill_dir.mkdir(parents=True, exist_ok=True)

    lines = [
        "---",
        f"name: {name}",
        f'description: "{description or f"The {name} skill"}"',
        f'version: "{version}"',
    ]
    if phase:
        lines.append(f"phase: {phase}")
    lines.append("---")
    lines.append("")
    lines.append(body if body is not None else f"# {name}\n\nInstructions for {name}.")

    (skill_dir / "SKILL.md").write_text("\n".join(lines) + "\n", encoding="utf-8")
    return skill_dir


@pytest.fixture
def bundled_skills_dir():
    """The SKILL.md definitions shipped with the project."""
    return BUNDLED_SKILLS_DIR


@pytest.fixture
def project_dir(tmp_path):
    """Temporary project root with phase and memory files."""
    root = tmp_path / "project"
    files = {
        ".ai/workflows/ears-workflow.md": "# EARS workflow\n" + "x" * 400,
        ".ai/templates/requirements-template.md": "# Requirements\n" + "x" * 200,
        ".ai/workflows/planning.md": "# Planning\n" + "x" * 400,
        ".ai/roles/architect.md": "# Architect\n" + "x" * 200,
        ".ai/workflows/execution.md": "# Execution\n" + "x" * 400,
        ".ai/workflows/review.md": "# Review\n" + "x" * 400,
        ".ai/memory/lessons.md": "# Lessons\n\n- keep phases small\n",
        ".ai/memory/decisions.md": "# Decisions\n\n- use EARS\n",
    }
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def skill_factory():
    """``make_skill`` as a fixture so test modules need no conftest import."""
    return make_skill
