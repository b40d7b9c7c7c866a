"""
Shared fixtures for skills tests
"""

import pytest


@pytest.fixture
def skills_base_dir(tmp_path):
    """Create a temporary skills directory."""
    skills_dir = tmp_path / "skills"
    skills_dir.mkdir()
    return skills_dir


@pytest.fixture
def sample_skill(skills_base_dir):
    """Create a sample phase skill directory."""
    skill_dir = skills_base_dir / "ears-specification"
    skill_dir.mkdir()

    (skill_dir / "SKILL.md").write_text("""---
name: ears-specification
display_name: "EARS Specification"
description: "Create EARS-compliant requirements"
version: "1.0.0"
phase: spec-forge
category: workflow
triggers:
  - create requirements
---

# EARS Specification

Write requirements with WHEN/THE/SHALL.
""")

    return skill_dir


@pytest.fixture
def sample_utility_skill(skills_base_dir):
    """Create a sample skill outside the workflow."""
    skill_dir = skills_base_dir / "project-reset"
    skill_dir.mkdir()

    (skill_dir / "SKILL.md").write_text("""---
name: project-reset
description: "Archive artifacts and reset memory"
version: 1.0
category: utility
---

# Project Reset
""")

    return skill_dir


@pytest.fixture
def invalid_skill(skills_base_dir):
    """Create a skill whose frontmatter is not valid YAML."""
    skill_dir = skills_base_dir / "broken"
    skill_dir.mkdir()

    (skill_dir / "SKILL.md").write_text("""---
name: broken
description: [unclosed
---

# Broken
""")

    return skill_dir
