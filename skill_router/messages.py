"""
User-facing message templates.

All text shown to a user is produced here, keyed by ``MessageKind``, so the
routing, workflow and budget modules stay free of presentation concerns.
"""

from enum import Enum
from typing import Any, Dict, Iterable, List, Optional


class MessageKind(str, Enum):
    """Kinds of user-facing messages."""
    SKILL_ACTIVATED = "skill_activated"
    WORKFLOW_ACTIVATED = "workflow_activated"
    PHASE_ACTIVATED = "phase_activated"
    SEQUENCE_GUIDANCE = "sequence_guidance"
    TRANSITION_GUIDANCE = "transition_guidance"
    PHASE_COMPLETED = "phase_completed"
    WORKFLOW_COMPLETED = "workflow_completed"
    BUDGET_WARNING = "budget_warning"
    ACTIVATION_FAILED = "activation_failed"
    EXPLANATION = "explanation"


PHASE_DISPLAY_NAMES: Dict[str, str] = {
    "spec-forge": "SPEC-FORGE",
    "planning": "PLANNING",
    "work": "WORK",
    "review": "REVIEW",
}

PHASE_DESCRIPTIONS: Dict[str, str] = {
    "spec-forge": "Create EARS-compliant requirements, design with correctness properties, and task planning",
    "planning": "Implementation planning, research, and architectural decisions",
    "work": "TDD implementation in isolated git worktree environments",
    "review": "Multi-perspective code audit and quality assurance",
}


_TEMPLATES: Dict[MessageKind, str] = {
    MessageKind.SKILL_ACTIVATED: (
        "**{skill_upper} Skill Activated**\n\n"
        "{description}\n\n"
        "Loading focused instructions for {skill} operations..."
    ),
    MessageKind.WORKFLOW_ACTIVATED: (
        "**Engineering Workflow Activated**\n\n"
        "Structured development methodology is now active. Starting with **{first_phase}** phase.\n\n"
        "**Phase Sequence**: {sequence}"
    ),
    MessageKind.PHASE_ACTIVATED: (
        "**{phase_name} Phase Activated** ({progress})\n\n"
        "{description}\n\n"
        "**Workflow Progress**: {indicator}\n\n"
        "Ready to begin {phase_name} phase activities."
    ),
    MessageKind.SEQUENCE_GUIDANCE: (
        "**Phase Sequence Guidance**\n\n"
        "You requested **{requested_name}** phase, but the workflow requires completing phases in sequence.\n\n"
        "**Required Sequence**: {sequence}\n\n"
        "**Missing Prerequisites**: {missing}\n\n"
        "**Recommended Next Step**: Start with **{next_name}** phase\n\n"
        "{next_description}"
    ),
    MessageKind.TRANSITION_GUIDANCE: (
        "To proceed with the workflow:\n\n"
        "1. **Start with {next_name}**: {next_description}\n"
        "2. **Complete all requirements** before moving to the next phase\n"
        "3. **Follow the sequence** to ensure proper foundation building\n\n"
        'Use: "activate {next_phase}" or "{next_phase}" to begin the correct phase.'
    ),
    MessageKind.PHASE_COMPLETED: (
        "**{phase_name} Phase Complete**\n\n"
        "Ready to proceed to **{next_name}** phase.\n\n"
        "**Progress**: {indicator}\n\n"
        "**Next**: {next_description}"
    ),
    MessageKind.WORKFLOW_COMPLETED: (
        "**Workflow Complete!**\n\n"
        "**{phase_name}** phase completed successfully.\n\n"
        "All workflow phases have been completed:\n"
        "{checklist}"
    ),
    MessageKind.BUDGET_WARNING: (
        "**Context Limit Warning**\n\n"
        "Loading **{item_id}** needs {tokens_needed} tokens but only {tokens_available} "
        "can be made available (ceiling {ceiling}).\n\n"
        "**Recommendation**: Deactivate unused skills or unload supporting files, then retry."
    ),
    MessageKind.ACTIVATION_FAILED: (
        "**Activation Failed**: {error}\n\n"
        "Please check the skill installation and try again."
    ),
    MessageKind.EXPLANATION: (
        "Recommended {skill} with {confidence}% confidence.\n\n"
        "Reasoning: {reasoning}\n"
        "{extra}"
        "\nContext factors:\n"
        "- Current phase: {current_phase}\n"
        "- Recent activities: {recent_activities}\n"
        "- Active files: {active_files}\n"
    ),
}


def render_message(kind: MessageKind, **fields: Any) -> str:
    """Render the template registered for ``kind`` with ``fields``.

    Raises:
        KeyError: If a required template field is missing
    """
    return _TEMPLATES[MessageKind(kind)].format(**fields)


def phase_name(phase: str) -> str:
    """Display name for a phase, falling back to the upper-cased id."""
    return PHASE_DISPLAY_NAMES.get(phase, phase.upper())


def phase_description(phase: str) -> str:
    return PHASE_DESCRIPTIONS.get(phase, "Specialized capability activated")


def progress_indicator(sequence: List[str], current: Optional[str]) -> str:
    """Render ``done -> current -> pending`` markers for a phase sequence."""
    current_index = sequence.index(current) if current in sequence else -1
    parts = []
    for index, phase in enumerate(sequence):
        if index < current_index:
            marker = "✅"
        elif index == current_index:
            marker = "🎯"
        else:
            marker = "⏳"
        parts.append(f"{marker} {phase_name(phase)}")
    return " → ".join(parts)


def sequence_line(phases: Iterable[str]) -> str:
    return " → ".join(phase_name(p) for p in phases)


__all__ = [
    "MessageKind",
    "render_message",
    "phase_name",
    "phase_description",
    "progress_indicator",
    "sequence_line",
    "PHASE_DISPLAY_NAMES",
    "PHASE_DESCRIPTIONS",
]
