"""
Phase Sequencer

Finite-state gate over an ordered list of workflow phases
(default ``spec-forge -> planning -> work -> review``).

- The first phase can always be entered.
- A later phase can be entered only once every earlier phase is completed.
- Phases outside the sequence are utility phases: always enterable,
  never tracked as completed.
- Completing every phase marks the workflow complete; the sequencer stays
  usable afterwards.

State lives in memory only. ``export_state`` / ``import_state`` let an
embedding host carry it across router instances.
"""

import logging
from collections import deque
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional, Set

from pydantic import BaseModel, Field

from skill_router.errors import NotFoundError, SequenceViolation, ValidationError
from skill_router.messages import (
    MessageKind,
    phase_description,
    phase_name,
    progress_indicator,
    render_message,
    sequence_line,
)

logger = logging.getLogger(__name__)


DEFAULT_PHASE_SEQUENCE: List[str] = ["spec-forge", "planning", "work", "review"]
MAX_HISTORY_SIZE = 20


class ValidationType:
    """Classification of a requested phase."""

    UTILITY = "utility"
    SEQUENCE_START = "sequence-start"
    SEQUENCE_CONTINUATION = "sequence-continuation"
    SEQUENCE_VIOLATION = "sequence-violation"


class PhaseValidation(BaseModel):
    """Outcome of ``validate_transition``."""

    valid: bool
    phase: Optional[str] = Field(default=None, description="Phase that may be entered (None when invalid)")
    requested_phase: str
    type: str
    missing_phases: List[str] = Field(default_factory=list)
    suggested_next: Optional[str] = None
    message: Optional[str] = Field(default=None, description="User-facing guidance")


class PhaseCompletion(BaseModel):
    """Outcome of ``complete_phase``."""

    completed_phase: str
    next_phase: Optional[str] = None
    is_workflow_complete: bool = False
    completed_phases: List[str] = Field(default_factory=list)
    progress: str
    message: str
    already_completed: bool = False


class WorkflowStatus(BaseModel):
    """Snapshot of the sequencer state."""

    workflow_started: bool
    current_phase: Optional[str] = None
    completed_phases: List[str] = Field(default_factory=list)
    progress: str
    is_complete: bool
    next_phase: Optional[str] = None
    progress_indicator: Optional[str] = None


class TransitionRecord(BaseModel):
    from_phase: Optional[str] = None
    to_phase: str
    kind: str  # "transition" | "completion"
    timestamp: datetime = Field(default_factory=datetime.now)


class PhaseSequencer:
    """Enforces workflow phase order.

    Example:
        >>> sequencer = PhaseSequencer()
        >>> sequencer.validate_transition("review").missing_phases
        ['spec-forge', 'planning', 'work']
    """

    def __init__(
        self,
        sequence: Optional[List[str]] = None,
        max_history: int = MAX_HISTORY_SIZE,
    ):
        sequence = list(sequence) if sequence is not None else list(DEFAULT_PHASE_SEQUENCE)
        if not sequence:
            raise ValidationError("Phase sequence cannot be empty", field="sequence")
        if len(set(sequence)) != len(sequence):
            raise ValidationError("Phase sequence contains duplicates", field="sequence")

        self.sequence: List[str] = sequence
        self.current_phase: Optional[str] = None
        self.completed_phases: Set[str] = set()
        self.workflow_started = False
        self._history: Deque[TransitionRecord] = deque(maxlen=max_history)

    # ===== Queries =====

    def is_utility(self, phase: str) -> bool:
        return phase not in self.sequence

    def missing_before(self, phase: str) -> List[str]:
        """Uncompleted phases that precede ``phase``, in sequence order."""
        index = self.sequence.index(phase)
        return [p for p in self.sequence[:index] if p not in self.completed_phases]

    def next_phase(self) -> Optional[str]:
        """First phase in sequence order that is not completed."""
        for phase in self.sequence:
            if phase not in self.completed_phases:
                return phase
        return None

    @property
    def is_complete(self) -> bool:
        return all(p in self.completed_phases for p in self.sequence)

    @property
    def progress(self) -> str:
        return f"{len(self.completed_phases)}/{len(self.sequence)}"

    @property
    def history(self) -> List[TransitionRecord]:
        return list(self._history)

    def completed_in_order(self) -> List[str]:
        return [p for p in self.sequence if p in self.completed_phases]

    # ===== Validation =====

    def validate_transition(self, phase: str) -> PhaseValidation:
        """Check whether ``phase`` can be entered now. No side effects."""
        if self.is_utility(phase):
            return PhaseValidation(
                valid=True,
                phase=phase,
                requested_phase=phase,
                type=ValidationType.UTILITY,
            )

        missing = self.missing_before(phase)
        if missing:
            suggested = missing[0]
            return PhaseValidation(
                valid=False,
                requested_phase=phase,
                type=ValidationType.SEQUENCE_VIOLATION,
                missing_phases=missing,
                suggested_next=suggested,
                message=render_message(
                    MessageKind.SEQUENCE_GUIDANCE,
                    requested_name=phase_name(phase),
                    sequence=sequence_line(self.sequence),
                    missing=sequence_line(missing),
                    next_name=phase_name(suggested),
                    next_description=phase_description(suggested),
                ),
            )

        validation_type = (
            ValidationType.SEQUENCE_START
            if self.sequence.index(phase) == 0
            else ValidationType.SEQUENCE_CONTINUATION
        )
        return PhaseValidation(
            valid=True,
            phase=phase,
            requested_phase=phase,
            type=validation_type,
            message=self.activation_message(phase),
        )

    def activation_message(self, phase: str) -> str:
        return render_message(
            MessageKind.PHASE_ACTIVATED,
            phase_name=phase_name(phase),
            progress=f"{self.sequence.index(phase) + 1}/{len(self.sequence)}",
            description=phase_description(phase),
            indicator=progress_indicator(self.sequence, phase),
        )

    def transition_guidance(self, validation: PhaseValidation) -> Optional[str]:
        """Next-step guidance for a failed validation."""
        if validation.valid or not validation.suggested_next:
            return None
        suggested = validation.suggested_next
        return render_message(
            MessageKind.TRANSITION_GUIDANCE,
            next_name=phase_name(suggested),
            next_description=phase_description(suggested),
            next_phase=suggested,
        )

    # ===== Mutations =====

    def transition(self, phase: str) -> PhaseValidation:
        """Enter ``phase``.

        Utility phases are accepted but do not change ``current_phase``.

        Raises:
            SequenceViolation: A preceding phase is not completed
        """
        validation = self.validate_transition(phase)
        if not validation.valid:
            logger.info(f"Rejected transition to {phase}; missing {validation.missing_phases}")
            raise SequenceViolation(
                f"Cannot enter phase '{phase}' before completing: {', '.join(validation.missing_phases)}",
                requested_phase=phase,
                missing_phases=validation.missing_phases,
            )

        if validation.type == ValidationType.UTILITY:
            return validation

        previous = self.current_phase
        self.current_phase = phase
        self.workflow_started = True
        self._record(previous, phase, "transition")
        logger.info(f"Phase transition {previous or '-'} -> {phase}")
        return validation

    def complete_phase(self, phase: str) -> PhaseCompletion:
        """Mark ``phase`` completed. Idempotent.

        Raises:
            NotFoundError: ``phase`` is not part of the sequence
        """
        if phase not in self.sequence:
            raise NotFoundError(
                f"Invalid phase: {phase}. Must be one of: {', '.join(self.sequence)}",
                resource_type="phase",
                resource_id=phase,
            )

        already_completed = phase in self.completed_phases
        self.completed_phases.add(phase)

        index = self.sequence.index(phase)
        next_phase = self.sequence[index + 1] if index < len(self.sequence) - 1 else None
        complete = self.is_complete

        if not already_completed:
            self._record(phase, next_phase or "complete", "completion")
            logger.info(f"Completed phase {phase} ({self.progress})")

        return PhaseCompletion(
            completed_phase=phase,
            next_phase=next_phase,
            is_workflow_complete=complete,
            completed_phases=self.completed_in_order(),
            progress=self.progress,
            message=self._completion_message(phase, next_phase, complete),
            already_completed=already_completed,
        )

    def reset(self) -> None:
        """Back to the initial state: nothing current, nothing completed."""
        self.current_phase = None
        self.completed_phases.clear()
        self.workflow_started = False
        self._history.clear()

    # ===== Status & state transfer =====

    def status(self) -> WorkflowStatus:
        return WorkflowStatus(
            workflow_started=self.workflow_started,
            current_phase=self.current_phase,
            completed_phases=self.completed_in_order(),
            progress=self.progress,
            is_complete=self.is_complete,
            next_phase=self.next_phase(),
            progress_indicator=(
                progress_indicator(self.sequence, self.current_phase)
                if self.current_phase else None
            ),
        )

    def export_state(self) -> Dict[str, Any]:
        return {
            "current_phase": self.current_phase,
            "completed_phases": self.completed_in_order(),
            "workflow_started": self.workflow_started,
            "progress": self.progress,
            "is_complete": self.is_complete,
        }

    def import_state(self, state: Dict[str, Any]) -> None:
        """Restore state produced by ``export_state``.

        Raises:
            ValidationError: The state names phases outside the sequence
        """
        completed = list(state.get("completed_phases") or [])
        unknown = [p for p in completed if p not in self.sequence]
        if unknown:
            raise ValidationError(
                f"Unknown phases in imported state: {', '.join(unknown)}",
                field="completed_phases",
            )

        current = state.get("current_phase")
        if current is not None and current not in self.sequence:
            raise ValidationError(
                f"Unknown current phase in imported state: {current}",
                field="current_phase",
            )

        self.completed_phases = set(completed)
        self.current_phase = current
        self.workflow_started = bool(state.get("workflow_started", current is not None))

    # ===== Internals =====

    def _record(self, from_phase: Optional[str], to_phase: str, kind: str) -> None:
        self._history.append(TransitionRecord(from_phase=from_phase, to_phase=to_phase, kind=kind))

    def _completion_message(self, phase: str, next_phase: Optional[str], complete: bool) -> str:
        if complete:
            return render_message(
                MessageKind.WORKFLOW_COMPLETED,
                phase_name=phase_name(phase),
                checklist="\n".join(f"✅ {phase_name(p)}" for p in self.sequence),
            )
        # Last phase completed while an earlier one is still open.
        target = next_phase or self.next_phase()
        return render_message(
            MessageKind.PHASE_COMPLETED,
            phase_name=phase_name(phase),
            next_name=phase_name(target),
            indicator=progress_indicator(self.sequence, target),
            next_description=phase_description(target),
        )


__all__ = [
    "PhaseSequencer",
    "PhaseValidation",
    "PhaseCompletion",
    "WorkflowStatus",
    "TransitionRecord",
    "ValidationType",
    "DEFAULT_PHASE_SEQUENCE",
    "MAX_HISTORY_SIZE",
]
