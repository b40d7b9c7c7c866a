"""
Routing data models.

- MatchResult: one candidate skill for an input, with explainable adjustments
- SessionContext: per-session history used by the context adjuster
- SessionUpdate: optional fields of a session update call
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from skill_router.routing.triggers import TriggerTier


RECENT_ACTIVITY_LIMIT = 5


class MatchResult(BaseModel):
    """A trigger match for a user input.

    Created per analysis call and discarded once the caller has consumed
    the ranked list.
    """

    skill: str = Field(..., description="Recommended skill identifier")
    confidence: int = Field(..., ge=0, le=100, description="Confidence after adjustments")
    trigger: str = Field(..., description="Trigger phrase that matched")
    tier: TriggerTier = Field(..., description="Tier of the matching trigger")
    reasoning: str = Field(default="", description="Why the trigger matched")
    adjustments: List[str] = Field(
        default_factory=list,
        description="Context adjustments applied, in order",
    )
    original_confidence: Optional[int] = Field(
        default=None,
        description="Confidence before context adjustments",
    )
    priority: Optional[str] = Field(default=None, description="'high' when urgency was detected")
    persona: Optional[str] = Field(default=None, description="Suggested review persona")
    context: Optional[str] = Field(default=None, description="Context label of a contextual trigger")
    phase: Optional[str] = Field(default=None, description="Workflow phase the skill belongs to")

    @property
    def is_high_priority(self) -> bool:
        return self.priority == "high"


class SessionUpdate(BaseModel):
    """Fields accepted by ``SessionContext.apply``; all optional."""

    current_phase: Optional[str] = None
    recent_activities: Optional[List[str]] = None
    active_files: Optional[List[str]] = None
    workflow_progress: Optional[Dict[str, str]] = None


class SessionContext(BaseModel):
    """Session history owned by a single router instance."""

    current_phase: Optional[str] = None
    recent_activities: List[str] = Field(default_factory=list)
    active_files: List[str] = Field(default_factory=list)
    workflow_progress: Dict[str, str] = Field(default_factory=dict)
    activity_limit: int = Field(default=RECENT_ACTIVITY_LIMIT, ge=1)

    def apply(self, update: Optional[SessionUpdate]) -> None:
        """Merge an update into the session.

        Activities are appended and trimmed to the newest ``activity_limit``
        entries; active files are replaced; workflow progress is merged.
        """
        if update is None:
            return

        if update.current_phase:
            self.current_phase = update.current_phase

        if update.recent_activities:
            merged = self.recent_activities + [a.strip().lower() for a in update.recent_activities]
            self.recent_activities = merged[-self.activity_limit:]

        if update.active_files is not None:
            self.active_files = list(update.active_files)

        if update.workflow_progress:
            self.workflow_progress = {**self.workflow_progress, **update.workflow_progress}

    @property
    def last_activity(self) -> Optional[str]:
        return self.recent_activities[-1] if self.recent_activities else None

    def context_factors(self) -> Dict[str, object]:
        return {
            "current_phase": self.current_phase,
            "recent_activities_count": len(self.recent_activities),
            "active_files_count": len(self.active_files),
            "workflow_progress": dict(self.workflow_progress),
        }


__all__ = [
    "MatchResult",
    "SessionContext",
    "SessionUpdate",
    "RECENT_ACTIVITY_LIMIT",
]
