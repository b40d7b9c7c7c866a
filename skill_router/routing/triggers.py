"""
Trigger table for skill routing.

A trigger maps a phrase to a target skill with a base confidence inside the
band of its tier. The table also carries the context patterns consumed by the
context adjuster (sequential next-skill map, error phrases, urgency keywords).

The table is loaded once and never mutated. It can come from the built-in
defaults or from a YAML file with the schema::

    triggers:
      - phrase: "create requirements"
        skill: ears-specification
        confidence: 92
        tier: primary
    sequential:
      "created requirements": git-workflow
    error_phrases:
      "security vulnerability":
        skill: testing-framework
        persona: security
    urgency_keywords: [critical, urgent]
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from skill_router.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class TriggerTier(str, Enum):
    """Confidence tiers, in scan priority order."""
    EXACT = "exact"
    PRIMARY = "primary"
    SEMANTIC = "semantic"
    CONTEXTUAL = "contextual"

    @property
    def rank(self) -> int:
        """Precedence rank (exact=4 ... contextual=1)."""
        return _TIER_RANKS[self]

    @property
    def band(self) -> Tuple[int, int]:
        """Inclusive (low, high) base-confidence band for the tier."""
        return _TIER_BANDS[self]

    @property
    def label(self) -> str:
        return _TIER_LABELS[self]


_TIER_RANKS = {
    TriggerTier.EXACT: 4,
    TriggerTier.PRIMARY: 3,
    TriggerTier.SEMANTIC: 2,
    TriggerTier.CONTEXTUAL: 1,
}

_TIER_BANDS = {
    TriggerTier.EXACT: (95, 100),
    TriggerTier.PRIMARY: (85, 94),
    TriggerTier.SEMANTIC: (70, 84),
    TriggerTier.CONTEXTUAL: (50, 69),
}

_TIER_LABELS = {
    TriggerTier.EXACT: "Exact match",
    TriggerTier.PRIMARY: "Primary intent match",
    TriggerTier.SEMANTIC: "Semantic match",
    TriggerTier.CONTEXTUAL: "Contextual match",
}

TIER_ORDER: List[TriggerTier] = [
    TriggerTier.EXACT,
    TriggerTier.PRIMARY,
    TriggerTier.SEMANTIC,
    TriggerTier.CONTEXTUAL,
]


class Trigger(BaseModel):
    """A single phrase -> skill trigger."""

    model_config = ConfigDict(frozen=True)

    phrase: str = Field(..., description="Lowercase trigger phrase")
    skill: str = Field(..., description="Target skill identifier")
    confidence: int = Field(..., ge=0, le=100, description="Base confidence (0-100)")
    tier: TriggerTier = Field(..., description="Confidence tier")
    context: Optional[str] = Field(
        default=None,
        description="Context label for contextual triggers (e.g. 'error', 'security')",
    )

    @field_validator("phrase")
    @classmethod
    def validate_phrase(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("Trigger phrase cannot be empty")
        return v

    @field_validator("skill")
    @classmethod
    def validate_skill(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Trigger skill cannot be empty")
        return v

    @model_validator(mode="after")
    def validate_band(self) -> "Trigger":
        low, high = self.tier.band
        if not low <= self.confidence <= high:
            raise ValueError(
                f"Confidence {self.confidence} for '{self.phrase}' is outside the "
                f"{self.tier.value} band {low}-{high}"
            )
        return self


class ErrorPhrase(BaseModel):
    """Error phrase that boosts a specific skill."""

    model_config = ConfigDict(frozen=True)

    skill: str
    persona: Optional[str] = None


DEFAULT_TRIGGERS: List[Dict[str, Any]] = [
    # Tier 1: exact matches (95-100)
    {"phrase": "engineering-workflow", "skill": "engineering-workflow", "confidence": 100, "tier": "exact"},
    {"phrase": "spec-forge", "skill": "ears-specification", "confidence": 98, "tier": "exact"},
    {"phrase": "ears-specification", "skill": "ears-specification", "confidence": 100, "tier": "exact"},
    {"phrase": "git-workflow", "skill": "git-workflow", "confidence": 100, "tier": "exact"},
    {"phrase": "testing-framework", "skill": "testing-framework", "confidence": 100, "tier": "exact"},
    {"phrase": "project-reset", "skill": "project-reset", "confidence": 98, "tier": "exact"},

    # Tier 2: primary intent (85-94)
    {"phrase": "structured development", "skill": "engineering-workflow", "confidence": 92, "tier": "primary"},
    {"phrase": "formal methodology", "skill": "engineering-workflow", "confidence": 90, "tier": "primary"},
    {"phrase": "create requirements", "skill": "ears-specification", "confidence": 92, "tier": "primary"},
    {"phrase": "implementation plan", "skill": "planning", "confidence": 90, "tier": "primary"},
    {"phrase": "create plan", "skill": "planning", "confidence": 88, "tier": "primary"},
    {"phrase": "implement feature", "skill": "git-workflow", "confidence": 90, "tier": "primary"},
    {"phrase": "review code", "skill": "testing-framework", "confidence": 92, "tier": "primary"},
    {"phrase": "security audit", "skill": "testing-framework", "confidence": 94, "tier": "primary"},
    {"phrase": "git worktree", "skill": "git-workflow", "confidence": 88, "tier": "primary"},
    {"phrase": "isolated environment", "skill": "git-workflow", "confidence": 85, "tier": "primary"},
    {"phrase": "reset project", "skill": "project-reset", "confidence": 90, "tier": "primary"},

    # Tier 3: semantic intent (70-84)
    {"phrase": "user story", "skill": "ears-specification", "confidence": 82, "tier": "semantic"},
    {"phrase": "acceptance criteria", "skill": "ears-specification", "confidence": 80, "tier": "semantic"},
    {"phrase": "need to document", "skill": "ears-specification", "confidence": 75, "tier": "semantic"},
    {"phrase": "technical approach", "skill": "planning", "confidence": 78, "tier": "semantic"},
    {"phrase": "architecture decision", "skill": "planning", "confidence": 76, "tier": "semantic"},
    {"phrase": "test coverage", "skill": "testing-framework", "confidence": 78, "tier": "semantic"},
    {"phrase": "should validate", "skill": "testing-framework", "confidence": 77, "tier": "semantic"},
    {"phrase": "time to implement", "skill": "git-workflow", "confidence": 74, "tier": "semantic"},
    {"phrase": "start coding", "skill": "git-workflow", "confidence": 76, "tier": "semantic"},
    {"phrase": "build feature", "skill": "git-workflow", "confidence": 82, "tier": "semantic"},
    {"phrase": "fix bug", "skill": "git-workflow", "confidence": 80, "tier": "semantic"},

    # Tier 4: contextual inference (50-69)
    {"phrase": "authentication not working", "skill": "git-workflow", "confidence": 65, "tier": "contextual", "context": "error"},
    {"phrase": "requirements unclear", "skill": "ears-specification", "confidence": 68, "tier": "contextual", "context": "clarification"},
    {"phrase": "is this secure", "skill": "testing-framework", "confidence": 66, "tier": "contextual", "context": "security"},
    {"phrase": "ready for production", "skill": "testing-framework", "confidence": 64, "tier": "contextual", "context": "deployment"},
    {"phrase": "tests are failing", "skill": "testing-framework", "confidence": 69, "tier": "contextual", "context": "debugging"},
]

DEFAULT_SEQUENTIAL: Dict[str, str] = {
    "created requirements": "git-workflow",
    "finished planning": "git-workflow",
    "finished implementation": "testing-framework",
    "review completed": "ears-specification",
    "approved design": "git-workflow",
}

DEFAULT_ERROR_PHRASES: Dict[str, Dict[str, Any]] = {
    "tests failing": {"skill": "testing-framework"},
    "git conflicts": {"skill": "git-workflow"},
    "security vulnerability": {"skill": "testing-framework", "persona": "security"},
    "performance issue": {"skill": "testing-framework", "persona": "performance"},
}

DEFAULT_URGENCY_KEYWORDS: List[str] = ["critical", "urgent", "emergency", "production", "blocker"]


class TriggerTable:
    """Immutable trigger table plus adjuster context patterns."""

    def __init__(
        self,
        triggers: List[Trigger],
        sequential: Optional[Dict[str, str]] = None,
        error_phrases: Optional[Dict[str, ErrorPhrase]] = None,
        urgency_keywords: Optional[List[str]] = None,
    ):
        self._triggers: Tuple[Trigger, ...] = tuple(triggers)
        self._sequential: Dict[str, str] = dict(sequential or {})
        self._error_phrases: Dict[str, ErrorPhrase] = dict(error_phrases or {})
        self._urgency_keywords: Tuple[str, ...] = tuple(urgency_keywords or ())

    @property
    def triggers(self) -> Tuple[Trigger, ...]:
        return self._triggers

    @property
    def sequential(self) -> Dict[str, str]:
        return dict(self._sequential)

    @property
    def error_phrases(self) -> Dict[str, ErrorPhrase]:
        return dict(self._error_phrases)

    @property
    def urgency_keywords(self) -> Tuple[str, ...]:
        return self._urgency_keywords

    def __len__(self) -> int:
        return len(self._triggers)

    def by_tier(self, tier: TriggerTier) -> List[Trigger]:
        """Triggers of a single tier, in table order."""
        return [t for t in self._triggers if t.tier == tier]

    def skills(self) -> List[str]:
        """All target skills referenced by the table."""
        return sorted({t.skill for t in self._triggers})

    def next_skill_after(self, activity: str) -> Optional[str]:
        """Skill that usually follows ``activity`` in the workflow."""
        return self._sequential.get(activity.strip().lower())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "triggers": [t.model_dump(mode="json", exclude_none=True) for t in self._triggers],
            "sequential": dict(self._sequential),
            "error_phrases": {
                phrase: cfg.model_dump(exclude_none=True)
                for phrase, cfg in self._error_phrases.items()
            },
            "urgency_keywords": list(self._urgency_keywords),
        }

    # ===== Construction =====

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TriggerTable":
        """Build a table from a plain dict, validating every entry.

        Raises:
            ValidationError: If any entry is malformed or duplicated
        """
        if not isinstance(data, dict):
            raise ValidationError("Trigger table must be a mapping")

        raw_triggers = data.get("triggers") or []
        if not isinstance(raw_triggers, list):
            raise ValidationError("'triggers' must be a list", field="triggers")

        triggers: List[Trigger] = []
        seen = set()
        for index, entry in enumerate(raw_triggers):
            if not isinstance(entry, dict):
                raise ValidationError(
                    f"Trigger entry #{index} must be a mapping",
                    field=f"triggers[{index}]",
                )
            try:
                trigger = Trigger(**entry)
            except PydanticValidationError as e:
                raise ValidationError(
                    f"Invalid trigger entry #{index}: {e}",
                    field=f"triggers[{index}]",
                    details={"entry": entry},
                )
            key = (trigger.phrase, trigger.tier)
            if key in seen:
                raise ValidationError(
                    f"Duplicate trigger '{trigger.phrase}' in tier {trigger.tier.value}",
                    field=f"triggers[{index}]",
                )
            seen.add(key)
            triggers.append(trigger)

        sequential = data.get("sequential") or {}
        if not isinstance(sequential, dict):
            raise ValidationError("'sequential' must be a mapping", field="sequential")

        raw_errors = data.get("error_phrases") or {}
        if not isinstance(raw_errors, dict):
            raise ValidationError("'error_phrases' must be a mapping", field="error_phrases")
        error_phrases: Dict[str, ErrorPhrase] = {}
        for phrase, cfg in raw_errors.items():
            try:
                error_phrases[str(phrase).strip().lower()] = ErrorPhrase(**(cfg or {}))
            except (PydanticValidationError, TypeError) as e:
                raise ValidationError(
                    f"Invalid error phrase '{phrase}': {e}",
                    field="error_phrases",
                )

        urgency = data.get("urgency_keywords")
        if urgency is None:
            urgency = list(DEFAULT_URGENCY_KEYWORDS)
        if not isinstance(urgency, list):
            raise ValidationError("'urgency_keywords' must be a list", field="urgency_keywords")

        return cls(
            triggers=triggers,
            sequential={str(k).strip().lower(): str(v) for k, v in sequential.items()},
            error_phrases=error_phrases,
            urgency_keywords=[str(k).strip().lower() for k in urgency],
        )

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "TriggerTable":
        """Load a trigger table from a YAML file.

        Raises:
            NotFoundError: If the file does not exist
            ValidationError: If the YAML is invalid or an entry is malformed
        """
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise NotFoundError(
                f"Trigger table not found: {path}",
                resource_type="trigger_table",
                resource_id=str(path),
            )
        except OSError as e:
            raise ValidationError(f"Cannot read trigger table {path}: {e}")

        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ValidationError(f"{path}: Invalid YAML: {e}")

        table = cls.from_dict(data)
        logger.info(f"Loaded {len(table)} triggers from {path}")
        return table

    @classmethod
    def default(cls) -> "TriggerTable":
        """Built-in trigger table."""
        return cls.from_dict({
            "triggers": DEFAULT_TRIGGERS,
            "sequential": DEFAULT_SEQUENTIAL,
            "error_phrases": DEFAULT_ERROR_PHRASES,
            "urgency_keywords": DEFAULT_URGENCY_KEYWORDS,
        })


def load_trigger_table(path: Optional[Union[str, Path]] = None) -> TriggerTable:
    """Load the table from ``path``, or the built-in defaults when None."""
    if path is None:
        return TriggerTable.default()
    return TriggerTable.from_yaml(path)


__all__ = [
    "TriggerTier",
    "TIER_ORDER",
    "Trigger",
    "ErrorPhrase",
    "TriggerTable",
    "load_trigger_table",
    "DEFAULT_TRIGGERS",
    "DEFAULT_SEQUENTIAL",
    "DEFAULT_ERROR_PHRASES",
    "DEFAULT_URGENCY_KEYWORDS",
]
