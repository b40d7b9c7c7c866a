"""
Phase Context Manager

Loads and unloads the execution-tier files that belong to each workflow
phase, through the budget tracker, as phases change:

- phase files: instructions/templates needed while the phase is current
- supporting files: optional extras, preloaded only when there is room
- core files: project memory kept across phases when ``maintain_core``

File problems (missing file, budget exhausted) are collected per file in
the result; a transition is never aborted by one bad file.
"""

import logging
from collections import deque
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional, Set

from pydantic import BaseModel, Field

from skill_router.budget.tracker import BudgetRecommendation, ContextBudgetTracker, UnloadResult
from skill_router.errors import NotFoundError, RouterError

logger = logging.getLogger(__name__)


MAX_PHASE_FILES = 6
MAX_SUPPORTING_FILES = 3
MAX_PRELOAD_FILES = 3
MAX_TRANSITION_HISTORY = 10

SUPPORTING_UTILIZATION_LIMIT = 70.0
PRELOAD_UTILIZATION_LIMIT = 60.0
OPTIMIZE_UTILIZATION_THRESHOLD = 75.0
WARN_UTILIZATION_THRESHOLD = 80.0
MAX_ACTIVE_SKILLS_BEFORE_TRANSITION = 2


class TransitionOptions(BaseModel):
    """Options for ``PhaseContextManager.transition_to``."""

    unload_previous: bool = Field(default=True, description="Unload the previous phase's files")
    preload_supporting: bool = Field(default=False, description="Also load supporting files when there is room")
    maintain_core: bool = Field(default=True, description="Keep core memory files loaded")


class FileError(BaseModel):
    path: str  # file path, or the owning skill when its discovery entry could not be loaded
    code: str
    message: str


class PhaseContextResult(BaseModel):
    """Outcome of a phase context transition."""

    previous_phase: Optional[str] = None
    new_phase: str
    tokens_freed: int = 0
    tokens_loaded: int = 0
    files_loaded: List[str] = Field(default_factory=list)
    files_unloaded: List[str] = Field(default_factory=list)
    errors: List[FileError] = Field(default_factory=list)

    @property
    def net_token_change(self) -> int:
        return self.tokens_loaded - self.tokens_freed

    @property
    def success(self) -> bool:
        return not self.errors


class OptimizationResult(BaseModel):
    applied: bool
    tokens_freed: int = 0
    files_unloaded: List[str] = Field(default_factory=list)
    utilization_before: float
    utilization_after: float


class PreloadResult(BaseModel):
    preloaded: bool
    phase: str
    files_loaded: List[str] = Field(default_factory=list)
    tokens_loaded: int = 0
    reason: Optional[str] = None
    errors: List[FileError] = Field(default_factory=list)


class TransitionRecommendations(BaseModel):
    current_phase: Optional[str] = None
    context_utilization: float
    recommendations: List[BudgetRecommendation] = Field(default_factory=list)

    @property
    def can_transition(self) -> bool:
        return not any(r.type == "warning" for r in self.recommendations)


class PhaseContextManager:
    """Phase-aware loading of execution-tier files.

    Files are loaded on behalf of the phase's owning skill (``phase_skills``),
    which is registered in the discovery tier on first use.
    """

    def __init__(
        self,
        budget: ContextBudgetTracker,
        phase_files: Optional[Dict[str, List[str]]] = None,
        supporting_files: Optional[Dict[str, List[str]]] = None,
        core_files: Optional[List[str]] = None,
        phase_skills: Optional[Dict[str, str]] = None,
        max_phase_files: int = MAX_PHASE_FILES,
        max_history: int = MAX_TRANSITION_HISTORY,
    ):
        self.budget = budget
        self.phase_files = {phase: list(paths) for phase, paths in (phase_files or {}).items()}
        self.supporting_files = {phase: list(paths) for phase, paths in (supporting_files or {}).items()}
        self.core_files = list(core_files or [])
        self.phase_skills = dict(phase_skills or {})
        self.max_phase_files = max_phase_files

        self.current_phase: Optional[str] = None
        # path -> phase that loaded it
        self.loaded_files: Dict[str, str] = {}
        self._history: Deque[Dict[str, Any]] = deque(maxlen=max_history)

    # ===== Helpers =====

    def owner_of(self, phase: str) -> str:
        return self.phase_skills.get(phase, phase)

    def _ensure_owner(self, phase: str) -> str:
        owner = self.owner_of(phase)
        if not self.budget.is_known(owner):
            self.budget.load_discovery(owner)
        return owner

    def _try_ensure_owner(self, phase: str, errors: List[FileError]) -> Optional[str]:
        """Owner of ``phase``, or None (with an error recorded) when it cannot be discovered."""
        try:
            return self._ensure_owner(phase)
        except RouterError as e:
            owner = self.owner_of(phase)
            logger.warning(f"Could not register {owner} for phase {phase}: {e.message}")
            errors.append(FileError(path=owner, code=e.code, message=e.message))
            return None

    def _load(self, paths: List[str], phase: str, owner: str, result_files: List[str], errors: List[FileError]) -> int:
        loaded_tokens = 0
        for path in paths:
            try:
                load = self.budget.load_execution_file(path, owner)
            except RouterError as e:
                logger.warning(f"Could not load {path} for phase {phase}: {e.message}")
                errors.append(FileError(path=path, code=e.code, message=e.message))
                continue

            self.loaded_files[path] = phase
            if not load.already_loaded:
                loaded_tokens += load.tokens_used
                result_files.append(path)
            for evicted in load.evicted_files:
                self.loaded_files.pop(evicted, None)
        return loaded_tokens

    def _forget_evicted(self) -> None:
        for path in list(self.loaded_files):
            if not self.budget.is_loaded(path):
                del self.loaded_files[path]

    # ===== Transitions =====

    def transition_to(self, phase: str, options: Optional[TransitionOptions] = None) -> PhaseContextResult:
        """Swap the loaded phase files over to ``phase``.

        Raises:
            NotFoundError: ``phase`` has no file mapping
        """
        if phase not in self.phase_files:
            raise NotFoundError(f"Unknown phase: {phase}", resource_type="phase", resource_id=phase)

        options = options or TransitionOptions()
        previous = self.current_phase
        result = PhaseContextResult(previous_phase=previous, new_phase=phase)

        if options.unload_previous and previous and previous != phase:
            keep = set(self.phase_files.get(phase, []))
            if options.maintain_core:
                keep.update(self.core_files)
            unloaded = self.unload_phase(previous, keep=keep)
            result.tokens_freed = unloaded.tokens_freed
            result.files_unloaded = unloaded.unloaded

        owner = self._try_ensure_owner(phase, result.errors)
        paths = list(self.phase_files[phase])
        if options.maintain_core:
            paths += [p for p in self.core_files if p not in paths]
        if owner is not None:
            result.tokens_loaded += self._load(paths, phase, owner, result.files_loaded, result.errors)

        if owner is not None and options.preload_supporting:
            if self.budget.status().utilization_percent < SUPPORTING_UTILIZATION_LIMIT:
                supporting = self.supporting_files.get(phase, [])[:MAX_SUPPORTING_FILES]
                result.tokens_loaded += self._load(supporting, phase, owner, result.files_loaded, result.errors)
            else:
                logger.debug(f"Skipped supporting files for {phase}: utilization too high")

        self._forget_evicted()
        self.current_phase = phase
        self._history.append({
            "from": previous,
            "to": phase,
            "timestamp": datetime.now(),
            "tokens_freed": result.tokens_freed,
            "tokens_loaded": result.tokens_loaded,
        })

        logger.info(
            f"Phase context {previous or '-'} -> {phase}: +{result.tokens_loaded} / -{result.tokens_freed} tokens, "
            f"{len(result.errors)} file errors"
        )
        return result

    def unload_phase(self, phase: str, keep: Optional[Set[str]] = None) -> UnloadResult:
        """Unload files loaded for ``phase`` except those in ``keep``."""
        keep = keep or set()
        paths = [
            path for path, loaded_for in self.loaded_files.items()
            if loaded_for == phase and path not in keep
        ]
        unloaded = self.budget.unload_execution_files(paths)
        for path in paths:
            self.loaded_files.pop(path, None)
        return unloaded

    def preload(self, phase: str) -> PreloadResult:
        """Load the first few files of an upcoming phase when there is room."""
        if phase not in self.phase_files:
            raise NotFoundError(f"Unknown phase: {phase}", resource_type="phase", resource_id=phase)

        utilization = self.budget.status().utilization_percent
        if utilization > PRELOAD_UTILIZATION_LIMIT:
            return PreloadResult(
                preloaded=False,
                phase=phase,
                reason=f"Insufficient context space for preloading ({utilization}% used)",
            )

        result = PreloadResult(preloaded=True, phase=phase)
        owner = self._try_ensure_owner(phase, result.errors)
        if owner is None:
            result.preloaded = False
            result.reason = result.errors[-1].message
            return result
        essential = self.phase_files[phase][:MAX_PRELOAD_FILES]
        result.tokens_loaded = self._load(essential, phase, owner, result.files_loaded, result.errors)
        self._forget_evicted()
        return result

    # ===== Optimization =====

    def optimize(self) -> OptimizationResult:
        """Unload files of other phases when utilization exceeds 75%."""
        before = self.budget.status().utilization_percent
        if before <= OPTIMIZE_UTILIZATION_THRESHOLD:
            return OptimizationResult(applied=False, utilization_before=before, utilization_after=before)

        keep = set(self.phase_files.get(self.current_phase, [])) | set(self.core_files)
        paths = [path for path in self.loaded_files if path not in keep]
        unloaded = self.budget.unload_execution_files(paths)
        for path in paths:
            self.loaded_files.pop(path, None)

        after = self.budget.status().utilization_percent
        logger.info(f"Optimized phase context: freed {unloaded.tokens_freed} tokens ({before}% -> {after}%)")
        return OptimizationResult(
            applied=True,
            tokens_freed=unloaded.tokens_freed,
            files_unloaded=unloaded.unloaded,
            utilization_before=before,
            utilization_after=after,
        )

    def recommendations(self) -> TransitionRecommendations:
        status = self.budget.status()
        recommendations: List[BudgetRecommendation] = []

        if status.utilization_percent > WARN_UTILIZATION_THRESHOLD:
            recommendations.append(BudgetRecommendation(
                type="warning",
                message="High context usage. Consider optimizing before phase transition.",
                action="optimize-context",
            ))

        if len(status.active_skills) > MAX_ACTIVE_SKILLS_BEFORE_TRANSITION:
            recommendations.append(BudgetRecommendation(
                type="suggestion",
                message="Multiple active skills. Deactivate unused skills before transition.",
                action="deactivate-unused-skills",
            ))

        if len(self.loaded_files) > self.max_phase_files:
            recommendations.append(BudgetRecommendation(
                type="suggestion",
                message="Many phase files loaded. Consider unloading non-essential files.",
                action="unload-non-essential",
            ))

        return TransitionRecommendations(
            current_phase=self.current_phase,
            context_utilization=status.utilization_percent,
            recommendations=recommendations,
        )

    # ===== Status =====

    @property
    def history(self) -> List[Dict[str, Any]]:
        return list(self._history)

    def status(self) -> Dict[str, Any]:
        self._forget_evicted()
        budget = self.budget.status()
        return {
            "current_phase": self.current_phase,
            "loaded_phase_files": list(self.loaded_files),
            "phase_file_count": len(self.loaded_files),
            "available_phases": list(self.phase_files),
            "transition_history": self.history[-5:],
            "budget": {
                "total_tokens": budget.total_tokens,
                "utilization_percent": budget.utilization_percent,
                "active_skills": budget.active_skills,
            },
        }

    def reset(self) -> None:
        """Forget phase tracking; loaded budget items are left to the tracker."""
        self.current_phase = None
        self.loaded_files.clear()
        self._history.clear()


__all__ = [
    "PhaseContextManager",
    "TransitionOptions",
    "PhaseContextResult",
    "OptimizationResult",
    "PreloadResult",
    "TransitionRecommendations",
    "FileError",
]
