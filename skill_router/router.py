"""
Skill Activation Router

Caller-facing API tying together trigger routing, the phase sequencer and
the token budget:

    analyze(input) -> find_matches -> adjust -> resolve -> recommendations
    transition_phase(phase) -> sequencer gate -> activate phase skill -> load phase files
    complete_phase(phase) -> sequencer -> deactivate phase skill

All mutable state lives in an explicit ``RouterState`` passed in at
construction; there are no module-level singletons. Public methods only
raise ``RouterError`` subclasses.
"""

import functools
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from config import Config, RoutingConfig, get_config
from skill_router.budget import (
    ActivationResult,
    ApproximateTokenEstimator,
    BudgetRecommendation,
    BudgetStatus,
    ContextBudgetTracker,
    DeactivationResult,
    LoadResult,
    LocalFileContentProvider,
)
from skill_router.errors import (
    BudgetExceeded,
    NotFoundError,
    RouterError,
    SequenceViolation,
    ValidationError,
    to_router_error,
)
from skill_router.messages import (
    MessageKind,
    phase_name,
    render_message,
    sequence_line,
)
from skill_router.routing import (
    MatchResult,
    ScoringMode,
    SessionContext,
    SessionUpdate,
    TriggerTable,
    adjust,
    find_matches,
    load_trigger_table,
    normalize,
    resolve,
)
from skill_router.skills import InstallationReport, InstallationValidator, SkillLoader, SkillRegistry
from skill_router.workflow import (
    OptimizationResult,
    PhaseCompletion,
    PhaseContextManager,
    PhaseContextResult,
    PhaseSequencer,
    PhaseValidation,
    TransitionOptions,
    WorkflowStatus,
)

logger = logging.getLogger(__name__)

WORKFLOW_SKILL = "engineering-workflow"


@dataclass
class RouterState:
    """Mutable state owned by one router instance for one session."""

    session: SessionContext = field(default_factory=SessionContext)
    sequencer: PhaseSequencer = field(default_factory=PhaseSequencer)
    budget: ContextBudgetTracker = field(default_factory=ContextBudgetTracker)
    phase_context: Optional[PhaseContextManager] = None


# ===== Results =====

class AnalysisMeta(BaseModel):
    input: str
    processed_input: str
    total_matches: int = Field(description="Raw trigger matches before ranking")
    context_factors: Dict[str, Any] = Field(default_factory=dict)
    top_confidence: int = 0
    scoring: str
    phase_validation: Optional[PhaseValidation] = Field(
        default=None,
        description="Sequencer check for the top recommendation's phase",
    )


class AnalysisResult(BaseModel):
    """Result of ``analyze``."""

    recommendations: List[MatchResult] = Field(default_factory=list)
    analysis_meta: AnalysisMeta

    @property
    def top(self) -> Optional[MatchResult]:
        return self.recommendations[0] if self.recommendations else None


class TransitionResult(BaseModel):
    """Result of ``transition_phase``; sequence violations are reported, not raised."""

    success: bool
    phase: str
    validation: PhaseValidation
    message: Optional[str] = None
    guidance: Optional[str] = None
    skill: Optional[str] = None
    activation: Optional[ActivationResult] = None
    context: Optional[PhaseContextResult] = None
    error: Optional[Dict[str, Any]] = None
    warnings: List[Dict[str, Any]] = Field(default_factory=list)


class SkillActivation(BaseModel):
    """Result of ``activate_skill``."""

    skill: str
    message: str
    result: ActivationResult


def _public(method):
    """Convert collaborator exceptions into ``RouterError`` at the public boundary."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except RouterError:
            raise
        except Exception as e:
            raise to_router_error(e, method.__name__) from e

    return wrapper


class SkillActivationRouter:
    """Routes user input to skills and manages workflow and budget state.

    Args:
        state: Session, sequencer, budget and optional phase context
        triggers: Trigger table
        registry: Skill registry; without one, skills are activated at
            their planned cost and no instructions are loaded
        settings: Routing settings (scoring mode, top K)
        phase_skills: Skill driving each workflow phase
        validator: Installation validator used by ``validate_installation``
    """

    def __init__(
        self,
        state: RouterState,
        triggers: Optional[TriggerTable] = None,
        registry: Optional[SkillRegistry] = None,
        settings: Optional[RoutingConfig] = None,
        phase_skills: Optional[Dict[str, str]] = None,
        validator: Optional[InstallationValidator] = None,
    ):
        self.state = state
        self.triggers = triggers or TriggerTable.default()
        self.registry = registry
        self.settings = settings or RoutingConfig()
        self.scoring = ScoringMode(self.settings.scoring)
        self.phase_skills: Dict[str, str] = dict(phase_skills or {})
        self.validator = validator

        self._skill_phases: Dict[str, str] = {skill: phase for phase, skill in self.phase_skills.items()}

    # ===== Lookups =====

    def phase_of(self, skill: str) -> Optional[str]:
        """Workflow phase a skill drives, or None for utility skills."""
        if skill in self._skill_phases:
            return self._skill_phases[skill]
        if self.registry is not None:
            return self.registry.phase_of(skill)
        return None

    def skill_for(self, phase: str) -> Optional[str]:
        skill = self.phase_skills.get(phase)
        if skill is None and self.registry is not None:
            skill = self.registry.skill_for_phase(phase)
        return skill

    # ===== Analysis =====

    @_public
    def analyze(
        self,
        user_input: str,
        session_update: Optional[Union[SessionUpdate, Dict[str, Any]]] = None,
    ) -> AnalysisResult:
        """Rank skills for ``user_input``.

        The optional session update is applied before matching so that
        sequential bonuses see the latest activity.

        Raises:
            ValidationError: ``user_input`` is not a string or the update is malformed
        """
        if not isinstance(user_input, str):
            raise ValidationError("user_input must be a string", field="user_input")

        if isinstance(session_update, dict):
            session_update = SessionUpdate(**session_update)
        self.state.session.apply(session_update)

        raw = find_matches(user_input, self.triggers, scoring=self.scoring, phase_of=self.phase_of)
        adjusted = adjust(raw, user_input, self.state.session, self.triggers)
        recommendations = resolve(adjusted, self.settings.top_k)

        phase_validation = None
        if recommendations and recommendations[0].phase:
            phase_validation = self.state.sequencer.validate_transition(recommendations[0].phase)

        meta = AnalysisMeta(
            input=user_input,
            processed_input=normalize(user_input),
            total_matches=len(raw),
            context_factors=self.state.session.context_factors(),
            top_confidence=recommendations[0].confidence if recommendations else 0,
            scoring=self.scoring.value,
            phase_validation=phase_validation,
        )

        if recommendations:
            top = recommendations[0]
            logger.debug(f"Top recommendation {top.skill} ({top.confidence}%) from {len(raw)} matches")
        else:
            logger.debug(f"No recommendation for input '{user_input[:50]}'")

        return AnalysisResult(recommendations=recommendations, analysis_meta=meta)

    @_public
    def explain(self, recommendation: MatchResult, analysis: Optional[AnalysisResult] = None) -> str:
        """Human-readable explanation of one recommendation."""
        extra_lines: List[str] = []
        if recommendation.adjustments:
            extra_lines.append(
                f"Adjustments: {', '.join(recommendation.adjustments)} "
                f"(base {recommendation.original_confidence}%)"
            )
        if recommendation.persona:
            extra_lines.append(f"Suggested persona: {recommendation.persona}")
        if recommendation.is_high_priority:
            extra_lines.append("Priority: high")
        if analysis is not None and analysis.analysis_meta.phase_validation is not None:
            validation = analysis.analysis_meta.phase_validation
            if not validation.valid:
                extra_lines.append(f"Workflow: complete {sequence_line(validation.missing_phases)} first")

        session = self.state.session
        return render_message(
            MessageKind.EXPLANATION,
            skill=recommendation.skill,
            confidence=recommendation.confidence,
            reasoning=recommendation.reasoning,
            extra="".join(f"{line}\n" for line in extra_lines),
            current_phase=session.current_phase or "none",
            recent_activities=", ".join(session.recent_activities) or "none",
            active_files=len(session.active_files),
        )

    # ===== Workflow =====

    @_public
    def transition_phase(
        self,
        phase: str,
        options: Optional[TransitionOptions] = None,
    ) -> TransitionResult:
        """Enter a workflow (or utility) phase.

        A sequence violation is returned as ``success=False`` with guidance.
        Budget or file problems while activating the phase skill are
        reported in ``warnings``; the transition itself still happens.
        """
        sequencer = self.state.sequencer
        validation = sequencer.validate_transition(phase)

        if not validation.valid:
            violation = SequenceViolation(
                f"Cannot enter phase '{phase}' before completing: {', '.join(validation.missing_phases)}",
                requested_phase=phase,
                missing_phases=validation.missing_phases,
            )
            return TransitionResult(
                success=False,
                phase=phase,
                validation=validation,
                message=validation.message,
                guidance=sequencer.transition_guidance(validation),
                error=violation.to_dict(),
            )

        sequencer.transition(phase)
        utility = sequencer.is_utility(phase)
        if not utility:
            self.state.session.current_phase = phase
            self.state.session.workflow_progress[phase] = "in-progress"

        skill = phase if utility else self.skill_for(phase)
        result = TransitionResult(
            success=True,
            phase=phase,
            validation=validation,
            message=validation.message,
            skill=skill,
        )

        if skill and (not utility or self._knows_skill(skill)):
            try:
                activation = self.activate_skill(skill)
                result.activation = activation.result
                if utility:
                    result.message = activation.message
            except RouterError as e:
                logger.warning(f"Phase {phase} entered but {skill} was not activated: {e.message}")
                result.warnings.append(e.to_dict())

        phase_context = self.state.phase_context
        if phase_context is not None and phase in phase_context.phase_files:
            try:
                result.context = phase_context.transition_to(phase, options)
            except RouterError as e:
                logger.warning(f"Phase {phase} entered but its files were not loaded: {e.message}")
                result.warnings.append(e.to_dict())
            else:
                result.warnings.extend(error.model_dump() for error in result.context.errors)

        return result

    @_public
    def complete_phase(self, phase: str) -> PhaseCompletion:
        """Mark a phase completed and release its skill's activation tokens.

        Raises:
            NotFoundError: ``phase`` is not part of the sequence
        """
        completion = self.state.sequencer.complete_phase(phase)
        self.state.session.workflow_progress[phase] = "completed"

        skill = self.skill_for(phase)
        if skill:
            self.state.budget.deactivate(skill)
        return completion

    @_public
    def get_workflow_status(self) -> WorkflowStatus:
        return self.state.sequencer.status()

    # ===== Skills & budget =====

    def _knows_skill(self, name: str) -> bool:
        if self.registry is not None:
            return self.registry.skill_exists(name)
        return name in self.triggers.skills() or name in self._skill_phases

    def _ensure_discovered(self, name: str) -> None:
        if self.state.budget.is_known(name):
            return
        payload = None
        if self.registry is not None:
            metadata = self.registry.get_skill_metadata(name)
            payload = metadata.to_payload() if metadata else None
        self.state.budget.load_discovery(name, payload)

    @_public
    def discover_skills(self) -> List[LoadResult]:
        """Load discovery metadata for every registered skill."""
        if self.registry is None:
            return []
        results = [
            self.state.budget.load_discovery(name, metadata.to_payload())
            for name, metadata in sorted(self.registry.get_all_metadata().items())
        ]
        logger.info(f"Discovered {len(results)} skills ({self.state.budget.total_tokens} tokens)")
        return results

    @_public
    def activate_skill(self, name: str) -> SkillActivation:
        """Load a skill's instructions into the activation tier.

        Raises:
            NotFoundError: Unknown skill
            BudgetExceeded: Eviction cannot make room
        """
        if not self._knows_skill(name):
            raise NotFoundError(f"Skill '{name}' not found", resource_type="skill", resource_id=name)

        content = None
        description = None
        if self.registry is not None:
            skill = self.registry.get_skill_full(name)
            if skill is None:
                raise NotFoundError(f"Skill '{name}' not found", resource_type="skill", resource_id=name)
            content = skill.instructions
            description = skill.metadata.description

        self._ensure_discovered(name)
        result = self.state.budget.activate(name, content)

        if name == WORKFLOW_SKILL:
            sequence = self.state.sequencer.sequence
            message = render_message(
                MessageKind.WORKFLOW_ACTIVATED,
                first_phase=phase_name(sequence[0]),
                sequence=sequence_line(sequence),
            )
        else:
            message = render_message(
                MessageKind.SKILL_ACTIVATED,
                skill_upper=name.upper(),
                description=description or "Specialized capability activated",
                skill=name,
            )
        return SkillActivation(skill=name, message=message, result=result)

    @_public
    def deactivate_skill(self, name: str) -> DeactivationResult:
        """Idempotent; unknown or inactive skills report ``already_inactive``."""
        return self.state.budget.deactivate(name)

    @_public
    def get_budget_status(self) -> BudgetStatus:
        return self.state.budget.status()

    @_public
    def get_recommendations(self) -> List[BudgetRecommendation]:
        """Budget recommendations, plus phase-transition hints when phase files are managed."""
        recommendations = list(self.state.budget.recommendations())
        if self.state.phase_context is not None:
            seen = {r.action for r in recommendations}
            for rec in self.state.phase_context.recommendations().recommendations:
                if rec.action not in seen:
                    recommendations.append(rec)
        return recommendations

    @_public
    def optimize_context(self) -> OptimizationResult:
        """Unload other phases' files when utilization is high."""
        if self.state.phase_context is None:
            utilization = self.state.budget.status().utilization_percent
            return OptimizationResult(applied=False, utilization_before=utilization, utilization_after=utilization)
        return self.state.phase_context.optimize()

    def budget_warning(self, error: BudgetExceeded) -> str:
        """User-facing message for a budget failure."""
        return render_message(MessageKind.BUDGET_WARNING, **error.details)

    def failure_message(self, error: RouterError) -> str:
        if isinstance(error, BudgetExceeded):
            return self.budget_warning(error)
        return render_message(MessageKind.ACTIVATION_FAILED, error=error.message)

    # ===== Installation & lifecycle =====

    @_public
    def validate_installation(self) -> InstallationReport:
        """
        Raises:
            ValidationError: No validator was configured
        """
        if self.validator is None:
            raise ValidationError("Installation validation is not configured", field="validator")
        return self.validator.validate()

    @_public
    def reset(self) -> None:
        """Clear session, workflow and budget state, then rediscover skills."""
        self.state.session = SessionContext(activity_limit=self.state.session.activity_limit)
        self.state.sequencer.reset()
        self.state.budget.reset()
        if self.state.phase_context is not None:
            self.state.phase_context.reset()
        if self.registry is not None:
            self.registry.invalidate_cache()
            self.discover_skills()
        logger.info("Router state reset")


def create_router(config: Optional[Config] = None) -> SkillActivationRouter:
    """Build a fully wired router from configuration.

    Raises:
        RouterError: The trigger table or skills cannot be loaded
    """
    config = config or get_config()

    try:
        triggers = load_trigger_table(config.routing.trigger_table_path)

        loader = SkillLoader([Path(d) for d in config.skills.skills_dirs])
        registry = SkillRegistry(loader)

        budget = ContextBudgetTracker(
            ceiling=config.budget.ceiling,
            discovery_cost=config.budget.discovery_cost,
            activation_cap=config.budget.activation_cap,
            execution_cap=config.budget.execution_cap,
            estimator=ApproximateTokenEstimator(config.budget.chars_per_token),
            content_provider=LocalFileContentProvider(config.skills.project_root),
        )

        phase_context = None
        if config.workflow.load_phase_files:
            phase_context = PhaseContextManager(
                budget,
                phase_files=config.workflow.phase_files,
                supporting_files=config.workflow.supporting_files,
                core_files=config.workflow.core_files,
                phase_skills=config.workflow.phase_skills,
            )

        state = RouterState(
            session=SessionContext(activity_limit=config.routing.recent_activity_limit),
            sequencer=PhaseSequencer(config.workflow.phase_sequence),
            budget=budget,
            phase_context=phase_context,
        )

        validator = InstallationValidator(
            loader,
            required_skills=config.skills.required_skills,
            project_root=config.skills.project_root,
            memory_files=config.workflow.core_files,
        )
    except Exception as e:
        raise to_router_error(e, "create_router") from e

    router = SkillActivationRouter(
        state,
        triggers=triggers,
        registry=registry,
        settings=config.routing,
        phase_skills=config.workflow.phase_skills,
        validator=validator,
    )

    if config.skills.discover_on_start:
        router.discover_skills()

    logger.info(
        f"Router ready: {len(triggers)} triggers, {len(registry.list_skill_names())} skills, "
        f"scoring={config.routing.scoring}"
    )
    return router


__all__ = [
    "RouterState",
    "SkillActivationRouter",
    "AnalysisResult",
    "AnalysisMeta",
    "TransitionResult",
    "SkillActivation",
    "create_router",
    "WORKFLOW_SKILL",
]
