"""
LangChain tools over the skill router.

Exposes the router's caller-facing operations as ``StructuredTool``s so an
agent can route requests, move through workflow phases and inspect the
token budget:

- route_request: rank skills for a user request
- activate_skill: load a skill's instructions
- transition_phase / complete_phase: workflow control
- get_budget_status: token usage snapshot

Every tool returns a JSON-serializable dict with ``success`` and ``error``
keys; router errors are reported, never raised to the agent.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from langchain_core.tools import StructuredTool
from pydantic import BaseModel, Field

from skill_router.errors import RouterError
from skill_router.router import SkillActivationRouter
from skill_router.workflow import TransitionOptions

logger = logging.getLogger(__name__)


# ===== Input schemas =====

class RouteRequestInput(BaseModel):
    """Input schema for request routing."""

    user_input: str = Field(description="The user's request, verbatim")
    recent_activities: Optional[List[str]] = Field(
        default=None,
        description="Activities completed since the last call, e.g. 'created requirements'",
    )
    active_files: Optional[List[str]] = Field(
        default=None,
        description="Files the user is currently working on",
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"user_input": "create requirements for a login feature"},
                {"user_input": "start coding", "recent_activities": ["created requirements"]},
            ]
        }
    }


class SkillNameInput(BaseModel):
    """Input schema for skill activation."""

    skill_name: str = Field(description="Name of the skill to activate")


class PhaseInput(BaseModel):
    """Input schema for phase transitions."""

    phase: str = Field(description="Workflow phase: spec-forge, planning, work or review")
    preload_supporting: bool = Field(
        default=False,
        description="Also load supporting files for the phase when there is room",
    )


class PhaseCompletionInput(BaseModel):
    phase: str = Field(description="Workflow phase that has been completed")


class EmptyInput(BaseModel):
    """No arguments."""


# ===== Wrappers =====

def _failure(error: RouterError, **extra: Any) -> Dict[str, Any]:
    return {"success": False, "error": error.to_dict(), **extra}


def _route_wrapper(router: SkillActivationRouter) -> Callable[..., Dict[str, Any]]:
    def _route(
        user_input: str,
        recent_activities: Optional[List[str]] = None,
        active_files: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        update = {}
        if recent_activities:
            update["recent_activities"] = recent_activities
        if active_files is not None:
            update["active_files"] = active_files

        try:
            analysis = router.analyze(user_input, update or None)
        except RouterError as e:
            logger.error(f"Routing failed: {e.message}")
            return _failure(e, recommendations=[])

        return {
            "success": True,
            "error": None,
            "recommendations": [
                {**rec.model_dump(mode="json"), "explanation": router.explain(rec, analysis)}
                for rec in analysis.recommendations
            ],
            "analysis_meta": analysis.analysis_meta.model_dump(mode="json"),
        }

    return _route


def _activate_wrapper(router: SkillActivationRouter) -> Callable[..., Dict[str, Any]]:
    def _activate(skill_name: str) -> Dict[str, Any]:
        try:
            activation = router.activate_skill(skill_name)
        except RouterError as e:
            logger.error(f"Failed to activate skill '{skill_name}': {e.message}")
            return _failure(e, skill_name=skill_name, message=router.failure_message(e))

        return {
            "success": True,
            "error": None,
            "skill_name": skill_name,
            "message": activation.message,
            "activation": activation.result.model_dump(mode="json"),
        }

    return _activate


def _transition_wrapper(router: SkillActivationRouter) -> Callable[..., Dict[str, Any]]:
    def _transition(phase: str, preload_supporting: bool = False) -> Dict[str, Any]:
        try:
            result = router.transition_phase(phase, TransitionOptions(preload_supporting=preload_supporting))
        except RouterError as e:
            logger.error(f"Transition to '{phase}' failed: {e.message}")
            return _failure(e, phase=phase)
        return result.model_dump(mode="json")

    return _transition


def _complete_wrapper(router: SkillActivationRouter) -> Callable[..., Dict[str, Any]]:
    def _complete(phase: str) -> Dict[str, Any]:
        try:
            completion = router.complete_phase(phase)
        except RouterError as e:
            return _failure(e, phase=phase)
        return {"success": True, "error": None, **completion.model_dump(mode="json")}

    return _complete


def _budget_wrapper(router: SkillActivationRouter) -> Callable[..., Dict[str, Any]]:
    def _budget() -> Dict[str, Any]:
        try:
            status = router.get_budget_status()
            recommendations = router.get_recommendations()
        except RouterError as e:
            logger.error(f"Budget status failed: {e.message}")
            return _failure(e, status=None, recommendations=[])

        return {
            "success": True,
            "error": None,
            "status": status.model_dump(mode="json"),
            "recommendations": [r.model_dump() for r in recommendations],
        }

    return _budget


# ===== Factory =====

def _build_route_description(router: SkillActivationRouter) -> str:
    skills_list = router.registry.get_formatted_skills_list() if router.registry else ""
    if not skills_list:
        skills_list = "\n".join(f'"{name}"' for name in router.triggers.skills())

    return f"""Rank the skills that best match a user request.

Returns up to {router.settings.top_k} recommendations ordered by priority and confidence, each with the
trigger that matched, any context adjustments and a short explanation. Pass recently completed
activities (e.g. "created requirements") so workflow progression is taken into account.

**Available Skills:**

{skills_list}
"""


def create_router_tools(router: SkillActivationRouter) -> List[StructuredTool]:
    """Create the LangChain tools backed by ``router``.

    Args:
        router: Router instance owning the session state

    Returns:
        Tools in the order route_request, activate_skill, transition_phase,
        complete_phase, get_budget_status
    """
    sequence = ", ".join(router.state.sequencer.sequence)

    tools = [
        StructuredTool.from_function(
            name="route_request",
            description=_build_route_description(router),
            func=_route_wrapper(router),
            args_schema=RouteRequestInput,
        ),
        StructuredTool.from_function(
            name="activate_skill",
            description="Load a skill's instructions into context. Fails when the skill is unknown "
                        "or the context budget cannot make room.",
            func=_activate_wrapper(router),
            args_schema=SkillNameInput,
        ),
        StructuredTool.from_function(
            name="transition_phase",
            description=f"Enter a workflow phase. Phases must be entered in order ({sequence}); "
                        "out-of-order requests return guidance instead of failing.",
            func=_transition_wrapper(router),
            args_schema=PhaseInput,
        ),
        StructuredTool.from_function(
            name="complete_phase",
            description="Mark a workflow phase as completed and release its skill's context.",
            func=_complete_wrapper(router),
            args_schema=PhaseCompletionInput,
        ),
        StructuredTool.from_function(
            name="get_budget_status",
            description="Report context token usage per tier, active skills and loaded files.",
            func=_budget_wrapper(router),
            args_schema=EmptyInput,
        ),
    ]

    logger.info(f"Created {len(tools)} router tools")
    return tools


__all__ = [
    "create_router_tools",
    "RouteRequestInput",
    "SkillNameInput",
    "PhaseInput",
    "PhaseCompletionInput",
]
