"""Plan contract and the validator every plan must pass before execution."""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, ValidationError
from pydantic.alias_generators import to_camel

from camino.services.errors import SchemaError

MAX_PLAN_STEPS = 50


class CamelModel(BaseModel):
    """Base for wire models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ToolName(str, Enum):
    MAP_FOCUS = "map.focus"
    MAP_DRAW_ROUTE = "map.drawRoute"
    MAP_ADD_MARKERS = "map.addMarkers"
    RAG_SEARCH = "rag.search"
    PLACES_SEARCH = "places.search"
    ELEVATION_PROFILE = "elevation.profile"
    EXPORT_GPX = "export.gpx"


TOOL_NAMES = tuple(tool.value for tool in ToolName)


class PlanBudget(CamelModel):
    max_steps: Optional[int] = Field(default=None, ge=1, le=MAX_PLAN_STEPS)
    max_tokens: Optional[int] = Field(default=None, ge=100, le=200_000)


class PlanStep(CamelModel):
    id: str = Field(..., min_length=1)
    tool: ToolName
    args: Dict[str, Any]
    why: Optional[str] = None
    pause_for_user: Optional[StrictBool] = None


class Plan(CamelModel):
    steps: List[PlanStep] = Field(..., min_length=1, max_length=MAX_PLAN_STEPS)
    specialist: Optional[Literal["navigator", "concierge", "safety", "logistics"]] = None
    budget: Optional[PlanBudget] = None


def validate_plan(candidate: Any) -> Plan:
    """Return a typed Plan or raise SchemaError describing what is wrong."""
    if isinstance(candidate, Plan):
        return candidate
    try:
        return Plan.model_validate(candidate)
    except ValidationError as exc:
        raise SchemaError.from_validation_error("Invalid plan", exc) from exc


def plan_to_wire(plan: Plan) -> Dict[str, Any]:
    return plan.to_wire()


def find_pause_index(plan: Plan, start_index: int = 0) -> int:
    """Index of the first step at or after start_index flagged pauseForUser, else -1."""
    for index in range(max(start_index, 0), len(plan.steps)):
        if plan.steps[index].pause_for_user:
            return index
    return -1


def plan_has_pause(plan: Plan, start_index: int = 0) -> bool:
    return find_pause_index(plan, start_index) >= 0


def normalize_pauses(plan: Plan, mode: Literal["first", "none", "keep"] = "first") -> Plan:
    """Collapse pause flags so at most one step blocks for approval.

    ``first`` keeps the earliest pause, ``none`` clears every flag and
    ``keep`` returns the plan untouched.
    """
    if mode == "keep":
        return plan
    seen = False
    steps: List[PlanStep] = []
    for step in plan.steps:
        keep = mode == "first" and bool(step.pause_for_user) and not seen
        if keep:
            seen = True
        steps.append(step.model_copy(update={"pause_for_user": True if keep else False}))
    return plan.model_copy(update={"steps": steps})
