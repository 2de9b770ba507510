"""Declarative repairs for the shapes models most often get wrong.

Each rule pairs a detector with a rewrite. Plan rules run once on the whole
object, step rules run in order on every step. A step rewrite returning None
drops the step.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

PAUSE_FIELD = "pauseForUser"
TRUTHY_PAUSE_VALUES = {"true", "yes", "pause"}

TOOL_ALIASES: Dict[str, str] = {
    "focus": "map.focus",
    "mapFocus": "map.focus",
    "drawRoute": "map.drawRoute",
    "mapDrawRoute": "map.drawRoute",
    "addMarkers": "map.addMarkers",
    "mapAddMarkers": "map.addMarkers",
    "elevationProfile": "elevation.profile",
    "exportGpx": "export.gpx",
    "places": "places.search",
}


@dataclass(frozen=True)
class PlanRule:
    name: str
    applies: Callable[[Dict[str, Any]], bool]
    rewrite: Callable[[Dict[str, Any]], Dict[str, Any]]


@dataclass(frozen=True)
class StepRule:
    name: str
    applies: Callable[[Dict[str, Any], int], bool]
    rewrite: Callable[[Dict[str, Any], int], Optional[Dict[str, Any]]]


def _pause_in_tool_field(step: Dict[str, Any], index: int) -> Dict[str, Any]:
    replacement = step.get("action") or step.get("type") or step.get("name")
    return {**step, PAUSE_FIELD: True, "tool": replacement}


def _alias_tool(step: Dict[str, Any], index: int) -> Dict[str, Any]:
    tool = step["tool"].strip()
    if tool == "search":
        args = step.get("args") if isinstance(step.get("args"), dict) else {}
        return {**step, "tool": "rag.search" if args.get("query") else "places.search"}
    return {**step, "tool": TOOL_ALIASES.get(tool, tool)}


def _is_alias(step: Dict[str, Any], index: int) -> bool:
    tool = step.get("tool")
    return isinstance(tool, str) and (tool.strip() in TOOL_ALIASES or tool.strip() == "search")


PLAN_RULES: Tuple[PlanRule, ...] = (
    PlanRule(
        name="unwrap_plan_envelope",
        applies=lambda obj: "steps" not in obj and isinstance(obj.get("plan"), dict) and "steps" in obj["plan"],
        rewrite=lambda obj: dict(obj["plan"]),
    ),
)

STEP_RULES: Tuple[StepRule, ...] = (
    StepRule(
        name="default_step_id",
        applies=lambda step, index: not isinstance(step.get("id"), str) or not step.get("id"),
        rewrite=lambda step, index: {**step, "id": f"step-{index + 1}"},
    ),
    StepRule(
        name="pause_in_tool_field",
        applies=lambda step, index: step.get("tool") == PAUSE_FIELD,
        rewrite=_pause_in_tool_field,
    ),
    StepRule(name="tool_alias", applies=_is_alias, rewrite=_alias_tool),
    StepRule(
        name="string_pause_flag",
        applies=lambda step, index: isinstance(step.get(PAUSE_FIELD), str),
        rewrite=lambda step, index: {
            **step,
            PAUSE_FIELD: step[PAUSE_FIELD].strip().lower() in TRUTHY_PAUSE_VALUES,
        },
    ),
    StepRule(
        name="args_not_object",
        applies=lambda step, index: not isinstance(step.get("args"), dict),
        rewrite=lambda step, index: {**step, "args": {}},
    ),
    StepRule(
        name="drop_bare_pause",
        applies=lambda step, index: not step.get("tool") and step.get(PAUSE_FIELD) is True,
        rewrite=lambda step, index: None,
    ),
)


def repair_step(step: Any, index: int, applied: List[str] | None = None) -> Optional[Dict[str, Any]]:
    current: Dict[str, Any] = dict(step) if isinstance(step, dict) else {}
    for rule in STEP_RULES:
        if rule.applies(current, index):
            rewritten = rule.rewrite(current, index)
            if applied is not None:
                applied.append(rule.name)
            if rewritten is None:
                return None
            current = rewritten
    return current


def repair_plan_like(obj: Any) -> Optional[Dict[str, Any]]:
    """Rewrite a loose plan-like object; None when it has no steps list at all.

    The result is not validated; unknown tools are left for the validator to
    reject.
    """
    if not isinstance(obj, dict):
        return None
    candidate = dict(obj)
    applied: List[str] = []
    for rule in PLAN_RULES:
        if rule.applies(candidate):
            candidate = rule.rewrite(candidate)
            applied.append(rule.name)

    steps = candidate.get("steps")
    if not isinstance(steps, list):
        return None

    fixed: List[Dict[str, Any]] = []
    for index, step in enumerate(steps):
        repaired = repair_step(step, index, applied)
        if repaired is not None:
            fixed.append(repaired)

    if applied:
        logger.info("Plan repairs applied: %s", sorted(set(applied)))
    return {**candidate, "steps": fixed}
