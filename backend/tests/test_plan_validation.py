"""Tests for the plan contract, validator, and pause normalization."""
from __future__ import annotations

import pytest

from camino.services.errors import SchemaError
from camino.services.plan_schema import (
    Plan,
    ToolName,
    find_pause_index,
    normalize_pauses,
    plan_has_pause,
    plan_to_wire,
    validate_plan,
)


def _step(index: int, tool: str = "map.focus", **extra) -> dict:
    return {"id": f"s{index}", "tool": tool, "args": {"lat": 42.88, "lon": -8.54}, **extra}


def test_valid_plan_passes_through_unchanged() -> None:
    candidate = {
        "steps": [
            _step(1, why="Center on Santiago"),
            {"id": "s2", "tool": "map.drawRoute", "args": {"start": "Sarria", "end": "Santiago"}, "pauseForUser": True},
        ],
        "specialist": "navigator",
        "budget": {"maxSteps": 5, "maxTokens": 2000},
    }

    plan = validate_plan(candidate)

    assert isinstance(plan, Plan)
    assert plan.steps[1].tool is ToolName.MAP_DRAW_ROUTE
    assert plan_to_wire(plan) == candidate
    assert validate_plan(plan_to_wire(plan)) == plan


def test_validate_accepts_fifty_steps() -> None:
    plan = validate_plan({"steps": [_step(i) for i in range(50)]})

    assert len(plan.steps) == 50


@pytest.mark.parametrize(
    "candidate",
    [
        {"steps": []},
        {"steps": [_step(i) for i in range(51)]},
        {"steps": [_step(1, tool="map.teleport")]},
        {"steps": [{"id": "s1", "tool": "map.focus", "args": ["not", "an", "object"]}]},
        {"steps": [{"id": "", "tool": "map.focus", "args": {}}]},
        {"steps": [_step(1, pauseForUser="yes")]},
        {"plan": {"steps": [_step(1)]}},
        "not a plan",
    ],
)
def test_invalid_plans_raise_schema_error(candidate) -> None:
    with pytest.raises(SchemaError) as excinfo:
        validate_plan(candidate)

    assert excinfo.value.errors


def test_schema_error_points_at_the_bad_tool() -> None:
    with pytest.raises(SchemaError) as excinfo:
        validate_plan({"steps": [_step(1), _step(2, tool="search")]})

    locations = [tuple(error["loc"]) for error in excinfo.value.errors]
    assert ("steps", 1, "tool") in locations


def test_find_pause_index_respects_start() -> None:
    plan = validate_plan(
        {"steps": [_step(0), _step(1, pauseForUser=True), _step(2), _step(3, pauseForUser=True)]}
    )

    assert find_pause_index(plan) == 1
    assert find_pause_index(plan, 2) == 3
    assert plan_has_pause(plan, 4) is False


def test_normalize_pauses_keeps_only_the_first_flag() -> None:
    plan = validate_plan(
        {"steps": [_step(0), _step(1, pauseForUser=True), _step(2, pauseForUser=True), _step(3)]}
    )

    normalized = normalize_pauses(plan, "first")

    assert [step.pause_for_user for step in normalized.steps] == [False, True, False, False]
    assert [step.pause_for_user for step in normalize_pauses(plan, "none").steps] == [False] * 4
    assert normalize_pauses(plan, "keep") is plan
