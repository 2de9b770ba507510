"""Sequential plan executor.

Steps run strictly in order through the tool registry. A step that keeps
failing halts the pass and the successful prefix is returned. Itinerary
fragments compete for a single slot with a fixed precedence.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import IntEnum
from time import perf_counter
from typing import Any, Dict, Iterable, List, Literal, Optional, Sequence

from camino.core.config import settings
from camino.observability.metrics import log_metric
from camino.observability.tracing import trace
from camino.services.actions import AgentAction, ClearRouteAction
from camino.services.errors import ToolExecutionError, error_code_for
from camino.services.legs import UNRESOLVED_TOWN, Leg, chain_stages
from camino.services.plan_schema import CamelModel, Plan, PlanStep, ToolName, find_pause_index
from camino.services.tools.base import ToolContext, ToolResult
from camino.services.tools.registry import run_tool

logger = logging.getLogger(__name__)

StepStatus = Literal["ok", "error", "skipped"]


class StepLog(CamelModel):
    index: int
    id: str
    tool: str
    status: StepStatus
    latency_ms: float = 0.0
    error_code: Optional[str] = None


class ItinerarySource(IntEnum):
    CANNED = 0
    MARKERS = 1
    PLAN = 2
    TOOL = 3


@dataclass
class ItinerarySlot:
    """Holds the working itinerary; an offer wins when its source ranks at least as high."""

    legs: Optional[List[Leg]] = None
    source: Optional[ItinerarySource] = None

    def offer(self, legs: Optional[Sequence[Leg]], source: ItinerarySource) -> bool:
        if not legs:
            return False
        if self.source is not None and source < self.source:
            return False
        self.legs = list(legs)
        self.source = source
        return True

    @property
    def empty(self) -> bool:
        return not self.legs


@dataclass
class ExecutionResult:
    actions: List[AgentAction] = field(default_factory=list)
    next_index: int = 0
    paused: bool = False
    logs: List[StepLog] = field(default_factory=list)
    itinerary: Optional[List[Leg]] = None
    itinerary_source: Optional[ItinerarySource] = None
    error: Optional[ToolExecutionError] = None


def _step_names(args: Dict[str, Any]) -> tuple[Optional[str], Optional[str]]:
    meta = args.get("meta") if isinstance(args.get("meta"), dict) else {}
    start = meta.get("startName") or args.get("start")
    end = meta.get("endName") or args.get("end")
    return (start if isinstance(start, str) and start.strip() else None,
            end if isinstance(end, str) and end.strip() else None)


def extract_itinerary_from_plan(plan: Plan) -> Optional[List[Leg]]:
    """Best-effort legs from the plan's route-drawing arguments, without coordinates."""
    for step in plan.steps:
        if step.tool is not ToolName.MAP_DRAW_ROUTE:
            continue
        start, end = _step_names(step.args)
        stages = step.args.get("stages")
        if isinstance(stages, list) and stages:
            return chain_stages(stages, start, end)
        if start or end:
            return [Leg(day=1, from_=start or UNRESOLVED_TOWN, to=end or UNRESOLVED_TOWN)]
    return None


def _stop_boundary(plan: Plan, start_index: int, pause_index: int, hard_max_steps: Optional[int]) -> int:
    caps = [len(plan.steps)]
    if pause_index >= 0:
        caps.append(pause_index)
    budgets = [
        value
        for value in (plan.budget.max_steps if plan.budget else None, hard_max_steps)
        if value is not None
    ]
    if budgets:
        caps.append(start_index + max(min(budgets), 0))
    return max(min(caps), start_index)


async def _run_step(
    step: PlanStep, context: ToolContext, *, timeout_s: float, max_retries: int
) -> tuple[Optional[ToolResult], Optional[BaseException], int]:
    """Run one step, retrying timeouts and errors alike. Returns (result, last_error, attempts)."""
    last_error: Optional[BaseException] = None
    attempts = 0
    for attempt in range(1, max_retries + 2):
        attempts = attempt
        try:
            result = await asyncio.wait_for(run_tool(step.tool, step.args, context), timeout=timeout_s)
            return result, None, attempts
        except Exception as exc:
            last_error = exc
            logger.warning(
                "Step %s (%s) attempt %d/%d failed: %s",
                step.id,
                step.tool.value,
                attempt,
                max_retries + 1,
                error_code_for(exc),
            )
    return None, last_error, attempts


async def execute_plan(
    plan: Plan,
    context: Optional[ToolContext] = None,
    *,
    start_index: int = 0,
    already_executed_ids: Optional[Iterable[str]] = None,
    step_timeout_s: Optional[float] = None,
    max_retries: Optional[int] = None,
    hard_max_steps: Optional[int] = None,
    honor_pause: bool = True,
    prepend_clear: bool = True,
    plan_id: Optional[str] = None,
) -> ExecutionResult:
    """Run ``plan`` from ``start_index`` up to the first pause, the step budget, or the first failure."""
    context = context or ToolContext()
    timeout_s = settings.step_timeout_s if step_timeout_s is None else step_timeout_s
    retries = settings.step_max_retries if max_retries is None else max(max_retries, 0)
    hard_max = settings.step_hard_max if hard_max_steps is None else hard_max_steps
    executed = set(already_executed_ids or ())

    pause_index = find_pause_index(plan, start_index) if honor_pause else -1
    stop = _stop_boundary(plan, start_index, pause_index, hard_max)

    result = ExecutionResult(next_index=start_index)
    slot = ItinerarySlot()
    if start_index == 0 and prepend_clear:
        result.actions.append(ClearRouteAction())

    with trace("executor.run", metadata={"steps": len(plan.steps), "start": start_index, "stop": stop}, plan_id=plan_id):
        for index in range(start_index, stop):
            step = plan.steps[index]
            if step.id in executed:
                result.logs.append(StepLog(index=index, id=step.id, tool=step.tool.value, status="skipped"))
                continue

            started = perf_counter()
            outcome, failure, attempts = await _run_step(step, context, timeout_s=timeout_s, max_retries=retries)
            latency_ms = round((perf_counter() - started) * 1000, 2)
            log_metric("executor.step.latency_ms", latency_ms, {"tool": step.tool.value})

            if outcome is None:
                code = error_code_for(failure) if failure is not None else "unknown"
                result.logs.append(
                    StepLog(
                        index=index,
                        id=step.id,
                        tool=step.tool.value,
                        status="error",
                        latency_ms=latency_ms,
                        error_code=code,
                    )
                )
                log_metric("executor.step.error", 1, {"tool": step.tool.value, "error_code": code})
                logger.error("Halting at step %d (%s): %s", index, step.tool.value, code)
                result.error = ToolExecutionError(step.tool.value, step.id, attempts, failure)
                result.next_index = index
                result.itinerary, result.itinerary_source = slot.legs, slot.source
                return result

            result.logs.append(
                StepLog(index=index, id=step.id, tool=step.tool.value, status="ok", latency_ms=latency_ms)
            )
            logger.info("Step %d (%s) ok in %.0fms", index, step.tool.value, latency_ms)
            result.actions.extend(outcome.ui_actions)
            slot.offer(outcome.itinerary, ItinerarySource.TOOL)

    if slot.empty:
        slot.offer(extract_itinerary_from_plan(plan), ItinerarySource.PLAN)

    result.next_index = stop
    result.paused = honor_pause and pause_index >= 0 and stop == pause_index
    result.itinerary, result.itinerary_source = slot.legs, slot.source
    return result
