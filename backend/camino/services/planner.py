"""LLM-backed plan builder with one repair round-trip."""
from __future__ import annotations

import asyncio
import json
import logging
from functools import lru_cache
from time import perf_counter
from typing import Any, Awaitable, Dict, List, Optional, Sequence

import openai

from camino.core.config import settings
from camino.observability.metrics import log_metric
from camino.observability.tracing import trace
from camino.services.errors import PlanBuildError, SchemaError
from camino.services.plan_repair import repair_plan_like
from camino.services.plan_schema import Plan, normalize_pauses, validate_plan
from camino.services.preferences import CaminoPreferences, preferences_prompt_block
from camino.services.tools.registry import TOOL_REGISTRY

logger = logging.getLogger(__name__)

TRANSCRIPT_ROLES = {"user", "assistant"}

SYSTEM_PROMPT = (
    "You are Camino Planner, a planning agent for walking the Camino de Santiago.\n"
    "- Reply with ONE JSON object that matches the Plan schema. No prose, no markdown.\n"
    "- Prefer small, safe steps. Set pauseForUser on the first step that commits the walker "
    "to a multi-day route or another impactful change.\n"
    "- Respect the walker's preferences (units, route style, target km/day, budget, albergues, notes).\n"
    "- For a multi-day walk, draw the route with one stage per day."
)

PLAN_SHAPE_PROMPT = """Plan schema:
{
  "steps": [{"id": string, "tool": ToolName, "args": object, "why"?: string, "pauseForUser"?: boolean}],
  "specialist"?: "navigator" | "concierge" | "safety" | "logistics",
  "budget"?: {"maxSteps"?: integer, "maxTokens"?: integer}
}

Argument shapes per tool:
- map.focus: {"lat": number, "lon": number, "zoom"?: number, "label"?: string}
- map.drawRoute: {"start": string, "end": string, "stages"?: [{"from": string, "to": string, "distanceKm"?: number}]}
  or {"geojson": {"type": "LineString", "coordinates": [[lon, lat], ...]}, "meta"?: {"startName"?: string, "endName"?: string}}
- map.addMarkers: {"markers": [{"lat": number, "lon": number, "title"?: string, "subtitle"?: string}]}
  or {"locations": [{"name": string, "kind"?: string}]}
- rag.search: {"query": string, "topK"?: number}
- places.search: {"q": string, "near"?: [lon, lat], "kind"?: "albergue" | "cafe" | "grocery"}
- elevation.profile: {"coords": [[lon, lat], ...]}
- export.gpx: {"name": string, "segments": [[[lon, lat], ...], ...]}

Rules:
- "tool" must be one of the names above, spelled exactly.
- "pauseForUser" is a boolean field of a step, never a tool name.
- Human-readable place names go in "label", "meta", stage names, or "why"."""

JSON_ONLY_REMINDER = "Return ONLY valid JSON for the Plan. No markdown or commentary."
FOLLOWUP_INSTRUCTION = "Your previous JSON was invalid. Repair it so it satisfies the Plan schema. Output JSON only."


def _tool_vocabulary() -> str:
    lines = [f"- {name}: {tool.description}" for name, tool in TOOL_REGISTRY.items()]
    return "Available tools:\n" + "\n".join(lines)


def _transcript(messages: Sequence[Dict[str, Any]]) -> List[Dict[str, str]]:
    turns: List[Dict[str, str]] = []
    for message in messages:
        role = message.get("role")
        content = message.get("content")
        if role in TRANSCRIPT_ROLES and isinstance(content, str):
            turns.append({"role": role, "content": content})
    return turns


def build_messages(
    messages: Sequence[Dict[str, Any]], preferences: Optional[CaminoPreferences]
) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "system", "content": f"{_tool_vocabulary()}\n\n{PLAN_SHAPE_PROMPT}"},
        *_transcript(messages),
        {"role": "system", "content": preferences_prompt_block(preferences)},
        {"role": "system", "content": JSON_ONLY_REMINDER},
    ]


def build_followup_messages(
    raw_output: str, error: SchemaError, preferences: Optional[CaminoPreferences]
) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "system", "content": f"{_tool_vocabulary()}\n\n{PLAN_SHAPE_PROMPT}"},
        {"role": "system", "content": preferences_prompt_block(preferences)},
        {"role": "system", "content": FOLLOWUP_INSTRUCTION},
        {"role": "user", "content": f"Invalid JSON:\n{raw_output}\n\nErrors:\n{error}"},
    ]


def parse_plan_output(raw_output: str) -> Plan:
    """Parse model text, apply the repair table, and validate."""
    try:
        candidate = json.loads(raw_output)
    except json.JSONDecodeError as exc:
        raise SchemaError(f"Model output is not valid JSON: {exc}") from exc

    repaired = repair_plan_like(candidate)
    if repaired is not None and repaired != candidate:
        log_metric("planner.repair.used", 1)
    return validate_plan(repaired if repaired is not None else candidate)


async def _await_with_deadline(
    work: Awaitable[Any],
    *,
    deadline: float,
    cancel_event: Optional[asyncio.Event],
    label: str,
) -> Any:
    """Race ``work`` against the build deadline and the caller's cancel signal; the loser is cancelled."""
    loop = asyncio.get_running_loop()
    task = asyncio.ensure_future(work)
    waiters = {task}
    cancel_waiter: Optional[asyncio.Future] = None
    if cancel_event is not None:
        cancel_waiter = asyncio.ensure_future(cancel_event.wait())
        waiters.add(cancel_waiter)

    remaining = max(deadline - loop.time(), 0.0)
    try:
        done, pending = await asyncio.wait(waiters, timeout=remaining, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        for waiter in waiters:
            waiter.cancel()
        raise
    for waiter in pending:
        waiter.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)

    if task in done:
        try:
            return task.result()
        except PlanBuildError:
            raise
        except Exception as exc:
            raise PlanBuildError(f"{label} failed: {exc}") from exc
    if cancel_waiter is not None and cancel_waiter in done:
        raise PlanBuildError(f"{label} cancelled by caller")
    raise PlanBuildError(f"{label} timed out")


async def _complete(client: Any, model: str, messages: List[Dict[str, str]], temperature: float) -> str:
    completion = await client.chat.completions.create(
        model=model,
        temperature=temperature,
        response_format={"type": "json_object"},
        messages=messages,
    )
    if not completion.choices:
        raise PlanBuildError("model returned no choices")
    return completion.choices[0].message.content or "{}"


async def build_plan(
    client: Any,
    *,
    messages: Sequence[Dict[str, Any]],
    preferences: Optional[CaminoPreferences] = None,
    model: str | None = None,
    timeout_s: float | None = None,
    cancel_event: Optional[asyncio.Event] = None,
    request_id: str | None = None,
) -> Plan:
    """Ask the model for a plan, repairing or re-asking once before giving up."""
    if client is None:
        raise PlanBuildError("No LLM client configured (OPENAI_API_KEY missing)")

    model_name = model or settings.openai_model
    budget_s = timeout_s if timeout_s is not None else settings.planner_timeout_s
    deadline = asyncio.get_running_loop().time() + budget_s
    trace_metadata = {"model": model_name, "turns": len(messages), "timeout_s": budget_s}
    started = perf_counter()
    success = False

    try:
        with trace("planner.build", metadata=trace_metadata, request_id=request_id):
            first_output = await _await_with_deadline(
                _complete(client, model_name, build_messages(messages, preferences), 0.2),
                deadline=deadline,
                cancel_event=cancel_event,
                label="Planner request",
            )
            try:
                plan = parse_plan_output(first_output)
            except SchemaError as first_error:
                logger.info("First plan draft rejected, asking for a corrected one: %s", first_error)
                log_metric("planner.followup.used", 1, {"model": model_name})
                second_output = await _await_with_deadline(
                    _complete(client, model_name, build_followup_messages(first_output, first_error, preferences), 0.0),
                    deadline=deadline,
                    cancel_event=cancel_event,
                    label="Planner follow-up",
                )
                try:
                    plan = parse_plan_output(second_output)
                except SchemaError as second_error:
                    raise PlanBuildError(f"Planner returned an invalid plan after repair: {second_error}") from second_error

            success = True
            return normalize_pauses(plan, "first")
    finally:
        latency_ms = (perf_counter() - started) * 1000
        log_metric("planner.build.success", 1 if success else 0, {"model": model_name})
        log_metric("planner.build.latency_ms", latency_ms, {"model": model_name})
        logger.info("Planner finished success=%s in %.0fms", success, latency_ms)


@lru_cache
def get_llm_client() -> Optional["openai.AsyncOpenAI"]:
    """Shared async OpenAI client, or None when no API key is configured."""
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY missing; chat requests will use the canned itinerary.")
        return None
    return openai.AsyncOpenAI(api_key=settings.openai_api_key)
