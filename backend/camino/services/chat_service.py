"""One chat turn: build or resume a plan, execute it, reconcile the map output."""
from __future__ import annotations

import logging
from typing import Any, Optional
from uuid import uuid4

from camino.api.schemas.chat import ChatRequest, ChatResponse
from camino.core.config import settings
from camino.core.context import bind_plan_id
from camino.observability.metrics import log_metric
from camino.observability.tracing import trace
from camino.services.actions import ClearRouteAction
from camino.services.errors import PlanBuildError, ResumeError, SchemaError
from camino.services.executor import ExecutionResult, execute_plan
from camino.services.plan_schema import Plan, plan_has_pause, validate_plan
from camino.services.plan_store import PlanStore
from camino.services.planner import build_plan
from camino.services.preferences import load_preferences
from camino.services.reconciler import reconcile
from camino.services.tools.base import ToolContext

logger = logging.getLogger(__name__)

REPLY_INVALID_MESSAGES = "Missing or invalid messages array."
REPLY_RESUME_FAILED = "The approved plan was invalid or expired. Please ask again to rebuild."
REPLY_BUILD_FAILED = "I drafted a plan but validation failed. Please try rephrasing your ask."
REPLY_DRAFT = "I prepared a draft plan. Review and approve to run."
REPLY_PLOTTED = "Plotted map updates and listed your draft plan."
REPLY_APOLOGY = (
    "Sorry, something went wrong while planning or executing. "
    "If it keeps happening, try a simpler request."
)


def resolve_approved_plan(store: PlanStore, plan_id: str, inline_plan: Any) -> Plan:
    """The stored plan for ``plan_id``, else the inline one; either must still validate."""
    stored = store.get_plan(plan_id)
    if stored is not None:
        return stored.plan
    if inline_plan is None:
        raise ResumeError(f"Plan {plan_id} not found and no inline plan supplied")
    try:
        plan = validate_plan(inline_plan)
    except SchemaError as exc:
        raise ResumeError(f"Inline plan for {plan_id} is invalid: {exc}") from exc
    store.record_plan(plan_id, plan)
    return plan


def _fallback_response(plan_id: str) -> ChatResponse:
    reconciled = reconcile(ExecutionResult(actions=[ClearRouteAction()]))
    log_metric("chat.fallback.used", 1)
    return ChatResponse(
        plan_id=plan_id,
        reply=REPLY_BUILD_FAILED,
        plan=reconciled.itinerary,
        actions=reconciled.actions,
    )


async def _execute_and_reconcile(
    plan: Plan,
    plan_id: str,
    store: PlanStore,
    context: ToolContext,
    *,
    approved: bool,
) -> ChatResponse:
    result = await execute_plan(
        plan,
        context,
        start_index=0,
        honor_pause=not approved,
        prepend_clear=True,
        plan_id=plan_id,
    )
    store.append_steps(plan_id, result.logs)
    if result.error is not None:
        logger.warning("Execution halted for plan %s: %s", plan_id, result.error)

    reconciled = reconcile(result, plan)
    logger.info(
        "Plan %s executed: actions=%d paused=%s itinerary=%s (%d legs)",
        plan_id,
        len(reconciled.actions),
        result.paused,
        reconciled.source.name.lower(),
        len(reconciled.itinerary),
    )
    return ChatResponse(
        plan_id=plan_id,
        reply=REPLY_PLOTTED,
        plan=reconciled.itinerary,
        actions=reconciled.actions,
    )


async def handle_chat(
    payload: ChatRequest,
    *,
    store: PlanStore,
    llm_client: Any,
    context: Optional[ToolContext] = None,
    request_id: Optional[str] = None,
) -> ChatResponse:
    """Run one chat turn. Domain failures become user-facing replies; anything else propagates."""
    context = context or ToolContext()
    plan_id = payload.plan_id or str(uuid4())

    with bind_plan_id(plan_id), trace(
        "chat.turn",
        metadata={"approve": payload.approve, "turns": len(payload.messages)},
        request_id=request_id,
        plan_id=plan_id,
    ):
        if payload.wants_resume:
            try:
                plan = resolve_approved_plan(store, plan_id, payload.plan)
            except ResumeError as exc:
                logger.info("Resume rejected: %s", exc)
                return ChatResponse(plan_id=plan_id, reply=REPLY_RESUME_FAILED)
            return await _execute_and_reconcile(plan, plan_id, store, context, approved=True)

        try:
            plan = await build_plan(
                llm_client,
                messages=payload.messages,
                preferences=load_preferences(payload.preferences),
                timeout_s=settings.planner_timeout_s,
                request_id=request_id,
            )
        except PlanBuildError as exc:
            logger.warning("Plan build failed, serving canned itinerary: %s", exc)
            return _fallback_response(plan_id)

        store.record_plan(plan_id, plan, model=settings.openai_model)

        if plan_has_pause(plan) and not payload.approve:
            return ChatResponse(plan_id=plan_id, reply=REPLY_DRAFT, draft_plan=plan)

        return await _execute_and_reconcile(plan, plan_id, store, context, approved=payload.approve)
