"""Read-only plan inspection endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from camino.api.deps import get_store
from camino.api.schemas.plans import PlanDetailResponse, PlanListItem, PlanListResponse
from camino.observability.metrics import timed_metric
from camino.observability.tracing import trace
from camino.services.plan_store import PlanStore

router = APIRouter()


@router.get("/plans", response_model=PlanListResponse, response_model_exclude_none=True, tags=["plans"])
def list_plans(
    request: Request,
    limit: int = Query(20, ge=1, le=100),
    store: PlanStore = Depends(get_store),
) -> PlanListResponse:
    request_id = getattr(request.state, "request_id", None)
    with timed_metric("plans.list.latency_ms") as extra, trace(
        "plans.list", metadata={"limit": limit}, request_id=request_id
    ):
        summaries = store.list_recent(limit)
        extra["count"] = len(summaries)
    return PlanListResponse(
        items=[
            PlanListItem(
                plan_id=summary.plan_id,
                created_at=summary.created_at,
                step_count=summary.step_count,
                log_count=summary.log_count,
                model=summary.model,
            )
            for summary in summaries
        ]
    )


@router.get("/plans/{plan_id}", response_model=PlanDetailResponse, response_model_exclude_none=True, tags=["plans"])
def get_plan(plan_id: str, request: Request, store: PlanStore = Depends(get_store)) -> PlanDetailResponse:
    request_id = getattr(request.state, "request_id", None)
    with timed_metric("plans.detail.latency_ms") as extra, trace(
        "plans.detail", metadata={"plan_id": plan_id}, request_id=request_id, plan_id=plan_id
    ):
        stored = store.get_plan(plan_id)
        extra["found"] = stored is not None
    if stored is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Plan not found")
    return PlanDetailResponse(
        plan_id=stored.plan_id,
        created_at=stored.created_at,
        model=stored.model,
        plan=stored.plan,
        logs=stored.logs,
    )
