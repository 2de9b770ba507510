"""Pydantic schemas for the plan inspection API."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from camino.services.executor import StepLog
from camino.services.plan_schema import CamelModel, Plan


class PlanListItem(CamelModel):
    plan_id: str
    created_at: datetime
    step_count: int
    log_count: int
    model: Optional[str] = None


class PlanListResponse(CamelModel):
    items: List[PlanListItem]


class PlanDetailResponse(CamelModel):
    plan_id: str
    created_at: datetime
    model: Optional[str] = None
    plan: Plan
    logs: List[StepLog]
