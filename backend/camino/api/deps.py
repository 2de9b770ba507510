"""FastAPI dependencies for the planner's collaborators."""
from __future__ import annotations

from typing import Any

from camino.services.geocoder import get_geocoder
from camino.services.plan_store import PlanStore, get_plan_store
from camino.services.planner import get_llm_client
from camino.services.tools.base import ToolContext


def get_store() -> PlanStore:
    return get_plan_store()


def get_llm() -> Any:
    return get_llm_client()


def get_tool_context() -> ToolContext:
    """A fresh context per request around the shared geocoder."""
    return ToolContext(geocoder=get_geocoder())
