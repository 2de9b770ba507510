"""Pydantic schemas for the chat API."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field

from camino.services.actions import AgentAction
from camino.services.legs import Leg
from camino.services.plan_schema import CamelModel, Plan


class ChatRequest(CamelModel):
    model_config = ConfigDict(extra="ignore")

    messages: List[Dict[str, Any]]
    preferences: Any = None
    approve: bool = False
    plan: Any = None
    plan_id: Optional[str] = Field(default=None, min_length=1)

    @property
    def wants_resume(self) -> bool:
        return self.approve and (self.plan_id is not None or self.plan is not None)


class ChatResponse(CamelModel):
    plan_id: Optional[str] = None
    reply: str
    plan: Optional[List[Leg]] = None
    actions: Optional[List[AgentAction]] = None
    draft_plan: Optional[Plan] = None
