"""Shared tool plumbing: the execution context, results, and tool definitions."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

from pydantic import BaseModel

from camino.services.actions import AgentAction
from camino.services.geocoder import Geocoder, Point
from camino.services.legs import Leg, is_unresolved
from camino.services.stages import find_town


@dataclass
class ToolContext:
    """Collaborators a tool may call; passed in by the executor, never global."""

    geocoder: Optional[Geocoder] = None

    async def resolve_place(self, name: str | None) -> Optional[Point]:
        """Town table first, then online geocoding."""
        if is_unresolved(name):
            return None
        town = find_town(name)
        if town is not None:
            return Point(town.lat, town.lon)
        if self.geocoder is None:
            return None
        return await self.geocoder.geocode(name or "")


@dataclass
class ToolResult:
    ui_actions: List[AgentAction] = field(default_factory=list)
    itinerary: Optional[List[Leg]] = None
    data: Any = None


Coercer = Callable[[Dict[str, Any], ToolContext], Awaitable[Dict[str, Any]]]
Runner = Callable[[Any, ToolContext], Awaitable[ToolResult]]


@dataclass(frozen=True)
class ToolDef:
    name: str
    args_model: Type[BaseModel]
    run: Runner
    coerce: Optional[Coercer] = None
    description: str = ""
