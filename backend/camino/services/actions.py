"""UI actions emitted towards the map client."""
from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import Field

from camino.services.plan_schema import CamelModel


class Marker(CamelModel):
    lat: float
    lon: float
    title: Optional[str] = None
    subtitle: Optional[str] = None

    def dedup_key(self) -> str:
        """Markers within ~11m (4 decimal degrees) share a key."""
        return f"{self.lat:.4f},{self.lon:.4f}"


class DrawRouteAction(CamelModel):
    type: Literal["drawRoute"] = "drawRoute"
    geojson: Dict[str, Any]


class DrawMarkersAction(CamelModel):
    type: Literal["drawMarkers"] = "drawMarkers"
    markers: List[Marker]
    replace: Optional[bool] = None


class ClearRouteAction(CamelModel):
    type: Literal["clearRoute"] = "clearRoute"


class FocusAction(CamelModel):
    type: Literal["focus"] = "focus"
    lat: float
    lon: float
    zoom: Optional[float] = None
    label: Optional[str] = None


AgentAction = Annotated[
    Union[DrawRouteAction, DrawMarkersAction, ClearRouteAction, FocusAction],
    Field(discriminator="type"),
]


def is_marker_action(action: Any) -> bool:
    return isinstance(action, DrawMarkersAction)
