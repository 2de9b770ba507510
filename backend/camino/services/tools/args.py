"""Strict argument contracts, one per tool."""
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import Field, field_validator

from camino.services.actions import Marker
from camino.services.legs import Leg
from camino.services.plan_schema import CamelModel

LonLat = Tuple[float, float]

GEOJSON_LINE_TYPES = {"LineString", "Feature", "FeatureCollection"}


class FocusArgs(CamelModel):
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)
    zoom: Optional[float] = Field(default=None, ge=1, le=20)
    label: Optional[str] = None


class RouteMeta(CamelModel):
    start_name: Optional[str] = None
    end_name: Optional[str] = None


class DrawRouteArgs(CamelModel):
    geojson: Dict[str, Any]
    meta: Optional[RouteMeta] = None
    itinerary: Optional[List[Leg]] = None

    @field_validator("geojson")
    @classmethod
    def _line_like(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        if value.get("type") not in GEOJSON_LINE_TYPES:
            raise ValueError(f"geojson.type must be one of {sorted(GEOJSON_LINE_TYPES)}")
        return value


class AddMarkersArgs(CamelModel):
    markers: List[Marker]


class RagSearchArgs(CamelModel):
    query: str = Field(..., min_length=2)
    top_k: Optional[int] = Field(default=None, ge=1, le=20)


class PlacesSearchArgs(CamelModel):
    q: str = Field(..., min_length=2)
    near: Optional[LonLat] = None
    kind: Optional[Literal["albergue", "cafe", "grocery"]] = None


class ElevationProfileArgs(CamelModel):
    coords: List[LonLat]


class ExportGpxArgs(CamelModel):
    name: str = Field(..., min_length=1)
    segments: List[List[LonLat]]
