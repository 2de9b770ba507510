"""Tests for the tool registry and the individual map/data tools."""
from __future__ import annotations

import asyncio
import base64
from typing import Dict, Optional

import pytest

from camino.services.actions import DrawMarkersAction, DrawRouteAction, FocusAction
from camino.services.errors import SchemaError, UnknownToolError
from camino.services.geocoder import Point
from camino.services.legs import UNRESOLVED_TOWN
from camino.services.tools.base import ToolContext
from camino.services.tools.data_tools import render_gpx
from camino.services.tools.map_tools import line_coordinates, sample_line
from camino.services.tools.registry import TOOL_REGISTRY, run_tool
from camino.services.plan_schema import TOOL_NAMES


class _StubGeocoder:
    def __init__(self, known: Dict[str, Point]):
        self.known = known
        self.queries: list[str] = []

    async def geocode(self, query: str) -> Optional[Point]:
        self.queries.append(query)
        return self.known.get(query.lower())


def _run(name: str, args: dict, context: ToolContext | None = None):
    return asyncio.run(run_tool(name, args, context or ToolContext()))


def test_registry_covers_every_tool_name() -> None:
    assert set(TOOL_REGISTRY) == set(TOOL_NAMES)


def test_unknown_tool_raises() -> None:
    with pytest.raises(UnknownToolError) as excinfo:
        _run("map.teleport", {})

    assert excinfo.value.tool == "map.teleport"


def test_invalid_args_raise_schema_error() -> None:
    with pytest.raises(SchemaError, match="Invalid args for map.focus"):
        _run("map.focus", {"lat": 123, "lon": 0})


def test_focus_accepts_center_pair_and_lng_alias() -> None:
    result = _run("map.focus", {"center": [-8.5449, 42.8806], "zoom": 12})
    action = result.ui_actions[0]
    assert isinstance(action, FocusAction)
    assert (action.lat, action.lon, action.zoom) == (42.8806, -8.5449, 12)

    alias = _run("map.focus", {"lat": 42.9, "lng": -8.0})
    assert alias.ui_actions[0].lon == -8.0


def test_focus_geocodes_free_text_location() -> None:
    geocoder = _StubGeocoder({"finisterre": Point(42.9075, -9.2654)})

    result = _run("map.focus", {"location": "Finisterre"}, ToolContext(geocoder=geocoder))

    action = result.ui_actions[0]
    assert (action.lat, action.lon, action.label) == (42.9075, -9.2654, "Finisterre")
    assert geocoder.queries == ["Finisterre"]


def test_draw_route_with_start_and_end_uses_the_town_table() -> None:
    result = _run("map.drawRoute", {"start": "Sarria", "end": "Melide"})

    route, markers = result.ui_actions
    assert isinstance(route, DrawRouteAction)
    assert route.geojson["type"] == "LineString"
    assert len(route.geojson["coordinates"]) == 4
    assert isinstance(markers, DrawMarkersAction)
    assert [marker.title for marker in markers.markers] == ["Sarria", "Melide"]

    (leg,) = result.itinerary
    assert (leg.from_, leg.to, leg.km) == ("Sarria", "Melide", 61.6)
    assert (leg.from_lat, leg.to_lat) == (42.7812, 42.9142)


def test_draw_route_with_stages_builds_one_feature_per_day() -> None:
    result = _run(
        "map.drawRoute",
        {
            "start": "Sarria",
            "end": "Santiago",
            "stages": ["Sarria to Portomarín", {"from": "Portomarín", "to": "Melide"}, {"to": "Santiago"}],
        },
    )

    route = result.ui_actions[0]
    assert route.geojson["type"] == "FeatureCollection"
    assert [feature["properties"]["day"] for feature in route.geojson["features"]] == [1, 2, 3]
    assert route.geojson["features"][1]["properties"]["distance"] == 39.2

    legs = result.itinerary
    assert [(leg.day, leg.from_, leg.to) for leg in legs] == [
        (1, "Sarria", "Portomarín"),
        (2, "Portomarín", "Melide"),
        (3, "Melide", "Santiago"),
    ]
    assert all(leg.has_destination for leg in legs)
    assert legs[2].to_lat == 42.8806


def test_draw_route_samples_line_for_interior_unknown_stage() -> None:
    result = _run(
        "map.drawRoute",
        {"start": "Sarria", "end": "Santiago", "stages": [{"from": "Sarria"}, {"to": "Santiago"}]},
    )

    first, second = result.itinerary
    assert first.to == UNRESOLVED_TOWN
    assert first.has_destination
    assert second.from_ == UNRESOLVED_TOWN
    assert (second.to_lat, second.to_lon) == (42.8806, -8.5449)


def test_draw_route_accepts_explicit_feature_collection() -> None:
    geojson = {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "geometry": {"type": "LineString", "coordinates": [[-7.41, 42.78], [-7.61, 42.80]]}},
            {"type": "Feature", "geometry": {"type": "LineString", "coordinates": [[-7.61, 42.80], [-7.86, 42.87]]}},
        ],
    }

    result = _run("map.drawRoute", {"geojson": geojson})

    assert result.ui_actions[0].geojson == geojson
    assert result.ui_actions[1].markers[0].title == "Start"
    assert result.itinerary is None


def test_add_markers_resolves_names_and_drops_unknown_places() -> None:
    result = _run("map.addMarkers", {"places": ["Melide", "Atlantis"]})

    (action,) = result.ui_actions
    assert [(marker.title, marker.lat) for marker in action.markers] == [("Melide", 42.9142)]


def test_add_markers_accepts_locations_and_literal_markers() -> None:
    by_location = _run("map.addMarkers", {"locations": [{"name": "Arzua", "kind": "albergue"}]})
    marker = by_location.ui_actions[0].markers[0]
    assert (marker.title, marker.subtitle, marker.lon) == ("Arzua", "albergue", -8.1585)

    literal = _run("map.addMarkers", {"markers": [{"lat": 42.0, "lng": -8.0, "title": "Cafe"}]})
    assert literal.ui_actions[0].markers[0].lon == -8.0


def test_search_and_elevation_stubs_are_deterministic() -> None:
    assert _run("rag.search", {"query": "albergues in Melide"}).data == []
    assert _run("places.search", {"q": "cafe", "near": [-8.0, 42.9], "kind": "cafe"}).data == []
    profile = _run("elevation.profile", {"coords": [[-7.4, 42.7], [-7.6, 42.8]]}).data
    assert profile == [{"distKm": 0.0, "elevM": 0.0}, {"distKm": 1.0, "elevM": 0.0}]


def test_export_gpx_returns_data_url() -> None:
    result = _run("export.gpx", {"name": "Day 1 <Sarria>", "segments": [[[-7.41, 42.78], [-7.61, 42.80]]]})

    url = result.data["url"]
    assert url.startswith("data:application/gpx+xml;base64,")
    document = base64.b64decode(url.split(",", 1)[1]).decode("utf-8")
    assert "<name>Day 1 &lt;Sarria&gt;</name>" in document
    assert document.count("<trkpt") == 2


def test_render_gpx_writes_one_segment_per_input() -> None:
    document = render_gpx("Route", [[(-7.4, 42.7)], [(-7.6, 42.8), (-7.8, 42.9)]])

    assert document.count("<trkseg>") == 2
    assert '<trkpt lat="42.7" lon="-7.4"></trkpt>' in document


def test_line_helpers() -> None:
    feature = {"type": "Feature", "geometry": {"type": "LineString", "coordinates": [[0, 0], [1, 1], [2, 2], [3, 3]]}}
    coords = line_coordinates(feature)

    assert coords == [[0.0, 0.0], [1.0, 1.0], [2.0, 2.0], [3.0, 3.0]]
    assert line_coordinates({"type": "Point", "coordinates": [0, 0]}) == []
    assert sample_line(coords, 0, 3) == Point(lat=1.0, lon=1.0)
    assert sample_line(coords, 2, 3) == Point(lat=3.0, lon=3.0)
