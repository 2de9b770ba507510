"""Tests for itinerary reconciliation and marker coalescing."""
from __future__ import annotations

from camino.services.actions import ClearRouteAction, DrawMarkersAction, DrawRouteAction, FocusAction, Marker
from camino.services.executor import ExecutionResult, ItinerarySource
from camino.services.legs import Leg
from camino.services.plan_schema import validate_plan
from camino.services.reconciler import (
    CANNED_ITINERARY,
    coalesce_markers,
    itinerary_from_markers,
    markers_from_itinerary,
    reconcile,
)

ROUTE = DrawRouteAction(geojson={"type": "LineString", "coordinates": [[-7.41, 42.78], [-8.54, 42.88]]})


def _marker_actions(result):
    return [action for action in result.actions if isinstance(action, DrawMarkersAction)]


def test_markers_within_eleven_meters_collapse() -> None:
    actions = [
        DrawMarkersAction(markers=[Marker(lat=42.88061, lon=-8.54491, title="first")]),
        FocusAction(lat=0, lon=0),
        DrawMarkersAction(
            markers=[
                Marker(lat=42.88064, lon=-8.54489, title="duplicate"),
                Marker(lat=42.8900, lon=-8.5500, title="distinct"),
            ]
        ),
    ]

    merged = coalesce_markers(actions)

    assert [marker.title for marker in merged] == ["first", "distinct"]


def test_itinerary_from_markers_chains_titles() -> None:
    legs = itinerary_from_markers(
        [
            Marker(lat=42.78, lon=-7.41, title="Sarria"),
            Marker(lat=42.80, lon=-7.61, title="Portomarín"),
            Marker(lat=42.87, lon=-7.86, title="Palas de Rei"),
        ]
    )

    assert [(leg.day, leg.from_, leg.to) for leg in legs] == [
        (1, "Sarria", "Portomarín"),
        (2, "Portomarín", "Palas de Rei"),
    ]
    assert (legs[0].from_lat, legs[1].from_lat) == (42.78, None)
    assert itinerary_from_markers([Marker(lat=1, lon=1)]) is None


def test_markers_from_itinerary_adds_start_and_day_subtitles() -> None:
    action = markers_from_itinerary(list(CANNED_ITINERARY))

    assert action.replace is True
    assert [marker.subtitle for marker in action.markers] == ["Start", "Day 1 · 22.4 km", "Day 2 · 24.8 km"]
    assert len(action.markers) == len(CANNED_ITINERARY) + 1


def test_complete_tool_itinerary_gets_single_authoritative_marker_action() -> None:
    legs = [
        Leg(day=1, from_="Sarria", to="Portomarín", km=22.4, to_lat=42.8075, to_lon=-7.6153),
        Leg(day=2, from_="Portomarín", to="Palas de Rei", km=24.8, to_lat=42.8741, to_lon=-7.8687),
    ]
    result = ExecutionResult(
        actions=[
            ClearRouteAction(),
            ROUTE,
            DrawMarkersAction(markers=[Marker(lat=42.78, lon=-7.41, title="Start")]),
            FocusAction(lat=42.8, lon=-7.6),
        ],
        itinerary=legs,
        itinerary_source=ItinerarySource.TOOL,
    )

    reconciled = reconcile(result)

    assert reconciled.itinerary == legs
    assert reconciled.source is ItinerarySource.TOOL
    markers = _marker_actions(reconciled)
    assert len(markers) == 1 and markers[0].replace is True
    assert len(markers[0].markers) == 2
    assert reconciled.actions[-1] is markers[0]
    assert [action.type for action in reconciled.actions[:-1]] == ["clearRoute", "drawRoute", "focus"]


def test_marker_inference_when_no_itinerary() -> None:
    result = ExecutionResult(
        actions=[
            DrawMarkersAction(markers=[Marker(lat=42.78, lon=-7.41, title="Sarria")]),
            DrawMarkersAction(markers=[Marker(lat=42.91, lon=-8.01, title="Melide")]),
        ]
    )

    reconciled = reconcile(result)

    assert reconciled.source is ItinerarySource.MARKERS
    assert [(leg.from_, leg.to) for leg in reconciled.itinerary] == [("Sarria", "Melide")]
    assert len(_marker_actions(reconciled)) == 1


def test_backfills_incomplete_itinerary_from_matching_markers() -> None:
    plan = validate_plan(
        {"steps": [{"id": "r", "tool": "map.drawRoute", "args": {"stages": ["Sarria to Portomarín", "Portomarín to Melide"]}}]}
    )
    result = ExecutionResult(
        actions=[
            DrawMarkersAction(
                markers=[
                    Marker(lat=42.78, lon=-7.41, title="Sarria"),
                    Marker(lat=42.80, lon=-7.61, title="Portomarín"),
                    Marker(lat=42.91, lon=-8.01, title="Melide"),
                ]
            )
        ]
    )

    reconciled = reconcile(result, plan)

    assert reconciled.source is ItinerarySource.PLAN
    assert [(leg.to, leg.to_lat) for leg in reconciled.itinerary] == [("Portomarín", 42.80), ("Melide", 42.91)]
    assert len(_marker_actions(reconciled)) == 1


def test_mismatched_inference_leaves_itinerary_and_markers_untouched() -> None:
    legs = [Leg(day=1, from_="Sarria", to="Unknown"), Leg(day=2, from_="Unknown", to="Santiago")]
    original_markers = DrawMarkersAction(
        markers=[Marker(lat=42.78, lon=-7.41, title="Same"), Marker(lat=42.88, lon=-8.54, title="Same")]
    )
    result = ExecutionResult(actions=[ROUTE, original_markers], itinerary=legs, itinerary_source=ItinerarySource.TOOL)

    reconciled = reconcile(result)

    assert reconciled.itinerary == legs
    assert reconciled.actions == [ROUTE, original_markers]


def test_canned_itinerary_is_the_safety_net() -> None:
    reconciled = reconcile(ExecutionResult(actions=[ClearRouteAction()]))

    assert reconciled.source is ItinerarySource.CANNED
    assert reconciled.itinerary == list(CANNED_ITINERARY)
    assert [action.type for action in reconciled.actions] == ["clearRoute", "drawMarkers"]
