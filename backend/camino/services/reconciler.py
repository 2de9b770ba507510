"""Turn an execution result into one itinerary and one authoritative marker set."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from camino.services.actions import AgentAction, DrawMarkersAction, Marker, is_marker_action
from camino.services.executor import ExecutionResult, ItinerarySlot, ItinerarySource, extract_itinerary_from_plan
from camino.services.legs import Leg, format_distance, itinerary_is_complete
from camino.services.plan_schema import Plan

logger = logging.getLogger(__name__)

CANNED_ITINERARY: tuple[Leg, ...] = (
    Leg(
        day=1,
        from_="Sarria",
        to="Portomarín",
        km=22.4,
        from_lat=42.7812,
        from_lon=-7.4143,
        to_lat=42.8075,
        to_lon=-7.6153,
    ),
    Leg(day=2, from_="Portomarín", to="Palas de Rei", km=24.8, to_lat=42.8741, to_lon=-7.8687),
)


@dataclass
class Reconciliation:
    itinerary: List[Leg]
    actions: List[AgentAction] = field(default_factory=list)
    source: ItinerarySource = ItinerarySource.CANNED


def coalesce_markers(actions: Sequence[Any]) -> List[Marker]:
    """Merge every drawMarkers action in order; the first marker per rounded point wins."""
    seen: set[str] = set()
    merged: List[Marker] = []
    for action in actions:
        if not is_marker_action(action):
            continue
        for marker in action.markers:
            key = marker.dedup_key()
            if key in seen:
                continue
            seen.add(key)
            merged.append(marker)
    return merged


def itinerary_from_markers(markers: Sequence[Marker]) -> Optional[List[Leg]]:
    """Read consecutive markers as consecutive day destinations."""
    if len(markers) < 2:
        return None
    legs: List[Leg] = []
    for day, (previous, current) in enumerate(zip(markers, markers[1:]), start=1):
        legs.append(
            Leg(
                day=day,
                from_=previous.title or f"Point {day}",
                to=current.title or f"Point {day + 1}",
                to_lat=current.lat,
                to_lon=current.lon,
                from_lat=previous.lat if day == 1 else None,
                from_lon=previous.lon if day == 1 else None,
            )
        )
    return legs


def markers_from_itinerary(legs: Sequence[Leg]) -> DrawMarkersAction:
    """The replace-all marker action for a complete itinerary."""
    ordered = sorted(legs, key=lambda item: item.day)
    markers: List[Marker] = []
    first = ordered[0] if ordered else None
    if first is not None and first.has_origin:
        markers.append(Marker(lat=first.from_lat, lon=first.from_lon, title=first.from_, subtitle="Start"))
    for leg in ordered:
        distance = format_distance(leg.km)
        subtitle = f"Day {leg.day} · {distance} km" if distance else f"Day {leg.day}"
        markers.append(Marker(lat=leg.to_lat, lon=leg.to_lon, title=leg.to, subtitle=subtitle))
    return DrawMarkersAction(markers=markers, replace=True)


def _backfill(legs: List[Leg], inferred: Optional[List[Leg]]) -> Optional[List[Leg]]:
    """Copy inferred coordinates only when the inference has the same shape and varied destinations."""
    if not inferred or len(inferred) != len(legs):
        return None
    if len({leg.to for leg in inferred}) < 2:
        return None
    filled: List[Leg] = []
    for leg, guess in zip(legs, inferred):
        if leg.has_destination:
            filled.append(leg)
            continue
        filled.append(leg.model_copy(update={"to_lat": guess.to_lat, "to_lon": guess.to_lon}))
    return filled


def reconcile(result: ExecutionResult, plan: Optional[Plan] = None) -> Reconciliation:
    """Pick the client itinerary and, when it is complete, the single marker action that matches it."""
    slot = ItinerarySlot(legs=result.itinerary, source=result.itinerary_source)
    markers = coalesce_markers(result.actions)
    inferred = itinerary_from_markers(markers)
    if slot.empty and plan is not None:
        slot.offer(extract_itinerary_from_plan(plan), ItinerarySource.PLAN)

    if slot.empty:
        slot.offer(inferred, ItinerarySource.MARKERS)
    elif not itinerary_is_complete(slot.legs):
        filled = _backfill(list(slot.legs or []), inferred)
        if filled is not None:
            slot.legs = filled
        else:
            logger.info("Leaving incomplete itinerary untouched; marker inference does not line up")

    if slot.empty:
        logger.info("No itinerary from execution; using canned itinerary")
        slot.offer(list(CANNED_ITINERARY), ItinerarySource.CANNED)

    legs = list(slot.legs or [])
    actions = list(result.actions)
    if itinerary_is_complete(legs):
        actions = [action for action in actions if not is_marker_action(action)]
        actions.append(markers_from_itinerary(legs))

    return Reconciliation(itinerary=legs, actions=actions, source=slot.source or ItinerarySource.CANNED)
