"""Map tools: focus, route drawing, and marker placement."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from camino.services.actions import DrawMarkersAction, DrawRouteAction, FocusAction, Marker
from camino.services.geocoder import Point
from camino.services.legs import UNRESOLVED_TOWN, Leg, chain_stages, is_unresolved
from camino.services.stages import distance_between_towns, towns_between
from camino.services.tools.args import AddMarkersArgs, DrawRouteArgs, FocusArgs
from camino.services.tools.base import ToolContext, ToolResult

logger = logging.getLogger(__name__)

Coordinates = List[List[float]]


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


# --- map.focus -------------------------------------------------------------


async def coerce_focus(raw: Dict[str, Any], context: ToolContext) -> Dict[str, Any]:
    args = dict(raw)
    if "lng" in args and "lon" not in args:
        args["lon"] = args.pop("lng")

    center = args.get("center")
    if isinstance(center, (list, tuple)) and len(center) >= 2:
        return {"lat": center[1], "lon": center[0], "zoom": args.get("zoom"), "label": args.get("label")}

    location = _text(args.get("location"))
    if location and ("lat" not in args or "lon" not in args):
        if context.geocoder is not None:
            point = await context.geocoder.geocode(location)
        else:
            point = await context.resolve_place(location)
        if point:
            return {
                "lat": point.lat,
                "lon": point.lon,
                "zoom": args.get("zoom"),
                "label": args.get("label") or location,
            }
    return args


async def run_focus(args: FocusArgs, context: ToolContext) -> ToolResult:
    return ToolResult(ui_actions=[FocusAction(lat=args.lat, lon=args.lon, zoom=args.zoom, label=args.label)])


# --- map.drawRoute ---------------------------------------------------------


def line_coordinates(geojson: Dict[str, Any]) -> Coordinates:
    """Flatten a LineString, Feature<LineString> or FeatureCollection into [lon, lat] pairs."""
    kind = geojson.get("type")
    raw: List[Any] = []
    if kind == "LineString":
        raw = list(geojson.get("coordinates") or [])
    elif kind == "Feature":
        geometry = geojson.get("geometry") or {}
        if geometry.get("type") == "LineString":
            raw = list(geometry.get("coordinates") or [])
    elif kind == "FeatureCollection":
        for feature in geojson.get("features") or []:
            if not isinstance(feature, dict):
                continue
            for pair in line_coordinates(feature):
                if not raw or raw[-1] != pair:
                    raw.append(pair)

    coords: Coordinates = []
    for pair in raw:
        if (
            isinstance(pair, (list, tuple))
            and len(pair) >= 2
            and all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in pair[:2])
        ):
            coords.append([float(pair[0]), float(pair[1])])
    return coords


def sample_line(coords: Sequence[Sequence[float]], position: int, count: int) -> Point:
    """Point at the end of leg ``position`` when ``count`` legs split the line evenly by vertex."""
    last = len(coords) - 1
    index = min(round((position + 1) * last / max(count, 1)), last)
    lon, lat = coords[index][0], coords[index][1]
    return Point(lat=lat, lon=lon)


async def _path_between(from_name: str, to_name: str, context: ToolContext) -> Optional[Coordinates]:
    towns = towns_between(from_name, to_name)
    if len(towns) >= 2:
        return [[town.lon, town.lat] for town in towns]
    start = await context.resolve_place(from_name)
    end = await context.resolve_place(to_name)
    if start and end:
        return [[start.lon, start.lat], [end.lon, end.lat]]
    return None


async def _stage_features(legs: List[Leg], context: ToolContext) -> Optional[Dict[str, Any]]:
    features = []
    for leg in legs:
        if is_unresolved(leg.from_) or is_unresolved(leg.to):
            continue
        path = await _path_between(leg.from_, leg.to, context)
        if not path:
            continue
        features.append(
            {
                "type": "Feature",
                "properties": {"day": leg.day, "from": leg.from_, "to": leg.to, "distance": leg.km},
                "geometry": {"type": "LineString", "coordinates": path},
            }
        )
    if not features:
        return None
    return {"type": "FeatureCollection", "features": features}


async def coerce_draw_route(raw: Dict[str, Any], context: ToolContext) -> Dict[str, Any]:
    args = dict(raw)
    meta = dict(args["meta"]) if isinstance(args.get("meta"), dict) else {}
    start_name = _text(meta.get("startName")) or _text(args.get("start"))
    end_name = _text(meta.get("endName")) or _text(args.get("end"))

    legs: Optional[List[Leg]] = None
    stages = args.get("stages")
    if isinstance(stages, list) and stages:
        legs = chain_stages(stages, start_name, end_name)
        if not start_name and not is_unresolved(legs[0].from_):
            start_name = legs[0].from_
        if not end_name and not is_unresolved(legs[-1].to):
            end_name = legs[-1].to

    if start_name:
        meta["startName"] = start_name
    if end_name:
        meta["endName"] = end_name

    geojson = args.get("geojson")
    if not geojson:
        if legs and len(legs) > 1:
            geojson = await _stage_features(legs, context)
        if not geojson and start_name and end_name:
            path = await _path_between(start_name, end_name, context)
            if path:
                geojson = {"type": "LineString", "coordinates": path}
        if not geojson:
            logger.info("drawRoute could not derive geometry (start=%s, end=%s)", start_name, end_name)

    coerced: Dict[str, Any] = {"geojson": geojson, "meta": meta or None}
    if legs:
        coerced["itinerary"] = [leg.to_wire() for leg in legs]
    elif isinstance(args.get("itinerary"), list):
        coerced["itinerary"] = args["itinerary"]
    return coerced


async def _resolve_leg_coordinates(legs: List[Leg], coords: Coordinates, context: ToolContext) -> List[Leg]:
    resolved: List[Leg] = []
    for position, leg in enumerate(legs):
        update: Dict[str, Any] = {}
        if position == 0 and not leg.has_origin:
            origin = await context.resolve_place(leg.from_)
            if origin:
                update.update(from_lat=origin.lat, from_lon=origin.lon)

        if not leg.has_destination:
            destination = await context.resolve_place(leg.to)
            if destination is None and len(coords) >= 2:
                destination = sample_line(coords, position, len(legs))
            if destination:
                update.update(to_lat=destination.lat, to_lon=destination.lon)

        resolved.append(leg.model_copy(update=update) if update else leg)
    return resolved


async def run_draw_route(args: DrawRouteArgs, context: ToolContext) -> ToolResult:
    actions: List[Any] = [DrawRouteAction(geojson=args.geojson)]
    coords = line_coordinates(args.geojson)
    start_name = args.meta.start_name if args.meta else None
    end_name = args.meta.end_name if args.meta else None

    if len(coords) >= 2:
        (lon_a, lat_a), (lon_b, lat_b) = coords[0], coords[-1]
        actions.append(
            DrawMarkersAction(
                markers=[
                    Marker(lat=lat_a, lon=lon_a, title=start_name or "Start"),
                    Marker(lat=lat_b, lon=lon_b, title=end_name or "End"),
                ]
            )
        )

    legs = list(args.itinerary or [])
    if not legs and (start_name or end_name):
        legs = [
            Leg(
                day=1,
                from_=start_name or UNRESOLVED_TOWN,
                to=end_name or UNRESOLVED_TOWN,
                km=distance_between_towns(start_name, end_name),
            )
        ]

    itinerary = await _resolve_leg_coordinates(legs, coords, context) if legs else None
    return ToolResult(ui_actions=actions, itinerary=itinerary)


# --- map.addMarkers --------------------------------------------------------


async def coerce_add_markers(raw: Dict[str, Any], context: ToolContext) -> Dict[str, Any]:
    args = dict(raw)
    named: List[tuple[str, Optional[str]]] = []
    if isinstance(args.get("locations"), list):
        for location in args["locations"]:
            if isinstance(location, dict) and _text(location.get("name")):
                named.append((location["name"].strip(), _text(location.get("kind"))))
            elif _text(location):
                named.append((location.strip(), None))
    elif isinstance(args.get("places"), list):
        named = [(place.strip(), None) for place in args["places"] if _text(place)]

    if named:
        markers = []
        for name, subtitle in named:
            point = await context.resolve_place(name)
            if point is None:
                logger.info("Dropping marker for unresolvable place %r", name)
                continue
            markers.append({"lat": point.lat, "lon": point.lon, "title": name, "subtitle": subtitle})
        return {"markers": markers}

    if isinstance(args.get("markers"), list):
        normalized = []
        for marker in args["markers"]:
            if isinstance(marker, dict) and "lng" in marker and "lon" not in marker:
                marker = {**marker, "lon": marker["lng"]}
            normalized.append(marker)
        args["markers"] = normalized
    return args


async def run_add_markers(args: AddMarkersArgs, context: ToolContext) -> ToolResult:
    return ToolResult(ui_actions=[DrawMarkersAction(markers=list(args.markers))])
