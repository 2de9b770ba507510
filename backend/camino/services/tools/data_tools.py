"""Search, elevation, and export tools. Search and elevation are deterministic stubs."""
from __future__ import annotations

import base64
from typing import List
from xml.sax.saxutils import escape, quoteattr

from camino.services.tools.args import (
    ElevationProfileArgs,
    ExportGpxArgs,
    PlacesSearchArgs,
    RagSearchArgs,
)
from camino.services.tools.base import ToolContext, ToolResult

GPX_MIME = "application/gpx+xml"


async def run_rag_search(args: RagSearchArgs, context: ToolContext) -> ToolResult:
    return ToolResult(data=[])


async def run_places_search(args: PlacesSearchArgs, context: ToolContext) -> ToolResult:
    return ToolResult(data=[])


async def run_elevation_profile(args: ElevationProfileArgs, context: ToolContext) -> ToolResult:
    profile = [{"distKm": float(index), "elevM": 0.0} for index, _ in enumerate(args.coords)]
    return ToolResult(data=profile)


def render_gpx(name: str, segments: List[List[tuple[float, float]]]) -> str:
    """Minimal GPX 1.1 track; each segment is a list of (lon, lat) pairs."""
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<gpx version="1.1" creator="Camino Planner" xmlns="http://www.topografix.com/GPX/1/1">',
        "  <trk>",
        f"    <name>{escape(name)}</name>",
    ]
    for segment in segments:
        lines.append("    <trkseg>")
        for lon, lat in segment:
            lines.append(f"      <trkpt lat={quoteattr(repr(lat))} lon={quoteattr(repr(lon))}></trkpt>")
        lines.append("    </trkseg>")
    lines.extend(["  </trk>", "</gpx>"])
    return "\n".join(lines)


def to_data_url(content: str, mime: str = GPX_MIME) -> str:
    encoded = base64.b64encode(content.encode("utf-8")).decode("ascii")
    return f"data:{mime};base64,{encoded}"


async def run_export_gpx(args: ExportGpxArgs, context: ToolContext) -> ToolResult:
    gpx = render_gpx(args.name, [[(lon, lat) for lon, lat in segment] for segment in args.segments])
    return ToolResult(data={"url": to_data_url(gpx)})
