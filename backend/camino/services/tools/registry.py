"""Tool registry and the single dispatch path used by the executor."""
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping

from pydantic import ValidationError

from camino.services.errors import SchemaError, UnknownToolError
from camino.services.plan_schema import ToolName
from camino.services.tools import data_tools, map_tools
from camino.services.tools.args import (
    AddMarkersArgs,
    DrawRouteArgs,
    ElevationProfileArgs,
    ExportGpxArgs,
    FocusArgs,
    PlacesSearchArgs,
    RagSearchArgs,
)
from camino.services.tools.base import ToolContext, ToolDef, ToolResult

logger = logging.getLogger(__name__)

TOOL_REGISTRY: Dict[str, ToolDef] = {
    tool.name: tool
    for tool in (
        ToolDef(
            name=ToolName.MAP_FOCUS.value,
            args_model=FocusArgs,
            coerce=map_tools.coerce_focus,
            run=map_tools.run_focus,
            description="Center the map on a point or a named place.",
        ),
        ToolDef(
            name=ToolName.MAP_DRAW_ROUTE.value,
            args_model=DrawRouteArgs,
            coerce=map_tools.coerce_draw_route,
            run=map_tools.run_draw_route,
            description="Draw a route line or per-day stages and surface the itinerary.",
        ),
        ToolDef(
            name=ToolName.MAP_ADD_MARKERS.value,
            args_model=AddMarkersArgs,
            coerce=map_tools.coerce_add_markers,
            run=map_tools.run_add_markers,
            description="Place markers from coordinates or place names.",
        ),
        ToolDef(
            name=ToolName.RAG_SEARCH.value,
            args_model=RagSearchArgs,
            run=data_tools.run_rag_search,
            description="Search the guidebook corpus.",
        ),
        ToolDef(
            name=ToolName.PLACES_SEARCH.value,
            args_model=PlacesSearchArgs,
            run=data_tools.run_places_search,
            description="Find albergues, cafes, or groceries near a point.",
        ),
        ToolDef(
            name=ToolName.ELEVATION_PROFILE.value,
            args_model=ElevationProfileArgs,
            run=data_tools.run_elevation_profile,
            description="Elevation profile along coordinates.",
        ),
        ToolDef(
            name=ToolName.EXPORT_GPX.value,
            args_model=ExportGpxArgs,
            run=data_tools.run_export_gpx,
            description="Export coordinate segments as an inline GPX document.",
        ),
    )
}


def _tool_key(name: Any) -> str:
    return name.value if isinstance(name, ToolName) else str(name)


async def run_tool(name: Any, raw_args: Mapping[str, Any] | None, context: ToolContext) -> ToolResult:
    """Look up, coerce, validate, and run a tool.

    Raises UnknownToolError for unregistered names and SchemaError when the
    coerced arguments still miss the tool's contract.
    """
    key = _tool_key(name)
    tool = TOOL_REGISTRY.get(key)
    if tool is None:
        raise UnknownToolError(key)

    prepared: Any = dict(raw_args or {})
    if tool.coerce is not None:
        prepared = await tool.coerce(prepared, context)

    try:
        args = tool.args_model.model_validate(prepared)
    except ValidationError as exc:
        raise SchemaError.from_validation_error(f"Invalid args for {key}", exc) from exc

    logger.debug("Running tool %s", key)
    return await tool.run(args, context)
