"""Itinerary legs and the stage-chaining rule shared by route drawing and plan fallback."""
from __future__ import annotations

from typing import Any, Iterable, List, Optional, Sequence, Tuple

from pydantic import Field

from camino.services.plan_schema import CamelModel
from camino.services.stages import distance_between_towns

UNRESOLVED_TOWN = "Unknown"


class Leg(CamelModel):
    day: int = Field(..., ge=1)
    from_: str = Field(..., alias="from")
    to: str
    km: Optional[float] = None
    to_lat: Optional[float] = None
    to_lon: Optional[float] = None
    from_lat: Optional[float] = None
    from_lon: Optional[float] = None
    ascent_m: Optional[float] = None
    notes: Optional[str] = None

    @property
    def has_destination(self) -> bool:
        return self.to_lat is not None and self.to_lon is not None

    @property
    def has_origin(self) -> bool:
        return self.from_lat is not None and self.from_lon is not None


def itinerary_is_complete(legs: Sequence[Leg] | None) -> bool:
    """True when there is at least one leg and every leg has destination coordinates."""
    return bool(legs) and all(leg.has_destination for leg in legs or [])


def is_unresolved(name: str | None) -> bool:
    return not name or name == UNRESOLVED_TOWN


def _split_stage_text(text: str) -> Tuple[Optional[str], Optional[str]]:
    if " to " not in text:
        return None, None
    from_part, to_part = text.split(" to ", 1)
    return from_part.strip() or None, to_part.strip() or None


def _stage_endpoints(stage: Any) -> Tuple[Optional[str], Optional[str], Optional[float]]:
    if isinstance(stage, str):
        from_name, to_name = _split_stage_text(stage)
        return from_name, to_name, None
    if not isinstance(stage, dict):
        return None, None, None

    from_name: Optional[str] = None
    to_name: Optional[str] = None
    if isinstance(stage.get("stage"), str) and " to " in stage["stage"]:
        from_name, to_name = _split_stage_text(stage["stage"])
    else:
        raw_from, raw_to = stage.get("from"), stage.get("to")
        from_name = raw_from.strip() if isinstance(raw_from, str) and raw_from.strip() else None
        to_name = raw_to.strip() if isinstance(raw_to, str) and raw_to.strip() else None

    model_km: Optional[float] = None
    for key in ("distanceKm", "distance", "km"):
        value = stage.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            model_km = float(value)
            break
    return from_name, to_name, model_km


def chain_stages(stages: Iterable[Any], start_name: str | None, end_name: str | None) -> List[Leg]:
    """Turn loose model stages into day-ordered legs.

    A stage without ``from`` inherits the previous leg's ``to`` (the first one
    falls back to the route start). A stage without ``to`` only borrows the
    route end when it is the final stage; interior gaps stay ``"Unknown"``.
    """
    stage_list = list(stages)
    legs: List[Leg] = []
    for index, stage in enumerate(stage_list):
        from_name, to_name, model_km = _stage_endpoints(stage)

        if not from_name:
            from_name = (start_name or UNRESOLVED_TOWN) if index == 0 else legs[index - 1].to
        if not to_name:
            to_name = (end_name or UNRESOLVED_TOWN) if index == len(stage_list) - 1 else UNRESOLVED_TOWN

        km = None
        if not is_unresolved(from_name) and not is_unresolved(to_name):
            km = distance_between_towns(from_name, to_name)
        if km is None:
            km = model_km

        legs.append(Leg(day=index + 1, from_=from_name, to=to_name, km=km))
    return legs


def format_distance(km: float | None) -> Optional[str]:
    """One decimal, dropping a trailing .0 (22.0 -> "22", 22.34 -> "22.3")."""
    if not isinstance(km, (int, float)) or km != km:
        return None
    rounded = round(float(km), 1)
    return str(int(rounded)) if rounded.is_integer() else f"{rounded:.1f}"
