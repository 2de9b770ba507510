"""Reference waypoints for the last ~115km of the Camino Francés."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class StageTown:
    name: str
    lat: float
    lon: float
    km_to_santiago: float


# Ordered from Sarria towards the terminus; km_to_santiago strictly decreases.
FRANCES_LAST100: Tuple[StageTown, ...] = (
    StageTown("Sarria", 42.7812, -7.4143, 114.3),
    StageTown("Portomarín", 42.8075, -7.6153, 91.9),
    StageTown("Palas de Rei", 42.8741, -7.8687, 67.1),
    StageTown("Melide", 42.9142, -8.0129, 52.7),
    StageTown("Arzúa", 42.9290, -8.1585, 38.7),
    StageTown("O Pedrouzo", 42.8971, -8.3773, 19.4),
    StageTown("Santiago de Compostela", 42.8806, -8.5449, 0.0),
)

SPELLING_VARIANTS: Dict[str, str] = {
    "santiago": "Santiago de Compostela",
    "o pedrouzo": "O Pedrouzo",
    "pedrouzo": "O Pedrouzo",
    "palas": "Palas de Rei",
    "portomarin": "Portomarín",
    "arzua": "Arzúa",
}


def _by_exact_name(name: str) -> Optional[StageTown]:
    lowered = name.strip().lower()
    for town in FRANCES_LAST100:
        if town.name.lower() == lowered:
            return town
    variant = SPELLING_VARIANTS.get(lowered)
    if variant:
        return _by_exact_name(variant)
    return None


def find_town(name: str | None) -> Optional[StageTown]:
    """Resolve a loose place name: exact match, then substring either way, then known variants."""
    if not name or not name.strip():
        return None
    clean = name.strip().lower()

    for town in FRANCES_LAST100:
        if town.name.lower() == clean:
            return town

    for town in FRANCES_LAST100:
        town_name = town.name.lower()
        if clean in town_name or town_name in clean:
            return town

    variant = SPELLING_VARIANTS.get(clean)
    if variant:
        return _by_exact_name(variant)
    return None


def towns_between(start_name: str, end_name: str) -> List[StageTown]:
    """Inclusive slice of stage towns between two names, reversed when walking backwards.

    Names must match a town (or a known spelling variant) exactly; unknown
    names give an empty list.
    """
    start = _by_exact_name(start_name)
    end = _by_exact_name(end_name)
    if start is None or end is None:
        return []
    i = FRANCES_LAST100.index(start)
    j = FRANCES_LAST100.index(end)
    if i <= j:
        return list(FRANCES_LAST100[i : j + 1])
    return list(reversed(FRANCES_LAST100[j : i + 1]))


def distance_between_towns(from_name: str | None, to_name: str | None) -> Optional[float]:
    """Walking distance in km between two known towns, or None when either is unknown."""
    start = find_town(from_name)
    end = find_town(to_name)
    if start is None or end is None or start == end:
        return None
    return round(abs(start.km_to_santiago - end.km_to_santiago), 1)
