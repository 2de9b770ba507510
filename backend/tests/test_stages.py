"""Tests for the stage reference table and stage chaining."""
from __future__ import annotations

import pytest

from camino.services.legs import UNRESOLVED_TOWN, chain_stages, format_distance, itinerary_is_complete, Leg
from camino.services.stages import FRANCES_LAST100, distance_between_towns, find_town, towns_between


def test_reference_table_distances_strictly_decrease() -> None:
    distances = [town.km_to_santiago for town in FRANCES_LAST100]

    assert distances == sorted(distances, reverse=True)
    assert len(set(distances)) == len(distances)
    assert FRANCES_LAST100[-1].km_to_santiago == 0.0


@pytest.mark.parametrize(
    "query, expected",
    [
        ("Sarria", "Sarria"),
        ("  melide ", "Melide"),
        ("Santiago", "Santiago de Compostela"),
        ("Arzua", "Arzúa"),
        ("Portomarin", "Portomarín"),
        ("Pedrouzo", "O Pedrouzo"),
        ("Albergue in Palas de Rei", "Palas de Rei"),
    ],
)
def test_find_town_cascade(query: str, expected: str) -> None:
    town = find_town(query)

    assert town is not None
    assert town.name == expected


@pytest.mark.parametrize("query", ["", "   ", None, "Burgos"])
def test_find_town_misses(query) -> None:
    assert find_town(query) is None


def test_towns_between_is_symmetric() -> None:
    forward = towns_between("Sarria", "Santiago de Compostela")
    backward = towns_between("Santiago de Compostela", "Sarria")

    assert [town.name for town in forward] == [town.name for town in FRANCES_LAST100]
    assert backward == list(reversed(forward))


def test_towns_between_accepts_variants_and_rejects_unknown_names() -> None:
    assert [town.name for town in towns_between("Arzua", "Santiago")] == [
        "Arzúa",
        "O Pedrouzo",
        "Santiago de Compostela",
    ]
    assert towns_between("Sarria", "León") == []


def test_distance_between_towns() -> None:
    assert distance_between_towns("Sarria", "Portomarín") == 22.4
    assert distance_between_towns("Santiago", "Arzua") == 38.7
    assert distance_between_towns("Sarria", "Sarria") is None
    assert distance_between_towns("Sarria", "Nowhere") is None


def test_chain_stages_leaves_interior_gap_unresolved() -> None:
    legs = chain_stages([{"from": "Sarria"}, {"to": "Santiago"}], "Sarria", "Santiago")

    assert [(leg.day, leg.from_, leg.to) for leg in legs] == [
        (1, "Sarria", UNRESOLVED_TOWN),
        (2, UNRESOLVED_TOWN, "Santiago"),
    ]
    assert legs[0].km is None and legs[1].km is None


def test_chain_stages_accepts_mixed_stage_shapes() -> None:
    legs = chain_stages(
        ["Sarria to Portomarín", {"stage": "Portomarín to Palas de Rei"}, {"to": "Melide", "distanceKm": 99}],
        None,
        None,
    )

    assert [(leg.from_, leg.to) for leg in legs] == [
        ("Sarria", "Portomarín"),
        ("Portomarín", "Palas de Rei"),
        ("Palas de Rei", "Melide"),
    ]
    assert [leg.km for leg in legs] == [22.4, 24.8, 14.4]


def test_chain_stages_falls_back_to_model_distance_for_unknown_towns() -> None:
    legs = chain_stages([{"from": "Sarria", "to": "Barbadelo", "distance": 4.5}], None, None)

    assert legs[0].km == 4.5


def test_format_distance_and_completeness() -> None:
    assert format_distance(22.0) == "22"
    assert format_distance(22.34) == "22.3"
    assert format_distance(None) is None
    assert format_distance(float("nan")) is None

    complete = [Leg(day=1, from_="Sarria", to="Portomarín", to_lat=42.8, to_lon=-7.6)]
    assert itinerary_is_complete(complete)
    assert not itinerary_is_complete([])
    assert not itinerary_is_complete([Leg(day=1, from_="Sarria", to="Portomarín", to_lat=42.8)])
