"""Tests for English dictionaries used by the rules-based parser."""

from __future__ import annotations

import pytest

from carmarket.intent.dictionaries import (
    find_body_type,
    find_condition,
    find_fuel_type,
    find_make,
    find_model,
    find_transmission,
)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("i want a merc", "Mercedes-Benz"),
        ("mercedes-benz e class", "Mercedes-Benz"),
        ("vw golf", "Volkswagen"),
        ("range rover please", "Land Rover"),
        ("a chevy truck", "Chevrolet"),
    ],
)
def test_find_make_aliases(text: str, expected: str) -> None:
    match = find_make(text)

    assert match is not None
    assert match.value == expected


def test_find_make_reports_alias_span() -> None:
    match = find_make("cheap bmw")

    assert match is not None
    assert (match.start, match.end) == (6, 9)


def test_alias_inside_a_longer_word_does_not_match() -> None:
    assert find_make("minivan") is None
    assert find_fuel_type("evening drive") is None
    assert find_body_type("minivan") is not None


def test_earliest_mention_wins() -> None:
    match = find_make("audi or bmw")

    assert match is not None
    assert match.value == "Audi"


def test_find_model_restricted_to_make() -> None:
    assert find_model("audi x5", make="Audi") is None

    found = find_model("bmw x5", make="BMW")
    assert found is not None
    assert found[0] == "BMW"
    assert found[1].value == "X5"


def test_find_model_without_make_reports_owner() -> None:
    found = find_model("a used f-150", make=None)

    assert found is not None
    assert found[0] == "Ford"
    assert found[1].value == "F-150"


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("family estate", "Wagon"),
        ("small crossover", "SUV"),
        ("pick-up for work", "Truck"),
        ("cabrio for summer", "Convertible"),
    ],
)
def test_find_body_type(text: str, expected: str) -> None:
    match = find_body_type(text)

    assert match is not None
    assert match.value == expected


def test_longer_alias_beats_shorter_one() -> None:
    fuel = find_fuel_type("plug-in hybrid")
    transmission = find_transmission("stick shift")

    assert fuel is not None and fuel.value == "Hybrid"
    assert (fuel.start, fuel.end) == (0, 14)
    assert transmission is not None and transmission.value == "Manual"
    assert transmission.end == len("stick shift")


@pytest.mark.parametrize(
    ("text", "expected"),
    [("brand new suv", "new"), ("pre-owned sedan", "used"), ("second hand", "used")],
)
def test_find_condition(text: str, expected: str) -> None:
    match = find_condition(text)

    assert match is not None
    assert match.value == expected


def test_nothing_found() -> None:
    assert find_transmission("red car") is None
    assert find_condition("red car") is None
