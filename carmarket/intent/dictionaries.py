"""English dictionaries for makes, models and categorical vehicle attributes.

These mappings are used by the rules-based parser and should remain small and deterministic. Keys
are the canonical values stored in `car_listings`; values are lowercase aliases as they appear in
normalized user text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

MAKE_SYNONYMS: dict[str, tuple[str, ...]] = {
    "Alfa Romeo": ("alfa romeo", "alfa"),
    "Aston Martin": ("aston martin",),
    "Audi": ("audi",),
    "Bentley": ("bentley",),
    "BMW": ("bmw", "beemer"),
    "Chevrolet": ("chevrolet", "chevy"),
    "Ferrari": ("ferrari",),
    "Fiat": ("fiat",),
    "Ford": ("ford",),
    "Honda": ("honda",),
    "Hyundai": ("hyundai",),
    "Jaguar": ("jaguar", "jag"),
    "Jeep": ("jeep",),
    "Kia": ("kia",),
    "Lamborghini": ("lamborghini", "lambo"),
    "Land Rover": ("land rover", "landrover", "range rover"),
    "Lexus": ("lexus",),
    "Maserati": ("maserati",),
    "Mazda": ("mazda",),
    "Mercedes-Benz": ("mercedes-benz", "mercedes benz", "mercedes", "merc", "benz"),
    "Mini": ("mini",),
    "Nissan": ("nissan",),
    "Opel": ("opel",),
    "Peugeot": ("peugeot",),
    "Porsche": ("porsche",),
    "Renault": ("renault",),
    "Skoda": ("skoda",),
    "Subaru": ("subaru",),
    "Tesla": ("tesla",),
    "Toyota": ("toyota",),
    "Volkswagen": ("volkswagen", "vw"),
    "Volvo": ("volvo",),
}

MODEL_SYNONYMS: dict[str, dict[str, tuple[str, ...]]] = {
    "Audi": {"A3": ("a3",), "A4": ("a4",), "A6": ("a6",), "Q5": ("q5",), "Q7": ("q7",), "TT": ("tt",)},
    "BMW": {
        "3 Series": ("3 series", "3er"),
        "5 Series": ("5 series", "5er"),
        "X3": ("x3",),
        "X5": ("x5",),
        "M3": ("m3",),
        "i4": ("i4",),
    },
    "Ford": {"Mustang": ("mustang",), "Focus": ("focus",), "F-150": ("f-150", "f150")},
    "Land Rover": {"Defender": ("defender",), "Range Rover Sport": ("range rover sport",)},
    "Mercedes-Benz": {
        "C-Class": ("c-class", "c class"),
        "E-Class": ("e-class", "e class"),
        "S-Class": ("s-class", "s class"),
        "G-Class": ("g-class", "g class", "g wagon", "g-wagon"),
        "GLC": ("glc",),
    },
    "Porsche": {"911": ("911",), "Cayenne": ("cayenne",), "Macan": ("macan",), "Taycan": ("taycan",)},
    "Tesla": {
        "Model 3": ("model 3",),
        "Model S": ("model s",),
        "Model X": ("model x",),
        "Model Y": ("model y",),
    },
    "Toyota": {"Corolla": ("corolla",), "RAV4": ("rav4", "rav 4"), "Prius": ("prius",)},
    "Volkswagen": {"Golf": ("golf",), "Passat": ("passat",), "Tiguan": ("tiguan",), "ID.4": ("id4", "id 4")},
    "Volvo": {"XC60": ("xc60",), "XC90": ("xc90",)},
}

BODY_TYPE_SYNONYMS: dict[str, tuple[str, ...]] = {
    "Sedan": ("sedan", "sedans", "saloon"),
    "SUV": ("suv", "suvs", "crossover", "4x4"),
    "Coupe": ("coupe", "coupes"),
    "Convertible": ("convertible", "convertibles", "cabrio", "cabriolet", "roadster"),
    "Hatchback": ("hatchback", "hatchbacks", "hatch"),
    "Wagon": ("wagon", "wagons", "estate", "station wagon", "kombi"),
    "Truck": ("truck", "trucks", "pickup", "pick-up"),
    "Van": ("van", "vans", "minivan", "mpv"),
}

FUEL_TYPE_SYNONYMS: dict[str, tuple[str, ...]] = {
    "Gasoline": ("gasoline", "petrol", "gas"),
    "Diesel": ("diesel", "tdi"),
    "Hybrid": ("hybrid", "plug-in hybrid", "phev"),
    "Electric": ("electric", "ev", "bev", "battery electric"),
}

TRANSMISSION_SYNONYMS: dict[str, tuple[str, ...]] = {
    "Automatic": ("automatic", "auto", "autobox"),
    "Manual": ("manual", "stick", "stick shift", "stickshift"),
    "CVT": ("cvt",),
    "PDK": ("pdk",),
}

CONDITION_SYNONYMS: dict[str, tuple[str, ...]] = {
    "new": ("brand new", "new"),
    "used": ("used", "pre-owned", "preowned", "second hand", "second-hand", "secondhand"),
}


@dataclass(frozen=True)
class TermMatch:
    """A canonical value found in text, with the character span of the alias that matched."""

    value: str
    start: int
    end: int


def _alias_pattern(alias: str) -> re.Pattern[str]:
    # Word characters and hyphens on either side mean the alias is part of a longer word.
    return re.compile(rf"(?<![\w\-]){re.escape(alias)}(?![\w\-])")


def _compile(synonyms: dict[str, tuple[str, ...]]) -> list[tuple[str, re.Pattern[str]]]:
    pairs = [(canonical, alias) for canonical, aliases in synonyms.items() for alias in aliases]
    # Prefer longer aliases ("plug-in hybrid" over "hybrid").
    pairs.sort(key=lambda p: (-len(p[1]), p[1]))
    return [(canonical, _alias_pattern(alias)) for canonical, alias in pairs]


_MAKE_PATTERNS = _compile(MAKE_SYNONYMS)
_MODEL_PATTERNS: dict[str, list[tuple[str, re.Pattern[str]]]] = {
    make: _compile(models) for make, models in MODEL_SYNONYMS.items()
}
_BODY_TYPE_PATTERNS = _compile(BODY_TYPE_SYNONYMS)
_FUEL_TYPE_PATTERNS = _compile(FUEL_TYPE_SYNONYMS)
_TRANSMISSION_PATTERNS = _compile(TRANSMISSION_SYNONYMS)
_CONDITION_PATTERNS = _compile(CONDITION_SYNONYMS)


def _first_match(text: str, patterns: list[tuple[str, re.Pattern[str]]]) -> TermMatch | None:
    """Return the earliest match in the text (longest alias wins on ties)."""

    best: TermMatch | None = None
    for canonical, pattern in patterns:
        m = pattern.search(text)
        if m is None:
            continue
        if best is None or m.start() < best.start:
            best = TermMatch(value=canonical, start=m.start(), end=m.end())
    return best


def find_make(text: str) -> TermMatch | None:
    """Detect the first car make mentioned in normalized text."""

    return _first_match(text, _MAKE_PATTERNS)


def find_model(text: str, *, make: str | None) -> tuple[str, TermMatch] | None:
    """Detect a model, restricted to `make` if given.

    Returns:
        `(make, match)` where `make` is the owning make, or `None` if no known model is mentioned.
    """

    makes = [make] if make is not None else list(_MODEL_PATTERNS)
    best: tuple[str, TermMatch] | None = None
    for candidate in makes:
        match = _first_match(text, _MODEL_PATTERNS.get(candidate, []))
        if match is None:
            continue
        if best is None or match.start < best[1].start:
            best = (candidate, match)
    return best


def find_body_type(text: str) -> TermMatch | None:
    """Detect a body type in normalized text."""

    return _first_match(text, _BODY_TYPE_PATTERNS)


def find_fuel_type(text: str) -> TermMatch | None:
    """Detect a fuel type in normalized text."""

    return _first_match(text, _FUEL_TYPE_PATTERNS)


def find_transmission(text: str) -> TermMatch | None:
    """Detect a transmission type in normalized text."""

    return _first_match(text, _TRANSMISSION_PATTERNS)


def find_condition(text: str) -> TermMatch | None:
    """Detect a new/used condition in normalized text."""

    return _first_match(text, _CONDITION_PATTERNS)
