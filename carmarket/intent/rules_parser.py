"""Rules-based English car search parser (fallback for the LLM parser).

This parser is intentionally strict and deterministic:
    - it only recognizes makes, models and attributes from `dictionaries`,
    - it only recognizes a limited set of price/year/mileage phrasings,
    - it produces `ParsedFilters` validated by the Pydantic schema.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Literal

from carmarket.intent.dictionaries import (
    TermMatch,
    find_body_type,
    find_condition,
    find_fuel_type,
    find_make,
    find_model,
    find_transmission,
)
from carmarket.intent.normalize import CURRENCY_TOKEN, normalize_text
from carmarket.intent.schema import ParsedFilters


class RulesParserError(ValueError):
    """Raised when the rules parser cannot recognize any filter."""


QuantityKind = Literal["price", "mileage", "year"]

_MIN_YEAR = 1950
_LOW_MILEAGE_MAX = 50_000

_MILEAGE_UNITS = ("kilometers", "kilometres", "miles", "kms", "km", "mi")
_UPPER_PHRASES = (
    "no more than",
    "cheaper than",
    "older than",
    "less than",
    "at most",
    "maximum",
    "up to",
    "before",
    "below",
    "under",
    "until",
    "max",
)
_LOWER_PHRASES = (
    "starting at",
    "newer than",
    "more than",
    "at least",
    "minimum",
    "above",
    "after",
    "since",
    "over",
    "from",
    "min",
)
_UPPER_SUFFIXES = ("or older", "or earlier", "or less", "or cheaper", "or below", "max")
_LOWER_SUFFIXES = ("or newer", "or later", "and newer", "and up", "or more", "or above", "plus", "+")

# Strict comparisons shift year bounds by one ("after 2018" means 2019 and later).
_EXCLUSIVE_YEAR_PHRASES = {"after": 1, "newer than": 1, "before": -1, "older than": -1}
# Phrases that keep a year-like bare number ("from 2018") a model year; after any other phrase
# ("under 2000") the number is read as a price.
_YEAR_PHRASES = frozenset(
    {
        "after", "since", "from", "before", "until", "newer than", "older than",
        "or newer", "or later", "and newer", "or older", "or earlier", "+",
    }
)


def _alternation(phrases: tuple[str, ...]) -> str:
    parts = sorted(phrases, key=lambda p: (-len(p), p))
    return "|".join(re.escape(p) for p in parts)


def _quantity(name: str) -> str:
    """Regex fragment for an amount with optional currency, k/m multiplier and mileage unit."""

    cur = re.escape(CURRENCY_TOKEN)
    units = _alternation(_MILEAGE_UNITS)
    return (
        rf"(?P<{name}_pre>{cur}\s?)?"
        rf"(?P<{name}>\d+(?:\.\d+)?)"
        rf"(?:\s?(?P<{name}_mult>k|m)(?![a-z]))?"
        rf"(?:\s?(?P<{name}_post>{cur})(?![a-z]))?"
        rf"(?:\s?(?P<{name}_unit>{units})(?![a-z]))?"
    )


_RANGE_RE = re.compile(
    rf"(?<![\w.])(?:(?:between|from)\s)?{_quantity('a')}\s?(?:and|to|-)\s?{_quantity('b')}(?![\w.])"
)
_PREFIX_RE = re.compile(
    rf"(?<![\w.])(?P<cmp>{_alternation(_UPPER_PHRASES + _LOWER_PHRASES)})\s{_quantity('v')}(?![\w.])"
)
_SUFFIX_RE = re.compile(
    rf"(?<![\w.]){_quantity('v')}\s?(?P<cmp>{_alternation(_UPPER_SUFFIXES + _LOWER_SUFFIXES)})(?![\w])"
)
_BARE_YEAR_RE = re.compile(r"(?<![\w.])(?P<y>(?:19|20)\d\d)(?![\w.])")
_LOW_MILEAGE_RE = re.compile(r"(?<![\w])low (?:mileage|miles|km)(?![\w])")


@dataclass(frozen=True)
class _Quantity:
    value: float
    kind: QuantityKind | None
    has_multiplier: bool


@dataclass
class _Bounds:
    price_min: float | None = None
    price_max: float | None = None
    mileage_min: float | None = None
    mileage_max: float | None = None
    year_min: int | None = None
    year_max: int | None = None


def _max_plausible_year() -> int:
    return date.today().year + 1


def _is_year_value(value: float) -> bool:
    return value.is_integer() and _MIN_YEAR <= value <= _max_plausible_year()


def _read_quantity(match: re.Match[str], name: str) -> _Quantity:
    value = float(match.group(name))
    mult = match.group(f"{name}_mult")
    if mult == "k":
        value *= 1_000
    elif mult == "m":
        value *= 1_000_000

    kind: QuantityKind | None
    if match.group(f"{name}_unit"):
        kind = "mileage"
    elif match.group(f"{name}_pre") or match.group(f"{name}_post") or mult:
        kind = "price"
    elif _is_year_value(value):
        kind = "year"
    else:
        kind = None
    return _Quantity(value=value, kind=kind, has_multiplier=mult is not None)


def _consume(text: str, start: int, end: int) -> str:
    """Blank out a matched span so later patterns cannot match it again (indices are kept)."""

    return text[:start] + " " * (end - start) + text[end:]


def _consume_term(text: str, match: TermMatch | None) -> str:
    if match is None:
        return text
    return _consume(text, match.start, match.end)


def _assign(bounds: _Bounds, kind: QuantityKind, side: Literal["min", "max"], value: float) -> None:
    if kind == "year":
        setattr(bounds, f"year_{side}", int(value))
    else:
        setattr(bounds, f"{kind}_{side}", value)


def _parse_ranges(text: str, bounds: _Bounds) -> str:
    for m in list(_RANGE_RE.finditer(text)):
        a = _read_quantity(m, "a")
        b = _read_quantity(m, "b")

        # "between 20 and 30k": the multiplier of the upper bound applies to both ends.
        a_value = a.value
        if not a.has_multiplier and b.has_multiplier and a_value * 1_000 <= b.value:
            multiplier = 1_000_000 if m.group("b_mult") == "m" else 1_000
            a_value *= multiplier

        kind = a.kind or b.kind
        if b.kind == "mileage" or a.kind == "mileage":
            kind = "mileage"
        elif b.kind == "price" or a.kind == "price":
            kind = "price"
        elif kind is None:
            kind = "price"
        if kind == "year" and not (_is_year_value(a_value) and _is_year_value(b.value)):
            continue

        low, high = sorted((a_value, b.value))
        _assign(bounds, kind, "min", low)
        _assign(bounds, kind, "max", high)
        text = _consume(text, m.start(), m.end())
    return text


def _parse_comparisons(text: str, bounds: _Bounds) -> str:
    upper = set(_UPPER_PHRASES) | set(_UPPER_SUFFIXES)
    for pattern in (_PREFIX_RE, _SUFFIX_RE):
        for m in list(pattern.finditer(text)):
            q = _read_quantity(m, "v")
            phrase = m.group("cmp")
            kind = q.kind or "price"
            if kind == "year" and phrase not in _YEAR_PHRASES:
                kind = "price"
            value = q.value
            if kind == "year":
                value += _EXCLUSIVE_YEAR_PHRASES.get(phrase, 0)
            side: Literal["min", "max"] = "max" if phrase in upper else "min"
            _assign(bounds, kind, side, value)
            text = _consume(text, m.start(), m.end())
    return text


def _parse_bare_year(text: str, bounds: _Bounds) -> str:
    if bounds.year_min is not None or bounds.year_max is not None:
        return text
    m = _BARE_YEAR_RE.search(text)
    if m is None or not _is_year_value(float(m.group("y"))):
        return text
    year = int(m.group("y"))
    bounds.year_min = year
    bounds.year_max = year
    return _consume(text, m.start(), m.end())


def _extract_terms(text: str) -> tuple[dict[str, Any], str]:
    found: dict[str, Any] = {}

    make_match = find_make(text)
    make = make_match.value if make_match else None

    model_hit = find_model(text, make=make)
    if model_hit is not None:
        model_make, model_match = model_hit
        found["model"] = model_match.value
        make = make or model_make
        text = _consume_term(text, model_match)

    if make is not None:
        found["make"] = make
    text = _consume_term(text, make_match)

    for field, finder in (
            ("body_type", find_body_type),
            ("fuel_type", find_fuel_type),
            ("transmission", find_transmission),
            ("condition", find_condition),
    ):
        match = finder(text)
        if match is None:
            continue
        found[field] = match.value
        text = _consume_term(text, match)

    return found, text


def confidence_for(filters: ParsedFilters) -> float:
    """Heuristic confidence: more recognized fields means a more specific, better-understood query."""

    return round(min(0.9, 0.4 + 0.15 * len(filters.present())), 2)


def parse_filters(text: str) -> ParsedFilters:
    """Parse an input string into validated `ParsedFilters`.

    Raises:
        RulesParserError: If the input is empty or no filter could be recognized.
    """

    normalized = normalize_text(text)
    if not normalized:
        raise RulesParserError("empty input")

    found, remaining = _extract_terms(normalized)

    bounds = _Bounds()
    remaining = _parse_ranges(remaining, bounds)
    remaining = _parse_comparisons(remaining, bounds)
    remaining = _parse_bare_year(remaining, bounds)

    if bounds.mileage_max is None and _LOW_MILEAGE_RE.search(remaining):
        bounds.mileage_max = _LOW_MILEAGE_MAX

    found.update({k: v for k, v in vars(bounds).items() if v is not None})
    if not found:
        raise RulesParserError("no recognizable filters")

    try:
        return ParsedFilters.model_validate(found)
    except ValueError as exc:
        raise RulesParserError(str(exc)) from exc
