"""Client-side filter set, sort option and the state owned by the filter controller.

A `FilterSet` is the browser's view of the active constraints. Categorical fields hold a concrete
value or the `Any` sentinel; numeric bounds hold a value or `None`. A bound sitting at (or past) its
slider edge carries no constraint and is normalized to `None`, so two filter sets that produce the
same search compare equal.
"""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from carmarket.inventory.schema import ANY, SortField, SortOrder

# Slider edges of the inventory page.
YEAR_EDGES: tuple[int, int] = (2010, 2024)
PRICE_EDGES: tuple[float, float] = (0, 150_000)
MILEAGE_EDGES: tuple[float, float] = (0, 100_000)

FUEL_TYPES: tuple[str, ...] = ("Gasoline", "Diesel", "Hybrid", "Electric")
TRANSMISSIONS: tuple[str, ...] = ("Automatic", "Manual", "CVT", "PDK")
BODY_TYPES: tuple[str, ...] = (
    "Sedan",
    "SUV",
    "Coupe",
    "Convertible",
    "Hatchback",
    "Wagon",
    "Truck",
    "Van",
)
CONDITIONS: tuple[str, ...] = ("new", "used")

CATEGORICAL_FIELDS: tuple[str, ...] = (
    "make",
    "model",
    "fuel_type",
    "transmission",
    "condition",
    "body_type",
)
# (lower field, upper field, slider edges)
RANGE_FIELDS: tuple[tuple[str, str, tuple[float, float]], ...] = (
    ("year_min", "year_max", YEAR_EDGES),
    ("price_min", "price_max", PRICE_EDGES),
    ("mileage_min", "mileage_max", MILEAGE_EDGES),
)
RANGE_PARTNER: dict[str, str] = {
    **{low: high for low, high, _ in RANGE_FIELDS},
    **{high: low for low, high, _ in RANGE_FIELDS},
}


def is_sentinel(value: Any) -> bool:
    """Whether a categorical value means "no constraint"."""

    return value is None or not str(value).strip() or str(value).strip().lower() == ANY.lower()


class FilterSet(BaseModel):
    """The active search constraints held by the client.

    Raises:
        ValueError: On construction, if any range pair is inverted (min > max).
    """

    model_config = ConfigDict(frozen=True)

    make: str = ANY
    model: str = ""
    fuel_type: str = ANY
    transmission: str = ANY
    condition: Literal["new", "used", "Any"] = ANY
    body_type: str = ANY

    year_min: int | None = Field(default=None, ge=0)
    year_max: int | None = Field(default=None, ge=0)
    price_min: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    price_max: float | None = Field(default=None, gt=0, allow_inf_nan=False)
    mileage_min: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    mileage_max: float | None = Field(default=None, ge=0, allow_inf_nan=False)

    @model_validator(mode="before")
    @classmethod
    def normalize_sentinels(cls, data: Any) -> Any:
        """Canonicalize "no constraint" values: sentinel casing, blanks and slider edges."""

        if not isinstance(data, dict):
            return data

        values = dict(data)
        for name in CATEGORICAL_FIELDS:
            if name not in values:
                continue
            raw = values[name]
            if is_sentinel(raw):
                values[name] = cls.model_fields[name].default
            elif isinstance(raw, str):
                values[name] = raw.strip()

        for low_name, high_name, (low_edge, high_edge) in RANGE_FIELDS:
            low = values.get(low_name)
            high = values.get(high_name)
            if _is_number(low) and low <= low_edge:
                values[low_name] = None
            if _is_number(high) and high >= high_edge:
                values[high_name] = None
        return values

    @model_validator(mode="after")
    def check_ranges(self) -> FilterSet:
        """Reject inverted range pairs."""

        for low_name, high_name, _ in RANGE_FIELDS:
            low = getattr(self, low_name)
            high = getattr(self, high_name)
            if low is not None and high is not None and low > high:
                raise ValueError(f"{low_name} must not exceed {high_name}")
        return self

    def effective_bounds(self, low_name: str) -> tuple[float, float]:
        """Bounds of a range pair with absent ends replaced by the slider edges."""

        for name, high_name, (low_edge, high_edge) in RANGE_FIELDS:
            if name == low_name:
                low = getattr(self, name)
                high = getattr(self, high_name)
                return (low_edge if low is None else low, high_edge if high is None else high)
        raise KeyError(low_name)

    def active(self) -> dict[str, Any]:
        """Only the constrained fields (used for tracking payloads and logs)."""

        return {
            name: value
            for name, value in self.model_dump().items()
            if value is not None and not (name in CATEGORICAL_FIELDS and is_sentinel(value))
        }


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


@dataclass(frozen=True)
class SortOption:
    """A sort field/direction pair; the wire form is `price-asc`."""

    field: SortField = SortField.created_at
    direction: SortOrder = SortOrder.desc

    @property
    def wire(self) -> str:
        return f"{self.field}-{self.direction}"

    @classmethod
    def parse(cls, value: str | None) -> SortOption:
        """Parse `field-direction`; anything unrecognized yields the default (newest first)."""

        field_name, _, direction = (value or "").rpartition("-")
        try:
            return cls(field=SortField(field_name), direction=SortOrder(direction))
        except ValueError:
            return cls()


DEFAULT_SORT = SortOption()

# Options offered by the sort dropdown.
SORT_CHOICES: tuple[SortOption, ...] = (
    SortOption(SortField.price, SortOrder.asc),
    SortOption(SortField.price, SortOrder.desc),
    SortOption(SortField.year, SortOrder.desc),
    SortOption(SortField.year, SortOrder.asc),
)


@dataclass(frozen=True)
class FilterState:
    """Everything that determines the current search: filters, sort and page."""

    filters: FilterSet = dataclasses.field(default_factory=FilterSet)
    sort: SortOption = DEFAULT_SORT
    page: int = 1
