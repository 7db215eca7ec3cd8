"""Inventory query schema (Pydantic models).

This schema is the contract between the HTTP boundary and the SQL builder. Raw query-string values
are coerced and validated in a single pass; invalid input never reaches the builder.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

ANY = "Any"

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 24
MAX_LIMIT = 100


class Condition(StrEnum):
    """Vehicle condition."""

    new = "new"
    used = "used"
    any = ANY


class ListingStatus(StrEnum):
    """Sale status of a listing."""

    available = "available"
    reserved = "reserved"
    sold = "sold"
    any = ANY


class ListingType(StrEnum):
    """Whether a listing is offered for sale, rent or both."""

    sale = "sale"
    rent = "rent"
    both = "both"
    any = ANY


class RentalStatus(StrEnum):
    """Rental availability of a listing."""

    available = "available"
    rented = "rented"
    maintenance = "maintenance"
    any = ANY


class SortField(StrEnum):
    """Allow-listed sort keys."""

    price = "price"
    year = "year"
    mileage = "mileage"
    created_at = "created_at"
    make = "make"
    model = "model"
    condition = "condition"
    status = "status"


class SortOrder(StrEnum):
    """Sort direction."""

    asc = "asc"
    desc = "desc"


_NUMERIC_FIELDS = (
    "year_from",
    "year_to",
    "price_min",
    "price_max",
    "mileage_min",
    "mileage_max",
    "page",
    "limit",
)
_ENUM_FIELDS = ("condition", "status", "listing_type", "rental_status", "sort_by", "sort_order")


class InventoryQuery(BaseModel):
    """Validated search parameters for the inventory endpoint.

    Unknown keys are kept as extras (forward compatibility) and ignored by the SQL builder.
    """

    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    make: str | None = None
    model: str | None = None
    fuel_type: str | None = None
    transmission: str | None = None
    body_type: str | None = None
    exterior_color: str | None = None
    interior_color: str | None = None
    engine: str | None = None
    vin: str | None = None
    location_city: str | None = None
    location_country: str | None = None

    condition: Condition | None = None
    status: ListingStatus | None = None
    listing_type: ListingType | None = None
    rental_status: RentalStatus | None = None

    year_from: int | None = Field(default=None, ge=0)
    year_to: int | None = Field(default=None, ge=0)
    price_min: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    price_max: float | None = Field(default=None, gt=0, allow_inf_nan=False)
    mileage_min: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    mileage_max: float | None = Field(default=None, ge=0, allow_inf_nan=False)

    page: int = Field(default=DEFAULT_PAGE, ge=1)
    limit: int = Field(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT)
    sort_by: SortField = Field(default=SortField.created_at, alias="sortBy")
    sort_order: SortOrder = Field(default=SortOrder.desc, alias="sortOrder")

    @field_validator(*_NUMERIC_FIELDS, *_ENUM_FIELDS, mode="before")
    @classmethod
    def blank_is_absent(cls, value: Any, info: ValidationInfo) -> Any:
        """Treat an empty query value (`?price_min=`) as if the key were absent."""

        if isinstance(value, str) and not value.strip():
            return cls.model_fields[info.field_name].default
        return value

    @property
    def offset(self) -> int:
        """Zero-based index of the first row of the requested page."""

        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class ValidQuery:
    """Successful validation result."""

    query: InventoryQuery
    ok: Literal[True] = True


@dataclass(frozen=True)
class InvalidQuery:
    """Failed validation result listing every invalid field."""

    details: dict[str, list[str]]
    ok: Literal[False] = False


QueryValidation = ValidQuery | InvalidQuery


def _error_path(loc: tuple[int | str, ...]) -> str:
    return ".".join(str(part) for part in loc) or "__root__"


def error_details(exc: ValidationError) -> dict[str, list[str]]:
    """Group pydantic errors by field path, keeping every message."""

    details: dict[str, list[str]] = {}
    for error in exc.errors(include_url=False):
        details.setdefault(_error_path(error["loc"]), []).append(error["msg"])
    return details


def validate_query(raw: Mapping[str, str]) -> QueryValidation:
    """Validate raw query-string parameters.

    Never raises: returns `ValidQuery` on success, or `InvalidQuery` whose `details` map each
    invalid field path to all of its messages.
    """

    try:
        return ValidQuery(query=InventoryQuery.model_validate(dict(raw)))
    except ValidationError as exc:
        return InvalidQuery(details=error_details(exc))


class Listing(BaseModel):
    """A vehicle record as returned by the search endpoint."""

    model_config = ConfigDict(extra="allow")

    id: UUID
    dealer_id: UUID | None = None
    make: str
    model: str
    year: int | None = None
    price: float | None = None
    mileage: int | None = None
    fuel_type: str | None = None
    transmission: str | None = None
    condition: Condition | None = None
    body_type: str | None = None
    status: ListingStatus | None = None
    listing_type: ListingType | None = None
    rental_status: RentalStatus | None = None
    exterior_color: str | None = None
    interior_color: str | None = None
    engine: str | None = None
    vin: str | None = None
    location_city: str | None = None
    location_country: str | None = None
    images: list[str] | None = None
    features: list[str] | None = None
    description: str | None = None
    rental_daily_price: float | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ResultPage(BaseModel):
    """One page of search results plus the total match count."""

    data: list[Listing] = Field(default_factory=list)
    count: int = 0
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT


class CarMake(BaseModel):
    """A make from the lookup catalog."""

    id: UUID
    name: str


class CarModel(BaseModel):
    """A model from the lookup catalog, owned by one make."""

    id: UUID
    make_id: UUID
    name: str


class SearchEvent(BaseModel):
    """A tracked search interaction posted by the client after a successful search."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    session_id: str = Field(min_length=1, max_length=128)
    make_id: UUID | None = None
    model_id: UUID | None = None
    filters: dict[str, Any] = Field(default_factory=dict)
    clicked_listing_id: UUID | None = None
