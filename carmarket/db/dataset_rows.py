"""Dataset-to-row conversion helpers.

Both the JSON dataset loader and the Postgres integration tests convert a parsed dataset payload
(`makes`, `models`, `listings`) into row tuples matching the `car_makes`, `car_models` and
`car_listings` tables.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

LISTING_INSERT_COLUMNS: tuple[str, ...] = (
    "id",
    "dealer_id",
    "make",
    "model",
    "year",
    "price",
    "mileage",
    "fuel_type",
    "transmission",
    "condition",
    "body_type",
    "status",
    "listing_type",
    "rental_status",
    "location_city",
    "location_country",
    "images",
    "description",
    "created_at",
)


def _optional_int(value: Any) -> int | None:
    return None if value is None else int(value)


def iter_make_rows(makes: Sequence[dict[str, Any]]) -> Iterable[tuple[Any, ...]]:
    """Yield row tuples for inserting into the `car_makes` table."""

    for make in makes:
        yield str(make["id"]), str(make["name"])


def iter_model_rows(models: Sequence[dict[str, Any]]) -> Iterable[tuple[Any, ...]]:
    """Yield row tuples for inserting into the `car_models` table."""

    for model in models:
        yield str(model["id"]), str(model["make_id"]), str(model["name"])


def iter_listing_rows(listings: Sequence[dict[str, Any]]) -> Iterable[tuple[Any, ...]]:
    """Yield row tuples (in `LISTING_INSERT_COLUMNS` order) for the `car_listings` table."""

    for listing in listings:
        yield (
            str(listing["id"]),
            listing.get("dealer_id"),
            str(listing["make"]),
            str(listing["model"]),
            _optional_int(listing.get("year")),
            listing.get("price"),
            _optional_int(listing.get("mileage")),
            listing.get("fuel_type"),
            listing.get("transmission"),
            listing.get("condition", "used"),
            listing.get("body_type"),
            listing.get("status", "available"),
            listing.get("listing_type", "sale"),
            listing.get("rental_status"),
            listing.get("location_city"),
            listing.get("location_country"),
            listing.get("images"),
            listing.get("description"),
            listing["created_at"],
        )
