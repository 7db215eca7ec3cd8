"""Allowlisted SQL identifiers.

All column names referenced in generated SQL must come from these mappings; no user-provided
identifier should ever be interpolated into SQL.
"""

from __future__ import annotations

from carmarket.inventory.schema import SortField

LISTINGS_TABLE = "car_listings"

LISTING_COLUMNS: tuple[str, ...] = (
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
    "exterior_color",
    "interior_color",
    "engine",
    "vin",
    "location_city",
    "location_country",
    "images",
    "features",
    "description",
    "rental_daily_price",
    "created_at",
    "updated_at",
)

# Query field -> column matched case-insensitively as a substring.
SUBSTRING_COLUMNS: dict[str, str] = {
    "make": "make",
    "model": "model",
}

# Query field -> column matched by equality.
EQUALITY_COLUMNS: dict[str, str] = {
    "fuel_type": "fuel_type",
    "transmission": "transmission",
    "body_type": "body_type",
    "exterior_color": "exterior_color",
    "interior_color": "interior_color",
    "engine": "engine",
    "vin": "vin",
    "location_city": "location_city",
    "location_country": "location_country",
    "condition": "condition",
    "status": "status",
    "listing_type": "listing_type",
    "rental_status": "rental_status",
}

# Column -> (lower bound field, upper bound field); both bounds are inclusive.
RANGE_COLUMNS: dict[str, tuple[str, str]] = {
    "year": ("year_from", "year_to"),
    "price": ("price_min", "price_max"),
    "mileage": ("mileage_min", "mileage_max"),
}

SORT_COLUMNS: dict[SortField, str] = {
    SortField.price: "price",
    SortField.year: "year",
    SortField.mileage: "mileage",
    SortField.created_at: "created_at",
    SortField.make: "make",
    SortField.model: "model",
    SortField.condition: "condition",
    SortField.status: "status",
}
