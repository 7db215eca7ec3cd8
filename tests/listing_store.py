"""In-memory stand-in for the `car_listings` table.

Evaluates the builder's `SearchPlan` (predicates, ordering, window) over plain dicts so search
semantics can be tested without Postgres.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from carmarket.inventory.schema import InventoryQuery, Listing, ResultPage
from carmarket.sql.builder import Predicate, PredicateOp, SearchPlan, plan_search

_BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


def make_listing(make: str, model: str, n: int = 0, **fields: Any) -> dict[str, Any]:
    """Build a listing row; `n` makes ids and `created_at` unique and ordered."""

    row: dict[str, Any] = {
        "id": str(uuid.UUID(int=n + 1)),
        "make": make,
        "model": model,
        "year": 2020,
        "price": 30_000.0,
        "mileage": 20_000,
        "fuel_type": "Gasoline",
        "transmission": "Automatic",
        "condition": "used",
        "body_type": "Sedan",
        "status": "available",
        "listing_type": "sale",
        "created_at": (_BASE_TIME + timedelta(hours=n)).isoformat(),
    }
    row.update(fields)
    return row


def _matches(row: dict[str, Any], predicate: Predicate) -> bool:
    value = row.get(predicate.column)
    if value is None:
        return False
    if predicate.op == PredicateOp.contains:
        return predicate.value.lower() in str(value).lower()
    if predicate.op == PredicateOp.eq:
        return str(value) == predicate.value
    if predicate.op == PredicateOp.gte:
        return value >= predicate.value
    return value <= predicate.value


class InMemoryInventory:
    def __init__(self, rows: list[dict[str, Any]]) -> None:
        self.rows = list(rows)

    def run(self, plan: SearchPlan) -> tuple[list[dict[str, Any]], int]:
        matched = [row for row in self.rows if all(_matches(row, p) for p in plan.predicates)]
        ordered = sorted(matched, key=lambda row: row[plan.sort_column], reverse=plan.descending)
        return ordered[plan.offset:plan.offset + plan.limit], len(matched)

    def page(self, query: InventoryQuery) -> ResultPage:
        rows, count = self.run(plan_search(query))
        return ResultPage(
            data=[Listing.model_validate(row) for row in rows],
            count=count,
            page=query.page,
            limit=query.limit,
        )

    async def search(self, _conn: Any, query: InventoryQuery) -> ResultPage:
        """Drop-in replacement for `carmarket.inventory.search.search_inventory`."""

        return self.page(query)
