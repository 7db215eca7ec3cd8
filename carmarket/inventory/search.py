"""Inventory reads and search tracking writes.

All SQL comes from the allowlisting builder or from the constant statements below; values are
always bound parameters.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from psycopg import AsyncConnection
from psycopg.types.json import Jsonb

from carmarket.db.query import execute, fetch_all_dicts, fetch_scalar_int
from carmarket.inventory.schema import (
    CarMake,
    CarModel,
    InventoryQuery,
    Listing,
    ResultPage,
    SearchEvent,
)
from carmarket.sql.builder import build_search_query

logger = logging.getLogger(__name__)

_LIST_MAKES_SQL = "SELECT id, name FROM car_makes ORDER BY name ASC"
_LIST_MODELS_SQL = "SELECT id, make_id, name FROM car_models WHERE make_id = %s ORDER BY name ASC"
_INSERT_SEARCH_EVENT_SQL = (
    "INSERT INTO search_events (session_id, make_id, model_id, filters, clicked_listing_id) "
    "VALUES (%s, %s, %s, %s, %s)"
)


async def search_inventory(conn: AsyncConnection, query: InventoryQuery) -> ResultPage:
    """Run one filtered, sorted, paginated search.

    The total `count` is exact and independent of the page window. An empty page is a normal
    result. DB errors propagate to the caller.
    """

    built = build_search_query(query)

    rows: list[dict[str, Any]] = await fetch_all_dicts(conn, built.rows.sql, built.rows.params)
    count = await fetch_scalar_int(conn, built.count.sql, built.count.params)

    if not rows and query.page == 1:
        logger.info("search matched nothing filters=%s", _active_filters(query))

    return ResultPage(
        data=[Listing.model_validate(row) for row in rows],
        count=count,
        page=query.page,
        limit=query.limit,
    )


def _active_filters(query: InventoryQuery) -> dict[str, Any]:
    return query.model_dump(
        exclude_none=True,
        exclude={"page", "limit", "sort_by", "sort_order"},
    )


async def list_makes(conn: AsyncConnection) -> list[CarMake]:
    """Return every make in the lookup catalog, ordered by name."""

    rows = await fetch_all_dicts(conn, _LIST_MAKES_SQL)
    return [CarMake.model_validate(row) for row in rows]


async def list_models(conn: AsyncConnection, make_id: UUID) -> list[CarModel]:
    """Return the models of one make, ordered by name."""

    rows = await fetch_all_dicts(conn, _LIST_MODELS_SQL, (make_id,))
    return [CarModel.model_validate(row) for row in rows]


async def record_search_event(conn: AsyncConnection, event: SearchEvent) -> None:
    """Persist one tracked search interaction."""

    await execute(
        conn,
        _INSERT_SEARCH_EVENT_SQL,
        (
            event.session_id,
            event.make_id,
            event.model_id,
            Jsonb(event.filters),
            event.clicked_listing_id,
        ),
    )
