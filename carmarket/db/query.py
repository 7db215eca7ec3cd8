"""Safe DB query helpers.

These helpers never interpolate user values into SQL: every value is passed via `params`. DB errors
are not swallowed; callers decide how to report them.
"""

from __future__ import annotations

from typing import Any, LiteralString, cast

from psycopg import AsyncConnection
from psycopg.rows import dict_row


async def fetch_scalar_int(conn: AsyncConnection, sql: str, params: tuple[Any, ...] = ()) -> int:
    """Execute a scalar query and return an `int`.

    Returns `0` if the query yields no rows or the first column is NULL.
    """

    async with conn.cursor() as cur:
        await cur.execute(cast(LiteralString, sql), params)
        row = await cur.fetchone()

    if not row:
        return 0

    value = row[0]
    if value is None:
        return 0

    return int(value)


async def fetch_all_dicts(
        conn: AsyncConnection,
        sql: str,
        params: tuple[Any, ...] = (),
) -> list[dict[str, Any]]:
    """Execute a query and return every row as a column-name -> value mapping."""

    async with conn.cursor(row_factory=dict_row) as cur:
        await cur.execute(cast(LiteralString, sql), params)
        return await cur.fetchall()


async def execute(conn: AsyncConnection, sql: str, params: tuple[Any, ...] = ()) -> None:
    """Execute a statement that returns no rows (the caller owns the transaction)."""

    async with conn.cursor() as cur:
        await cur.execute(cast(LiteralString, sql), params)
