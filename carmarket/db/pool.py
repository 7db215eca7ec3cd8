"""Async Postgres connection pool shared by the API handlers (psycopg3).

New connections are configured by `ensure_utc`, so every pooled session reports timestamps in UTC.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from psycopg import AsyncConnection
from psycopg_pool import AsyncConnectionPool

from carmarket.db.session import ensure_utc

POOL_NAME = "carmarket"


def create_pool(
        database_url: str,
        *,
        min_size: int = 1,
        max_size: int | None = None,
        timeout: float = 30.0,
) -> AsyncConnectionPool:
    """Create the (closed) listing database pool.

    The API lifespan opens it with `await pool.open(wait=True)` and closes it on shutdown, so a
    misconfigured `DATABASE_URL` fails at startup rather than on the first search.
    """

    return AsyncConnectionPool(
        conninfo=database_url,
        min_size=min_size,
        max_size=max_size,
        timeout=timeout,
        name=POOL_NAME,
        open=False,
        configure=ensure_utc,
    )


@asynccontextmanager
async def get_conn(pool: AsyncConnectionPool) -> AsyncIterator[AsyncConnection]:
    """Borrow a connection; its transaction is committed on clean exit and rolled back on error."""

    async with pool.connection() as conn:
        yield conn
