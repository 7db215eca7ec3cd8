"""DB session configuration helpers.

Listing timestamps (`created_at`, `updated_at`) are stored as `timestamptz` and serialized back to
API clients; every pooled session is locked to UTC so the serialized offsets never depend on the
database server's configuration.
"""

from __future__ import annotations

from psycopg import AsyncConnection


async def ensure_utc(conn: AsyncConnection) -> None:
    """Set the current Postgres session timezone to UTC."""

    async with conn.cursor() as cur:
        await cur.execute("SET TIME ZONE 'UTC'", prepare=False)
    # `SET` starts a transaction when autocommit is disabled; commit so the pool doesn't see INTRANS.
    await conn.commit()
