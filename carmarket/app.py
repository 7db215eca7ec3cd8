"""Application composition root.

This module wires together configuration, the DB pool and parser settings for the HTTP runtime.
"""

from __future__ import annotations

from dataclasses import dataclass

from psycopg_pool import AsyncConnectionPool

from carmarket.config.settings import Settings
from carmarket.db.pool import create_pool


@dataclass(frozen=True)
class App:
    """Shared application dependencies for request handlers."""

    settings: Settings
    pool: AsyncConnectionPool


def create_app(settings: Settings) -> App:
    """Create the application container.

    Note:
        The returned DB pool is not opened. The API lifespan calls `await app.pool.open()`.
    """

    pool = create_pool(settings.database_url, max_size=settings.db_pool_max_size)
    return App(settings=settings, pool=pool)
