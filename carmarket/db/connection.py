"""Shared Postgres connection helpers used by the CLI tools (migrations, dataset loading)."""

from __future__ import annotations

import os

import psycopg


def require_database_url() -> str:
    """Read `DATABASE_URL` from the environment or raise a clear error."""

    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        raise RuntimeError("DATABASE_URL is required (set it in .env or environment)")
    return database_url


def connect_utc(database_url: str) -> psycopg.Connection:
    """Open a synchronous connection with the session timezone locked to UTC."""

    conn = psycopg.connect(database_url)
    conn.execute("SET TIME ZONE 'UTC'", prepare=False)
    return conn
