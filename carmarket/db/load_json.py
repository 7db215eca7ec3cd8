"""Load a marketplace dataset JSON file into Postgres.

The dataset is a JSON object with the top-level keys `"makes"`, `"models"` and `"listings"`, each
holding a list of objects shaped like the corresponding table rows. `"makes"` and `"models"` may be
omitted.
"""

from __future__ import annotations

import argparse
import json
import logging
from collections.abc import Iterable
from pathlib import Path
from urllib.request import urlopen

from dotenv import load_dotenv

from carmarket.config.logging import configure_logging
from carmarket.db.connection import connect_utc, require_database_url
from carmarket.db.dataset_rows import (
    LISTING_INSERT_COLUMNS,
    iter_listing_rows,
    iter_make_rows,
    iter_model_rows,
)

logger = logging.getLogger(__name__)


def _load_json_bytes(*, path: str | None, url: str | None) -> bytes:
    if bool(path) == bool(url):
        raise ValueError("Exactly one of --path or --url must be provided")

    if path:
        return Path(path).read_bytes()

    assert url is not None
    with urlopen(url) as resp:  # noqa: S310 (controlled URL from CLI)
        return resp.read()


def _chunks(iterable: Iterable[tuple], size: int) -> Iterable[list[tuple]]:
    chunk: list[tuple] = []
    for item in iterable:
        chunk.append(item)
        if len(chunk) >= size:
            yield chunk
            chunk = []
    if chunk:
        yield chunk


def _listing_upsert_sql() -> str:
    columns = ", ".join(LISTING_INSERT_COLUMNS)
    placeholders = ", ".join("%s" for _ in LISTING_INSERT_COLUMNS)
    updates = ", ".join(
        f"{column} = EXCLUDED.{column}" for column in LISTING_INSERT_COLUMNS if column != "id"
    )
    return (
        f"INSERT INTO car_listings ({columns}) VALUES ({placeholders}) "
        f"ON CONFLICT (id) DO UPDATE SET {updates}, updated_at = NOW()"
    )


def load_dataset(*, path: str | None, url: str | None, truncate: bool, batch_size: int) -> None:
    """Load the dataset into the `car_makes`, `car_models` and `car_listings` tables."""

    if batch_size <= 0:
        raise ValueError("--batch-size must be a positive integer")

    load_dotenv(".env")
    database_url = require_database_url()

    payload = json.loads(_load_json_bytes(path=path, url=url))

    if (
            not isinstance(payload, dict)
            or "listings" not in payload
            or not isinstance(payload["listings"], list)
    ):
        raise ValueError(
            "Unexpected dataset format: expected object with key 'listings' containing a list"
        )

    makes: list[dict] = payload.get("makes", [])
    models: list[dict] = payload.get("models", [])
    listings: list[dict] = payload["listings"]

    with connect_utc(database_url) as conn:
        with conn.transaction():
            with conn.cursor() as cur:
                if truncate:
                    cur.execute(
                        "TRUNCATE search_events, car_listings, car_models, car_makes",
                        prepare=False,
                    )

                cur.executemany(
                    "INSERT INTO car_makes (id, name) VALUES (%s, %s) "
                    "ON CONFLICT (id) DO UPDATE SET name = EXCLUDED.name",
                    list(iter_make_rows(makes)),
                )
                cur.executemany(
                    "INSERT INTO car_models (id, make_id, name) VALUES (%s, %s, %s) "
                    "ON CONFLICT (id) DO UPDATE SET make_id = EXCLUDED.make_id, name = EXCLUDED.name",
                    list(iter_model_rows(models)),
                )

                upsert_sql = _listing_upsert_sql()
                for listing_batch in _chunks(iter_listing_rows(listings), batch_size):
                    cur.executemany(upsert_sql, listing_batch)

    logger.info(
        "dataset loaded makes=%d models=%d listings=%d",
        len(makes),
        len(models),
        len(listings),
    )


def main() -> None:
    """CLI entry point for loading a marketplace dataset into Postgres."""

    parser = argparse.ArgumentParser(description="Load a marketplace dataset into Postgres.")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--path", help="Path to the dataset JSON file (e.g. listings.json).")
    source.add_argument("--url", help="URL to download the dataset JSON.")
    parser.add_argument(
        "--truncate",
        action="store_true",
        help="TRUNCATE target tables before loading (destructive).",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=500,
        help="Number of listing rows per insert batch.",
    )
    args = parser.parse_args()

    configure_logging()
    load_dataset(
        path=args.path,
        url=args.url,
        truncate=args.truncate,
        batch_size=args.batch_size,
    )


if __name__ == "__main__":
    main()
