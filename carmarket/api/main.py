"""HTTP API process entrypoint."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from carmarket.api.router import router
from carmarket.app import App, create_app
from carmarket.config.logging import configure_logging
from carmarket.config.settings import Settings, load_settings

logger = logging.getLogger(__name__)


def create_api(settings: Settings, *, container: App | None = None) -> FastAPI:
    """Build the FastAPI application.

    Notes:
        - The DB pool is opened on startup and closed on shutdown by the lifespan.
        - `container` lets callers supply pre-built dependencies (tests pass fakes).
    """

    app = container or create_app(settings)

    @asynccontextmanager
    async def lifespan(_api: FastAPI) -> AsyncIterator[None]:
        await app.pool.open(wait=True)
        logger.info("api started llm_enabled=%s", app.settings.llm_enabled)
        try:
            yield
        finally:
            logger.info("shutting down")
            await app.pool.close()

    api = FastAPI(title="carmarket", version="0.1.0", lifespan=lifespan)
    api.state.container = app
    api.include_router(router)
    return api


def main() -> None:
    """Serve the API with uvicorn."""

    settings = load_settings()
    configure_logging(settings.log_level)

    api = create_api(settings)
    uvicorn.run(api, host=settings.api_host, port=settings.api_port, log_config=None)


if __name__ == "__main__":
    main()
