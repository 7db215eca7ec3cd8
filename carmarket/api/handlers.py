"""HTTP request handlers.

Hard contract: every request produces a JSON body. Failures are converted into a fixed error
envelope at the handler boundary and logged internally; exception details never reach the client.
"""

from __future__ import annotations

import asyncio
import logging
from time import monotonic
from typing import Any
from uuid import UUID

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from carmarket.app import App
from carmarket.db.pool import get_conn
from carmarket.intent.llm_parser import llm_config_from_settings
from carmarket.intent.parser import IntentParserError, parse_filters_with_source
from carmarket.intent.schema import IntentReply, IntentRequest
from carmarket.inventory.schema import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    InvalidQuery,
    SearchEvent,
    error_details,
    validate_query,
)
from carmarket.inventory.search import (
    list_makes,
    list_models,
    record_search_event,
    search_inventory,
)

logger = logging.getLogger(__name__)

INVALID_QUERY_ERROR = "Invalid query parameters"
SEARCH_FAILED_ERROR = "Failed to fetch inventory"
INTERNAL_ERROR = "Internal server error"


def _container(request: Request) -> App:
    return request.app.state.container


def _latency_ms(started: float) -> int:
    return int((monotonic() - started) * 1000)


def _empty_page(
        *,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_LIMIT,
        error: str,
) -> dict[str, Any]:
    return {"data": [], "count": 0, "page": page, "limit": limit, "error": error}


def _failure(status_code: int, error: str, **extra: Any) -> JSONResponse:
    return JSONResponse({"success": False, "error": error, **extra}, status_code=status_code)


async def handle_inventory(request: Request) -> JSONResponse:
    """`GET /api/inventory`: validate the query string, run the search, return one page."""

    started = monotonic()

    # noinspection PyBroadException
    try:
        # Repeated keys: the last value wins.
        validation = validate_query(dict(request.query_params))
    except Exception:
        logger.exception("inventory request failed before validation")
        return JSONResponse(_empty_page(error=INTERNAL_ERROR), status_code=500)

    if isinstance(validation, InvalidQuery):
        logger.info("invalid inventory query fields=%s", ",".join(sorted(validation.details)))
        body = _empty_page(error=INVALID_QUERY_ERROR)
        body["details"] = validation.details
        return JSONResponse(body, status_code=400)

    query = validation.query

    # noinspection PyBroadException
    try:
        async with get_conn(_container(request).pool) as conn:
            result = await search_inventory(conn, query)
    except Exception:
        # Handler boundary: DB and builder errors become an empty 500 page.
        logger.exception("inventory search failed page=%d limit=%d", query.page, query.limit)
        return JSONResponse(
            _empty_page(page=query.page, limit=query.limit, error=SEARCH_FAILED_ERROR),
            status_code=500,
        )

    logger.info(
        "inventory count=%d page=%d limit=%d returned=%d latency_ms=%d",
        result.count,
        result.page,
        result.limit,
        len(result.data),
        _latency_ms(started),
    )
    return JSONResponse(result.model_dump(mode="json"))


async def handle_ai_intent(request: Request) -> JSONResponse:
    """`POST /api/ai-intent`: map free text onto partial search filters."""

    started = monotonic()
    app = _container(request)

    try:
        payload = IntentRequest.model_validate(await request.json())
    except (ValueError, ValidationError):
        return _failure(400, "Invalid request body")

    text = payload.user_input.strip()
    if not text:
        return _failure(400, "User input is required")

    # noinspection PyBroadException
    try:
        result = await asyncio.to_thread(
            parse_filters_with_source,
            text,
            llm=llm_config_from_settings(app.settings),
        )
    except IntentParserError as exc:
        logger.info("intent not understood reason=%s latency_ms=%d", exc, _latency_ms(started))
        return _failure(422, "Could not understand the search request")
    except Exception:
        logger.exception("intent mapping failed")
        return _failure(500, "Failed to process search request")

    reply = IntentReply(
        parsed_filters=result.filters,
        confidence=result.confidence,
        source=result.source,
    )
    logger.info(
        "intent source=%s fields=%s confidence=%.2f latency_ms=%d",
        result.source,
        ",".join(sorted(result.filters.present())),
        result.confidence,
        _latency_ms(started),
    )
    return JSONResponse(reply.model_dump(mode="json", exclude_none=True))


async def handle_car_makes(request: Request) -> JSONResponse:
    """`GET /api/car-makes`: the make catalog ordered by name."""

    # noinspection PyBroadException
    try:
        async with get_conn(_container(request).pool) as conn:
            makes = await list_makes(conn)
    except Exception:
        logger.exception("listing makes failed")
        return JSONResponse({"error": "Failed to fetch car makes"}, status_code=500)

    return JSONResponse([make.model_dump(mode="json") for make in makes])


async def handle_car_models(request: Request) -> JSONResponse:
    """`GET /api/car-models?make_id=`: the models of one make ordered by name."""

    raw_make_id = (request.query_params.get("make_id") or "").strip()
    if not raw_make_id:
        return JSONResponse({"error": "make_id is required"}, status_code=400)
    try:
        make_id = UUID(raw_make_id)
    except ValueError:
        return JSONResponse({"error": "make_id must be a valid UUID"}, status_code=400)

    # noinspection PyBroadException
    try:
        async with get_conn(_container(request).pool) as conn:
            models = await list_models(conn, make_id)
    except Exception:
        logger.exception("listing models failed make_id=%s", make_id)
        return JSONResponse({"error": "Failed to fetch car models"}, status_code=500)

    return JSONResponse([model.model_dump(mode="json") for model in models])


async def handle_track_search(request: Request) -> JSONResponse:
    """`POST /api/track/search`: persist one search interaction."""

    try:
        event = SearchEvent.model_validate(await request.json())
    except ValidationError as exc:
        return _failure(400, "Invalid search event", details=error_details(exc))
    except ValueError:
        return _failure(400, "Invalid request body")

    # noinspection PyBroadException
    try:
        async with get_conn(_container(request).pool) as conn:
            await record_search_event(conn, event)
    except Exception:
        logger.exception("tracking search failed session_id=%s", event.session_id)
        return _failure(500, "Failed to track search")

    return JSONResponse({"success": True}, status_code=201)


async def handle_health(_request: Request) -> JSONResponse:
    """`GET /health`: liveness probe (does not touch the database)."""

    return JSONResponse({"status": "healthy"})
