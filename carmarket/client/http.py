"""Async HTTP client for the marketplace API (httpx)."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import TracebackType
from typing import Any
from uuid import UUID

import httpx
from pydantic import ValidationError

from carmarket.intent.schema import IntentReply
from carmarket.inventory.schema import CarMake, CarModel, ResultPage, SearchEvent

logger = logging.getLogger(__name__)


class ClientError(RuntimeError):
    """Raised when an API call fails (transport error, non-2xx status or malformed body)."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InventoryClient:
    """Thin wrapper over `httpx.AsyncClient` for the inventory page's API calls."""

    def __init__(
            self,
            base_url: str = "http://localhost:8000",
            *,
            timeout_s: float = 10.0,
            transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._http = httpx.AsyncClient(base_url=base_url, timeout=timeout_s, transport=transport)

    async def __aenter__(self) -> InventoryClient:
        return self

    async def __aexit__(
            self,
            exc_type: type[BaseException] | None,
            exc: BaseException | None,
            tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise ClientError(f"{method} {path} failed: {exc.__class__.__name__}") from exc

        if response.is_error:
            raise ClientError(_error_message(response), status_code=response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            raise ClientError(
                f"{method} {path} returned invalid JSON",
                status_code=response.status_code,
            ) from exc

    async def search(self, params: Mapping[str, str]) -> ResultPage:
        """`GET /api/inventory` with already-translated query parameters."""

        body = await self._request("GET", "/api/inventory", params=dict(params))
        return _validate(ResultPage, body)

    async def map_intent(self, text: str) -> IntentReply:
        """`POST /api/ai-intent`: forward raw user text to the intent mapper."""

        body = await self._request("POST", "/api/ai-intent", json={"userInput": text})
        if isinstance(body, dict) and body.get("success") is False:
            raise ClientError(str(body.get("error") or "Intent mapping failed"))
        return _validate(IntentReply, body)

    async def list_makes(self) -> list[CarMake]:
        body = await self._request("GET", "/api/car-makes")
        return [_validate(CarMake, item) for item in _as_list(body)]

    async def list_models(self, make_id: UUID) -> list[CarModel]:
        body = await self._request("GET", "/api/car-models", params={"make_id": str(make_id)})
        return [_validate(CarModel, item) for item in _as_list(body)]

    async def track_search(self, event: SearchEvent) -> None:
        """`POST /api/track/search`."""

        await self._request("POST", "/api/track/search", json=event.model_dump(mode="json"))


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"HTTP {response.status_code}"


def _as_list(body: Any) -> list[Any]:
    if not isinstance(body, list):
        raise ClientError("Expected a JSON array")
    return body


def _validate(model: Any, body: Any) -> Any:
    try:
        return model.model_validate(body)
    except ValidationError as exc:
        raise ClientError(f"Unexpected {model.__name__} payload") from exc
