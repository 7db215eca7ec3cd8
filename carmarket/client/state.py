"""Filter state transitions and the controller that owns them.

The reducers in this module are pure: they take a `FilterState` and return a new one.
`FilterController` is the single owner of the current state; it applies a reducer, mirrors the
result into the URL, and issues the search.

Searches are sequenced: every request gets a monotonically increasing number, and a response is
applied only if its number is still the latest issued. Overlapping requests are not cancelled.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any
from uuid import uuid4

from carmarket.client.filters import (
    RANGE_FIELDS,
    RANGE_PARTNER,
    FilterSet,
    FilterState,
    SortOption,
)
from carmarket.client.http import ClientError, InventoryClient
from carmarket.client.url import BrowserLocation, decode_query, encode_query, filters_to_params
from carmarket.intent.schema import ParsedFilters
from carmarket.inventory.schema import CarMake, CarModel, ResultPage, SearchEvent

logger = logging.getLogger(__name__)

SEARCH_ERROR_MESSAGE = "Failed to load vehicles. Please try again."
INTENT_ERROR_MESSAGE = "Failed to process your search"
EMPTY_INTENT_MESSAGE = "Please describe the car you are looking for."
HIGH_CONFIDENCE_MESSAGE = "Found exactly what you're looking for!"
LOW_CONFIDENCE_MESSAGE = "Found potential matches. You can adjust filters if needed."
HIGH_CONFIDENCE_THRESHOLD = 0.8

_LOWER_FIELDS = frozenset(low for low, _, _ in RANGE_FIELDS)


def state_from_url(query: str) -> FilterState:
    """Derive the full state from a query string (defaults for anything absent)."""

    filters, sort, page = decode_query(query)
    return FilterState(filters=filters, sort=sort, page=page)


def state_to_query(state: FilterState) -> str:
    return encode_query(filters_to_params(state.filters, state.sort, state.page))


def _clear_stale_model(previous: FilterSet, filters: FilterSet) -> FilterSet:
    if filters.make != previous.make and filters.model:
        return filters.model_copy(update={"model": ""})
    return filters


def apply_filter(state: FilterState, name: str, value: Any) -> FilterState:
    """Set one filter field.

    Rules:
        - A different make clears the model.
        - A bound that would cross its partner drags the partner along (min <= max holds).
        - Any change returns to the first page; an unchanged filter set returns `state` as is.

    Raises:
        KeyError: If `name` is not a filter field.
        ValueError: If `value` is not valid for the field.
    """

    if name not in FilterSet.model_fields:
        raise KeyError(name)

    current = state.filters
    data = current.model_dump()
    data[name] = value

    partner = RANGE_PARTNER.get(name)
    if partner is not None:
        # Validate the bound alone first; only then is it comparable with its partner.
        value = data[name] = getattr(FilterSet.model_validate({name: value}), name)
    if partner is not None and value is not None and data[partner] is not None:
        crosses = value > data[partner] if name in _LOWER_FIELDS else value < data[partner]
        if crosses:
            data[partner] = value

    filters = FilterSet.model_validate(data)
    if name == "make":
        filters = _clear_stale_model(current, filters)
    if filters == current:
        return state
    return FilterState(filters=filters, sort=state.sort, page=1)


def set_sort(state: FilterState, option: SortOption) -> FilterState:
    if option == state.sort:
        return state
    return FilterState(filters=state.filters, sort=option, page=1)


def set_page(state: FilterState, page: int) -> FilterState:
    if page < 1:
        raise ValueError("page must be >= 1")
    if page == state.page:
        return state
    return FilterState(filters=state.filters, sort=state.sort, page=page)


def reset_filters(state: FilterState) -> FilterState:
    """Back to the default filter set; the sort option is kept."""

    return FilterState(filters=FilterSet(), sort=state.sort, page=1)


def merge_intent(state: FilterState, parsed: ParsedFilters) -> FilterState:
    """Merge the fields an intent reply recognized; every other filter keeps its value.

    If the make changes and no model came with it, the model is cleared. A merged bound that
    inverts a range with a bound the reply did not mention replaces that bound.
    """

    present = parsed.present()
    current = state.filters
    data = current.model_dump()
    data.update(present)

    for low_name, high_name, _ in RANGE_FIELDS:
        low = data[low_name]
        high = data[high_name]
        if low is None or high is None or low <= high:
            continue
        stale = high_name if low_name in present else low_name
        data[stale] = None

    filters = FilterSet.model_validate(data)
    if "model" not in present:
        filters = _clear_stale_model(current, filters)
    return FilterState(filters=filters, sort=state.sort, page=1)


class SearchPhase(StrEnum):
    """Phase of the search cycle."""

    idle = "idle"
    loading = "loading"


@dataclass(frozen=True)
class SearchState:
    """Outcome of the latest search as shown by the results grid."""

    phase: SearchPhase = SearchPhase.idle
    results: ResultPage | None = None
    error: str | None = None


class FilterController:
    """Owns the filter state and keeps the URL, the results and the lookups consistent with it."""

    def __init__(
            self,
            client: InventoryClient,
            location: BrowserLocation,
            *,
            session_id: str | None = None,
    ) -> None:
        self._client = client
        self._location = location
        self._latest_seq = 0
        self._pending: set[asyncio.Task[None]] = set()
        self._unsubscribe: Callable[[], None] | None = None

        self.session_id = session_id or uuid4().hex
        self.state = FilterState()
        self.search = SearchState()
        self.makes: list[CarMake] = []
        self.models: list[CarModel] = []
        self.intent_loading = False
        self.intent_message: str | None = None
        self.intent_error: str | None = None

    # lifecycle

    async def start(self) -> None:
        """Load state from the URL, start listening for navigation, then search and load lookups."""

        self.state = state_from_url(self._location.query)
        self._unsubscribe = self._location.subscribe(self._on_navigation)
        await asyncio.gather(self._run_search(), self.load_makes())
        await self._load_models()

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def wait_idle(self) -> None:
        """Wait for searches scheduled by navigation events; their failures are logged, not raised."""

        while self._pending:
            tasks = list(self._pending)
            await asyncio.gather(*tasks, return_exceptions=True)
            self._pending.difference_update(tasks)

    # transitions

    async def apply_filter(self, name: str, value: Any) -> None:
        await self._commit(apply_filter(self.state, name, value))

    async def set_sort(self, option: SortOption) -> None:
        await self._commit(set_sort(self.state, option))

    async def set_page(self, page: int) -> None:
        await self._commit(set_page(self.state, page))

    async def reset_filters(self) -> None:
        await self._commit(reset_filters(self.state))

    async def sync_from_url(self) -> None:
        """Resynchronize from the URL if it no longer matches the in-memory state."""

        derived = state_from_url(self._location.query)
        if derived == self.state:
            return
        logger.debug("url changed outside the controller; resyncing")
        await self._commit(derived)

    async def retry(self) -> None:
        """Re-issue the current search (the "Try Again" action)."""

        await self._run_search()

    def dismiss_intent_error(self) -> None:
        self.intent_error = None

    async def apply_intent(self, text: str) -> None:
        """Ask the intent mapper for filters and merge them.

        Failures only set `intent_error`; filters and search state stay untouched.
        """

        self.intent_error = None
        self.intent_message = None
        text = (text or "").strip()
        if not text:
            self.intent_error = EMPTY_INTENT_MESSAGE
            return

        self.intent_loading = True
        try:
            reply = await self._client.map_intent(text)
        except ClientError as exc:
            logger.warning("intent mapping failed status=%s error=%s", exc.status_code, exc)
            self.intent_error = str(exc) if exc.status_code is not None else INTENT_ERROR_MESSAGE
            return
        finally:
            self.intent_loading = False

        try:
            merged = merge_intent(self.state, reply.parsed_filters)
        except ValueError as exc:
            logger.warning("intent filters rejected error=%s", exc)
            self.intent_error = INTENT_ERROR_MESSAGE
            return

        if reply.confidence > HIGH_CONFIDENCE_THRESHOLD:
            self.intent_message = HIGH_CONFIDENCE_MESSAGE
        else:
            self.intent_message = LOW_CONFIDENCE_MESSAGE
        await self._commit(merged, force=True)

    # lookups

    async def load_makes(self) -> None:
        try:
            self.makes = await self._client.list_makes()
        except ClientError as exc:
            logger.warning("loading makes failed error=%s", exc)
            self.makes = []

    def _find_make(self, name: str) -> CarMake | None:
        wanted = name.strip().casefold()
        for make in self.makes:
            if make.name.casefold() == wanted:
                return make
        return None

    def _find_model(self, name: str) -> CarModel | None:
        wanted = name.strip().casefold()
        for model in self.models:
            if model.name.casefold() == wanted:
                return model
        return None

    async def _load_models(self) -> None:
        make_name = self.state.filters.make
        make = self._find_make(make_name)
        if make is None:
            self.models = []
            return

        try:
            models = await self._client.list_models(make.id)
        except ClientError as exc:
            logger.warning("loading models failed make=%s error=%s", make.name, exc)
            models = []

        if self.state.filters.make == make_name:
            self.models = models

    # internals

    def _on_navigation(self, _query: str) -> None:
        task = asyncio.get_running_loop().create_task(self.sync_from_url())
        self._pending.add(task)
        task.add_done_callback(self._navigation_done)

    def _navigation_done(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("url resync failed query=%s", self._location.query, exc_info=exc)

    async def _commit(self, new_state: FilterState, *, force: bool = False) -> None:
        previous = self.state
        if new_state == previous and not force:
            return

        self.state = new_state
        self._location.replace(state_to_query(new_state))

        if new_state.filters.make != previous.filters.make:
            await asyncio.gather(self._run_search(), self._load_models())
        else:
            await self._run_search()

    async def _run_search(self) -> None:
        self._latest_seq += 1
        seq = self._latest_seq
        state = self.state
        self.search = SearchState(phase=SearchPhase.loading, results=self.search.results)

        params = filters_to_params(state.filters, state.sort, state.page)
        try:
            page = await self._client.search(params)
        except ClientError as exc:
            if seq != self._latest_seq:
                logger.debug(
                    "discarding stale search failure seq=%d latest=%d", seq, self._latest_seq
                )
                return
            logger.warning("search failed seq=%d status=%s error=%s", seq, exc.status_code, exc)
            self.search = SearchState(phase=SearchPhase.idle, error=SEARCH_ERROR_MESSAGE)
            return

        if seq != self._latest_seq:
            logger.debug("discarding stale search response seq=%d latest=%d", seq, self._latest_seq)
            return

        self.search = SearchState(phase=SearchPhase.idle, results=page)
        await self._track(state)

    async def _track(self, state: FilterState) -> None:
        make = self._find_make(state.filters.make)
        model = self._find_model(state.filters.model) if state.filters.model else None
        event = SearchEvent(
            session_id=self.session_id,
            make_id=make.id if make else None,
            model_id=model.id if model else None,
            filters=state.filters.active(),
        )
        try:
            await self._client.track_search(event)
        except ClientError as exc:
            logger.warning("search tracking failed error=%s", exc)
