"""URL form of the client filter state, and the browser location it lives in.

The same parameter names are used for the page URL and for the `/api/inventory` request, so a
shared link reproduces the same search.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping
from urllib.parse import parse_qsl, urlencode

from pydantic import ValidationError

from carmarket.client.filters import (
    CATEGORICAL_FIELDS,
    CONDITIONS,
    DEFAULT_SORT,
    RANGE_FIELDS,
    FilterSet,
    SortOption,
    is_sentinel,
)
from carmarket.inventory.schema import SortField, SortOrder

logger = logging.getLogger(__name__)

# FilterSet field -> query parameter name.
PARAM_NAMES: dict[str, str] = {
    "make": "make",
    "model": "model",
    "fuel_type": "fuel_type",
    "transmission": "transmission",
    "condition": "condition",
    "body_type": "body_type",
    "year_min": "year_from",
    "year_max": "year_to",
    "price_min": "price_min",
    "price_max": "price_max",
    "mileage_min": "mileage_min",
    "mileage_max": "mileage_max",
}

_INTEGER_FIELDS = frozenset({"year_min", "year_max"})
# A zero price cap matches nothing and is rejected by the search endpoint.
_POSITIVE_FIELDS = frozenset({"price_max"})


def _format_number(value: float) -> str:
    if isinstance(value, int) or value.is_integer():
        return str(int(value))
    return repr(value)


def filters_to_params(
        filters: FilterSet,
        sort: SortOption = DEFAULT_SORT,
        page: int = 1,
) -> dict[str, str]:
    """Translate client state into query parameters.

    Sentinels and absent bounds are omitted; `sortBy`/`sortOrder` are always present; `page` is
    only emitted past the first page.
    """

    params: dict[str, str] = {}
    for name, key in PARAM_NAMES.items():
        value = getattr(filters, name)
        if name in CATEGORICAL_FIELDS:
            if is_sentinel(value):
                continue
            params[key] = str(value)
        elif value is not None:
            params[key] = _format_number(value)

    params["sortBy"] = str(sort.field)
    params["sortOrder"] = str(sort.direction)
    if page > 1:
        params["page"] = str(page)
    return params


def encode_query(params: Mapping[str, str]) -> str:
    """Render parameters as a query string (without the leading `?`)."""

    return urlencode(list(params.items()))


def _parse_number(raw: str, *, integer: bool) -> float | int | None:
    value = raw.strip()
    if not value:
        return None
    try:
        number: float | int = int(value) if integer else float(value)
    except ValueError:
        return None
    if not math.isfinite(number) or number < 0:
        return None
    return number


def _decode_filters(raw: Mapping[str, str]) -> FilterSet:
    values: dict[str, object] = {}
    for name, key in PARAM_NAMES.items():
        if key not in raw:
            continue
        if name == "condition":
            condition = raw[key].strip().lower()
            if condition in CONDITIONS:
                values[name] = condition
        elif name in CATEGORICAL_FIELDS:
            values[name] = raw[key]
        else:
            number = _parse_number(raw[key], integer=name in _INTEGER_FIELDS)
            if number is not None and not (name in _POSITIVE_FIELDS and number == 0):
                values[name] = number

    try:
        return FilterSet.model_validate(values)
    except ValidationError:
        # Only an inverted pair can fail here; drop it rather than the whole URL.
        for low_name, high_name, _ in RANGE_FIELDS:
            low = values.get(low_name)
            high = values.get(high_name)
            if low is not None and high is not None and low > high:  # type: ignore[operator]
                logger.debug(
                    "dropping inverted range from url %s=%s %s=%s", low_name, low, high_name, high
                )
                values.pop(low_name)
                values.pop(high_name)
        return FilterSet.model_validate(values)


def _decode_sort(raw: Mapping[str, str]) -> SortOption:
    try:
        field = SortField(raw.get("sortBy", ""))
    except ValueError:
        field = DEFAULT_SORT.field
    try:
        direction = SortOrder(raw.get("sortOrder", ""))
    except ValueError:
        direction = DEFAULT_SORT.direction
    return SortOption(field=field, direction=direction)


def _decode_page(raw: Mapping[str, str]) -> int:
    try:
        page = int(raw.get("page", "1"))
    except ValueError:
        return 1
    return max(page, 1)


def decode_query(query: str) -> tuple[FilterSet, SortOption, int]:
    """Parse a query string into client state.

    Absent or unparseable fields fall back to their defaults; repeated keys keep the last value.
    """

    raw = dict(parse_qsl(query.lstrip("?"), keep_blank_values=True))
    return _decode_filters(raw), _decode_sort(raw), _decode_page(raw)


QueryListener = Callable[[str], None]


class BrowserLocation:
    """In-memory model of the inventory page URL and its session history.

    `replace` and `push` model `history.replaceState`/`pushState`: they do not notify listeners.
    `back` and `forward` model user navigation and notify every subscriber with the new query.
    """

    def __init__(self, query: str = "") -> None:
        self._entries: list[str] = [query.lstrip("?")]
        self._index = 0
        self._listeners: list[QueryListener] = []

    @property
    def query(self) -> str:
        return self._entries[self._index]

    @property
    def can_go_back(self) -> bool:
        return self._index > 0

    @property
    def can_go_forward(self) -> bool:
        return self._index < len(self._entries) - 1

    def replace(self, query: str) -> None:
        """Rewrite the current entry without adding history."""

        self._entries[self._index] = query.lstrip("?")

    def push(self, query: str) -> None:
        """Add a new history entry; forward entries are discarded."""

        del self._entries[self._index + 1:]
        self._entries.append(query.lstrip("?"))
        self._index += 1

    def back(self) -> None:
        if not self.can_go_back:
            return
        self._index -= 1
        self._notify()

    def forward(self) -> None:
        if not self.can_go_forward:
            return
        self._index += 1
        self._notify()

    def subscribe(self, listener: QueryListener) -> Callable[[], None]:
        """Register a navigation listener; returns a function that unregisters it."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.query)
