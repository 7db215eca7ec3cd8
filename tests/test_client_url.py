"""Tests for the URL form of the client filter state and the in-memory browser location."""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from carmarket.client.filters import (
    DEFAULT_SORT,
    MILEAGE_EDGES,
    PRICE_EDGES,
    SORT_CHOICES,
    YEAR_EDGES,
    FilterSet,
    SortOption,
)
from carmarket.client.url import BrowserLocation, decode_query, encode_query, filters_to_params
from carmarket.inventory.schema import ANY, SortField, SortOrder, ValidQuery, validate_query


def _bound_pair(draw: st.DrawFn, edges: tuple[float, float], *, integer: bool) -> tuple[float | None, float | None]:
    low_edge, high_edge = edges
    if integer:
        inner: st.SearchStrategy[float] = st.integers(int(low_edge) + 1, int(high_edge) - 1)
    else:
        inner = st.floats(min_value=low_edge + 0.5, max_value=high_edge - 0.5, allow_nan=False)
    low = draw(st.none() | inner)
    high = draw(st.none() | inner)
    if low is not None and high is not None and low > high:
        low, high = high, low
    return low, high


@st.composite
def filter_sets(draw: st.DrawFn) -> FilterSet:
    year_min, year_max = _bound_pair(draw, YEAR_EDGES, integer=True)
    price_min, price_max = _bound_pair(draw, PRICE_EDGES, integer=False)
    mileage_min, mileage_max = _bound_pair(draw, MILEAGE_EDGES, integer=False)
    return FilterSet(
        make=draw(st.sampled_from([ANY, "BMW", "Mercedes-Benz", "Land Rover", "Alfa Romeo"])),
        model=draw(st.sampled_from(["", "X5", "C-Class", "Model 3", "3 Series"])),
        fuel_type=draw(st.sampled_from([ANY, "Gasoline", "Diesel", "Hybrid", "Electric"])),
        transmission=draw(st.sampled_from([ANY, "Automatic", "Manual"])),
        condition=draw(st.sampled_from([ANY, "new", "used"])),
        body_type=draw(st.sampled_from([ANY, "SUV", "Sedan", "Wagon"])),
        year_min=year_min,
        year_max=year_max,
        price_min=price_min,
        price_max=price_max,
        mileage_min=mileage_min,
        mileage_max=mileage_max,
    )


_sorts = st.builds(SortOption, field=st.sampled_from(list(SortField)), direction=st.sampled_from(list(SortOrder)))


@given(filters=filter_sets(), sort=_sorts, page=st.integers(min_value=1, max_value=500))
@settings(max_examples=200, deadline=None)
def test_url_round_trip_restores_the_same_state(filters: FilterSet, sort: SortOption, page: int) -> None:
    query = encode_query(filters_to_params(filters, sort, page))

    assert decode_query(query) == (filters, sort, page)


@given(filters=filter_sets(), sort=_sorts, page=st.integers(min_value=1, max_value=500))
@settings(max_examples=200, deadline=None)
def test_emitted_params_pass_server_validation(filters: FilterSet, sort: SortOption, page: int) -> None:
    result = validate_query(filters_to_params(filters, sort, page))

    assert isinstance(result, ValidQuery)
    assert result.query.page == page


def test_default_state_emits_only_sort() -> None:
    assert filters_to_params(FilterSet()) == {"sortBy": "created_at", "sortOrder": "desc"}


def test_params_use_api_names_and_skip_sentinels() -> None:
    filters = FilterSet(make="BMW", fuel_type="any", year_min=2015, price_max=40_000, mileage_max=12_500.5)
    sort = SortOption(SortField.price, SortOrder.asc)

    params = filters_to_params(filters, sort, page=3)

    assert params == {
        "make": "BMW",
        "year_from": "2015",
        "price_max": "40000",
        "mileage_max": "12500.5",
        "sortBy": "price",
        "sortOrder": "asc",
        "page": "3",
    }


def test_encoded_query_escapes_spaces() -> None:
    query = encode_query(filters_to_params(FilterSet(make="Land Rover")))

    assert query.startswith("make=Land+Rover&")


def test_decode_empty_query_gives_defaults() -> None:
    filters, sort, page = decode_query("")

    assert filters == FilterSet()
    assert sort == DEFAULT_SORT
    assert page == 1


def test_decode_ignores_unparseable_values() -> None:
    query = (
        "year_from=abc&price_max=-5&mileage_min=inf&condition=electric"
        "&sortBy=dealer_id&sortOrder=sideways&page=zero&utm_source=mail"
    )

    assert decode_query(query) == (FilterSet(), DEFAULT_SORT, 1)


def test_decode_normalizes_condition_and_page() -> None:
    filters, _, page = decode_query("?condition=USED&page=0")

    assert filters.condition == "used"
    assert page == 1


def test_decode_drops_an_inverted_pair_only() -> None:
    filters, _, _ = decode_query("make=BMW&price_min=50000&price_max=20000&year_from=2016")

    assert filters.make == "BMW"
    assert filters.price_min is None
    assert filters.price_max is None
    assert filters.year_min == 2016


def test_decode_drops_a_zero_price_cap() -> None:
    filters, _, _ = decode_query("price_max=0&price_min=0&make=Kia")

    assert filters == FilterSet(make="Kia")
    assert "price_max" not in filters_to_params(filters)


def test_slider_edges_mean_no_constraint() -> None:
    filters, _, _ = decode_query("year_from=2010&year_to=2024&price_min=0&mileage_max=100000")

    assert filters == FilterSet()
    assert "year_from" not in filters_to_params(filters)


def test_repeated_key_keeps_last_value() -> None:
    filters, _, _ = decode_query("make=Kia&make=BMW")

    assert filters.make == "BMW"


def test_sort_choices_have_distinct_wire_forms() -> None:
    wires = [option.wire for option in SORT_CHOICES]

    assert wires == ["price-asc", "price-desc", "year-desc", "year-asc"]
    assert SortOption.parse("year-asc") == SortOption(SortField.year, SortOrder.asc)
    assert SortOption.parse("created_at-desc") == DEFAULT_SORT
    assert SortOption.parse("bogus") == DEFAULT_SORT
    assert SortOption.parse(None) == DEFAULT_SORT


def test_location_replace_and_push_do_not_notify() -> None:
    location = BrowserLocation("?make=Kia")
    seen: list[str] = []
    location.subscribe(seen.append)

    location.replace("make=BMW")
    location.push("make=Audi")

    assert location.query == "make=Audi"
    assert seen == []


def test_location_back_and_forward_notify() -> None:
    location = BrowserLocation("make=Kia")
    location.push("make=BMW")
    seen: list[str] = []
    unsubscribe = location.subscribe(seen.append)

    location.back()
    location.back()
    location.forward()
    unsubscribe()
    location.back()

    assert seen == ["make=Kia", "make=BMW"]
    assert location.query == "make=Kia"
    assert location.can_go_forward


def test_push_discards_forward_entries() -> None:
    location = BrowserLocation("a=1")
    location.push("a=2")
    location.back()

    location.push("a=3")

    assert not location.can_go_forward
    location.back()
    assert location.query == "a=1"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ({"make": "  any "}, ANY),
        ({"make": ""}, ANY),
        ({"make": " BMW "}, "BMW"),
    ],
)
def test_filter_set_canonicalizes_sentinels(raw: dict[str, str], expected: str) -> None:
    assert FilterSet.model_validate(raw).make == expected


def test_filter_set_rejects_inverted_ranges() -> None:
    with pytest.raises(ValueError):
        FilterSet(year_min=2020, year_max=2015)


def test_filter_set_active_and_effective_bounds() -> None:
    filters = FilterSet(make="BMW", model="X5", price_max=60_000)

    assert filters.active() == {"make": "BMW", "model": "X5", "price_max": 60_000}
    assert filters.effective_bounds("price_min") == (0, 60_000)
    assert filters.effective_bounds("year_min") == YEAR_EDGES
    with pytest.raises(KeyError):
        filters.effective_bounds("price_max")
