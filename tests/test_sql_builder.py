"""Tests for the deterministic SQL builder (allowlists + parameter binding)."""

from __future__ import annotations

import pytest

from carmarket.inventory.schema import InventoryQuery, SortField, SortOrder
from carmarket.sql.builder import (
    Predicate,
    PredicateOp,
    SearchPlan,
    SQLBuilderError,
    build_search_query,
    escape_like,
    is_unconstrained,
    plan_search,
    render_plan,
)


def _placeholder_count(sql: str) -> int:
    return sql.count("%s")


def test_build_without_filters() -> None:
    built = build_search_query(InventoryQuery())

    assert "WHERE" not in built.rows.sql
    assert built.rows.sql.endswith("ORDER BY l.created_at DESC LIMIT %s OFFSET %s")
    assert built.rows.params == (24, 0)
    assert built.count.sql == "SELECT COUNT(*)::bigint FROM car_listings l"
    assert built.count.params == ()


def test_make_and_model_use_trimmed_case_insensitive_substring() -> None:
    built = build_search_query(InventoryQuery(make="  merc ", model="C"))

    assert "l.make ILIKE %s AND l.model ILIKE %s" in built.rows.sql
    assert built.rows.params[:2] == ("%merc%", "%C%")
    assert "merc" not in built.rows.sql


def test_like_wildcards_in_user_input_are_escaped() -> None:
    built = build_search_query(InventoryQuery(make="100%_a"))

    assert built.count.params == ("%100\\%\\_a%",)
    assert escape_like("a\\b") == "a\\\\b"


def test_ranges_are_inclusive_and_only_for_present_bounds() -> None:
    built = build_search_query(InventoryQuery(year_from=2015, price_max=50_000, mileage_min=0))

    sql = built.count.sql
    assert "l.year >= %s" in sql
    assert "l.year <= %s" not in sql
    assert "l.price <= %s" in sql
    assert "l.price >= %s" not in sql
    assert "l.mileage >= %s" in sql
    assert built.count.params == (2015, 50_000, 0)


def test_equality_predicates_bind_plain_strings() -> None:
    query = InventoryQuery.model_validate(
        {"fuel_type": "Diesel", "condition": "used", "status": "available", "location_city": "Bern"}
    )

    built = build_search_query(query)

    assert "l.fuel_type = %s" in built.count.sql
    assert "l.condition = %s" in built.count.sql
    assert "l.status = %s" in built.count.sql
    assert "l.location_city = %s" in built.count.sql
    assert set(built.count.params) == {"Diesel", "used", "available", "Bern"}
    assert all(type(p) is str for p in built.count.params)


@pytest.mark.parametrize("sentinel", ["Any", "any", "ANY", "", "   "])
def test_sentinels_never_become_predicates(sentinel: str) -> None:
    query = InventoryQuery.model_validate(
        {
            "make": sentinel,
            "model": sentinel,
            "fuel_type": sentinel,
            "transmission": sentinel,
            "body_type": sentinel,
            "location_country": sentinel,
            "condition": "Any",
            "status": "Any",
            "listing_type": "Any",
            "rental_status": "Any",
        }
    )

    plan = plan_search(query)
    built = render_plan(plan)

    assert plan.predicates == ()
    assert "WHERE" not in built.rows.sql
    assert "Any" not in built.rows.params


def test_is_unconstrained() -> None:
    assert is_unconstrained(None)
    assert is_unconstrained(" any ")
    assert not is_unconstrained("BMW")
    assert not is_unconstrained(0)


@pytest.mark.parametrize(
    ("page", "limit", "offset"),
    [(1, 24, 0), (2, 24, 24), (3, 10, 20), (5, 100, 400)],
)
def test_pagination_window(page: int, limit: int, offset: int) -> None:
    built = build_search_query(InventoryQuery(page=page, limit=limit))

    assert built.rows.params[-2:] == (limit, offset)
    assert "LIMIT" not in built.count.sql


def test_sort_is_allow_listed_and_single() -> None:
    query = InventoryQuery(sort_by=SortField.price, sort_order=SortOrder.asc)

    built = build_search_query(query)

    assert built.rows.sql.count("ORDER BY") == 1
    assert "ORDER BY l.price ASC" in built.rows.sql


def test_placeholders_match_params() -> None:
    query = InventoryQuery.model_validate(
        {
            "make": "BMW",
            "model": "X5",
            "year_from": "2018",
            "year_to": "2022",
            "price_min": "10000",
            "price_max": "90000",
            "mileage_max": "60000",
            "body_type": "SUV",
            "condition": "used",
            "page": "2",
        }
    )

    built = build_search_query(query)

    assert _placeholder_count(built.rows.sql) == len(built.rows.params)
    assert _placeholder_count(built.count.sql) == len(built.count.params)
    assert built.rows.params[:-2] == built.count.params


def test_render_rejects_non_allow_listed_columns() -> None:
    plan = SearchPlan(
        predicates=(Predicate(column="password", op=PredicateOp.eq, value="x"),),
        sort_column="created_at",
        descending=True,
        limit=24,
        offset=0,
    )
    with pytest.raises(SQLBuilderError):
        render_plan(plan)

    with pytest.raises(SQLBuilderError):
        render_plan(SearchPlan(predicates=(), sort_column="1; DROP", descending=False, limit=1, offset=0))
