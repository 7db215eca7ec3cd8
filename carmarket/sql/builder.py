"""Deterministic SQL builder.

The builder converts a validated `InventoryQuery` into a search plan (predicates, ordering and a
pagination window) and renders it as two parameterized SQL queries: one for the requested page and
one for the exact total count. Identifiers (columns, operators, sort direction) are strictly
allowlisted; only values become bound parameters.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from carmarket.inventory.schema import ANY, InventoryQuery, SortOrder
from carmarket.sql.columns import (
    EQUALITY_COLUMNS,
    LISTING_COLUMNS,
    LISTINGS_TABLE,
    RANGE_COLUMNS,
    SORT_COLUMNS,
    SUBSTRING_COLUMNS,
)


class SQLBuilderError(ValueError):
    """Raised when a query cannot be converted into deterministic SQL."""


class PredicateOp(StrEnum):
    """Supported predicate operators."""

    contains = "contains"
    eq = "eq"
    gte = "gte"
    lte = "lte"


_OPERATOR_SQL: dict[PredicateOp, str] = {
    PredicateOp.eq: "=",
    PredicateOp.gte: ">=",
    PredicateOp.lte: "<=",
}


@dataclass(frozen=True)
class Predicate:
    """A single `column <op> value` condition; all predicates are combined with AND."""

    column: str
    op: PredicateOp
    value: Any


@dataclass(frozen=True)
class SearchPlan:
    """Everything needed to run one inventory search, before rendering to SQL."""

    predicates: tuple[Predicate, ...]
    sort_column: str
    descending: bool
    limit: int
    offset: int


@dataclass(frozen=True)
class BuiltQuery:
    """A parameterized SQL query ready for execution."""

    sql: str
    params: tuple[Any, ...]


@dataclass(frozen=True)
class SearchQuery:
    """The page query and the count query for one search."""

    rows: BuiltQuery
    count: BuiltQuery


def is_unconstrained(value: Any) -> bool:
    """Whether a filter value means "no constraint" (absent, blank or the `Any` sentinel)."""

    if value is None:
        return True
    if isinstance(value, str):
        stripped = value.strip()
        return not stripped or stripped.lower() == ANY.lower()
    return False


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input only ever matches literally."""

    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _substring_predicates(query: InventoryQuery) -> list[Predicate]:
    predicates: list[Predicate] = []
    for field, column in SUBSTRING_COLUMNS.items():
        value = getattr(query, field)
        if is_unconstrained(value):
            continue
        predicates.append(Predicate(column=column, op=PredicateOp.contains, value=value.strip()))
    return predicates


def _range_predicates(query: InventoryQuery) -> list[Predicate]:
    predicates: list[Predicate] = []
    for column, (lower_field, upper_field) in RANGE_COLUMNS.items():
        lower = getattr(query, lower_field)
        upper = getattr(query, upper_field)
        if lower is not None:
            predicates.append(Predicate(column=column, op=PredicateOp.gte, value=lower))
        if upper is not None:
            predicates.append(Predicate(column=column, op=PredicateOp.lte, value=upper))
    return predicates


def _equality_predicates(query: InventoryQuery) -> list[Predicate]:
    predicates: list[Predicate] = []
    for field, column in EQUALITY_COLUMNS.items():
        value = getattr(query, field)
        if is_unconstrained(value):
            continue
        # Enum members compare and bind as their plain string value.
        predicates.append(Predicate(column=column, op=PredicateOp.eq, value=str(value)))
    return predicates


def plan_search(query: InventoryQuery) -> SearchPlan:
    """Translate validated parameters into a search plan."""

    try:
        sort_column = SORT_COLUMNS[query.sort_by]
    except KeyError as exc:
        raise SQLBuilderError(f"Unsupported sort field: {query.sort_by}") from exc

    predicates = [
        *_substring_predicates(query),
        *_range_predicates(query),
        *_equality_predicates(query),
    ]
    return SearchPlan(
        predicates=tuple(predicates),
        sort_column=sort_column,
        descending=query.sort_order == SortOrder.desc,
        limit=query.limit,
        offset=query.offset,
    )


def _render_predicate(predicate: Predicate) -> tuple[str, Any]:
    if predicate.column not in LISTING_COLUMNS:
        raise SQLBuilderError(f"Column is not allowlisted: {predicate.column}")

    if predicate.op == PredicateOp.contains:
        return f"l.{predicate.column} ILIKE %s", f"%{escape_like(predicate.value)}%"
    return f"l.{predicate.column} {_OPERATOR_SQL[predicate.op]} %s", predicate.value


def _where_and(clauses: list[str]) -> str:
    if not clauses:
        return ""
    return "WHERE " + " AND ".join(clauses)


def render_plan(plan: SearchPlan) -> SearchQuery:
    """Render a search plan as a page query and a count query sharing one WHERE clause."""

    if plan.sort_column not in LISTING_COLUMNS:
        raise SQLBuilderError(f"Sort column is not allowlisted: {plan.sort_column}")

    clauses: list[str] = []
    params: list[Any] = []
    for predicate in plan.predicates:
        clause, value = _render_predicate(predicate)
        clauses.append(clause)
        params.append(value)

    where_sql = _where_and(clauses)
    select_list = ", ".join(f"l.{column}" for column in LISTING_COLUMNS)
    direction = "DESC" if plan.descending else "ASC"

    rows_sql = (
        f"SELECT {select_list} FROM {LISTINGS_TABLE} l {where_sql} "
        f"ORDER BY l.{plan.sort_column} {direction} LIMIT %s OFFSET %s"
    )
    count_sql = f"SELECT COUNT(*)::bigint FROM {LISTINGS_TABLE} l {where_sql}".strip()

    return SearchQuery(
        rows=BuiltQuery(sql=" ".join(rows_sql.split()), params=(*params, plan.limit, plan.offset)),
        count=BuiltQuery(sql=count_sql, params=tuple(params)),
    )


def build_search_query(query: InventoryQuery) -> SearchQuery:
    """Build the page and count SQL queries + params from a validated query."""

    return render_plan(plan_search(query))
