"""Compile the parsed IR into parameterized SQL.

Identifier text in generated SQL only ever comes from a TableConfig (whose
names are validated at load time) and is always quoted by the dialect.
Values only ever travel as bindings.

A QueryPlan is built once per request and rendered twice: the COUNT
statement uses the WHERE bindings unmodified, the SELECT statement appends
exactly two integer bindings for LIMIT and OFFSET.
"""

from dataclasses import dataclass
from typing import Any, Sequence

from tablegate.query.types import (
    FilterCondition,
    FilterOperator,
    OwnerScope,
    PageRequest,
    SortDirection,
    SortKey,
)
from tablegate.registry.loader import TableConfig


@dataclass(frozen=True)
class Dialect:
    """Placeholder and identifier-quoting rules for one database family."""

    name: str
    placeholder: str
    supports_returning: bool = False

    def quote(self, identifier: str) -> str:
        """Return a double-quoted identifier."""
        return '"' + identifier.replace('"', '""') + '"'

    def placeholders(self, count: int) -> str:
        return ", ".join([self.placeholder] * count)


SQLITE = Dialect(name="sqlite", placeholder="?")
POSTGRESQL = Dialect(name="postgresql", placeholder="%s", supports_returning=True)

DIALECTS: dict[str, Dialect] = {d.name: d for d in (SQLITE, POSTGRESQL)}


@dataclass(frozen=True)
class Statement:
    sql: str
    params: tuple[Any, ...] = ()


@dataclass(frozen=True)
class QueryPlan:
    """Compiled WHERE/ORDER BY fragments shared by the count and data queries."""

    table: TableConfig
    dialect: Dialect
    where: str
    where_params: tuple[Any, ...]
    order_by: str
    limit: int
    offset: int

    def _from_where(self) -> str:
        sql = f"FROM {self.dialect.quote(self.table.name)}"
        if self.where:
            sql += f" WHERE {self.where}"
        return sql

    def count_statement(self) -> Statement:
        """COUNT over the WHERE clause only, never paged."""
        return Statement(f"SELECT COUNT(*) {self._from_where()}", self.where_params)

    def select_statement(self) -> Statement:
        q = self.dialect.quote
        columns = ", ".join(q(name) for name in self.table.selectable)
        ph = self.dialect.placeholder
        sql = (
            f"SELECT {columns} {self._from_where()}"
            f" ORDER BY {self.order_by} LIMIT {ph} OFFSET {ph}"
        )
        return Statement(sql, self.where_params + (int(self.limit), int(self.offset)))


def _condition_sql(
    condition: FilterCondition, dialect: Dialect
) -> tuple[str, list[Any]]:
    """Build one SQL condition and its bindings."""
    column = dialect.quote(condition.field)
    ph = dialect.placeholder
    values = [v.value for v in condition.values]

    match condition.operator:
        case FilterOperator.EQ:
            return f"{column} = {ph}", values
        case FilterOperator.NEQ:
            return f"{column} != {ph}", values
        case FilterOperator.GT:
            return f"{column} > {ph}", values
        case FilterOperator.GTE:
            return f"{column} >= {ph}", values
        case FilterOperator.LT:
            return f"{column} < {ph}", values
        case FilterOperator.LTE:
            return f"{column} <= {ph}", values
        case FilterOperator.LIKE:
            return f"{column} LIKE {ph}", [f"%{values[0]}%"]
        case FilterOperator.IN:
            return f"{column} IN ({dialect.placeholders(len(values))})", values
        case FilterOperator.NOT_IN:
            return f"{column} NOT IN ({dialect.placeholders(len(values))})", values
        case FilterOperator.IS_NULL:
            return f"{column} IS NULL", []
        case FilterOperator.IS_NOT_NULL:
            return f"{column} IS NOT NULL", []
    raise ValueError(f"Unhandled operator {condition.operator!r}")


def _search_sql(
    search: str, table: TableConfig, dialect: Dialect
) -> tuple[str, list[Any]]:
    # Config order, so the clause text is stable across processes
    fields = [name for name in table.field_names if name in table.searchable]
    if not fields:
        return "", []
    pattern = f"%{search}%"
    parts = [f"{dialect.quote(name)} LIKE {dialect.placeholder}" for name in fields]
    return f"({' OR '.join(parts)})", [pattern] * len(fields)


def _order_by_sql(sort: Sequence[SortKey], table: TableConfig, dialect: Dialect) -> str:
    parts = []
    seen = set()
    for key in sort:
        if key.field in seen:
            continue
        seen.add(key.field)
        direction = "DESC" if key.direction is SortDirection.DESC else "ASC"
        parts.append(f"{dialect.quote(key.field)} {direction}")
    # Primary key closes the ordering so equal sort values still page stably
    if table.primary_key not in seen:
        parts.append(f"{dialect.quote(table.primary_key)} ASC")
    return ", ".join(parts)


def build(
    filters: Sequence[FilterCondition],
    sort: Sequence[SortKey],
    search: str | None,
    page: PageRequest,
    table: TableConfig,
    dialect: Dialect = SQLITE,
    owner_scope: OwnerScope | None = None,
) -> QueryPlan:
    """Compile filters, sort keys, search text, and paging into a QueryPlan.

    Clauses are AND-ed in this order: owner scope, filters (parser order),
    search group. Bindings follow the same left-to-right order.

    Raises:
        ValueError: If a condition or sort key names a field the table does
            not allow for that purpose
    """
    clauses: list[str] = []
    params: list[Any] = []

    if owner_scope is not None:
        if table.get_field(owner_scope.field) is None:
            raise ValueError(f"Owner field '{owner_scope.field}' not in table '{table.name}'")
        clauses.append(f"{dialect.quote(owner_scope.field)} = {dialect.placeholder}")
        params.append(owner_scope.user_id)

    for condition in filters:
        if condition.field not in table.filterable:
            raise ValueError(f"Field '{condition.field}' is not filterable")
        sql, values = _condition_sql(condition, dialect)
        clauses.append(sql)
        params.extend(values)

    if search:
        sql, values = _search_sql(search, table, dialect)
        if sql:
            clauses.append(sql)
            params.extend(values)

    for key in sort:
        if key.field not in table.sortable:
            raise ValueError(f"Field '{key.field}' is not sortable")

    return QueryPlan(
        table=table,
        dialect=dialect,
        where=" AND ".join(clauses),
        where_params=tuple(params),
        order_by=_order_by_sql(sort, table, dialect),
        limit=int(page.limit),
        offset=int(page.offset),
    )


# ---------------------------------------------------------------------------
# Single-record and write statements
# ---------------------------------------------------------------------------


def build_select_one(table: TableConfig, record_id: Any, dialect: Dialect = SQLITE) -> Statement:
    q = dialect.quote
    columns = ", ".join(q(name) for name in table.selectable)
    sql = (
        f"SELECT {columns} FROM {q(table.name)}"
        f" WHERE {q(table.primary_key)} = {dialect.placeholder}"
    )
    return Statement(sql, (record_id,))


def build_ownership_check(
    table: TableConfig, record_id: Any, user_id: str, dialect: Dialect = SQLITE
) -> Statement:
    """Point lookup that returns a row only if ``user_id`` owns the record."""
    if not table.owner_field:
        raise ValueError(f"Table '{table.name}' has no owner field")
    q = dialect.quote
    ph = dialect.placeholder
    sql = (
        f"SELECT 1 FROM {q(table.name)}"
        f" WHERE {q(table.primary_key)} = {ph} AND {q(table.owner_field)} = {ph}"
    )
    return Statement(sql, (record_id, user_id))


def _check_columns(table: TableConfig, data: dict[str, Any]) -> list[str]:
    columns = list(data)
    for name in columns:
        if table.get_field(name) is None:
            raise ValueError(f"Field '{name}' is not a field of table '{table.name}'")
    return columns


def build_insert(table: TableConfig, data: dict[str, Any], dialect: Dialect = SQLITE) -> Statement:
    q = dialect.quote
    columns = _check_columns(table, data)
    if columns:
        sql = (
            f"INSERT INTO {q(table.name)} ({', '.join(q(c) for c in columns)})"
            f" VALUES ({dialect.placeholders(len(columns))})"
        )
    else:
        sql = f"INSERT INTO {q(table.name)} DEFAULT VALUES"
    if dialect.supports_returning:
        sql += f" RETURNING {q(table.primary_key)}"
    return Statement(sql, tuple(data[c] for c in columns))


def build_update(
    table: TableConfig, record_id: Any, data: dict[str, Any], dialect: Dialect = SQLITE
) -> Statement:
    q = dialect.quote
    ph = dialect.placeholder
    columns = _check_columns(table, data)
    if not columns:
        raise ValueError("Nothing to update")
    assignments = ", ".join(f"{q(c)} = {ph}" for c in columns)
    sql = f"UPDATE {q(table.name)} SET {assignments} WHERE {q(table.primary_key)} = {ph}"
    return Statement(sql, tuple(data[c] for c in columns) + (record_id,))


def build_delete(table: TableConfig, record_id: Any, dialect: Dialect = SQLITE) -> Statement:
    q = dialect.quote
    sql = f"DELETE FROM {q(table.name)} WHERE {q(table.primary_key)} = {dialect.placeholder}"
    return Statement(sql, (record_id,))
