"""Tests for SQL generation from the parsed IR."""

import pytest

from tablegate.core.types import ValueKind
from tablegate.query.builder import (
    POSTGRESQL,
    SQLITE,
    build,
    build_delete,
    build_insert,
    build_ownership_check,
    build_select_one,
    build_update,
)
from tablegate.query.parser import parse, parse_page
from tablegate.query.types import (
    FilterCondition,
    FilterOperator,
    OwnerScope,
    PageRequest,
    SortDirection,
    SortKey,
    TypedValue,
)
from tablegate.registry.loader import FieldSpec, TableConfig


def make_products(owner_field=None) -> TableConfig:
    fields = [
        FieldSpec("id", "integer", filterable=True, sortable=True),
        FieldSpec("name", filterable=True, sortable=True, searchable=True),
        FieldSpec("status", filterable=True, sortable=True),
        FieldSpec("price", "float", filterable=True, sortable=True),
        FieldSpec("description", searchable=True),
        FieldSpec("secret", selectable=False),
    ]
    if owner_field:
        fields.append(FieldSpec(owner_field))
    return TableConfig(
        name="products", primary_key="id", fields=tuple(fields), owner_field=owner_field
    )


def plan_for(raw_filters=None, raw_order=None, q=None, limit=None, offset=None, **kwargs):
    table = kwargs.pop("table", None) or make_products()
    parsed = parse(raw_filters, raw_order, q, table)
    page, _ = parse_page(limit, offset)
    return build(parsed.filters, parsed.sort, parsed.search, page, table, **kwargs)


def s(value: str) -> TypedValue:
    return TypedValue(ValueKind.STRING, value)


class TestOperatorMapping:
    @pytest.mark.parametrize(
        "operator, values, expected_sql, expected_params",
        [
            (FilterOperator.EQ, (s("a"),), '"status" = ?', ["a"]),
            (FilterOperator.NEQ, (s("a"),), '"status" != ?', ["a"]),
            (FilterOperator.GT, (s("a"),), '"status" > ?', ["a"]),
            (FilterOperator.GTE, (s("a"),), '"status" >= ?', ["a"]),
            (FilterOperator.LT, (s("a"),), '"status" < ?', ["a"]),
            (FilterOperator.LTE, (s("a"),), '"status" <= ?', ["a"]),
            (FilterOperator.LIKE, (s("a"),), '"status" LIKE ?', ["%a%"]),
            (FilterOperator.IN, (s("a"), s("b")), '"status" IN (?, ?)', ["a", "b"]),
            (FilterOperator.NOT_IN, (s("a"),), '"status" NOT IN (?)', ["a"]),
            (FilterOperator.IS_NULL, (), '"status" IS NULL', []),
            (FilterOperator.IS_NOT_NULL, (), '"status" IS NOT NULL', []),
        ],
    )
    def test_every_operator_renders(self, operator, values, expected_sql, expected_params):
        condition = FilterCondition("status", operator, values)
        plan = build([condition], [], None, PageRequest(10), make_products())
        assert plan.where == expected_sql
        assert list(plan.where_params) == expected_params

    def test_postgres_placeholders(self):
        plan = plan_for("status:in:a,b", dialect=POSTGRESQL)
        assert plan.where == '"status" IN (%s, %s)'
        assert "LIMIT %s OFFSET %s" in plan.select_statement().sql


class TestWhitelistSafety:
    def test_injection_attempts_never_reach_sql(self):
        plan = plan_for(
            raw_filters='id) OR 1=1 --:eq:1,name" OR "1"="1:eq:x,status:eq:a',
            raw_order="price; DROP TABLE products;name,desc",
            q="'; DROP TABLE products; --",
        )
        select = plan.select_statement()
        count = plan.count_statement()
        for sql in (select.sql, count.sql):
            assert "DROP" not in sql
            assert "1=1" not in sql
            assert "'" not in sql
        # The search text only ever travels as a binding
        assert "%'; DROP TABLE products; --%" in select.params

    def test_build_rejects_non_filterable_condition(self):
        condition = FilterCondition("description", FilterOperator.EQ, (s("x"),))
        with pytest.raises(ValueError):
            build([condition], [], None, PageRequest(10), make_products())

    def test_build_rejects_non_sortable_key(self):
        with pytest.raises(ValueError):
            build([], [SortKey("description")], None, PageRequest(10), make_products())

    def test_unselectable_field_not_selected(self):
        assert '"secret"' not in plan_for().select_statement().sql


class TestStatements:
    def test_count_bindings_are_select_prefix(self):
        plan = plan_for("status:in:a,b,price:gt:5", "name", q="wid", limit="7", offset="14")
        count = plan.count_statement()
        select = plan.select_statement()
        assert select.params[:-2] == count.params
        assert select.params[-2:] == (7, 14)
        assert all(type(p) is int for p in select.params[-2:])

    def test_count_has_no_paging(self):
        count = plan_for("status:eq:a", limit="5", offset="10").count_statement()
        assert "LIMIT" not in count.sql
        assert "OFFSET" not in count.sql
        assert "ORDER BY" not in count.sql
        assert count.sql == 'SELECT COUNT(*) FROM "products" WHERE "status" = ?'

    def test_select_without_constraints(self):
        select = plan_for().select_statement()
        assert select.sql == (
            'SELECT "id", "name", "status", "price", "description" FROM "products"'
            ' ORDER BY "id" ASC LIMIT ? OFFSET ?'
        )
        assert select.params == (100, 0)

    def test_clause_order_owner_filters_search(self):
        plan = plan_for(
            "status:eq:a",
            q="x",
            table=make_products(owner_field="created_by"),
            owner_scope=OwnerScope("created_by", "u1"),
        )
        assert plan.where == (
            '"created_by" = ? AND "status" = ? AND ("name" LIKE ? OR "description" LIKE ?)'
        )
        assert plan.where_params == ("u1", "a", "%x%", "%x%")

    def test_search_on_table_without_searchable_fields(self):
        table = TableConfig(
            name="plain", primary_key="id", fields=(FieldSpec("id", "integer"),)
        )
        plan = build([], [], "anything", PageRequest(10), table)
        assert plan.where == ""
        assert plan.where_params == ()


class TestOrdering:
    def test_primary_key_when_no_sort(self):
        assert plan_for().order_by == '"id" ASC'

    def test_primary_key_appended_as_tiebreaker(self):
        assert plan_for(raw_order="price,desc;name").order_by == (
            '"price" DESC, "name" ASC, "id" ASC'
        )

    def test_primary_key_not_duplicated(self):
        assert plan_for(raw_order="id,desc").order_by == '"id" DESC'

    def test_repeated_builds_are_identical(self):
        first = plan_for("status:eq:a", q="x").select_statement()
        second = plan_for("status:eq:a", q="x").select_statement()
        assert first == second

    def test_explicit_sort_direction(self):
        plan = build(
            [], [SortKey("name", SortDirection.DESC)], None, PageRequest(5), make_products()
        )
        assert plan.order_by == '"name" DESC, "id" ASC'


class TestWriteStatements:
    def test_select_one(self):
        stmt = build_select_one(make_products(), 3)
        assert stmt.sql.endswith('FROM "products" WHERE "id" = ?')
        assert stmt.params == (3,)

    def test_ownership_check(self):
        stmt = build_ownership_check(make_products(owner_field="owner"), 5, "u1")
        assert stmt.sql == 'SELECT 1 FROM "products" WHERE "id" = ? AND "owner" = ?'
        assert stmt.params == (5, "u1")

    def test_ownership_check_needs_owner_field(self):
        with pytest.raises(ValueError):
            build_ownership_check(make_products(), 5, "u1")

    def test_insert(self):
        stmt = build_insert(make_products(), {"name": "Foxtrot", "price": 9.5})
        assert stmt.sql == 'INSERT INTO "products" ("name", "price") VALUES (?, ?)'
        assert stmt.params == ("Foxtrot", 9.5)

    def test_insert_postgres_returns_key(self):
        stmt = build_insert(make_products(), {"name": "Foxtrot"}, POSTGRESQL)
        assert stmt.sql.endswith('VALUES (%s) RETURNING "id"')

    def test_insert_defaults(self):
        assert build_insert(make_products(), {}, SQLITE).sql == (
            'INSERT INTO "products" DEFAULT VALUES'
        )

    def test_insert_rejects_unknown_column(self):
        with pytest.raises(ValueError):
            build_insert(make_products(), {"name; --": "x"})

    def test_update(self):
        stmt = build_update(make_products(), 2, {"status": "inactive"})
        assert stmt.sql == 'UPDATE "products" SET "status" = ? WHERE "id" = ?'
        assert stmt.params == ("inactive", 2)

    def test_update_requires_fields(self):
        with pytest.raises(ValueError):
            build_update(make_products(), 2, {})

    def test_delete(self):
        stmt = build_delete(make_products(), 2)
        assert stmt.sql == 'DELETE FROM "products" WHERE "id" = ?'
        assert stmt.params == (2,)
