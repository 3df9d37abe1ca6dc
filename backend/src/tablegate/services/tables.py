"""Table operations: authorize, parse, build, execute.

TableService is the only place that combines the registry, the authorizer,
the parameter parser, the query builder and the persistence adapter. It
raises core errors and never builds HTTP responses.

Per list request the database sees at most three statements, in order:
the ownership lookup (single-record owner checks only), COUNT, SELECT.
The request deadline is checked before each of them.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from tablegate.auth.authorizer import Authorizer
from tablegate.auth.permissions import PermissionResolver, PermissionSnapshot
from tablegate.auth.types import Action, Identity, PermissionLevel
from tablegate.core.errors import Forbidden, InvalidRequest, RecordNotFound
from tablegate.core.types import coerce_value
from tablegate.hooks.registry import BeforeApiCallRegistry
from tablegate.persistence.adapter import PersistenceAdapter
from tablegate.query.builder import (
    build,
    build_delete,
    build_insert,
    build_select_one,
    build_update,
)
from tablegate.query.pagination import PageMetadata, compute_page_metadata
from tablegate.query.parser import DEFAULT_LIMIT, MAX_LIMIT, parse, parse_page
from tablegate.query.types import ParseError
from tablegate.registry.loader import TableConfig, TableRegistry
from tablegate.services.context import Deadline

logger = logging.getLogger(__name__)

_SCALARS = (str, int, float, bool, type(None))


@dataclass
class RecordPage:
    """One page of a listing plus the parameter segments that were dropped."""

    rows: list[dict[str, Any]]
    page: PageMetadata
    warnings: list[ParseError] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": self.rows,
            "pagination": self.page.to_dict(),
            "warnings": [w.to_dict() for w in self.warnings],
        }


class TableService:
    def __init__(
        self,
        registry: TableRegistry,
        db: PersistenceAdapter,
        authorizer: Authorizer,
        load_snapshot: Callable[[], PermissionSnapshot] | None = None,
        admin_group: str = "Admins",
        strict_params: bool = False,
        strict_types: bool = False,
        default_limit: int = DEFAULT_LIMIT,
        max_limit: int = MAX_LIMIT,
    ):
        self.registry = registry
        self.db = db
        self.authorizer = authorizer
        self._load_snapshot = load_snapshot
        self.admin_group = admin_group
        self.strict_params = strict_params
        self.strict_types = strict_types
        self.default_limit = default_limit
        self.max_limit = max_limit

    # -- helpers -----------------------------------------------------------

    def _allow(
        self,
        identity: Identity,
        table: TableConfig,
        action: Action,
        record_id: Any,
        deadline: Deadline,
    ):
        decision = self.authorizer.authorize(identity, table, action, record_id, deadline)
        BeforeApiCallRegistry.run(action, table.name, identity)
        return decision

    def _record_id(self, table: TableConfig, raw_id: Any) -> Any:
        """Coerce a path id with the primary key's type hint.

        An id that cannot be a value of the key's type cannot match a row.
        """
        if not isinstance(raw_id, str):
            return raw_id
        spec = table.get_field(table.primary_key)
        try:
            return coerce_value(spec.type, raw_id)
        except ValueError:
            raise RecordNotFound()

    def _check_body(
        self, table: TableConfig, data: Any, read_only: frozenset[str] = frozenset()
    ) -> list[ParseError]:
        if not isinstance(data, dict):
            return [ParseError("body", 0, "record data must be an object")]

        errors: list[ParseError] = []
        for index, (name, value) in enumerate(data.items()):
            spec = table.get_field(name) if isinstance(name, str) else None
            if spec is None:
                errors.append(ParseError("body", index, "unknown field"))
            elif name in read_only:
                errors.append(ParseError("body", index, "field is not writable", name))
            elif not isinstance(value, _SCALARS):
                errors.append(ParseError("body", index, "value must be a scalar", name))
        return errors

    # -- operations --------------------------------------------------------

    def list_tables(self, identity: Identity) -> list[dict[str, Any]]:
        """Describe every configured table the caller has any view right on."""
        resolver = self.authorizer.resolver
        tables = []
        for name in self.registry.list_tables():
            config = self.registry.get_config(name)
            levels = {
                action.value: resolver.resolve(identity.group_id, name, action)
                for action in Action
            }
            if levels[Action.VIEW.value] is PermissionLevel.NONE:
                continue
            tables.append({
                "name": config.name,
                "displayName": config.display_name,
                "primaryKey": config.primary_key,
                "ownerField": config.owner_field,
                "permissions": {action: level.name.lower() for action, level in levels.items()},
                "fields": [
                    {
                        "name": f.name,
                        "displayName": f.display_name,
                        "type": f.type,
                        "filterable": f.filterable,
                        "sortable": f.sortable,
                        "searchable": f.searchable,
                    }
                    for f in config.fields
                    if f.selectable
                ],
            })
        return tables

    def list_records(
        self,
        identity: Identity,
        table_name: str,
        limit: str | None = None,
        offset: str | None = None,
        order: str | None = None,
        filters: str | None = None,
        q: str | None = None,
        deadline: Deadline | None = None,
    ) -> RecordPage:
        """List one page of a table.

        Raw parameters are passed as received. Bad segments are dropped and
        returned as warnings, or reject the request when ``strict_params``.

        Raises:
            UnknownTable, Forbidden, InvalidRequest, DatabaseError, RequestCancelled
        """
        deadline = deadline or Deadline()
        table = self.registry.get_config(table_name)
        decision = self._allow(identity, table, Action.VIEW, None, deadline)

        parsed = parse(filters, order, q, table, strict_types=self.strict_types)
        page, page_errors = parse_page(limit, offset, self.default_limit, self.max_limit)
        errors = parsed.errors + page_errors
        if errors and self.strict_params:
            raise InvalidRequest(errors)

        plan = build(
            parsed.filters,
            parsed.sort,
            parsed.search,
            page,
            table,
            dialect=self.db.dialect,
            owner_scope=decision.owner_scope,
        )

        count = plan.count_statement()
        deadline.check()
        total = int(self.db.scalar(count.sql, count.params) or 0)

        select = plan.select_statement()
        deadline.check()
        rows = self.db.fetch_all(select.sql, select.params)

        return RecordPage(
            rows=rows,
            page=compute_page_metadata(total, page.limit, page.offset),
            warnings=errors,
        )

    def get_record(
        self,
        identity: Identity,
        table_name: str,
        record_id: Any,
        deadline: Deadline | None = None,
    ) -> dict[str, Any]:
        deadline = deadline or Deadline()
        table = self.registry.get_config(table_name)
        record_id = self._record_id(table, record_id)
        self._allow(identity, table, Action.VIEW, record_id, deadline)

        stmt = build_select_one(table, record_id, self.db.dialect)
        deadline.check()
        row = self.db.fetch_one(stmt.sql, stmt.params)
        if row is None:
            raise RecordNotFound()
        return row

    def create_record(
        self,
        identity: Identity,
        table_name: str,
        data: Any,
        deadline: Deadline | None = None,
    ) -> dict[str, Any]:
        """Insert a record and return it as stored.

        The owner field, when the table has one, is always set to the
        caller's user id.

        Raises:
            InvalidRequest: For unknown fields or non-scalar values
        """
        deadline = deadline or Deadline()
        table = self.registry.get_config(table_name)
        self._allow(identity, table, Action.CREATE, None, deadline)

        errors = self._check_body(table, data)
        if errors:
            raise InvalidRequest(errors, "Invalid record data")

        values = dict(data)
        if table.owner_field:
            values[table.owner_field] = identity.user_id

        stmt = build_insert(table, values, self.db.dialect)
        deadline.check()
        new_id = self.db.insert(stmt.sql, stmt.params, table.primary_key)
        record_id = values.get(table.primary_key, new_id)
        logger.info("User %s created %s record %s", identity.user_id, table.name, record_id)

        select = build_select_one(table, record_id, self.db.dialect)
        deadline.check()
        row = self.db.fetch_one(select.sql, select.params)
        return row if row is not None else {table.primary_key: record_id, **values}

    def update_record(
        self,
        identity: Identity,
        table_name: str,
        record_id: Any,
        data: Any,
        deadline: Deadline | None = None,
    ) -> dict[str, Any]:
        """Update the given fields of one record and return it.

        The primary key and the owner field are not writable.

        Raises:
            InvalidRequest: For unknown, read-only, or non-scalar fields,
                or an empty update
            RecordNotFound: If no row matched
        """
        deadline = deadline or Deadline()
        table = self.registry.get_config(table_name)
        record_id = self._record_id(table, record_id)
        self._allow(identity, table, Action.EDIT, record_id, deadline)

        read_only = frozenset(n for n in (table.primary_key, table.owner_field) if n)
        errors = self._check_body(table, data, read_only)
        if not errors and not data:
            errors = [ParseError("body", 0, "no fields to update")]
        if errors:
            raise InvalidRequest(errors, "Invalid record data")

        stmt = build_update(table, record_id, dict(data), self.db.dialect)
        deadline.check()
        if self.db.execute(stmt.sql, stmt.params) == 0:
            raise RecordNotFound()
        logger.info("User %s updated %s record %s", identity.user_id, table.name, record_id)

        select = build_select_one(table, record_id, self.db.dialect)
        deadline.check()
        row = self.db.fetch_one(select.sql, select.params)
        if row is None:
            raise RecordNotFound()
        return row

    def delete_record(
        self,
        identity: Identity,
        table_name: str,
        record_id: Any,
        deadline: Deadline | None = None,
    ) -> None:
        deadline = deadline or Deadline()
        table = self.registry.get_config(table_name)
        record_id = self._record_id(table, record_id)
        self._allow(identity, table, Action.DELETE, record_id, deadline)

        stmt = build_delete(table, record_id, self.db.dialect)
        deadline.check()
        if self.db.execute(stmt.sql, stmt.params) == 0:
            raise RecordNotFound()
        logger.info("User %s deleted %s record %s", identity.user_id, table.name, record_id)

    def reload_permissions(self, identity: Identity) -> int:
        """Replace the permission snapshot with a fresh read.

        Only members of the admin group may reload. Requests already past
        authorization keep the snapshot they resolved against.

        Returns:
            Number of (group, table) rows in the new snapshot

        Raises:
            Forbidden: If the caller is not in the admin group
            PermissionCheckFailed: If the permission table cannot be read
        """
        if identity.group_id != self.admin_group or self._load_snapshot is None:
            logger.info("Denied permission reload for user %s", identity.user_id)
            raise Forbidden()

        snapshot = self._load_snapshot()
        self.authorizer.resolver = PermissionResolver(snapshot)
        logger.info("Permission snapshot reloaded by %s (%d rows)", identity.user_id, len(snapshot))
        return len(snapshot)
