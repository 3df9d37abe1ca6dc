"""Group permission lookup for table actions.

Permissions come from the generator's ``membership_grouppermissions`` table:
one row per (group, table) with an independent level for each action.
The rows are loaded into an immutable PermissionSnapshot at startup (or on an
explicit reload) and the resolver only ever reads that snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from tablegate.auth.types import Action, PermissionLevel

# Column names in membership_grouppermissions, keyed by action
ACTION_COLUMNS: dict[Action, str] = {
    Action.CREATE: "allowInsert",
    Action.VIEW: "allowView",
    Action.EDIT: "allowEdit",
    Action.DELETE: "allowDelete",
}


def _level(raw: Any) -> PermissionLevel:
    """Convert a stored value to a level; anything unrecognised is NONE."""
    try:
        return PermissionLevel(int(raw))
    except (TypeError, ValueError):
        return PermissionLevel.NONE


@dataclass(frozen=True)
class PermissionRow:
    create: PermissionLevel = PermissionLevel.NONE
    view: PermissionLevel = PermissionLevel.NONE
    edit: PermissionLevel = PermissionLevel.NONE
    delete: PermissionLevel = PermissionLevel.NONE

    def level_for(self, action: Action) -> PermissionLevel:
        match action:
            case Action.CREATE:
                return self.create
            case Action.VIEW:
                return self.view
            case Action.EDIT:
                return self.edit
            case Action.DELETE:
                return self.delete
        raise ValueError(f"Unknown action {action!r}")


class PermissionSnapshot:
    """Read-only (group, table) -> PermissionRow mapping."""

    def __init__(self, rows: Mapping[tuple[str, str], PermissionRow] | None = None):
        self._rows = MappingProxyType(dict(rows or {}))

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> PermissionSnapshot:
        """Build a snapshot from ``membership_grouppermissions`` rows."""
        rows: dict[tuple[str, str], PermissionRow] = {}
        for record in records:
            key = (str(record["groupID"]), str(record["tableName"]))
            rows[key] = PermissionRow(
                create=_level(record.get(ACTION_COLUMNS[Action.CREATE])),
                view=_level(record.get(ACTION_COLUMNS[Action.VIEW])),
                edit=_level(record.get(ACTION_COLUMNS[Action.EDIT])),
                delete=_level(record.get(ACTION_COLUMNS[Action.DELETE])),
            )
        return cls(rows)

    def get(self, group_id: str, table_name: str) -> PermissionRow | None:
        return self._rows.get((group_id, table_name))

    def __len__(self) -> int:
        return len(self._rows)


class PermissionResolver:
    """Resolves a group's permission level for a table action."""

    def __init__(self, snapshot: PermissionSnapshot):
        self.snapshot = snapshot

    def resolve(
        self, group_id: str, table_name: str, action: Action | str
    ) -> PermissionLevel:
        """Return the effective level. Missing rows resolve to NONE.

        Create has no record to own yet, so any non-NONE create level
        resolves to GROUP. An unknown action also resolves to NONE.
        """
        try:
            action = Action(action)
        except ValueError:
            return PermissionLevel.NONE
        row = self.snapshot.get(str(group_id), table_name)
        if row is None:
            return PermissionLevel.NONE

        level = row.level_for(action)
        if action is Action.CREATE and level is not PermissionLevel.NONE:
            return PermissionLevel.GROUP
        return level
