"""Load and resolve table configuration from YAML files."""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

import yaml

from tablegate.core.errors import UnknownTable
from tablegate.core.types import FIELD_TYPES

# Every identifier that ends up in SQL text must match this.
IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _check_identifier(kind: str, name: str) -> None:
    if not isinstance(name, str) or not IDENTIFIER_PATTERN.match(name):
        raise ValueError(f"Invalid {kind} name {name!r}")


@dataclass(frozen=True)
class FieldSpec:
    name: str
    type: str = "string"
    display_name: str = ""
    selectable: bool = True
    filterable: bool = False
    sortable: bool = False
    searchable: bool = False


@dataclass(frozen=True)
class TableConfig:
    """Static configuration for one exposed table.

    The field-name sets are derived from ``fields`` once, at construction.
    Construction fails for any identifier that is not safe to place in SQL
    text, so a TableConfig is always usable by the query builder as-is.
    """

    name: str
    primary_key: str
    fields: tuple[FieldSpec, ...]
    owner_field: str | None = None
    display_name: str = ""

    selectable: tuple[str, ...] = field(init=False)
    filterable: frozenset[str] = field(init=False)
    sortable: frozenset[str] = field(init=False)
    searchable: frozenset[str] = field(init=False)
    _by_name: dict[str, FieldSpec] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        _check_identifier("table", self.name)
        by_name: dict[str, FieldSpec] = {}
        for spec in self.fields:
            _check_identifier("field", spec.name)
            if spec.name in by_name:
                raise ValueError(f"Table '{self.name}' declares field '{spec.name}' twice")
            if spec.type not in FIELD_TYPES:
                raise ValueError(
                    f"Field '{self.name}.{spec.name}' has unknown type '{spec.type}'"
                )
            by_name[spec.name] = spec

        if self.primary_key not in by_name:
            raise ValueError(
                f"Primary key '{self.primary_key}' is not a field of table '{self.name}'"
            )
        if self.owner_field is not None and self.owner_field not in by_name:
            raise ValueError(
                f"Owner field '{self.owner_field}' is not a field of table '{self.name}'"
            )

        object.__setattr__(self, "fields", tuple(self.fields))
        object.__setattr__(self, "_by_name", by_name)
        object.__setattr__(
            self, "selectable", tuple(f.name for f in self.fields if f.selectable)
        )
        object.__setattr__(
            self, "filterable", frozenset(f.name for f in self.fields if f.filterable)
        )
        object.__setattr__(
            self, "sortable", frozenset(f.name for f in self.fields if f.sortable)
        )
        object.__setattr__(
            self, "searchable", frozenset(f.name for f in self.fields if f.searchable)
        )

    def get_field(self, name: str) -> FieldSpec | None:
        """Look up a declared field by exact name."""
        return self._by_name.get(name)

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]


class TableRegistry:
    """Loads table definitions from YAML files and serves them by name."""

    def __init__(self, metadata_path: Path | None = None):
        self.metadata_path = metadata_path
        self.tables: dict[str, TableConfig] = {}

    @classmethod
    def from_configs(cls, configs: Iterable[TableConfig]) -> "TableRegistry":
        """Build a registry from already-constructed configs."""
        registry = cls()
        for config in configs:
            registry._add(config)
        return registry

    def load_all(self) -> None:
        """Load every table definition under ``<metadata>/tables``."""
        if self.metadata_path is None:
            return
        tables_path = self.metadata_path / "tables"
        if not tables_path.exists():
            return

        for yaml_file in sorted(tables_path.glob("*.yaml")):
            with open(yaml_file) as f:
                data = yaml.safe_load(f)
                if data and "table" in data:
                    self._add(self._resolve_table(data))

    def _add(self, config: TableConfig) -> None:
        if config.name in self.tables:
            raise ValueError(f"Duplicate table definition '{config.name}'")
        self.tables[config.name] = config

    def _resolve_table(self, data: dict) -> TableConfig:
        """Convert a table definition dict to a TableConfig."""
        name = data["table"]
        fields = [self._resolve_field(f) for f in data.get("fields", [])]

        # Primary key: explicit table-level key, else the first flagged field, else "id"
        primary_key = data.get("primaryKey")
        if not primary_key:
            primary_key = "id"
            for raw in data.get("fields", []):
                if raw.get("primaryKey"):
                    primary_key = raw["name"]
                    break

        return TableConfig(
            name=name,
            primary_key=primary_key,
            fields=tuple(fields),
            owner_field=data.get("ownerField"),
            display_name=data.get("displayName", self._to_display_name(name)),
        )

    def _resolve_field(self, data: dict) -> FieldSpec:
        """Convert field dict to FieldSpec."""
        name = data["name"]
        return FieldSpec(
            name=name,
            type=data.get("type", "string"),
            display_name=data.get("displayName", self._to_display_name(name)),
            selectable=data.get("selectable", True),
            filterable=data.get("filterable", False),
            sortable=data.get("sortable", False),
            searchable=data.get("searchable", False),
        )

    def _to_display_name(self, name: str) -> str:
        """Convert snake_case or camelCase to Title Case."""
        result = []
        for i, char in enumerate(name):
            if char == "_":
                result.append(" ")
                continue
            if char.isupper() and i > 0 and name[i - 1] != "_":
                result.append(" ")
            result.append(char)
        return "".join(result).title()

    def get_config(self, table_name: str) -> TableConfig:
        """Get a table configuration by name.

        Raises:
            UnknownTable: If no table with that name is configured
        """
        config = self.tables.get(table_name)
        if config is None:
            raise UnknownTable()
        return config

    def list_tables(self) -> list[str]:
        """List all table names."""
        return list(self.tables.keys())

    def __contains__(self, table_name: object) -> bool:
        return table_name in self.tables
