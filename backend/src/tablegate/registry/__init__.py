"""Table registry - static per-table field configuration."""

from tablegate.registry.loader import FieldSpec, TableConfig, TableRegistry

__all__ = ["FieldSpec", "TableConfig", "TableRegistry"]
