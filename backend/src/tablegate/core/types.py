"""Field type registry with value coercion for query parameters."""

import math
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable


class ValueKind(str, Enum):
    """Kind tag carried by every value bound into a query."""

    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"


# Signed 64-bit range shared by SQLite INTEGER and PostgreSQL BIGINT
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

_TRUE_TOKENS = {"1", "true", "yes", "y", "on"}
_FALSE_TOKENS = {"0", "false", "no", "n", "off"}


def _coerce_string(text: str) -> str:
    return text


def _coerce_integer(text: str) -> int:
    value = int(text.strip())
    if not INT64_MIN <= value <= INT64_MAX:
        raise ValueError("integer out of range")
    return value


def _coerce_float(text: str) -> float:
    value = float(text.strip())
    if math.isnan(value) or math.isinf(value):
        raise ValueError("not a finite number")
    return value


def _coerce_boolean(text: str) -> bool:
    token = text.strip().lower()
    if token in _TRUE_TOKENS:
        return True
    if token in _FALSE_TOKENS:
        return False
    raise ValueError("not a boolean")


def _coerce_date(text: str) -> str:
    # Dates are bound as ISO strings; the sqlite3 default date adapters are deprecated.
    return date.fromisoformat(text.strip()).isoformat()


def _coerce_datetime(text: str) -> str:
    # Bound as "YYYY-MM-DD HH:MM:SS", the generator's stored text format
    stripped = text.strip()
    if len(stripped) == 10 and "T" not in stripped and " " not in stripped:
        # Date-only literal for a timestamp column -> start of the day.
        start = datetime.combine(date.fromisoformat(stripped), datetime.min.time())
        return start.isoformat(sep=" ")
    return datetime.fromisoformat(stripped.replace("Z", "+00:00")).isoformat(sep=" ")


@dataclass(frozen=True)
class FieldType:
    name: str
    kind: ValueKind
    coerce: Callable[[str], Any]


# Built-in field types
FIELD_TYPES: dict[str, FieldType] = {
    "string": FieldType(name="string", kind=ValueKind.STRING, coerce=_coerce_string),
    "integer": FieldType(name="integer", kind=ValueKind.INTEGER, coerce=_coerce_integer),
    "float": FieldType(name="float", kind=ValueKind.FLOAT, coerce=_coerce_float),
    "boolean": FieldType(name="boolean", kind=ValueKind.BOOLEAN, coerce=_coerce_boolean),
    "date": FieldType(name="date", kind=ValueKind.DATE, coerce=_coerce_date),
    "datetime": FieldType(name="datetime", kind=ValueKind.DATETIME, coerce=_coerce_datetime),
}


def get_field_type(type_name: str) -> FieldType:
    """Get a field type definition.

    Raises:
        ValueError: If the type name is not registered
    """
    try:
        return FIELD_TYPES[type_name]
    except KeyError:
        raise ValueError(
            f"Unknown field type '{type_name}'. "
            f"Allowed: {', '.join(sorted(FIELD_TYPES))}"
        ) from None


def coerce_value(type_name: str, text: str) -> Any:
    """Convert a raw query-string value using the field's type hint.

    Raises:
        ValueError: If the text is not a valid literal for the type
    """
    return get_field_type(type_name).coerce(text)
