"""Intermediate representation produced by the parameter parser.

- FilterCondition / SortKey / search text: validated, whitelisted IR
- ParseError: one rejected segment of a raw parameter
- PageRequest: clamped limit/offset
- OwnerScope: list-level ownership constraint added by authorization
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from tablegate.core.types import ValueKind


class FilterOperator(str, Enum):
    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    LIKE = "like"
    IN = "in"
    NOT_IN = "notin"
    IS_NULL = "isnull"
    IS_NOT_NULL = "isnotnull"

    @property
    def takes_list(self) -> bool:
        return self in (FilterOperator.IN, FilterOperator.NOT_IN)

    @property
    def takes_no_value(self) -> bool:
        return self in (FilterOperator.IS_NULL, FilterOperator.IS_NOT_NULL)


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class TypedValue:
    """A bound value together with the kind it was parsed as."""

    kind: ValueKind
    value: Any


@dataclass(frozen=True)
class FilterCondition:
    field: str
    operator: FilterOperator
    values: tuple[TypedValue, ...] = ()

    def __post_init__(self) -> None:
        count = len(self.values)
        if self.operator.takes_no_value:
            if count:
                raise ValueError(f"'{self.operator.value}' takes no value")
        elif self.operator.takes_list:
            if not count:
                raise ValueError(f"'{self.operator.value}' needs at least one value")
        elif count != 1:
            raise ValueError(f"'{self.operator.value}' takes exactly one value")


@dataclass(frozen=True)
class SortKey:
    field: str
    direction: SortDirection = SortDirection.ASC


@dataclass(frozen=True)
class PageRequest:
    limit: int
    offset: int = 0


@dataclass(frozen=True)
class OwnerScope:
    """Restricts a listing to rows whose owner field equals the caller."""

    field: str
    user_id: str


@dataclass(frozen=True)
class ParseError:
    """A rejected parameter segment.

    ``field`` is only populated with whitelisted field names; raw request
    text is never stored here.
    """

    param: str
    index: int
    reason: str
    field: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "param": self.param,
            "index": self.index,
            "reason": self.reason,
            "field": self.field,
        }


@dataclass
class ParseResult:
    filters: list[FilterCondition] = field(default_factory=list)
    sort: list[SortKey] = field(default_factory=list)
    search: str | None = None
    errors: list[ParseError] = field(default_factory=list)
