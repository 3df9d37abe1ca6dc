"""Parse raw query-string parameters into the filter/sort/search IR.

Grammar:
    filters  := condition (',' condition)*
    condition:= field ':' operator (':' value)?
    order    := sortspec (';' sortspec)*
    sortspec := field (',' direction)?
    q        := free text

Only the first two colons of a condition are significant, so values may
contain ':'. ``in``/``notin`` take a comma-separated list: a token continues
the list unless it starts with a declared field name and a colon, so list
items may contain ':' (datetimes, times). Any other operator followed by a
colon-free token is rejected, since the intended value is ambiguous.

Each bad segment is dropped and reported as a ParseError; parsing always
continues with the remaining segments.
"""

import logging
from dataclasses import dataclass, field

from tablegate.core.types import INT64_MAX, ValueKind, get_field_type
from tablegate.query.types import (
    FilterCondition,
    FilterOperator,
    PageRequest,
    ParseError,
    ParseResult,
    SortDirection,
    SortKey,
    TypedValue,
)
from tablegate.registry.loader import FieldSpec, TableConfig

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100
MAX_LIMIT = 500

_OPERATORS: dict[str, FilterOperator] = {op.value: op for op in FilterOperator}
_DIRECTIONS: dict[str, SortDirection] = {d.value: d for d in SortDirection}


@dataclass
class _Segment:
    index: int
    head: str
    continuation: list[str] = field(default_factory=list)


def _head_takes_list(head: str) -> bool:
    parts = head.split(":", 2)
    return len(parts) >= 2 and parts[1].strip().lower() in ("in", "notin")


def _typed_value(
    spec: FieldSpec, text: str, strict_types: bool
) -> TypedValue:
    """Coerce ``text`` with the field's type hint.

    With ``strict_types`` off, a literal that does not fit the type is bound
    as a plain string and left for the database to compare.

    Raises:
        ValueError: In strict mode, when the literal does not fit the type
    """
    field_type = get_field_type(spec.type)
    try:
        return TypedValue(field_type.kind, field_type.coerce(text))
    except ValueError:
        if strict_types:
            raise
        return TypedValue(ValueKind.STRING, text)


class _FilterParser:
    def __init__(self, table: TableConfig, strict_types: bool):
        self.table = table
        self.strict_types = strict_types
        self.conditions: list[FilterCondition] = []
        self.errors: list[ParseError] = []

    def _reject(self, index: int, reason: str, field_name: str | None = None) -> None:
        self.errors.append(ParseError("filters", index, reason, field_name))

    def _starts_condition(self, token: str, current: _Segment | None) -> bool:
        if ":" not in token:
            return False
        if current is None or not _head_takes_list(current.head):
            return True
        # Inside an in/notin list, datetime and time items contain colons too
        return token.split(":", 1)[0].strip() in self.table.field_names

    def _segments(self, raw: str) -> list[_Segment]:
        segments: list[_Segment] = []
        current: _Segment | None = None
        for token in raw.split(","):
            if self._starts_condition(token, current):
                current = _Segment(index=len(segments), head=token)
                segments.append(current)
            elif current is not None and _head_takes_list(current.head):
                current.continuation.append(token)
            elif not token.strip():
                self._reject(len(segments), "empty segment")
                segments.append(_Segment(index=len(segments), head=""))
                current = None
            elif current is not None:
                current.continuation.append(token)
            else:
                self._reject(len(segments), "malformed condition")
                segments.append(_Segment(index=len(segments), head=""))
        return [s for s in segments if s.head]

    def parse(self, raw: str) -> None:
        for segment in self._segments(raw):
            condition = self._parse_segment(segment)
            if condition is not None:
                self.conditions.append(condition)

    def _parse_segment(self, segment: _Segment) -> FilterCondition | None:
        index = segment.index
        parts = segment.head.split(":", 2)
        field_name = parts[0].strip()
        op_text = parts[1].strip().lower()
        value_text = parts[2].strip() if len(parts) == 3 else None

        if field_name not in self.table.filterable:
            self._reject(index, "unknown or non-filterable field")
            return None
        spec = self.table.get_field(field_name)

        operator = _OPERATORS.get(op_text)
        if operator is None:
            self._reject(index, "unsupported operator", field_name)
            return None

        if operator.takes_no_value:
            if value_text or segment.continuation:
                self._reject(index, "operator takes no value", field_name)
                return None
            return FilterCondition(field_name, operator)

        if value_text is None:
            self._reject(index, "missing value", field_name)
            return None

        if operator.takes_list:
            items = [value_text] + [t.strip() for t in segment.continuation]
            items = [item for item in items if item]
            if not items:
                self._reject(index, "empty value list", field_name)
                return None
            texts = items
        else:
            if segment.continuation:
                self._reject(index, "only in/notin accept a list of values", field_name)
                return None
            texts = [value_text]

        if operator is FilterOperator.LIKE:
            return FilterCondition(
                field_name, operator, (TypedValue(ValueKind.STRING, value_text),)
            )

        try:
            values = tuple(_typed_value(spec, text, self.strict_types) for text in texts)
        except ValueError:
            self._reject(index, f"value is not a valid {spec.type}", field_name)
            return None
        return FilterCondition(field_name, operator, values)


def parse_filters(
    raw: str | None, table: TableConfig, strict_types: bool = False
) -> tuple[list[FilterCondition], list[ParseError]]:
    """Parse the ``filters`` parameter against the table's filterable fields."""
    if raw is None or not raw.strip():
        return [], []
    parser = _FilterParser(table, strict_types)
    parser.parse(raw)
    return parser.conditions, parser.errors


def parse_order(
    raw: str | None, table: TableConfig
) -> tuple[list[SortKey], list[ParseError]]:
    """Parse the ``order`` parameter against the table's sortable fields."""
    keys: list[SortKey] = []
    errors: list[ParseError] = []
    if raw is None or not raw.strip():
        return keys, errors

    seen: set[str] = set()
    for index, spec in enumerate(raw.split(";")):
        if not spec.strip():
            errors.append(ParseError("order", index, "empty segment"))
            continue
        parts = spec.split(",")
        if len(parts) > 2:
            errors.append(ParseError("order", index, "malformed sort segment"))
            continue

        field_name = parts[0].strip()
        if field_name not in table.sortable:
            errors.append(ParseError("order", index, "unknown or non-sortable field"))
            continue

        direction_text = parts[1].strip().lower() if len(parts) == 2 else ""
        if direction_text:
            direction = _DIRECTIONS.get(direction_text)
            if direction is None:
                errors.append(ParseError("order", index, "unsupported direction", field_name))
                continue
        else:
            direction = SortDirection.ASC

        if field_name in seen:
            errors.append(ParseError("order", index, "duplicate sort field", field_name))
            continue
        seen.add(field_name)
        keys.append(SortKey(field_name, direction))

    return keys, errors


def parse_search(raw: str | None) -> str | None:
    """Normalise the ``q`` parameter; empty means no search."""
    if raw is None:
        return None
    text = raw.strip()
    return text or None


def parse(
    raw_filters: str | None,
    raw_order: str | None,
    raw_q: str | None,
    table: TableConfig,
    strict_types: bool = False,
) -> ParseResult:
    """Parse filters, order, and search text for one request."""
    filters, filter_errors = parse_filters(raw_filters, table, strict_types)
    sort, sort_errors = parse_order(raw_order, table)
    search = parse_search(raw_q)
    search_errors = []
    if search is not None and not table.searchable:
        search_errors.append(ParseError("q", 0, "table has no searchable fields"))
        search = None
    result = ParseResult(
        filters=filters,
        sort=sort,
        search=search,
        errors=filter_errors + sort_errors + search_errors,
    )
    for error in result.errors:
        logger.debug(
            "Dropped %s segment %d on table %s: %s",
            error.param, error.index, table.name, error.reason,
        )
    return result


def _parse_int(raw: str | None) -> int | None:
    if raw is None or not raw.strip():
        return None
    return int(raw.strip())


def parse_page(
    raw_limit: str | None,
    raw_offset: str | None,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
) -> tuple[PageRequest, list[ParseError]]:
    """Parse and clamp ``limit`` and ``offset``.

    limit is clamped to 1..max_limit, offset to >= 0. Non-integers, and offsets
    outside the signed 64-bit range, are reported and replaced by the defaults.
    """
    errors: list[ParseError] = []
    default_limit = max(1, min(default_limit, max_limit))

    try:
        limit = _parse_int(raw_limit)
    except ValueError:
        errors.append(ParseError("limit", 0, "not an integer"))
        limit = None
    if limit is None:
        limit = default_limit
    limit = max(1, min(limit, max_limit))

    try:
        offset = _parse_int(raw_offset)
    except ValueError:
        errors.append(ParseError("offset", 0, "not an integer"))
        offset = None
    if offset is not None and offset > INT64_MAX:
        errors.append(ParseError("offset", 0, "integer out of range"))
        offset = None
    offset = max(0, offset or 0)

    return PageRequest(limit=limit, offset=offset), errors
