"""Query construction - parameter parsing, SQL building, and page math."""

from tablegate.query.builder import (
    DIALECTS,
    POSTGRESQL,
    SQLITE,
    Dialect,
    QueryPlan,
    Statement,
    build,
)
from tablegate.query.pagination import PageMetadata, compute_page_metadata
from tablegate.query.parser import parse, parse_page
from tablegate.query.types import (
    FilterCondition,
    FilterOperator,
    OwnerScope,
    PageRequest,
    ParseError,
    ParseResult,
    SortDirection,
    SortKey,
    TypedValue,
)

__all__ = [
    "DIALECTS",
    "POSTGRESQL",
    "SQLITE",
    "Dialect",
    "FilterCondition",
    "FilterOperator",
    "OwnerScope",
    "PageMetadata",
    "PageRequest",
    "ParseError",
    "ParseResult",
    "QueryPlan",
    "SortDirection",
    "SortKey",
    "Statement",
    "TypedValue",
    "build",
    "compute_page_metadata",
    "parse",
    "parse_page",
]
