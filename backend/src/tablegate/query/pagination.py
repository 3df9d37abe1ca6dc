"""Page metadata derived from a total count and the requested window."""

import math
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class PageMetadata:
    total_records: int
    limit: int
    offset: int
    current_page: int
    total_pages: int
    next_offset: int | None = None
    prev_offset: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalRecords": self.total_records,
            "limit": self.limit,
            "offset": self.offset,
            "currentPage": self.current_page,
            "totalPages": self.total_pages,
            "nextOffset": self.next_offset,
            "prevOffset": self.prev_offset,
        }


def compute_page_metadata(total_records: int, limit: int, offset: int) -> PageMetadata:
    """Compute page metadata. Assumes ``limit >= 1`` (the parser clamps it).

    An empty result is always a single page with no neighbours, whatever
    offset was asked for.
    """
    if total_records <= 0:
        return PageMetadata(
            total_records=0,
            limit=limit,
            offset=offset,
            current_page=1,
            total_pages=1,
        )

    return PageMetadata(
        total_records=total_records,
        limit=limit,
        offset=offset,
        current_page=offset // limit + 1,
        total_pages=math.ceil(total_records / limit),
        next_offset=offset + limit if offset + limit < total_records else None,
        prev_offset=max(offset - limit, 0) if offset > 0 else None,
    )
