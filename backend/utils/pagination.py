import math
from dataclasses import dataclass
from typing import Optional, Union

from ..constants import (
    PAGING_MAX_VALUE,
    PARCEL_DEFAULT_LIMIT,
    PARCEL_DEFAULT_OFFSET,
    PARCEL_MAX_LIMIT,
    VISITOR_DEFAULT_PAGE,
    VISITOR_DEFAULT_PAGE_SIZE,
)

RawNumber = Optional[Union[str, int]]


@dataclass(frozen=True)
class PageWindow:
    page: int
    page_size: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def total_pages(self, total: int) -> int:
        return math.ceil(total / self.page_size)


@dataclass(frozen=True)
class OffsetWindow:
    limit: int
    offset: int


def _parse_int(value: RawNumber) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return None


def _positive_int(value: RawNumber, fallback: int) -> int:
    number = _parse_int(value)
    if number is None or number <= 0:
        return fallback
    return min(number, PAGING_MAX_VALUE)


def page_window(page: RawNumber, page_size: RawNumber) -> PageWindow:
    """1-based paging; unusable values fall back to the defaults."""
    return PageWindow(
        page=_positive_int(page, VISITOR_DEFAULT_PAGE),
        page_size=_positive_int(page_size, VISITOR_DEFAULT_PAGE_SIZE),
    )


def offset_window(limit: RawNumber, offset: RawNumber) -> OffsetWindow:
    """Clamp limit into 1..100 (unusable or 0 means the default) and offset into 0..PAGING_MAX_VALUE."""
    resolved_offset = _parse_int(offset)
    if resolved_offset is None:
        resolved_offset = PARCEL_DEFAULT_OFFSET
    return OffsetWindow(
        limit=min(_positive_int(limit, PARCEL_DEFAULT_LIMIT), PARCEL_MAX_LIMIT),
        offset=min(max(resolved_offset, 0), PAGING_MAX_VALUE),
    )
