"""
Pagination math shared by every paginated listing.

``paginate`` turns a row count into an offset/limit window; ``page_sequence``
produces the compact page-number strip rendered under a listing.
"""

import math
from dataclasses import dataclass

ELLIPSIS = "..."

# Largest strip page_sequence will ever produce: first, gap, 3-page window, gap, last
MAX_SEQUENCE_ENTRIES = 7


@dataclass(frozen=True)
class PageWindow:
    page: int
    total_pages: int
    offset: int
    limit: int
    requested_page: int

    @property
    def clamped(self) -> bool:
        """True when the requested page fell outside [1, total_pages]."""
        return self.page != self.requested_page


def total_pages_for(total_count: int, page_size: int) -> int:
    """An empty listing still has one (empty) page."""
    page_size = max(1, page_size)
    return max(1, math.ceil(max(0, total_count) / page_size))


def paginate(total_count: int, page: int, page_size: int) -> PageWindow:
    """
    Compute the window for ``page`` over ``total_count`` rows.

    The page is clamped into [1, total_pages] before the offset is computed.
    Callers compare ``window.page`` with what they asked for to decide
    whether to refetch.
    """
    page_size = max(1, page_size)
    total_pages = total_pages_for(total_count, page_size)
    clamped_page = min(max(1, page), total_pages)
    return PageWindow(
        page=clamped_page,
        total_pages=total_pages,
        offset=(clamped_page - 1) * page_size,
        limit=page_size,
        requested_page=page,
    )


def page_sequence(current: int, total_pages: int) -> list[int | str]:
    """
    Page numbers to render, with ``ELLIPSIS`` where pages are skipped.

    Always includes the first and last page plus up to three pages centred on
    ``current``. Short listings (7 pages or fewer) show every page.

    >>> page_sequence(5, 10)
    [1, '...', 4, 5, 6, '...', 10]
    """
    total_pages = max(1, total_pages)
    current = min(max(1, current), total_pages)

    if total_pages <= MAX_SEQUENCE_ENTRIES:
        return list(range(1, total_pages + 1))

    pages: list[int | str] = [1]
    if current > 3:
        pages.append(ELLIPSIS)
    for number in range(max(2, current - 1), min(total_pages - 1, current + 1) + 1):
        pages.append(number)
    if current < total_pages - 2:
        pages.append(ELLIPSIS)
    pages.append(total_pages)
    return pages
