"""Page arithmetic for search results."""

from __future__ import annotations

from dataclasses import dataclass

from findex.models import DEFAULT_PAGE_SIZE, PAGE_SIZES


@dataclass(frozen=True, slots=True)
class PageWindow:
    page: int
    page_size: int
    offset: int
    total: int
    total_pages: int

    @property
    def is_empty(self) -> bool:
        return self.offset >= self.total


def normalize_page(raw: str | int | None) -> int:
    try:
        page = int(raw) if raw is not None and raw != "" else 1
    except (TypeError, ValueError):
        return 1
    return max(page, 1)


def normalize_page_size(raw: str | int | None) -> int:
    try:
        size = int(raw) if raw is not None and raw != "" else DEFAULT_PAGE_SIZE
    except (TypeError, ValueError):
        return DEFAULT_PAGE_SIZE
    return size if size in PAGE_SIZES else DEFAULT_PAGE_SIZE


def paginate(total: int, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> PageWindow:
    """Locate ``page`` within ``total`` results.

    Pages past the end are not clamped; their window is simply empty.
    """
    page = normalize_page(page)
    page_size = normalize_page_size(page_size)
    total_pages = max((total + page_size - 1) // page_size, 1)
    return PageWindow(
        page=page,
        page_size=page_size,
        offset=(page - 1) * page_size,
        total=total,
        total_pages=total_pages,
    )
