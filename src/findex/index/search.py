"""Search interface combining name terms, filters and pagination."""

from __future__ import annotations

import logging

from findex.index.pagination import paginate
from findex.index.storage import IndexStore
from findex.models import QuerySpec, SearchPage

LOGGER = logging.getLogger(__name__)


class Searcher:
    """High-level API to query the index store."""

    def __init__(self, store: IndexStore) -> None:
        self.store = store

    def search(self, spec: QuerySpec) -> SearchPage:
        with self.store.snapshot():
            total = self.store.count_all(spec)
            window = paginate(total, spec.page, spec.page_size)
            entries = (
                []
                if window.is_empty
                else self.store.find_all(spec, limit=window.page_size, offset=window.offset)
            )

        LOGGER.debug(
            "Search %s/%s in %s: %d total, page %d",
            spec.required,
            spec.excluded,
            spec.indexes,
            total,
            window.page,
        )
        return SearchPage(
            entries=entries,
            total=total,
            page=window.page,
            page_size=window.page_size,
            total_pages=window.total_pages,
        )
