"""Directory listing within an index."""

from __future__ import annotations

import logging
from typing import List

from findex.errors import PathNotFoundError
from findex.index.storage import IndexStore
from findex.models import Breadcrumb, BrowseResult
from findex.utils.files import normalize_rel_path

LOGGER = logging.getLogger(__name__)


def build_breadcrumbs(path: str) -> List[Breadcrumb]:
    """One crumb per segment, each carrying the cumulative path."""
    crumbs: List[Breadcrumb] = []
    parts = [part for part in path.split("/") if part]
    for position, part in enumerate(parts):
        crumbs.append(Breadcrumb(name=part, path="/".join(parts[: position + 1])))
    return crumbs


class BrowseResolver:
    def __init__(self, store: IndexStore) -> None:
        self.store = store

    def browse(self, index_name: str, path: str | None = "") -> BrowseResult:
        """List the direct children of ``path``.

        Raises :class:`PathNotFoundError` when ``path`` is neither the root
        nor an indexed directory. An existing empty directory lists nothing.
        """
        path = normalize_rel_path(path)
        with self.store.snapshot():
            if path:
                directory = self.store.get_entry(index_name, path)
                if directory is None or not directory.is_dir:
                    raise PathNotFoundError(index_name, path)
                file_count = directory.file_count
            else:
                file_count, _ = self.store.file_totals(index_name)
            entries = self.store.list_children(index_name, path)

        LOGGER.debug("Found %d entries in %s:/%s", len(entries), index_name, path)
        return BrowseResult(
            index_name=index_name,
            path=path,
            entries=entries,
            breadcrumbs=build_breadcrumbs(path),
            size_bytes=sum(entry.size_bytes for entry in entries),
            file_count=file_count,
        )
