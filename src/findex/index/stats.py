"""Per-index and global statistics computed from the index store."""

from __future__ import annotations

import heapq
import logging
from datetime import datetime
from itertools import count
from typing import Callable, Dict, Generic, Iterable, List, MutableMapping, Optional, Sequence, TypeVar

from findex.index.storage import IndexStore
from findex.models import (
    Entry,
    ExtensionStats,
    GlobalStats,
    IndexStats,
    SizeBucket,
    YearStats,
)

LOGGER = logging.getLogger(__name__)

TOP_FILES = 10
TOP_EXTENSIONS = 15
TOP_YEARS = 10

KB = 1024
MB = KB * 1024
GB = MB * 1024

# (label, lower bound inclusive, upper bound exclusive)
SIZE_BUCKETS: Sequence[tuple[str, int, Optional[int]]] = (
    ("< 1 KB", 0, KB),
    ("1 KB - 100 KB", KB, 100 * KB),
    ("100 KB - 1 MB", 100 * KB, MB),
    ("1 MB - 10 MB", MB, 10 * MB),
    ("10 MB - 100 MB", 10 * MB, 100 * MB),
    ("100 MB - 1 GB", 100 * MB, GB),
    ("> 1 GB", GB, None),
)

T = TypeVar("T")

StatsCache = MutableMapping[tuple[str, str, int], IndexStats]


class _TopN(Generic[T]):
    """Keeps the ``n`` largest items seen; ties go to the earliest item."""

    def __init__(self, n: int, key: Callable[[T], float]) -> None:
        self.n = n
        self.key = key
        self._heap: list[tuple[float, int, T]] = []
        self._seq = count()

    def push(self, item: T) -> None:
        node = (self.key(item), -next(self._seq), item)
        if len(self._heap) < self.n:
            heapq.heappush(self._heap, node)
        elif node[:2] > self._heap[0][:2]:
            heapq.heapreplace(self._heap, node)

    def items(self) -> List[T]:
        return [item for _, _, item in sorted(self._heap, key=lambda node: node[:2], reverse=True)]


def _bucket_label(size: int) -> str:
    for label, lower, upper in SIZE_BUCKETS:
        if size >= lower and (upper is None or size < upper):
            return label
    return SIZE_BUCKETS[0][0]


def _top_extensions(by_extension: Dict[str, ExtensionStats], *, by_size: bool) -> List[ExtensionStats]:
    named = [stats for ext, stats in by_extension.items() if ext]
    if by_size:
        named.sort(key=lambda stats: (-stats.total_size, stats.extension))
    else:
        named.sort(key=lambda stats: (-stats.count, stats.extension))
    return named[:TOP_EXTENSIONS]


def aggregate(index_name: str, entries: Iterable[Entry]) -> IndexStats:
    """Compute :class:`IndexStats` in a single pass over ``entries``."""
    stats = IndexStats(index_name=index_name)
    largest: _TopN[Entry] = _TopN(TOP_FILES, key=lambda entry: entry.size_bytes)
    recent: _TopN[Entry] = _TopN(TOP_FILES, key=lambda entry: entry.modified_at)
    buckets = {label: SizeBucket(label=label) for label, _, _ in SIZE_BUCKETS}
    years: Dict[int, YearStats] = {}

    for entry in entries:
        if entry.is_dir:
            stats.total_dirs += 1
            continue

        stats.total_files += 1
        stats.total_size_bytes += entry.size_bytes

        ext = stats.by_extension.setdefault(entry.extension, ExtensionStats(entry.extension))
        ext.count += 1
        ext.total_size += entry.size_bytes

        bucket = buckets[_bucket_label(entry.size_bytes)]
        bucket.count += 1
        bucket.total_size += entry.size_bytes

        if entry.modified_at > 0:
            if stats.oldest_modified is None or entry.modified_at < stats.oldest_modified:
                stats.oldest_modified = entry.modified_at
            if stats.newest_modified is None or entry.modified_at > stats.newest_modified:
                stats.newest_modified = entry.modified_at
            year = datetime.fromtimestamp(entry.modified_at).year
            year_stats = years.setdefault(year, YearStats(year))
            year_stats.count += 1
            year_stats.total_size += entry.size_bytes

        largest.push(entry)
        recent.push(entry)

    if stats.total_files:
        stats.avg_file_size = stats.total_size_bytes // stats.total_files
    stats.top_extensions = _top_extensions(stats.by_extension, by_size=False)
    stats.top_extensions_by_size = _top_extensions(stats.by_extension, by_size=True)
    stats.largest_files = largest.items()
    stats.recent_files = recent.items()
    stats.size_distribution = list(buckets.values())
    stats.year_distribution = sorted(years.values(), key=lambda ys: ys.year, reverse=True)[:TOP_YEARS]
    return stats


def merge(per_index: Sequence[IndexStats]) -> GlobalStats:
    """Combine per-index statistics into totals across indexes."""
    merged = GlobalStats(index_count=len(per_index), indexes=list(per_index))
    buckets = {label: SizeBucket(label=label) for label, _, _ in SIZE_BUCKETS}
    years: Dict[int, YearStats] = {}
    largest: _TopN[Entry] = _TopN(TOP_FILES, key=lambda entry: entry.size_bytes)

    for stats in per_index:
        merged.total_files += stats.total_files
        merged.total_dirs += stats.total_dirs
        merged.total_size_bytes += stats.total_size_bytes
        for ext, ext_stats in stats.by_extension.items():
            target = merged.by_extension.setdefault(ext, ExtensionStats(ext))
            target.count += ext_stats.count
            target.total_size += ext_stats.total_size
        for bucket in stats.size_distribution:
            buckets[bucket.label].count += bucket.count
            buckets[bucket.label].total_size += bucket.total_size
        for year_stats in stats.year_distribution:
            target_year = years.setdefault(year_stats.year, YearStats(year_stats.year))
            target_year.count += year_stats.count
            target_year.total_size += year_stats.total_size
        for entry in stats.largest_files:
            largest.push(entry)

    merged.top_extensions = _top_extensions(merged.by_extension, by_size=False)
    merged.top_extensions_by_size = _top_extensions(merged.by_extension, by_size=True)
    merged.largest_files = largest.items()
    merged.size_distribution = list(buckets.values())
    # Each index keeps its newest TOP_YEARS, so the newest TOP_YEARS overall are complete.
    merged.year_distribution = sorted(years.values(), key=lambda ys: ys.year, reverse=True)[:TOP_YEARS]
    return merged


class StatsAggregator:
    """Computes statistics, reusing results until the index is re-crawled.

    ``cache`` may be shared between aggregators (e.g. across web requests);
    entries are keyed by database path, index name and publish generation.
    """

    def __init__(self, store: IndexStore, cache: StatsCache | None = None) -> None:
        self.store = store
        self.cache: StatsCache = cache if cache is not None else {}

    def index_stats(self, index_name: str) -> IndexStats:
        with self.store.snapshot():
            key = (str(self.store.db_path), index_name, self.store.generation(index_name))
            cached = self.cache.get(key)
            if cached is not None:
                return cached
            stats = aggregate(index_name, self.store.iter_entries(index_name))
            stats.last_scan = self.store.last_scan(index_name)

        LOGGER.debug("Computed stats for %s: %d files", index_name, stats.total_files)
        stale = [old for old in self.cache if old[:2] == key[:2] and old[2] != key[2]]
        for old in stale:
            self.cache.pop(old, None)
        self.cache[key] = stats
        return stats

    def global_stats(self, index_names: Sequence[str] | None = None) -> GlobalStats:
        """Merge per-index stats; repeated names count once."""
        names = dict.fromkeys(index_names or self.store.index_names)
        return merge([self.index_stats(name) for name in names])
