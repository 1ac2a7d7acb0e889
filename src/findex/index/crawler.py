"""File tree crawling and index publishing."""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional

import pathspec

from findex.config import IndexDefinition
from findex.errors import ConfigurationError
from findex.index.storage import IndexStore
from findex.models import Entry, ScanSummary
from findex.utils.files import split_extension

LOGGER = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(moment: datetime) -> str:
    return moment.isoformat(timespec="seconds")


@dataclass(slots=True)
class CrawlStats:
    files: int = 0
    dirs: int = 0
    total_size: int = 0
    errors: int = 0
    excluded: int = 0
    symlinks: int = 0

    def add(self, entry: Entry) -> None:
        if entry.is_dir:
            self.dirs += 1
        else:
            self.files += 1
            self.total_size += entry.size_bytes


@dataclass(slots=True)
class CrawlResult:
    index_name: str
    entries: List[Entry]
    stats: CrawlStats
    started_at: str
    finished_at: str

    def summary(self) -> ScanSummary:
        return ScanSummary(
            index_name=self.index_name,
            started_at=self.started_at,
            finished_at=self.finished_at,
            files=self.stats.files,
            dirs=self.stats.dirs,
            total_size=self.stats.total_size,
            errors=self.stats.errors,
        )


@dataclass(slots=True)
class IndexReport:
    """Outcome of one index in :meth:`Crawler.run`."""

    index_name: str
    status: str
    entries: int = 0
    errors: int = 0
    message: Optional[str] = None


@dataclass(slots=True)
class _Walk:
    definition: IndexDefinition
    excludes: Optional[pathspec.PathSpec]
    entries: List[Entry] = field(default_factory=list)
    stats: CrawlStats = field(default_factory=CrawlStats)


class Crawler:
    """Walks index roots and publishes the resulting entry sets."""

    def __init__(self, store: IndexStore) -> None:
        self.store = store

    def crawl(self, definition: IndexDefinition) -> CrawlResult:
        """Walk ``definition.root_path`` depth-first in name order.

        Raises :class:`ConfigurationError` if the root itself is unusable.
        Entries that cannot be stat'd are skipped; unreadable directories are
        kept as empty directories.
        """
        root = os.fspath(definition.root_path)
        try:
            root_stat = os.stat(root)
        except OSError as exc:
            raise ConfigurationError(
                f"Index {definition.name}: cannot access root {root}: {exc}"
            ) from exc
        if not stat.S_ISDIR(root_stat.st_mode):
            raise ConfigurationError(f"Index {definition.name}: root {root} is not a directory")

        started = _now()
        excludes = (
            pathspec.PathSpec.from_lines("gitwildmatch", definition.exclude)
            if definition.exclude
            else None
        )
        walk = _Walk(definition=definition, excludes=excludes)
        LOGGER.info("Scanning index %s at %s", definition.name, root)

        pending: list[tuple[str, str]] = [("", root)]
        while pending:
            rel_dir, abs_dir = pending.pop()
            subdirs = self._scan_directory(walk, rel_dir, abs_dir)
            pending.extend(reversed(subdirs))

        _accumulate_directory_totals(walk.entries)
        for entry in walk.entries:
            walk.stats.add(entry)

        finished = _now()
        LOGGER.info(
            "Scanned index %s: %d files, %d dirs, %d errors",
            definition.name,
            walk.stats.files,
            walk.stats.dirs,
            walk.stats.errors,
        )
        return CrawlResult(
            index_name=definition.name,
            entries=walk.entries,
            stats=walk.stats,
            started_at=_isoformat(started),
            finished_at=_isoformat(finished),
        )

    def _scan_directory(self, walk: _Walk, rel_dir: str, abs_dir: str) -> list[tuple[str, str]]:
        try:
            with os.scandir(abs_dir) as iterator:
                children = sorted(iterator, key=lambda dirent: dirent.name)
        except OSError as exc:
            if not rel_dir:
                raise ConfigurationError(
                    f"Index {walk.definition.name}: cannot list root {abs_dir}: {exc}"
                ) from exc
            LOGGER.warning("Error reading %s: %s", abs_dir, exc)
            walk.stats.errors += 1
            return []

        subdirs: list[tuple[str, str]] = []
        for dirent in children:
            rel_path = f"{rel_dir}/{dirent.name}" if rel_dir else dirent.name
            try:
                if dirent.is_symlink():
                    LOGGER.debug("Skipping symlink %s", dirent.path)
                    walk.stats.symlinks += 1
                    continue
                is_dir = dirent.is_dir(follow_symlinks=False)
                info = dirent.stat(follow_symlinks=False)
            except OSError as exc:
                LOGGER.warning("Unable to stat %s: %s", dirent.path, exc)
                walk.stats.errors += 1
                continue

            if walk.excludes is not None and walk.excludes.match_file(
                rel_path + "/" if is_dir else rel_path
            ):
                LOGGER.debug("Excluded %s", rel_path)
                walk.stats.excluded += 1
                continue

            walk.entries.append(
                Entry(
                    index_name=walk.definition.name,
                    path=rel_path,
                    name=dirent.name,
                    parent_path=rel_dir,
                    is_dir=is_dir,
                    extension="" if is_dir else split_extension(dirent.name),
                    size_bytes=0 if is_dir else info.st_size,
                    modified_at=info.st_mtime,
                )
            )
            if is_dir:
                subdirs.append((rel_path, dirent.path))
        return subdirs

    def publish(self, result: CrawlResult) -> int:
        count = self.store.replace_index(result.index_name, result.entries, result.summary())
        LOGGER.info("Index %s published with %d entries", result.index_name, count)
        return count

    def is_due(self, definition: IndexDefinition, now: datetime | None = None) -> bool:
        """Whether ``refresh_interval`` has elapsed since the last publish."""
        if definition.refresh_interval <= 0:
            return True
        last_scan = self.store.last_scan(definition.name)
        if not last_scan:
            return True
        try:
            last = datetime.fromisoformat(last_scan)
        except ValueError:
            return True
        if last.tzinfo is None:
            last = last.replace(tzinfo=timezone.utc)
        elapsed = ((now or _now()) - last).total_seconds()
        return elapsed >= definition.refresh_interval

    def run(self, definitions: Iterable[IndexDefinition], *, force: bool = False) -> List[IndexReport]:
        """Crawl and publish every index; a failing index does not stop the rest."""
        reports: List[IndexReport] = []
        for definition in definitions:
            if not force and not self.is_due(definition):
                LOGGER.info(
                    "Skipping index %s, last scan at %s, refresh interval %d sec",
                    definition.name,
                    self.store.last_scan(definition.name),
                    definition.refresh_interval,
                )
                reports.append(IndexReport(definition.name, "skipped"))
                continue

            try:
                result = self.crawl(definition)
            except ConfigurationError as exc:
                LOGGER.error("%s", exc)
                reports.append(IndexReport(definition.name, "failed", message=str(exc)))
                continue

            count = self.publish(result)
            reports.append(
                IndexReport(
                    definition.name,
                    "published",
                    entries=count,
                    errors=result.stats.errors,
                )
            )
        return reports


def _accumulate_directory_totals(entries: List[Entry]) -> None:
    """Fill directory sizes and file counts from their descendants.

    Every directory precedes its descendants in ``entries``, so walking it
    backwards completes each directory before its parent is reached.
    """
    directories = {entry.path: entry for entry in entries if entry.is_dir}
    for entry in reversed(entries):
        if not entry.parent_path:
            continue
        parent = directories[entry.parent_path]
        parent.size_bytes += entry.size_bytes
        parent.file_count += entry.file_count if entry.is_dir else 1
