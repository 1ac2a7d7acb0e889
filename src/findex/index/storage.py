"""SQLite-backed file index store."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Iterator, List, Sequence

from findex.errors import UnknownIndexError
from findex.index.filters import filter_clause
from findex.index.query import term_clause
from findex.models import Entry, QuerySpec, ScanSummary

HISTORY_LIMIT = 30

_ENTRY_COLUMNS = (
    "index_name, path, name, parent_path, is_dir, extension, "
    "size_bytes, modified_at, file_count"
)


def _row_to_entry(row: sqlite3.Row) -> Entry:
    return Entry(
        index_name=row["index_name"],
        path=row["path"],
        name=row["name"],
        parent_path=row["parent_path"],
        is_dir=bool(row["is_dir"]),
        extension=row["extension"],
        size_bytes=row["size_bytes"],
        modified_at=row["modified_at"],
        file_count=row["file_count"],
    )


class IndexStore:
    """Persistence layer holding one row per indexed file or directory.

    Only index names passed at construction are addressable; everything else
    raises :class:`UnknownIndexError`.
    """

    def __init__(self, db_path: Path, *, index_names: Sequence[str]) -> None:
        self.db_path = Path(db_path)
        self.index_names = list(index_names)
        self._conn = sqlite3.connect(self.db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._ensure_schema()

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            yield self._conn
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise

    @contextmanager
    def snapshot(self) -> Iterator[sqlite3.Connection]:
        """Run several reads against one consistent view of the database."""
        if self._conn.in_transaction:
            yield self._conn
            return
        self._conn.execute("BEGIN")
        try:
            yield self._conn
        finally:
            self._conn.rollback()

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS entries (
                    index_name TEXT NOT NULL,
                    path TEXT NOT NULL,
                    name TEXT NOT NULL,
                    name_lower TEXT NOT NULL,
                    parent_path TEXT NOT NULL,
                    is_dir INTEGER NOT NULL,
                    extension TEXT NOT NULL,
                    size_bytes INTEGER NOT NULL,
                    modified_at REAL NOT NULL,
                    file_count INTEGER NOT NULL DEFAULT 0,
                    PRIMARY KEY (index_name, path)
                )
                """
            )
            conn.execute(
                """CREATE INDEX IF NOT EXISTS idx_entries_parent
                    ON entries(index_name, parent_path)
                """
            )
            conn.execute(
                """CREATE INDEX IF NOT EXISTS idx_entries_extension
                    ON entries(index_name, extension)
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS index_meta (
                    index_name TEXT PRIMARY KEY,
                    last_scan TEXT,
                    generation INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS scan_history (
                    id INTEGER PRIMARY KEY,
                    index_name TEXT NOT NULL,
                    started_at TEXT NOT NULL,
                    finished_at TEXT NOT NULL,
                    files INTEGER NOT NULL,
                    dirs INTEGER NOT NULL,
                    total_size INTEGER NOT NULL,
                    errors INTEGER NOT NULL
                )
                """
            )

    def _require(self, index_name: str) -> None:
        if index_name not in self.index_names:
            raise UnknownIndexError(index_name)

    def replace_index(
        self,
        index_name: str,
        entries: Iterable[Entry],
        summary: ScanSummary | None = None,
    ) -> int:
        """Swap the entry set of ``index_name`` in a single transaction.

        Readers on other connections keep seeing the previous set until the
        commit, then see the new one in full.
        """
        self._require(index_name)
        rows = []
        for entry in entries:
            if entry.index_name != index_name:
                raise ValueError(
                    f"Entry {entry.path!r} belongs to {entry.index_name!r}, not {index_name!r}"
                )
            rows.append(
                (
                    index_name,
                    entry.path,
                    entry.name,
                    entry.name.lower(),
                    entry.parent_path,
                    int(entry.is_dir),
                    entry.extension,
                    entry.size_bytes,
                    entry.modified_at,
                    entry.file_count,
                )
            )

        last_scan = (
            summary.finished_at
            if summary is not None
            else datetime.now(timezone.utc).isoformat(timespec="seconds")
        )

        with self.transaction() as conn:
            conn.execute("DELETE FROM entries WHERE index_name = ?", (index_name,))
            conn.executemany(
                """
                INSERT INTO entries(index_name, path, name, name_lower, parent_path,
                                    is_dir, extension, size_bytes, modified_at, file_count)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                rows,
            )
            conn.execute(
                """
                INSERT INTO index_meta(index_name, last_scan, generation)
                VALUES (?, ?, 1)
                ON CONFLICT(index_name) DO UPDATE SET
                    last_scan = excluded.last_scan,
                    generation = index_meta.generation + 1
                """,
                (index_name, last_scan),
            )
            if summary is not None:
                self._record_scan(conn, summary)
        return len(rows)

    def _record_scan(self, conn: sqlite3.Connection, summary: ScanSummary) -> None:
        conn.execute(
            """
            INSERT INTO scan_history(index_name, started_at, finished_at,
                                     files, dirs, total_size, errors)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                summary.index_name,
                summary.started_at,
                summary.finished_at,
                summary.files,
                summary.dirs,
                summary.total_size,
                summary.errors,
            ),
        )
        conn.execute(
            """
            DELETE FROM scan_history
            WHERE index_name = ? AND id NOT IN (
                SELECT id FROM scan_history WHERE index_name = ?
                ORDER BY id DESC LIMIT ?
            )
            """,
            (summary.index_name, summary.index_name, HISTORY_LIMIT),
        )

    def get_entry(self, index_name: str, path: str) -> Entry | None:
        self._require(index_name)
        row = self._conn.execute(
            f"SELECT {_ENTRY_COLUMNS} FROM entries WHERE index_name = ? AND path = ?",
            (index_name, path),
        ).fetchone()
        return _row_to_entry(row) if row else None

    def list_children(self, index_name: str, parent_path: str) -> List[Entry]:
        """Direct children of ``parent_path``: directories first, then by name."""
        self._require(index_name)
        rows = self._conn.execute(
            f"""
            SELECT {_ENTRY_COLUMNS} FROM entries
            WHERE index_name = ? AND parent_path = ?
            ORDER BY is_dir DESC, name_lower, name
            """,
            (index_name, parent_path),
        ).fetchall()
        return [_row_to_entry(row) for row in rows]

    def file_totals(self, index_name: str) -> tuple[int, int]:
        """Return ``(file_count, total_size)`` over all files of an index."""
        self._require(index_name)
        row = self._conn.execute(
            """
            SELECT COUNT(*) AS files, COALESCE(SUM(size_bytes), 0) AS size
            FROM entries WHERE index_name = ? AND is_dir = 0
            """,
            (index_name,),
        ).fetchone()
        return row["files"], row["size"]

    def dir_count(self, index_name: str) -> int:
        self._require(index_name)
        row = self._conn.execute(
            "SELECT COUNT(*) FROM entries WHERE index_name = ? AND is_dir = 1",
            (index_name,),
        ).fetchone()
        return row[0]

    def _where(self, spec: QuerySpec) -> tuple[str, list]:
        for name in spec.indexes:
            self._require(name)
        placeholders = ", ".join("?" for _ in spec.indexes)
        conditions = [f"index_name IN ({placeholders})"]
        params: list = list(spec.indexes)

        terms_sql, terms_params = term_clause(spec.required, spec.excluded)
        if terms_sql:
            conditions.append(terms_sql)
            params.extend(terms_params)

        filters_sql, filters_params = filter_clause(spec)
        if filters_sql:
            conditions.append(filters_sql)
            params.extend(filters_params)
        return " AND ".join(conditions), params

    def find_all(
        self, spec: QuerySpec, *, limit: int | None = None, offset: int = 0
    ) -> List[Entry]:
        """Entries matching ``spec``, ordered by index selection then path."""
        if not spec.indexes:
            return []
        where, params = self._where(spec)
        order = " ".join(f"WHEN ? THEN {position}" for position in range(len(spec.indexes)))
        rows = self._conn.execute(
            f"""
            SELECT {_ENTRY_COLUMNS} FROM entries
            WHERE {where}
            ORDER BY CASE index_name {order} END, path
            LIMIT ? OFFSET ?
            """,
            [*params, *spec.indexes, -1 if limit is None else limit, offset],
        ).fetchall()
        return [_row_to_entry(row) for row in rows]

    def count_all(self, spec: QuerySpec) -> int:
        if not spec.indexes:
            return 0
        where, params = self._where(spec)
        row = self._conn.execute(f"SELECT COUNT(*) FROM entries WHERE {where}", params).fetchone()
        return row[0]

    def iter_entries(self, index_name: str, *, files_only: bool = False) -> Iterator[Entry]:
        self._require(index_name)
        sql = f"SELECT {_ENTRY_COLUMNS} FROM entries WHERE index_name = ?"
        if files_only:
            sql += " AND is_dir = 0"
        for row in self._conn.execute(sql + " ORDER BY path", (index_name,)):
            yield _row_to_entry(row)

    def last_scan(self, index_name: str) -> str | None:
        self._require(index_name)
        row = self._conn.execute(
            "SELECT last_scan FROM index_meta WHERE index_name = ?", (index_name,)
        ).fetchone()
        return row["last_scan"] if row else None

    def generation(self, index_name: str) -> int:
        """Counter bumped by every :meth:`replace_index` call."""
        self._require(index_name)
        row = self._conn.execute(
            "SELECT generation FROM index_meta WHERE index_name = ?", (index_name,)
        ).fetchone()
        return row["generation"] if row else 0

    def scan_history(self, index_name: str, limit: int = HISTORY_LIMIT) -> List[ScanSummary]:
        self._require(index_name)
        rows = self._conn.execute(
            """
            SELECT index_name, started_at, finished_at, files, dirs, total_size, errors
            FROM scan_history WHERE index_name = ?
            ORDER BY id DESC LIMIT ?
            """,
            (index_name, limit),
        ).fetchall()
        return [ScanSummary(**dict(row)) for row in rows]

    def prune_unknown(self) -> int:
        """Drop rows of indexes that are no longer configured."""
        placeholders = ", ".join("?" for _ in self.index_names)
        where = f"index_name NOT IN ({placeholders})" if self.index_names else "1 = 1"
        with self.transaction() as conn:
            removed = conn.execute(
                f"DELETE FROM entries WHERE {where}", self.index_names
            ).rowcount
            conn.execute(f"DELETE FROM index_meta WHERE {where}", self.index_names)
            conn.execute(f"DELETE FROM scan_history WHERE {where}", self.index_names)
        return removed
