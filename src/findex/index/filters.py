"""Filter parsing and SQL compilation.

Every parser here returns ``None`` for malformed input so a bad filter value
simply drops that filter instead of failing the request.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, time
from typing import Iterable, List, Optional, Tuple

from findex.index.pagination import normalize_page, normalize_page_size
from findex.index.query import parse_query
from findex.models import EntryType, QuerySpec

LOGGER = logging.getLogger(__name__)

SIZE_UNITS = {
    "B": 1,
    "KB": 1024,
    "MB": 1024**2,
    "GB": 1024**3,
    "TB": 1024**4,
}

_SIZE_RE = re.compile(r"^(\d+(?:\.\d+)?|\.\d+)\s*([KMGT]?B)?$")
_DATE_FORMAT = "%Y-%m-%d"

# Largest value an SQLite INTEGER can hold.
MAX_SIZE = 2**63 - 1


def parse_size(raw: str | None) -> Optional[int]:
    """Parse ``"2MB"``, ``"1.5 gb"``, ``"100B"`` or ``"512"`` into bytes."""
    if raw is None:
        return None
    text = raw.strip().upper()
    if not text:
        return None
    match = _SIZE_RE.match(text)
    if not match:
        LOGGER.debug("Ignoring malformed size %r", raw)
        return None
    number, unit = match.groups()
    multiplier = SIZE_UNITS[unit or "B"]
    try:
        size = int(number) * multiplier if number.isdigit() else int(float(number) * multiplier)
    except OverflowError:
        size = MAX_SIZE + 1
    if size > MAX_SIZE:
        LOGGER.debug("Ignoring out of range size %r", raw)
        return None
    return size


def parse_extensions(raw: str | None) -> Optional[frozenset[str]]:
    """Parse a comma separated extension list; ``None`` when empty."""
    if not raw:
        return None
    extensions = {part.strip().lstrip(".").lower() for part in raw.split(",")}
    extensions.discard("")
    return frozenset(extensions) or None


def parse_entry_type(raw: str | None) -> EntryType:
    value = (raw or "").strip().lower()
    if value in ("files", "dirs"):
        return value  # type: ignore[return-value]
    if value not in ("", "both"):
        LOGGER.debug("Ignoring unknown entry type %r", raw)
    return "both"


def parse_date(raw: str | None, *, end_of_day: bool = False) -> Optional[float]:
    """Parse ``YYYY-MM-DD`` into a local POSIX timestamp.

    Dates the platform cannot convert are treated as malformed.
    """
    if not raw or not raw.strip():
        return None
    try:
        day = datetime.strptime(raw.strip(), _DATE_FORMAT)
        if end_of_day:
            day = datetime.combine(day.date(), time.max)
        return day.timestamp()
    except (OverflowError, ValueError):
        LOGGER.debug("Ignoring malformed date %r", raw)
        return None


def _dedupe(names: Iterable[str]) -> List[str]:
    seen: List[str] = []
    for name in names:
        name = name.strip()
        if name and name not in seen:
            seen.append(name)
    return seen


def build_query_spec(
    *,
    indexes: Iterable[str],
    query: str | None = None,
    ext: str | None = None,
    min_size: str | None = None,
    max_size: str | None = None,
    entry_type: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    page: str | int | None = None,
    page_size: str | int | None = None,
) -> QuerySpec:
    """Build a :class:`QuerySpec` from raw request values."""
    required, excluded = parse_query(query)
    return QuerySpec(
        indexes=_dedupe(indexes),
        required=required,
        excluded=excluded,
        extensions=parse_extensions(ext),
        min_size=parse_size(min_size),
        max_size=parse_size(max_size),
        entry_type=parse_entry_type(entry_type),
        modified_from=parse_date(date_from),
        modified_to=parse_date(date_to, end_of_day=True),
        page=normalize_page(page),
        page_size=normalize_page_size(page_size),
    )


def filter_clause(spec: QuerySpec) -> Tuple[str, list]:
    """Compile the non-term filters of ``spec`` into an AND-ed SQL condition."""
    conditions: List[str] = []
    params: list = []

    if spec.extensions is not None:
        extensions = sorted(spec.extensions)
        placeholders = ", ".join("?" for _ in extensions)
        conditions.append(f"(is_dir = 0 AND extension IN ({placeholders}))")
        params.extend(extensions)
    if spec.min_size is not None or spec.max_size is not None:
        # Directories are sized by their files; empty ones have no size to bound.
        conditions.append("(is_dir = 0 OR file_count > 0)")
    if spec.min_size is not None:
        conditions.append("size_bytes >= ?")
        params.append(spec.min_size)
    if spec.max_size is not None:
        conditions.append("size_bytes <= ?")
        params.append(spec.max_size)
    if spec.entry_type == "files":
        conditions.append("is_dir = 0")
    elif spec.entry_type == "dirs":
        conditions.append("is_dir = 1")
    if spec.modified_from is not None:
        conditions.append("modified_at >= ?")
        params.append(spec.modified_from)
    if spec.modified_to is not None:
        conditions.append("modified_at <= ?")
        params.append(spec.modified_to)

    return " AND ".join(conditions), params
