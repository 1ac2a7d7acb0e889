"""Utility helpers for working with files and index paths."""

from __future__ import annotations

import os
from pathlib import Path

_SIZE_UNITS = (("TB", 1024**4), ("GB", 1024**3), ("MB", 1024**2), ("KB", 1024))


def split_extension(name: str) -> str:
    """Return the lower-cased suffix of ``name`` without the dot.

    A leading dot (hidden files) does not start a suffix.
    """
    return os.path.splitext(name)[1][1:].lower()


def normalize_rel_path(path: str | None) -> str:
    """Turn user supplied index paths into the stored ``a/b/c`` form."""
    if not path:
        return ""
    parts = [part for part in path.replace("\\", "/").split("/") if part and part != "."]
    return "/".join(parts)


def parent_of(path: str) -> str:
    head, _, _ = path.rpartition("/")
    return head


def format_size(size: int) -> str:
    """Format a byte count with binary units, e.g. ``1.50 MB``."""
    for unit, factor in _SIZE_UNITS:
        if size >= factor:
            return f"{size / factor:.2f} {unit}"
    return f"{size} B"


def resolve_within(root: Path, rel_path: str) -> Path | None:
    """Resolve ``rel_path`` under ``root``; ``None`` if it escapes the root."""
    real_root = Path(os.path.realpath(root))
    candidate = Path(os.path.realpath(real_root / rel_path))
    if candidate == real_root or real_root in candidate.parents:
        return candidate
    return None
