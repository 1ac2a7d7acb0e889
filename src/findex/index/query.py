"""Name search: query parsing and SQL matching."""

from __future__ import annotations

from typing import List, Sequence, Tuple


def parse_query(raw: str | None) -> Tuple[List[str], List[str]]:
    """Split a query into ``(required, excluded)`` lower-cased terms.

    Tokens starting with ``-`` are exclusions; a lone ``-`` is dropped.
    Duplicates keep their first position.
    """
    required: List[str] = []
    excluded: List[str] = []
    for token in (raw or "").split():
        if token.startswith("-"):
            term = token[1:].lower()
            if term and term not in excluded:
                excluded.append(term)
        else:
            term = token.lower()
            if term not in required:
                required.append(term)
    return required, excluded


def term_clause(required: Sequence[str], excluded: Sequence[str]) -> Tuple[str, list]:
    """Compile terms to a condition on the stored lower-cased name.

    ``instr`` is used instead of ``LIKE`` so ``%`` and ``_`` in a term match
    literally.
    """
    conditions = ["instr(name_lower, ?) > 0" for _ in required]
    conditions += ["instr(name_lower, ?) = 0" for _ in excluded]
    return " AND ".join(conditions), [*required, *excluded]
