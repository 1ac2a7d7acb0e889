"""Core findex data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional

EntryType = Literal["files", "dirs", "both"]

PAGE_SIZES = (25, 50, 100)
DEFAULT_PAGE_SIZE = PAGE_SIZES[0]


@dataclass(slots=True)
class Entry:
    """One file or directory inside an index."""

    index_name: str
    path: str
    name: str
    parent_path: str
    is_dir: bool
    extension: str
    size_bytes: int
    modified_at: float
    file_count: int = 0


@dataclass(slots=True)
class QuerySpec:
    """Validated search request: name terms plus filters and paging."""

    indexes: List[str]
    required: List[str] = field(default_factory=list)
    excluded: List[str] = field(default_factory=list)
    extensions: Optional[frozenset[str]] = None
    min_size: Optional[int] = None
    max_size: Optional[int] = None
    entry_type: EntryType = "both"
    modified_from: Optional[float] = None
    modified_to: Optional[float] = None
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    @property
    def has_terms(self) -> bool:
        return bool(self.required or self.excluded)

    @property
    def has_filters(self) -> bool:
        return (
            self.extensions is not None
            or self.min_size is not None
            or self.max_size is not None
            or self.entry_type != "both"
            or self.modified_from is not None
            or self.modified_to is not None
        )


@dataclass(slots=True)
class Breadcrumb:
    name: str
    path: str


@dataclass(slots=True)
class BrowseResult:
    index_name: str
    path: str
    entries: List[Entry]
    breadcrumbs: List[Breadcrumb]
    size_bytes: int
    file_count: int


@dataclass(slots=True)
class SearchPage:
    """One page of search results plus navigation data."""

    entries: List[Entry]
    total: int
    page: int
    page_size: int
    total_pages: int

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    def page_numbers(self, radius: int = 2) -> List[Optional[int]]:
        """Page links to render; ``None`` marks a gap."""
        numbers: List[Optional[int]] = []
        for number in range(1, self.total_pages + 1):
            if number in (1, self.total_pages) or abs(number - self.page) <= radius:
                numbers.append(number)
            elif numbers and numbers[-1] is not None:
                numbers.append(None)
        return numbers


@dataclass(slots=True)
class ScanSummary:
    index_name: str
    started_at: str
    finished_at: str
    files: int
    dirs: int
    total_size: int
    errors: int


@dataclass(slots=True)
class ExtensionStats:
    extension: str
    count: int = 0
    total_size: int = 0


@dataclass(slots=True)
class SizeBucket:
    label: str
    count: int = 0
    total_size: int = 0


@dataclass(slots=True)
class YearStats:
    year: int
    count: int = 0
    total_size: int = 0


@dataclass(slots=True)
class IndexStats:
    index_name: str
    total_files: int = 0
    total_dirs: int = 0
    total_size_bytes: int = 0
    avg_file_size: int = 0
    oldest_modified: Optional[float] = None
    newest_modified: Optional[float] = None
    last_scan: Optional[str] = None
    by_extension: Dict[str, ExtensionStats] = field(default_factory=dict)
    top_extensions: List[ExtensionStats] = field(default_factory=list)
    top_extensions_by_size: List[ExtensionStats] = field(default_factory=list)
    largest_files: List[Entry] = field(default_factory=list)
    recent_files: List[Entry] = field(default_factory=list)
    size_distribution: List[SizeBucket] = field(default_factory=list)
    year_distribution: List[YearStats] = field(default_factory=list)


@dataclass(slots=True)
class GlobalStats:
    index_count: int = 0
    total_files: int = 0
    total_dirs: int = 0
    total_size_bytes: int = 0
    by_extension: Dict[str, ExtensionStats] = field(default_factory=dict)
    top_extensions: List[ExtensionStats] = field(default_factory=list)
    top_extensions_by_size: List[ExtensionStats] = field(default_factory=list)
    largest_files: List[Entry] = field(default_factory=list)
    size_distribution: List[SizeBucket] = field(default_factory=list)
    year_distribution: List[YearStats] = field(default_factory=list)
    indexes: List[IndexStats] = field(default_factory=list)
