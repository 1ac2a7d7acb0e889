"""Exception types shared by the crawler, the store and the read path."""

from __future__ import annotations


class FindexError(Exception):
    """Base class for findex errors."""


class ConfigurationError(FindexError):
    """Configuration is malformed or an index root cannot be read."""


class UnknownIndexError(FindexError, LookupError):
    def __init__(self, index_name: str) -> None:
        super().__init__(f"Unknown index: {index_name}")
        self.index_name = index_name


class PathNotFoundError(FindexError, LookupError):
    def __init__(self, index_name: str, path: str) -> None:
        super().__init__(f"Path not found in index {index_name}: /{path}")
        self.index_name = index_name
        self.path = path
