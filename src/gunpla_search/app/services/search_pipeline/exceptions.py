from __future__ import annotations

"""Exceptions raised by search pipeline components."""


class IndexConfigurationError(RuntimeError):
    """Raised when the search index client is missing its host or credentials."""


class SearchIndexError(RuntimeError):
    """Raised when a request to the search index fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class KitSearchError(RuntimeError):
    """Raised by the kits listing when the index query cannot be served."""

    def __init__(self, message: str = "Failed to search kits") -> None:
        super().__init__(message)


class FilterDataError(RuntimeError):
    """Raised when the filter taxonomies cannot be loaded."""

    def __init__(self, message: str = "Failed to load filter data") -> None:
        super().__init__(message)


__all__ = [
    "FilterDataError",
    "IndexConfigurationError",
    "KitSearchError",
    "SearchIndexError",
]
