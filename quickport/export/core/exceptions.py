"""Custom exception hierarchy.

Errors raised by caller-supplied fetch and item functions are never wrapped
in these types; they propagate to the caller unchanged.
"""

from __future__ import annotations


class ExportError(Exception):
    """Base exception for all library errors."""

    pass


class ConfigurationError(ExportError):
    """Invalid concurrency, batch or retry configuration.

    Raised before any page is fetched so that a bad configuration never
    results in a partially started export.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class PaginationError(ExportError):
    """The remote API broke the cursor pagination protocol."""

    def __init__(
        self,
        message: str,
        operation_name: str | None = None,
        page_index: int | None = None,
    ) -> None:
        super().__init__(message)
        self.operation_name = operation_name
        self.page_index = page_index
