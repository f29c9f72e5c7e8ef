"""Pagination request, progress and result structures.

This module defines the data structures passed into and returned from
PageFetcher. All of them live for a single fetch call.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from ...core.exceptions import ConfigurationError
from ...models import Page

T = TypeVar("T")

# fetch_page(cursor) -> Page or {"items": [...], "nextToken": "..."}
FetchPage = Callable[[str | None], Awaitable["Page[Any] | Mapping[str, Any]"]]
# on_page(page, page_index, offset) where offset is the absolute index of page.items[0]
PageCallback = Callable[[Page[Any], int, int], Awaitable[None]]


@dataclass(frozen=True)
class PaginationRequest(Generic[T]):
    """Configuration for one paginated fetch.

    Attributes:
        fetch_page: Async function fetching the page at a cursor (None = first page)
        operation_name: Name used in logs and error notes
        max_concurrent_pages: Page tasks allowed in flight (None = fetcher default)
        max_pages: Guardrail on the number of pages (None = unlimited)
    """

    fetch_page: FetchPage
    operation_name: str
    max_concurrent_pages: int | None = None
    max_pages: int | None = None

    def __post_init__(self) -> None:
        """Validate request configuration."""
        if not callable(self.fetch_page):
            raise ConfigurationError("fetch_page must be callable", field="fetch_page")
        if not self.operation_name:
            raise ConfigurationError("operation_name must not be empty", field="operation_name")
        if self.max_concurrent_pages is not None and self.max_concurrent_pages < 1:
            raise ConfigurationError(
                f"max_concurrent_pages must be >= 1, got {self.max_concurrent_pages}",
                field="max_concurrent_pages",
            )
        if self.max_pages is not None and self.max_pages < 1:
            raise ConfigurationError(
                f"max_pages must be >= 1, got {self.max_pages}", field="max_pages"
            )


@dataclass
class PaginationProgress:
    """Live counters for a fetch in progress.

    pages_submitted counts page tasks handed to the limiter, so it runs ahead
    of the work actually done. Only pages_completed and items_fetched describe
    settled work; after a failure they tell how far the fetch got.

    Attributes:
        pages_submitted: Page tasks scheduled
        pages_fetched: Pages returned by the fetch function
        pages_completed: Pages fetched and passed through the page callback
        items_fetched: Items on all fetched pages
    """

    pages_submitted: int = 0
    pages_fetched: int = 0
    pages_completed: int = 0
    items_fetched: int = 0


@dataclass
class PaginationResult(Generic[T]):
    """Result of a paginated fetch.

    Attributes:
        items: Items from every page, in page order
        total_pages: Pages fetched successfully (a retried page counts once)
        total_items: Number of items across all pages
        duration: Wall-clock seconds from start to full settlement
    """

    items: list[T] = field(default_factory=list)
    total_pages: int = 0
    total_items: int = 0
    duration: float = 0.0
