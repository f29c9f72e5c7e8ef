"""Cursor pagination layer.

Architecture:
    - definitions.py: PaginationRequest, PaginationProgress, PaginationResult
    - fetcher.py: PageFetcher (sequential cursor discovery, then fetch-ahead)

Usage:
    fetcher = PageFetcher(RetryConfig(max_retries=3))
    result = await fetcher.fetch_all(
        PaginationRequest(fetch_page=list_dashboards, operation_name="ListDashboards")
    )
"""

from __future__ import annotations

from .definitions import (
    FetchPage,
    PageCallback,
    PaginationProgress,
    PaginationRequest,
    PaginationResult,
)
from .fetcher import SEQUENTIAL_DISCOVERY_PAGES, PageFetcher

__all__ = [
    "FetchPage",
    "PageCallback",
    "PageFetcher",
    "PaginationProgress",
    "PaginationRequest",
    "PaginationResult",
    "SEQUENTIAL_DISCOVERY_PAGES",
]
