"""HTTP-backed page source for cursor-paginated JSON listings.

The listing APIs behind the asset export return a summary list under an
asset-specific key plus a ``NextToken``; the cursor is sent back as a query
parameter of the same name, together with an optional page size.

Example:
    async with HTTPClient(base_url="https://quicksight.example.com") as client:
        source = HTTPPageSource(
            client,
            "/accounts/123/dashboards",
            items_key="DashboardSummaryList",
            page_size=100,
        )
        result = await ExportOrchestrator().stream(
            source, export_dashboard, operation_name="ListDashboards"
        )
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..core.exceptions import PaginationError
from ..models import Page
from ..utils.http import HTTPClient

# Ceiling the listing APIs accept for MaxResults
MAX_PAGE_SIZE = 100


class HTTPPageSource:
    """Callable ``(cursor) -> Page`` over a GET listing endpoint."""

    def __init__(
        self,
        client: HTTPClient,
        path: str,
        *,
        items_key: str,
        token_key: str = "NextToken",
        token_param: str = "NextToken",
        params: Mapping[str, Any] | None = None,
        page_size: int | None = None,
        page_size_param: str = "MaxResults",
    ) -> None:
        """Initialize page source.

        Args:
            client: HTTP client used for requests
            path: Listing path (relative to client.base_url) or absolute URL
            items_key: Response field holding the page's items
            token_key: Response field holding the next cursor
            token_param: Query parameter carrying the cursor
            params: Extra query parameters sent with every request
            page_size: Items per page (clamped to MAX_PAGE_SIZE)
            page_size_param: Query parameter carrying page_size
        """
        if page_size is not None and page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")
        self._client = client
        self._path = path
        self._items_key = items_key
        self._token_key = token_key
        self._token_param = token_param
        self._params = dict(params or {})
        self._page_size = min(page_size, MAX_PAGE_SIZE) if page_size else None
        self._page_size_param = page_size_param

    def build_params(self, cursor: str | None) -> dict[str, Any]:
        """Query parameters for the page at cursor."""
        query = dict(self._params)
        if self._page_size is not None:
            query[self._page_size_param] = self._page_size
        if cursor is not None:
            query[self._token_param] = cursor
        return query

    async def __call__(self, cursor: str | None = None) -> Page[Any]:
        data = await self._client.get(self._path, params=self.build_params(cursor))
        items = data.get(self._items_key)
        if not isinstance(items, list):
            raise PaginationError(f"{self._path}: response has no {self._items_key!r} list")
        return Page(items=items, next_token=data.get(self._token_key))
