"""Unit tests for HTTPPageSource."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from quickport.export.clients import MAX_PAGE_SIZE, HTTPPageSource
from quickport.export.core import PaginationError
from quickport.export.runtime import PageFetcher, PaginationRequest, RetryConfig


@pytest.fixture
def client():
    """Create a mock HTTP client."""
    mock = MagicMock()
    mock.get = AsyncMock()
    return mock


class TestHTTPPageSource:
    """Test request building and response mapping."""

    @pytest.mark.asyncio
    async def test_first_page_has_no_cursor(self, client):
        """Test the first request carries page size but no token."""
        client.get.return_value = {"DashboardSummaryList": [{"DashboardId": "d1"}]}
        source = HTTPPageSource(
            client, "/dashboards", items_key="DashboardSummaryList", page_size=50
        )

        page = await source(None)

        client.get.assert_awaited_once_with("/dashboards", params={"MaxResults": 50})
        assert page.items == [{"DashboardId": "d1"}]
        assert page.is_last

    @pytest.mark.asyncio
    async def test_cursor_sent_and_returned(self, client):
        """Test the cursor is sent as NextToken and the response token is read."""
        client.get.return_value = {"DataSetSummaries": [], "NextToken": "n2"}
        source = HTTPPageSource(
            client, "/datasets", items_key="DataSetSummaries", params={"Namespace": "default"}
        )

        page = await source("n1")

        client.get.assert_awaited_once_with(
            "/datasets", params={"Namespace": "default", "NextToken": "n1"}
        )
        assert page.next_token == "n2"

    def test_page_size_clamped(self, client):
        """Test page sizes above the API ceiling are clamped."""
        source = HTTPPageSource(client, "/x", items_key="Items", page_size=500)
        assert source.build_params(None) == {"MaxResults": MAX_PAGE_SIZE}

    def test_invalid_page_size(self, client):
        """Test a non-positive page size is rejected."""
        with pytest.raises(ValueError):
            HTTPPageSource(client, "/x", items_key="Items", page_size=0)

    def test_custom_parameter_names(self, client):
        """Test token and size parameter names are configurable."""
        source = HTTPPageSource(
            client,
            "/events",
            items_key="Events",
            token_param="nextToken",
            page_size=10,
            page_size_param="maxResults",
        )
        assert source.build_params("abc") == {"maxResults": 10, "nextToken": "abc"}

    @pytest.mark.asyncio
    async def test_missing_list_key(self, client):
        """Test a response without the list key is rejected."""
        client.get.return_value = {"Status": 200}
        with pytest.raises(PaginationError, match="'Items'"):
            await HTTPPageSource(client, "/x", items_key="Items")(None)

    @pytest.mark.asyncio
    async def test_null_list_rejected(self, client):
        """Test a null list is not treated as an empty page."""
        client.get.return_value = {"Items": None, "NextToken": "t1"}
        with pytest.raises(PaginationError):
            await HTTPPageSource(client, "/x", items_key="Items")(None)

    @pytest.mark.asyncio
    async def test_explicit_empty_list(self, client):
        """Test an explicit empty list yields an empty page."""
        client.get.return_value = {"Items": []}
        page = await HTTPPageSource(client, "/x", items_key="Items")(None)
        assert page.items == []
        assert page.is_last

    @pytest.mark.asyncio
    async def test_drives_page_fetcher(self, client):
        """Test the source plugs into PageFetcher as fetch_page."""
        client.get.side_effect = [
            {"AnalysisSummaryList": [{"AnalysisId": "a1"}], "NextToken": "t1"},
            {"AnalysisSummaryList": [{"AnalysisId": "a2"}], "NextToken": "t2"},
            {"AnalysisSummaryList": [{"AnalysisId": "a3"}]},
        ]
        source = HTTPPageSource(client, "/analyses", items_key="AnalysisSummaryList")

        result = await PageFetcher(RetryConfig(max_retries=0)).fetch_all(
            PaginationRequest(fetch_page=source, operation_name="ListAnalyses")
        )

        assert [item["AnalysisId"] for item in result.items] == ["a1", "a2", "a3"]
        sent_tokens = [call.kwargs["params"].get("NextToken") for call in client.get.await_args_list]
        assert sent_tokens == [None, "t1", "t2"]
