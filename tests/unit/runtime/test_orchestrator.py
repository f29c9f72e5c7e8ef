"""Unit tests for ExportOrchestrator streaming exports."""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock

import pytest

from quickport.export.core import ConfigurationError, ExportConfig
from quickport.export.runtime import ExportOrchestrator, RetryPolicy


def fast_config(**sections: dict[str, Any]) -> ExportConfig:
    """ExportConfig without backoff delays."""
    data: dict[str, Any] = {"retry": {"max_retries": 2, "base_delay": 0.0, "max_delay": 0.0}}
    for name, values in sections.items():
        data.setdefault(name, {}).update(values)
    return ExportConfig.from_mapping(data)


def chain_fetch(pages: list[list[Any]], delays: list[float] | None = None):
    """Fetch function over fixed pages, recording the cursors it receives."""
    calls: list[str | None] = []

    async def fetch(cursor: str | None) -> dict[str, Any]:
        calls.append(cursor)
        index = 0 if cursor is None else int(cursor[1:])
        if delays:
            await asyncio.sleep(delays[index])
        next_token = f"t{index + 1}" if index + 1 < len(pages) else None
        return {"items": list(pages[index]), "nextToken": next_token}

    fetch.calls = calls  # type: ignore[attr-defined]
    return fetch


class TestStream:
    """Test ExportOrchestrator.stream."""

    @pytest.mark.asyncio
    async def test_single_page(self):
        """Test one page without cursor is fetched once and every item processed."""
        items = [{"id": 1}, {"id": 2}, {"id": 3}]
        fetch = chain_fetch([items])
        process_item = AsyncMock()

        result = await ExportOrchestrator(fast_config()).stream(
            fetch, process_item, operation_name="ExportDashboards"
        )

        assert fetch.calls == [None]
        assert result.total_pages == 1
        assert result.total_items == 3
        assert process_item.await_count == 3
        process_item.assert_any_await({"id": 2}, 1)

    @pytest.mark.asyncio
    async def test_two_pages(self):
        """Test items from both pages are returned in order."""
        fetch = chain_fetch([[{"id": 1}], [{"id": 2}]])
        processed: list[tuple[Any, int]] = []

        async def process_item(item: Any, index: int) -> None:
            processed.append((item, index))

        result = await ExportOrchestrator(fast_config()).stream(
            fetch, process_item, operation_name="ExportDashboards"
        )

        assert fetch.calls == [None, "t1"]
        assert result.items == [{"id": 1}, {"id": 2}]
        assert processed == [({"id": 1}, 0), ({"id": 2}, 1)]

    @pytest.mark.asyncio
    async def test_always_failing_fetch_rejects(self):
        """Test the fetch error reaches the caller after retries."""
        attempts = 0

        async def fetch(cursor: str | None) -> dict[str, Any]:
            nonlocal attempts
            attempts += 1
            raise Exception("boom")

        with pytest.raises(Exception, match="^boom$"):
            await ExportOrchestrator(fast_config()).stream(
                fetch, AsyncMock(), operation_name="ExportDashboards"
            )
        assert attempts == 3

    @pytest.mark.asyncio
    async def test_absolute_indices_cover_all_items_once(self):
        """Test item indices enumerate 0..N-1 and match result order."""
        sizes = [4, 1, 0, 7, 3, 5, 2]
        pages = [[f"{p}:{i}" for i in range(size)] for p, size in enumerate(sizes)]
        fetch = chain_fetch(pages, delays=[0.004, 0.001, 0.003, 0.0, 0.002, 0.001, 0.0])
        seen: dict[int, Any] = {}
        duplicates: list[int] = []

        async def process_item(item: Any, index: int) -> None:
            if index in seen:
                duplicates.append(index)
            seen[index] = item
            await asyncio.sleep(0.001 * (index % 3))

        result = await ExportOrchestrator(
            fast_config(batch={"asset_batch_size": 2}, concurrency={"per_processor": 3})
        ).stream(fetch, process_item, operation_name="ExportDatasets", max_concurrent_pages=3)

        total = sum(sizes)
        assert duplicates == []
        assert sorted(seen) == list(range(total))
        assert [seen[i] for i in range(total)] == result.items
        assert result.total_items == total
        assert result.total_pages == len(pages)

    @pytest.mark.asyncio
    async def test_item_concurrency_bounded_across_pages(self):
        """Test overlapping pages share the per-processor limit."""
        fetch = chain_fetch([[i, i + 100, i + 200] for i in range(6)])
        running = 0
        peak = 0

        async def process_item(item: Any, index: int) -> None:
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.005)
            running -= 1

        await ExportOrchestrator(
            fast_config(concurrency={"per_processor": 2}, pagination={"concurrent_pages": 5})
        ).stream(fetch, process_item, operation_name="ExportAnalyses")

        assert peak <= 2

    @pytest.mark.asyncio
    async def test_item_failure_fails_export(self):
        """Test an item error propagates unchanged and no summary is returned."""
        fetch = chain_fetch([[1, 2], [3, 4], [5, 6]])
        error = RuntimeError("write failed")

        async def process_item(item: Any, index: int) -> None:
            if index == 3:
                raise error

        orchestrator = ExportOrchestrator(fast_config())
        with pytest.raises(RuntimeError) as exc_info:
            await orchestrator.stream(fetch, process_item, operation_name="ExportDashboards")

        assert exc_info.value is error
        assert orchestrator.progress is not None
        assert orchestrator.progress.pages_completed == 1

    @pytest.mark.asyncio
    async def test_invalid_batch_size_fails_before_fetch(self):
        """Test configuration errors are raised before any page is fetched."""
        fetch = chain_fetch([[1]])

        with pytest.raises(ConfigurationError):
            await ExportOrchestrator(fast_config()).stream(
                fetch, AsyncMock(), operation_name="ExportDashboards", batch_size=0
            )
        assert fetch.calls == []

    @pytest.mark.asyncio
    async def test_invalid_page_concurrency_fails_before_fetch(self):
        """Test zero page concurrency is rejected up front."""
        fetch = chain_fetch([[1]])

        with pytest.raises(ConfigurationError):
            await ExportOrchestrator(fast_config()).stream(
                fetch, AsyncMock(), operation_name="ExportDashboards", max_concurrent_pages=0
            )
        assert fetch.calls == []

    @pytest.mark.asyncio
    async def test_cancellation_stops_item_work(self):
        """Test cancelling the export cancels in-flight item operations."""
        fetch = chain_fetch([[1, 2, 3]])
        started = asyncio.Event()
        cancelled: list[int] = []

        async def process_item(item: Any, index: int) -> None:
            started.set()
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                cancelled.append(index)
                raise

        task = asyncio.ensure_future(
            ExportOrchestrator(fast_config()).stream(
                fetch, process_item, operation_name="ExportDashboards"
            )
        )
        await asyncio.wait_for(started.wait(), timeout=1.0)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert sorted(cancelled) == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_retry_policy_classifier_is_used(self):
        """Test a custom retry classifier keeps config bounds but skips fatal errors."""
        attempts = 0

        async def fetch(cursor: str | None) -> dict[str, Any]:
            nonlocal attempts
            attempts += 1
            raise PermissionError("denied")

        orchestrator = ExportOrchestrator(
            fast_config(), retry_policy=RetryPolicy(retry_on=lambda e: False)
        )
        with pytest.raises(PermissionError):
            await orchestrator.stream(fetch, AsyncMock(), operation_name="ExportDashboards")
        assert attempts == 1

    @pytest.mark.asyncio
    async def test_completion_logged(self, caplog):
        """Test export completion is logged with counts."""
        fetch = chain_fetch([[1, 2], [3]])
        with caplog.at_level("INFO", logger="quickport.export.runtime.telemetry"):
            await ExportOrchestrator(fast_config()).stream(
                fetch, AsyncMock(), operation_name="ExportDashboards"
            )

        records = [r for r in caplog.records if r.getMessage() == "export_complete"]
        assert len(records) == 1
        assert records[0].operation_name == "ExportDashboards"
        assert records[0].total_items == 3
        assert records[0].duration >= 0


class TestFetchAllAndProcessItems:
    """Test the non-streaming entry points."""

    @pytest.mark.asyncio
    async def test_fetch_all_with_page_processor(self):
        """Test process_page receives each page's items and index."""
        fetch = chain_fetch([[1, 2], [3], [4, 5]])
        seen: dict[int, list[Any]] = {}

        async def process_page(items: list[Any], page_index: int) -> None:
            seen[page_index] = items

        result = await ExportOrchestrator(fast_config()).fetch_all(
            fetch, operation_name="ListFolders", process_page=process_page
        )

        assert seen == {0: [1, 2], 1: [3], 2: [4, 5]}
        assert result.items == [1, 2, 3, 4, 5]
        assert result.total_pages == 3

    @pytest.mark.asyncio
    async def test_page_processor_mutation_keeps_result(self):
        """Test a processor that drains its list does not lose items."""
        fetch = chain_fetch([[1, 2], [3]])

        async def process_page(items: list[Any], page_index: int) -> None:
            items.clear()

        result = await ExportOrchestrator(fast_config()).fetch_all(
            fetch, operation_name="ListThemes", process_page=process_page
        )

        assert result.items == [1, 2, 3]
        assert result.total_items == 3

    @pytest.mark.asyncio
    async def test_fetch_all_without_processor(self):
        """Test fetch_all works without a page callback."""
        fetch = chain_fetch([[1], [2]])

        result = await ExportOrchestrator(fast_config()).fetch_all(fetch, operation_name="ListUsers")

        assert result.items == [1, 2]

    @pytest.mark.asyncio
    async def test_config_max_pages_applies(self):
        """Test pagination.max_pages from config is enforced."""
        from quickport.export.core import PaginationError

        fetch = chain_fetch([[i] for i in range(4)])

        with pytest.raises(PaginationError):
            await ExportOrchestrator(fast_config(pagination={"max_pages": 2})).fetch_all(
                fetch, operation_name="ListGroups"
            )

    @pytest.mark.asyncio
    async def test_process_items_uses_config_batch_size(self):
        """Test process_items batches with config defaults."""
        process_item = AsyncMock()

        summary = await ExportOrchestrator(
            fast_config(batch={"asset_batch_size": 4})
        ).process_items(list("abcdefghij"), process_item, operation_name="TagAssets")

        assert summary.items_processed == 10
        assert summary.batches_completed == 3
        process_item.assert_any_await("j", 9)
