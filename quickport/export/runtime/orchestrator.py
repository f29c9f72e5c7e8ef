"""Export orchestration: paginated listing plus per-item processing.

Architecture:
    ExportOrchestrator owns an ExportConfig and builds a fresh PageFetcher
    and BatchItemProcessor for every call, so no state is shared between
    exports. In streaming mode each page's items go to the batch processor
    as soon as the page arrives; item processing for page k overlaps the
    fetches of pages k+1, k+2, ...

    Item concurrency in streaming mode is bounded by one limiter shared by
    all pages, so overlapping pages never exceed concurrency.per_processor
    item operations in total.

Failure semantics:
    Any fetch failure that survives retries, and any item failure, fails
    the whole call with the original exception. Cancelling the awaiting
    task cancels every in-flight page and item task.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from time import perf_counter
from typing import Any, TypeVar

from ..core.config import ExportConfig
from ..models import Page
from .batch import BatchConfig, BatchItemProcessor, BatchSummary, ItemOperation
from .limiter import ConcurrencyLimiter
from .pagination import (
    FetchPage,
    PageCallback,
    PageFetcher,
    PaginationProgress,
    PaginationRequest,
    PaginationResult,
)
from .retry import RetryPolicy
from .telemetry import log_export_complete

T = TypeVar("T")

# process_page(items, page_index)
PageProcessor = Callable[[list[Any], int], Awaitable[None]]


class ExportOrchestrator:
    """Runs paginated exports with the configured limits."""

    def __init__(
        self,
        config: ExportConfig | None = None,
        *,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            config: Export configuration (defaults to ExportConfig())
            retry_policy: Policy for page fetches; its bounds are replaced by
                config.retry, its classifier and sleep are kept
        """
        self._config = config or ExportConfig()
        self._retry_policy = retry_policy
        self._last_fetcher: PageFetcher | None = None

    @property
    def config(self) -> ExportConfig:
        return self._config

    @property
    def progress(self) -> PaginationProgress | None:
        """Page counters of the most recent call, including failed ones."""
        if self._last_fetcher is None:
            return None
        return self._last_fetcher.progress

    async def fetch_all(
        self,
        fetch_page: FetchPage,
        *,
        operation_name: str,
        process_page: PageProcessor | None = None,
        max_concurrent_pages: int | None = None,
        max_pages: int | None = None,
    ) -> PaginationResult[Any]:
        """Fetch every page, optionally running process_page on each.

        Args:
            fetch_page: Async function ``(cursor) -> page``
            operation_name: Name used in logs
            process_page: Optional async callback ``(items, page_index)``
            max_concurrent_pages: Override for pagination.concurrent_pages
            max_pages: Override for pagination.max_pages

        Returns:
            PaginationResult with every item in page order
        """
        request = self._request(fetch_page, operation_name, max_concurrent_pages, max_pages)
        on_page: PageCallback | None = None
        if process_page is not None:

            async def on_page(page: Page[Any], page_index: int, offset: int) -> None:
                await process_page(list(page.items), page_index)

        return await self._new_fetcher().fetch_all(request, on_page)

    async def process_items(
        self,
        items: Sequence[T],
        process_item: ItemOperation,
        *,
        operation_name: str,
        batch_size: int | None = None,
        max_concurrency: int | None = None,
    ) -> BatchSummary:
        """Process an already materialized list of items in batches."""
        processor = BatchItemProcessor(self._batch_config(batch_size, max_concurrency))
        return await processor.process(items, process_item, operation_name=operation_name)

    async def stream(
        self,
        fetch_page: FetchPage,
        process_item: ItemOperation,
        *,
        operation_name: str,
        max_concurrent_pages: int | None = None,
        batch_size: int | None = None,
        max_concurrency: int | None = None,
        max_pages: int | None = None,
    ) -> PaginationResult[Any]:
        """Fetch pages and process their items as each page arrives.

        process_item is called once per fetched item with the item's absolute
        index across all pages.

        Args:
            fetch_page: Async function ``(cursor) -> page``
            process_item: Async function ``(item, absolute_index)``
            operation_name: Name used in logs
            max_concurrent_pages: Override for pagination.concurrent_pages
            batch_size: Override for batch.asset_batch_size
            max_concurrency: Override for concurrency.per_processor
            max_pages: Override for pagination.max_pages

        Returns:
            PaginationResult whose totals count processed pages and items

        Raises:
            ConfigurationError: Before any fetch, if a limit is invalid
        """
        start = perf_counter()
        request = self._request(fetch_page, operation_name, max_concurrent_pages, max_pages)
        batch_config = self._batch_config(batch_size, max_concurrency)
        processor = BatchItemProcessor(
            batch_config, limiter=ConcurrencyLimiter(batch_config.max_concurrency)
        )
        processed_pages = 0
        processed_items = 0

        async def on_page(page: Page[Any], page_index: int, offset: int) -> None:
            nonlocal processed_pages, processed_items
            summary = await processor.process(
                page.items,
                process_item,
                offset=offset,
                operation_name=f"{operation_name} page {page_index + 1}",
            )
            processed_pages += 1
            processed_items += summary.items_processed

        fetched = await self._new_fetcher().fetch_all(request, on_page)
        result = PaginationResult(
            items=fetched.items,
            total_pages=processed_pages,
            total_items=processed_items,
            duration=perf_counter() - start,
        )
        log_export_complete(operation_name=operation_name, result=result)
        return result

    def _new_fetcher(self) -> PageFetcher:
        fetcher = PageFetcher(
            self._config.retry_config(),
            retry_policy=self._retry_policy,
            default_concurrency=self._config.pagination.concurrent_pages,
        )
        self._last_fetcher = fetcher
        return fetcher

    def _request(
        self,
        fetch_page: FetchPage,
        operation_name: str,
        max_concurrent_pages: int | None,
        max_pages: int | None,
    ) -> PaginationRequest[Any]:
        return PaginationRequest(
            fetch_page=fetch_page,
            operation_name=operation_name,
            max_concurrent_pages=max_concurrent_pages,
            max_pages=max_pages if max_pages is not None else self._config.pagination.max_pages,
        )

    def _batch_config(self, batch_size: int | None, max_concurrency: int | None) -> BatchConfig:
        defaults = self._config.batch_config()
        return BatchConfig(
            batch_size=defaults.batch_size if batch_size is None else batch_size,
            max_concurrency=(
                defaults.max_concurrency if max_concurrency is None else max_concurrency
            ),
        )
