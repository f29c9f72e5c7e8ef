"""Cursor pagination driver with bounded page concurrency.

Architecture:
    PageFetcher walks a cursor chain with a caller-supplied fetch function.
    Every page runs as one limiter task: fetch (wrapped by RetryPolicy),
    record the page, publish its cursor, then run the optional page callback.

    The first two pages are awaited in full before the next one is submitted
    (DISCOVERING). From the third page on (STREAMING) the loop only waits for
    the page's cursor, so a page's callback overlaps the fetches that follow
    it while the limiter caps how many page tasks are in flight.

    A fetch is never issued before the cursor it needs has been returned by
    the preceding page, so every fetch call receives exactly the cursor of
    the page before it.

    Any failure cancels the page tasks still running and re-raises the
    original error. No partial result is returned.
"""

from __future__ import annotations

import asyncio
from functools import partial
from time import perf_counter
from typing import Any

from pydantic import ValidationError

from ...core.enums import FetchState
from ...core.exceptions import ConfigurationError, PaginationError
from ...models import Page
from ..limiter import ConcurrencyLimiter, cancel_all, settle
from ..retry import RetryConfig, RetryPolicy
from ..telemetry import log_page_failed, log_page_fetched, log_pagination_complete
from .definitions import PageCallback, PaginationProgress, PaginationRequest, PaginationResult

# Pages fetched and awaited one by one before fetch-ahead starts
SEQUENTIAL_DISCOVERY_PAGES = 2


class PageFetcher:
    """Fetches every page of a cursor-paginated listing."""

    def __init__(
        self,
        retry_config: RetryConfig | None = None,
        *,
        retry_policy: RetryPolicy | None = None,
        default_concurrency: int = 10,
    ) -> None:
        """Initialize page fetcher.

        Args:
            retry_config: Backoff bounds for each page fetch
            retry_policy: Policy to use (its bounds are replaced by retry_config if given)
            default_concurrency: Page tasks in flight when the request sets none
        """
        if default_concurrency < 1:
            raise ConfigurationError(
                f"default_concurrency must be >= 1, got {default_concurrency}",
                field="default_concurrency",
            )
        if retry_policy is None:
            retry_policy = RetryPolicy(retry_config)
        elif retry_config is not None:
            retry_policy = retry_policy.with_config(retry_config)
        self._retry = retry_policy
        self._default_concurrency = default_concurrency
        self._state = FetchState.IDLE
        self._progress = PaginationProgress()

    @property
    def state(self) -> FetchState:
        return self._state

    @property
    def progress(self) -> PaginationProgress:
        """Counters of the current or most recent fetch."""
        return self._progress

    async def fetch_all(
        self,
        request: PaginationRequest[Any],
        on_page: PageCallback | None = None,
    ) -> PaginationResult[Any]:
        """Fetch all pages and return their items in page order.

        Args:
            request: Fetch function, operation name and limits
            on_page: Optional async callback ``(page, page_index, offset)``
                run for each page once it is fetched; ``offset`` is the
                absolute index of the page's first item

        Returns:
            PaginationResult with every item

        Raises:
            PaginationError: On a repeated cursor, a malformed page, or more
                pages than request.max_pages
            Exception: The error from a page fetch that exhausted its retries,
                or from on_page
        """
        if self._state in (FetchState.DISCOVERING, FetchState.STREAMING):
            raise RuntimeError("PageFetcher is already running a fetch")

        start = perf_counter()
        self._progress = PaginationProgress()
        self._state = FetchState.DISCOVERING
        limiter = ConcurrencyLimiter(request.max_concurrent_pages or self._default_concurrency)
        loop = asyncio.get_running_loop()
        pages: dict[int, tuple[Any, ...]] = {}
        tasks: list[asyncio.Task[None]] = []
        unfinished: set[asyncio.Task[None]] = set()
        seen_cursors: set[str] = set()
        cursor: str | None = None

        try:
            while True:
                page_index = self._progress.pages_submitted
                cursor_ready: asyncio.Future[str | None] = loop.create_future()
                task = limiter.schedule(
                    partial(
                        self._run_page,
                        request,
                        page_index,
                        cursor,
                        cursor_ready,
                        pages,
                        on_page,
                    )
                )
                tasks.append(task)
                self._progress.pages_submitted += 1

                if page_index < SEQUENTIAL_DISCOVERY_PAGES:
                    await task
                else:
                    self._state = FetchState.STREAMING
                    unfinished.add(task)
                    await self._wait_for_cursor(cursor_ready, unfinished)

                cursor = cursor_ready.result()
                if cursor is None:
                    break
                if cursor in seen_cursors:
                    raise PaginationError(
                        f"{request.operation_name}: cursor {cursor!r} returned twice",
                        operation_name=request.operation_name,
                        page_index=page_index,
                    )
                seen_cursors.add(cursor)
                if request.max_pages is not None and len(tasks) >= request.max_pages:
                    raise PaginationError(
                        f"{request.operation_name}: more than {request.max_pages} pages",
                        operation_name=request.operation_name,
                        page_index=page_index,
                    )

            await settle(tasks)
        except BaseException:
            self._state = FetchState.FAILED
            await cancel_all(tasks)
            raise

        self._state = FetchState.DONE
        items = [item for index in sorted(pages) for item in pages[index]]
        result = PaginationResult(
            items=items,
            total_pages=len(pages),
            total_items=len(items),
            duration=perf_counter() - start,
        )
        log_pagination_complete(operation_name=request.operation_name, result=result)
        return result

    async def _run_page(
        self,
        request: PaginationRequest[Any],
        page_index: int,
        cursor: str | None,
        cursor_ready: asyncio.Future[str | None],
        pages: dict[int, tuple[Any, ...]],
        on_page: PageCallback | None,
    ) -> None:
        fetch_start = perf_counter()
        try:
            payload = await self._retry.execute(
                partial(request.fetch_page, cursor), request.operation_name
            )
            page = self._coerce(payload, request, page_index)
        except Exception as e:
            log_page_failed(
                operation_name=request.operation_name,
                page_index=page_index,
                error_type=type(e).__name__,
                error_message=str(e),
            )
            raise

        # Offsets are assigned here, between suspension points, in page order
        offset = self._progress.items_fetched
        self._progress.items_fetched += len(page.items)
        self._progress.pages_fetched += 1
        # Snapshot; page callbacks may mutate page.items
        pages[page_index] = tuple(page.items)
        log_page_fetched(
            operation_name=request.operation_name,
            page_index=page_index,
            item_count=len(page.items),
            has_next=not page.is_last,
            latency_ms=(perf_counter() - fetch_start) * 1000.0,
        )
        if not cursor_ready.done():
            cursor_ready.set_result(page.next_token)

        if on_page is not None:
            try:
                await on_page(page, page_index, offset)
            except Exception as e:
                log_page_failed(
                    operation_name=request.operation_name,
                    page_index=page_index,
                    error_type=type(e).__name__,
                    error_message=str(e),
                )
                raise
        self._progress.pages_completed += 1

    @staticmethod
    async def _wait_for_cursor(
        cursor_ready: asyncio.Future[str | None],
        unfinished: set[asyncio.Task[None]],
    ) -> None:
        """Wait until cursor_ready resolves or any page task fails.

        Finished tasks are removed from unfinished, so each one is checked once.
        """
        while not cursor_ready.done():
            done, _ = await asyncio.wait(
                [cursor_ready, *unfinished], return_when=asyncio.FIRST_COMPLETED
            )
            for task in done:
                if task is cursor_ready:
                    continue
                unfinished.discard(task)
                if task.cancelled():
                    raise asyncio.CancelledError()
                error = task.exception()
                if error is not None:
                    raise error

    @staticmethod
    def _coerce(payload: Any, request: PaginationRequest[Any], page_index: int) -> Page[Any]:
        try:
            return Page.coerce(payload)
        except (TypeError, ValidationError) as e:
            raise PaginationError(
                f"{request.operation_name}: page {page_index + 1} is not a valid page: {e}",
                operation_name=request.operation_name,
                page_index=page_index,
            ) from e
