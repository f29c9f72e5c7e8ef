"""Batch-wise item processing under a concurrency limit.

Items are split into contiguous batches. Each batch is submitted to a
ConcurrencyLimiter and fully settled before the next batch starts, so at
most ``max_concurrency`` item operations run at once and batches complete
in input order.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from functools import partial
from typing import Any, TypeVar

from ..core.exceptions import ConfigurationError
from .limiter import ConcurrencyLimiter, settle
from .telemetry import log_batch_completed

T = TypeVar("T")

# operation(item, absolute_index)
ItemOperation = Callable[[Any, int], Awaitable[Any]]


@dataclass(frozen=True)
class BatchConfig:
    """Item batching configuration.

    Attributes:
        batch_size: Items per batch
        max_concurrency: Item operations in flight at once
    """

    batch_size: int = 25
    max_concurrency: int = 20

    def __post_init__(self) -> None:
        """Validate batch configuration."""
        if self.batch_size < 1:
            raise ConfigurationError(
                f"batch_size must be >= 1, got {self.batch_size}", field="batch_size"
            )
        if self.max_concurrency < 1:
            raise ConfigurationError(
                f"max_concurrency must be >= 1, got {self.max_concurrency}",
                field="max_concurrency",
            )


@dataclass
class BatchSummary:
    """Outcome of a successful process() call."""

    items_processed: int = 0
    batches_completed: int = 0


class BatchItemProcessor:
    """Applies an async operation to every item, batch by batch."""

    def __init__(
        self,
        config: BatchConfig | None = None,
        *,
        limiter: ConcurrencyLimiter | None = None,
    ) -> None:
        """Initialize batch processor.

        Args:
            config: Batch size and concurrency (defaults to BatchConfig())
            limiter: Limiter shared across process() calls; by default each
                call gets its own limiter of width config.max_concurrency
        """
        self._config = config or BatchConfig()
        self._limiter = limiter

    @property
    def config(self) -> BatchConfig:
        return self._config

    async def process(
        self,
        items: Sequence[T],
        operation: ItemOperation,
        *,
        offset: int = 0,
        operation_name: str = "batch",
    ) -> BatchSummary:
        """Run operation(item, index) for each item.

        ``index`` is ``offset`` plus the item's position in ``items``, so
        callers feeding several pages get stable absolute indices.

        Operations are not retried. When one fails, the rest of its batch
        still settles, then the first failure (by index) is raised and later
        batches are skipped.

        Args:
            items: Items to process, in order
            operation: Async function called with (item, absolute_index)
            offset: Absolute index of items[0]
            operation_name: Name used in logs

        Returns:
            BatchSummary with counts
        """
        summary = BatchSummary()
        if not items:
            return summary

        limiter = self._limiter or ConcurrencyLimiter(self._config.max_concurrency)
        batch_size = self._config.batch_size
        for batch_index, start in enumerate(range(0, len(items), batch_size)):
            batch = items[start : start + batch_size]
            tasks = [
                limiter.schedule(partial(operation, item, offset + start + position))
                for position, item in enumerate(batch)
            ]
            await settle(tasks)

            summary.items_processed += len(batch)
            summary.batches_completed += 1
            log_batch_completed(
                operation_name=operation_name,
                batch_index=batch_index,
                batch_size=len(batch),
                first_index=offset + start,
            )
        return summary
