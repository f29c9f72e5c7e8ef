"""Counting-semaphore limiter for async tasks.

Architecture:
    schedule() wraps each zero-argument coroutine factory in an asyncio task
    that waits on a shared semaphore before invoking the factory. Tasks are
    created in submission order and asyncio.Semaphore wakes waiters first in,
    first out, so admission follows submission order. Completion order is
    whatever the admitted tasks produce.

    A failing task only fails its own asyncio.Task; the slot is released on
    the way out and siblings keep running.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, TypeVar

from ..core.exceptions import ConfigurationError

T = TypeVar("T")


class ConcurrencyLimiter:
    """Admits at most ``limit`` scheduled tasks at a time."""

    def __init__(self, limit: int) -> None:
        """Initialize limiter.

        Args:
            limit: Maximum tasks in flight (>= 1). A limit of 1 runs tasks
                strictly one after another in submission order.

        Raises:
            ConfigurationError: If limit is below 1
        """
        if limit < 1:
            raise ConfigurationError(f"Concurrency limit must be >= 1, got {limit}", field="limit")
        self._limit = limit
        self._semaphore = asyncio.Semaphore(limit)
        self._active = 0
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def active_count(self) -> int:
        """Tasks admitted and still running."""
        return self._active

    @property
    def pending_count(self) -> int:
        """Tasks scheduled but waiting for a slot."""
        return len(self._tasks) - self._active

    def schedule(self, task: Callable[[], Awaitable[T]]) -> asyncio.Task[T]:
        """Submit a task for admission.

        Must be called from a running event loop.

        Args:
            task: Zero-argument callable returning an awaitable

        Returns:
            asyncio.Task resolving to the task's result or failing with its error
        """
        future = asyncio.get_running_loop().create_task(self._run(task))
        self._tasks.add(future)
        future.add_done_callback(self._tasks.discard)
        return future

    async def _run(self, task: Callable[[], Awaitable[T]]) -> T:
        async with self._semaphore:
            self._active += 1
            try:
                return await task()
            finally:
                self._active -= 1


async def settle(tasks: Iterable[Awaitable[T]]) -> list[T]:
    """Wait for every task, then raise the first failure in submission order.

    Unlike a plain gather, no task is left running when this raises.

    Returns:
        Results in submission order
    """
    results = await asyncio.gather(*tasks, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


async def cancel_all(tasks: Iterable[asyncio.Task[Any]]) -> None:
    """Cancel unfinished tasks and wait for them to unwind.

    Exceptions from the tasks are retrieved and discarded; the caller is
    already propagating the failure that triggered the cancellation.
    """
    tasks = list(tasks)
    for task in tasks:
        if not task.done():
            task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
