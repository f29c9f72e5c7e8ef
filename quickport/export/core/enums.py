"""Enumerations shared across the export engine."""

from enum import Enum


class FetchState(str, Enum):
    """Lifecycle of one paginated fetch.

    IDLE: no fetch has started yet.
    DISCOVERING: the first two pages are fetched one after another so the
        cursor chain is known before concurrent work starts.
    STREAMING: later pages are submitted through the page limiter.
    DONE: a page came back without a cursor and every page task settled.
    FAILED: a page fetch or page callback raised.
    """

    IDLE = "idle"
    DISCOVERING = "discovering"
    STREAMING = "streaming"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (FetchState.DONE, FetchState.FAILED)
