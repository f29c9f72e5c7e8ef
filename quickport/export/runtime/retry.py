"""Bounded retries with exponential backoff for async operations.

Architecture:
    RetryPolicy wraps a zero-argument coroutine factory. Each failed attempt
    is logged and, when the error is classified as retryable and attempts
    remain, swallowed before sleeping for the next backoff delay. The final
    error is re-raised as the same object the operation raised, with a note
    naming the operation so tracebacks stay attributable.

    Backoff before retry k (1-indexed) is min(max_delay, base_delay * 2**(k-1)).
    Optional jitter adds up to jitter_factor * delay and is capped the same way.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

import aiohttp

from ..core.exceptions import ConfigurationError
from .telemetry import log_retry_attempt_failed, log_retry_exhausted

T = TypeVar("T")

# Error names reported by AWS SDKs and socket layers for transient faults
_TRANSIENT_ERROR_NAMES = frozenset(
    {
        "ThrottlingException",
        "TooManyRequestsException",
        "RequestLimitExceeded",
        "RateLimitExceededException",
        "ServiceUnavailable",
        "RequestTimeout",
        "RequestTimeoutException",
        "InternalServerError",
        "InternalError",
        "NetworkingError",
        "TimeoutError",
        "ECONNRESET",
        "ETIMEDOUT",
        "EPIPE",
        "ENOTFOUND",
    }
)
_TRANSIENT_MESSAGE_MARKERS = (
    "rate exceeded",
    "too many requests",
    "socket hang up",
    "econnreset",
    "etimedout",
    "timeout",
)
_TRANSIENT_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


@dataclass(frozen=True)
class RetryConfig:
    """Backoff bounds for one wrapped operation.

    Attributes:
        max_retries: Retries after the first attempt (0 = single attempt)
        base_delay: Delay before the first retry, in seconds
        max_delay: Upper bound for any single delay, in seconds
        jitter_factor: Random extra delay as a fraction of the computed delay
    """

    max_retries: int = 5
    base_delay: float = 0.5
    max_delay: float = 10.0
    jitter_factor: float = 0.0

    def __post_init__(self) -> None:
        """Validate retry configuration."""
        if self.max_retries < 0:
            raise ConfigurationError("max_retries must be >= 0", field="max_retries")
        if self.base_delay < 0:
            raise ConfigurationError("base_delay must be >= 0", field="base_delay")
        if self.max_delay < 0:
            raise ConfigurationError("max_delay must be >= 0", field="max_delay")
        if self.max_delay < self.base_delay:
            raise ConfigurationError("max_delay must be >= base_delay", field="max_delay")
        if not 0 <= self.jitter_factor <= 1:
            raise ConfigurationError("jitter_factor must be within [0, 1]", field="jitter_factor")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, retry_number: int) -> float:
        """Calculate the delay before a retry.

        Args:
            retry_number: 1-indexed retry number (1 = first retry)

        Returns:
            Delay in seconds, never above max_delay
        """
        if retry_number < 1:
            return 0.0
        delay = min(self.max_delay, self.base_delay * (2 ** (retry_number - 1)))
        if self.jitter_factor:
            delay += random.uniform(0, self.jitter_factor * delay)
        return min(self.max_delay, delay)


def is_transient_error(error: BaseException) -> bool:
    """Return True for throttling, timeout and 5xx style failures.

    Checks, in order: asyncio/builtin timeouts and connection errors, aiohttp
    response statuses, an explicit ``status_code``/``status`` attribute, the
    error class name or ``code`` attribute, then well-known message fragments.
    """
    if isinstance(error, (asyncio.TimeoutError, ConnectionError)):
        return True
    if isinstance(error, aiohttp.ClientResponseError):
        return error.status in _TRANSIENT_STATUS_CODES
    if isinstance(error, aiohttp.ClientConnectionError):
        return True

    status = getattr(error, "status_code", None) or getattr(error, "status", None)
    if isinstance(status, int) and status in _TRANSIENT_STATUS_CODES:
        return True

    code = getattr(error, "code", None)
    if type(error).__name__ in _TRANSIENT_ERROR_NAMES or code in _TRANSIENT_ERROR_NAMES:
        return True

    message = str(error).lower()
    return any(marker in message for marker in _TRANSIENT_MESSAGE_MARKERS)


def _retry_any(error: BaseException) -> bool:
    return True


class RetryPolicy:
    """Runs an async operation with bounded retries and exponential backoff."""

    def __init__(
        self,
        config: RetryConfig | None = None,
        *,
        retry_on: Callable[[BaseException], bool] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize retry policy.

        Args:
            config: Backoff bounds (defaults to RetryConfig())
            retry_on: Classifier for retryable errors (default: every Exception)
            sleep: Awaitable used for backoff delays
        """
        self._config = config or RetryConfig()
        self._retry_on = retry_on or _retry_any
        self._sleep = sleep

    @property
    def config(self) -> RetryConfig:
        return self._config

    def with_config(self, config: RetryConfig) -> RetryPolicy:
        """Return a policy with the same classifier and sleep but other bounds."""
        return RetryPolicy(config, retry_on=self._retry_on, sleep=self._sleep)

    async def execute(self, operation: Callable[[], Awaitable[T]], name: str) -> T:
        """Run operation until it succeeds or retries are exhausted.

        Args:
            operation: Zero-argument callable returning an awaitable
            name: Operation name used in logs and in the error note

        Returns:
            The operation's result

        Raises:
            Exception: The operation's own error from the last attempt, or
                from the first attempt classified as not retryable
        """
        max_attempts = self._config.max_attempts
        attempt = 0
        while True:
            attempt += 1
            try:
                return await operation()
            except Exception as e:
                retryable = self._retry_on(e)
                if not retryable or attempt >= max_attempts:
                    log_retry_exhausted(
                        operation_name=name,
                        attempts=attempt,
                        retryable=retryable,
                        error_type=type(e).__name__,
                        error_message=str(e),
                    )
                    e.add_note(f"{name}: failed after {attempt} attempt(s)")
                    raise

                delay = self._config.delay_for(attempt)
                log_retry_attempt_failed(
                    operation_name=name,
                    attempt=attempt,
                    max_attempts=max_attempts,
                    delay=delay,
                    error_type=type(e).__name__,
                    error_message=str(e),
                )
            await self._sleep(delay)
