"""Structured logging for the export engine.

Every function logs a short event name with the details in ``extra`` so
that JSON log formatters can index them.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .pagination.definitions import PaginationResult

logger = logging.getLogger(__name__)


def log_retry_attempt_failed(
    *,
    operation_name: str,
    attempt: int,
    max_attempts: int,
    delay: float,
    error_type: str,
    error_message: str,
) -> None:
    """Log a failed attempt that will be retried.

    Args:
        operation_name: Name of the wrapped operation
        attempt: 1-indexed attempt that failed
        max_attempts: Total attempts allowed
        delay: Seconds until the next attempt
        error_type: Exception class name
        error_message: Exception message
    """
    logger.warning(
        "retry_attempt_failed",
        extra={
            "operation_name": operation_name,
            "attempt": attempt,
            "max_attempts": max_attempts,
            "delay": delay,
            "error_type": error_type,
            "error_message": error_message,
        },
    )


def log_retry_exhausted(
    *,
    operation_name: str,
    attempts: int,
    retryable: bool,
    error_type: str,
    error_message: str,
) -> None:
    """Log an operation giving up, either out of attempts or on a fatal error."""
    logger.warning(
        "retry_exhausted" if retryable else "retry_aborted",
        extra={
            "operation_name": operation_name,
            "attempts": attempts,
            "error_type": error_type,
            "error_message": error_message,
        },
    )


def log_page_fetched(
    *,
    operation_name: str,
    page_index: int,
    item_count: int,
    has_next: bool,
    latency_ms: float | None = None,
) -> None:
    """Log a page arriving from the fetch function.

    Args:
        operation_name: Pagination operation name
        page_index: Zero-based page index
        item_count: Items on the page
        has_next: Whether the page carried a cursor
        latency_ms: Fetch latency including retries
    """
    logger.debug(
        "pagination_page_fetched",
        extra={
            "operation_name": operation_name,
            "page_index": page_index,
            "item_count": item_count,
            "has_next": has_next,
            "latency_ms": latency_ms,
        },
    )


def log_page_failed(
    *,
    operation_name: str,
    page_index: int,
    error_type: str,
    error_message: str,
) -> None:
    """Log a page whose fetch or callback failed for good.

    Args:
        operation_name: Pagination operation name
        page_index: Zero-based index of the failed page
        error_type: Exception class name
        error_message: Exception message
    """
    logger.error(
        "pagination_page_failed",
        extra={
            "operation_name": operation_name,
            "page_index": page_index,
            "page_number": page_index + 1,
            "error_type": error_type,
            "error_message": error_message,
        },
    )


def log_pagination_complete(*, operation_name: str, result: PaginationResult) -> None:
    """Log completion of a paginated fetch."""
    logger.info(
        "pagination_complete",
        extra={
            "operation_name": operation_name,
            "total_pages": result.total_pages,
            "total_items": result.total_items,
            "duration": result.duration,
        },
    )


def log_batch_completed(
    *,
    operation_name: str,
    batch_index: int,
    batch_size: int,
    first_index: int,
) -> None:
    """Log a settled batch of item operations."""
    logger.debug(
        "batch_completed",
        extra={
            "operation_name": operation_name,
            "batch_index": batch_index,
            "batch_size": batch_size,
            "first_index": first_index,
        },
    )


def log_export_complete(*, operation_name: str, result: PaginationResult) -> None:
    """Log completion of a streaming export."""
    logger.info(
        "export_complete",
        extra={
            "operation_name": operation_name,
            "total_pages": result.total_pages,
            "total_items": result.total_items,
            "duration": result.duration,
        },
    )
