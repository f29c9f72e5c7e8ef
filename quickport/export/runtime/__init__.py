"""Runtime orchestration components."""

from .batch import BatchConfig, BatchItemProcessor, BatchSummary
from .limiter import ConcurrencyLimiter, cancel_all, settle
from .orchestrator import ExportOrchestrator
from .pagination import (
    PageFetcher,
    PaginationProgress,
    PaginationRequest,
    PaginationResult,
)
from .retry import RetryConfig, RetryPolicy, is_transient_error

__all__ = [
    "ExportOrchestrator",
    "PageFetcher",
    "PaginationRequest",
    "PaginationProgress",
    "PaginationResult",
    "BatchItemProcessor",
    "BatchConfig",
    "BatchSummary",
    "ConcurrencyLimiter",
    "settle",
    "cancel_all",
    "RetryPolicy",
    "RetryConfig",
    "is_transient_error",
]
