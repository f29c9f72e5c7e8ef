"""Quickport Export - bounded-concurrency paginated fetch and batch processing."""

from .clients import HTTPPageSource
from .core import (
    ConfigurationError,
    ExportConfig,
    ExportError,
    FetchState,
    PaginationError,
)
from .models import Page
from .runtime import (
    BatchConfig,
    BatchItemProcessor,
    BatchSummary,
    ConcurrencyLimiter,
    ExportOrchestrator,
    PageFetcher,
    PaginationProgress,
    PaginationRequest,
    PaginationResult,
    RetryConfig,
    RetryPolicy,
    is_transient_error,
)
from .utils import HTTPClient

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "ExportConfig",
    "RetryConfig",
    "BatchConfig",
    # Engine
    "ExportOrchestrator",
    "PageFetcher",
    "BatchItemProcessor",
    "ConcurrencyLimiter",
    "RetryPolicy",
    "is_transient_error",
    # Models
    "Page",
    "PaginationRequest",
    "PaginationProgress",
    "PaginationResult",
    "BatchSummary",
    "FetchState",
    # Clients
    "HTTPClient",
    "HTTPPageSource",
    # Exceptions
    "ExportError",
    "ConfigurationError",
    "PaginationError",
]
