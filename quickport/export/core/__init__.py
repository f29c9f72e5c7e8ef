"""Core components."""

from .config import (
    BatchSettings,
    ConcurrencySettings,
    ExportConfig,
    PaginationSettings,
    RetrySettings,
)
from .enums import FetchState
from .exceptions import ConfigurationError, ExportError, PaginationError

__all__ = [
    # Configuration
    "ExportConfig",
    "PaginationSettings",
    "BatchSettings",
    "ConcurrencySettings",
    "RetrySettings",
    # Enums
    "FetchState",
    # Exceptions
    "ExportError",
    "ConfigurationError",
    "PaginationError",
]
