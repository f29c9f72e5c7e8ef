"""Export engine configuration.

Architecture:
    ExportConfig is an immutable pydantic model built once per process (or
    per test) and passed explicitly into the orchestrator. Its sections mirror
    the export settings used by the asset export handlers:

    - pagination.concurrent_pages: pages allowed in flight at once
    - batch.asset_batch_size: items per processing batch
    - concurrency.per_processor: item operations allowed in flight at once
    - retry.*: bounds for the exponential backoff around page fetches

    Durations are seconds. Environment variables keep the millisecond units
    used by the deployment templates and are converted on load.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .exceptions import ConfigurationError

if TYPE_CHECKING:
    from ..runtime.batch import BatchConfig
    from ..runtime.retry import RetryConfig

# Environment variable -> (section, field, converter)
_ENV_FIELDS: dict[str, tuple[str, str, Any]] = {
    "EXPORT_CONCURRENCY_PAGES": ("pagination", "concurrent_pages", int),
    "EXPORT_BATCH_ASSETS": ("batch", "asset_batch_size", int),
    "EXPORT_CONCURRENCY_PER_PROCESSOR": ("concurrency", "per_processor", int),
    "EXPORT_MAX_RETRIES": ("retry", "max_retries", int),
    "EXPORT_RETRY_BASE_DELAY": ("retry", "base_delay", lambda v: int(v) / 1000.0),
    "EXPORT_RETRY_MAX_DELAY": ("retry", "max_delay", lambda v: int(v) / 1000.0),
    "EXPORT_RETRY_JITTER": ("retry", "jitter_factor", float),
}


class PaginationSettings(BaseModel):
    """Page fetch settings."""

    concurrent_pages: int = Field(default=10, ge=1)
    max_pages: int | None = Field(default=None, ge=1)

    model_config = ConfigDict(frozen=True, extra="forbid")


class BatchSettings(BaseModel):
    """Item batching settings."""

    asset_batch_size: int = Field(default=25, ge=1)

    model_config = ConfigDict(frozen=True, extra="forbid")


class ConcurrencySettings(BaseModel):
    """Item processing concurrency."""

    per_processor: int = Field(default=20, ge=1)

    model_config = ConfigDict(frozen=True, extra="forbid")


class RetrySettings(BaseModel):
    """Backoff bounds for transient page fetch failures."""

    max_retries: int = Field(default=5, ge=0)
    base_delay: float = Field(default=0.5, ge=0)
    max_delay: float = Field(default=10.0, ge=0)
    jitter_factor: float = Field(default=0.0, ge=0, le=1)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="after")
    def validate_delays(self) -> RetrySettings:
        """Validate max_delay >= base_delay."""
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")
        return self


class ExportConfig(BaseModel):
    """Complete export engine configuration."""

    pagination: PaginationSettings = Field(default_factory=PaginationSettings)
    batch: BatchSettings = Field(default_factory=BatchSettings)
    concurrency: ConcurrencySettings = Field(default_factory=ConcurrencySettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ExportConfig:
        """Build a config from nested section mappings.

        Raises:
            ConfigurationError: If any value is missing its bounds
        """
        try:
            return cls.model_validate(dict(data))
        except ValidationError as e:
            raise _to_configuration_error(e) from e

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ExportConfig:
        """Build a config from EXPORT_* environment variables.

        Unset variables keep their defaults. Delays are read in milliseconds.

        Args:
            environ: Environment mapping (defaults to os.environ)

        Raises:
            ConfigurationError: If a variable is not a number or is out of range
        """
        env = os.environ if environ is None else environ
        sections: dict[str, dict[str, Any]] = {}
        for name, (section, field, convert) in _ENV_FIELDS.items():
            raw = env.get(name)
            if raw is None or raw.strip() == "":
                continue
            try:
                value = convert(raw.strip())
            except ValueError as e:
                raise ConfigurationError(
                    f"{name} must be numeric, got {raw!r}", field=f"{section}.{field}"
                ) from e
            sections.setdefault(section, {})[field] = value
        return cls.from_mapping(sections)

    def retry_config(self) -> RetryConfig:
        """Return the RetryConfig for page fetches."""
        from ..runtime.retry import RetryConfig

        return RetryConfig(
            max_retries=self.retry.max_retries,
            base_delay=self.retry.base_delay,
            max_delay=self.retry.max_delay,
            jitter_factor=self.retry.jitter_factor,
        )

    def batch_config(self) -> BatchConfig:
        """Return the BatchConfig for item processing."""
        from ..runtime.batch import BatchConfig

        return BatchConfig(
            batch_size=self.batch.asset_batch_size,
            max_concurrency=self.concurrency.per_processor,
        )


def _to_configuration_error(error: ValidationError) -> ConfigurationError:
    first = error.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ()))
    return ConfigurationError(f"Invalid export configuration: {field}: {first['msg']}", field=field)
