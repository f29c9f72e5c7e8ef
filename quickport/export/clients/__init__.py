"""Page sources for remote listing APIs."""

from .http_pages import MAX_PAGE_SIZE, HTTPPageSource

__all__ = ["HTTPPageSource", "MAX_PAGE_SIZE"]
