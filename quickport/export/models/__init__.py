"""Data models for the export engine.

Models are immutable pydantic objects; see
https://docs.pydantic.dev/ for validation details.
"""

from .page import Page

__all__ = ["Page"]
