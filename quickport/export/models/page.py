"""Page model for cursor-paginated listings."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """One page returned by a single page fetch.

    Attributes:
        items: Items on this page, in server order
        next_token: Cursor for the following page (None on the last page)
    """

    items: list[T] = Field(...)
    next_token: str | None = Field(default=None, alias="nextToken")

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    @field_validator("next_token", mode="before")
    @classmethod
    def normalize_token(cls, v: Any) -> Any:
        """Treat an empty cursor as the end of the listing."""
        if v == "":
            return None
        return v

    @property
    def is_last(self) -> bool:
        return self.next_token is None

    @classmethod
    def coerce(cls, payload: Any) -> Page[Any]:
        """Build a Page from a fetch function's return value.

        Accepts a Page, or a mapping with ``items`` and one of
        ``nextToken`` / ``next_token``.

        Raises:
            TypeError: If payload is neither a Page nor a mapping
            pydantic.ValidationError: If the mapping has the wrong shape
        """
        if isinstance(payload, Page):
            return payload
        if isinstance(payload, Mapping):
            return cls.model_validate(dict(payload))
        raise TypeError(f"Expected Page or mapping, got {type(payload).__name__}")
