from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

_wire_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

BOOK_FIELDS = ("title", "author", "genre", "published_year", "rating")


class Book(BaseModel):
    model_config = ConfigDict(**_wire_config, from_attributes=True)

    id: str
    title: str
    author: str
    genre: str | None = None
    published_year: int | None = None
    rating: float | None = None
    created_at: datetime
    updated_at: datetime


class BookFields(BaseModel):
    """Fields a client submits to create a book. Presence of title/author is
    checked here, emptiness by the service."""

    model_config = _wire_config

    title: str
    author: str
    genre: str | None = None
    published_year: int | None = None
    rating: float | None = None


class BookPatch(BaseModel):
    """Partial update; only fields the client actually sent are applied."""

    model_config = _wire_config

    title: str | None = None
    author: str | None = None
    genre: str | None = None
    published_year: int | None = None
    rating: float | None = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class DeleteConfirmation(BaseModel):
    message: str = Field(default="Book deleted successfully")


def apply_patch(existing: Mapping[str, Any], patch: BookPatch) -> dict[str, Any]:
    merged = dict(existing)
    merged.update(patch.changes())
    return merged


def describe_errors(exc) -> str:
    """Flatten pydantic (or FastAPI request) validation errors into one message."""
    parts = []
    for error in exc.errors():
        loc = ".".join(str(part) for part in error["loc"]) or "body"
        parts.append(f"{loc}: {error['msg']}")
    return "Book validation failed: " + "; ".join(parts)
