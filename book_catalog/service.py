import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError as SchemaError

from .errors import MalformedIdentifier, NotFound, ValidationError
from .models import Book, BookFields, BookPatch, describe_errors
from .repository import BookRepository

logger = logging.getLogger("book_catalog.service")

REQUIRED_TEXT_FIELDS = ("title", "author")


def _require_text(values: Mapping[str, Any], names) -> None:
    missing = [name for name in names if not isinstance(values.get(name), str) or not values[name].strip()]
    if missing:
        details = "; ".join(f"{name}: must not be empty" for name in missing)
        raise ValidationError(f"Book validation failed: {details}")


def parse_fields(payload: Any) -> BookFields:
    """Validate a creation payload without altering the submitted text."""
    try:
        fields = payload if isinstance(payload, BookFields) else BookFields.model_validate(payload)
    except SchemaError as exc:
        raise ValidationError(describe_errors(exc)) from exc
    _require_text(fields.model_dump(), REQUIRED_TEXT_FIELDS)
    return fields


def parse_patch(payload: Any) -> BookPatch:
    """Accept a BookPatch, a mapping, or a raw JSON body."""
    try:
        if isinstance(payload, BookPatch):
            patch = payload
        elif isinstance(payload, (bytes, bytearray)):
            patch = BookPatch.model_validate_json(payload)
        else:
            patch = BookPatch.model_validate(payload)
    except SchemaError as exc:
        raise ValidationError(describe_errors(exc)) from exc
    changes = patch.changes()
    _require_text(changes, [name for name in REQUIRED_TEXT_FIELDS if name in changes])
    return patch


class BookService:
    def __init__(self, repository: BookRepository):
        self.repository = repository

    def list(self) -> list[Book]:
        return self.repository.list_all()

    def get(self, book_id: str) -> Book:
        self._check_id(book_id)
        book = self.repository.find(book_id)
        if book is None:
            raise NotFound(book_id)
        return book

    def create(self, payload: Any) -> Book:
        fields = parse_fields(payload)
        book = self.repository.create(fields.model_dump())
        logger.info("book.created", extra={"book_id": book.id})
        return book

    def update(self, book_id: str, payload: Any) -> Book:
        self._check_id(book_id)
        patch = parse_patch(payload)
        book = self.repository.find_and_update(book_id, patch)
        if book is None:
            raise NotFound(book_id)
        logger.info("book.updated", extra={"book_id": book_id, "fields": sorted(patch.changes())})
        return book

    def delete(self, book_id: str) -> Book:
        self._check_id(book_id)
        book = self.repository.find_and_delete(book_id)
        if book is None:
            raise NotFound(book_id)
        logger.info("book.deleted", extra={"book_id": book_id})
        return book

    def _check_id(self, book_id: str) -> None:
        if not self.repository.is_well_formed_id(book_id):
            logger.info("book.malformed_id", extra={"book_id": book_id})
            raise MalformedIdentifier(book_id)
