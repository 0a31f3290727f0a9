"""Persistence for books behind a storage-agnostic contract.

Implementations own their atomicity: a single ``find_and_update`` or
``find_and_delete`` call is one indivisible step, so callers never lock.
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaError
from pydantic.alias_generators import to_camel
from sqlalchemy import select
from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .entities import BookRecord
from .errors import Unavailable, ValidationError
from .identifiers import is_well_formed_id, new_object_id
from .models import BOOK_FIELDS, Book, BookPatch, apply_patch, describe_errors

logger = logging.getLogger("book_catalog.repository")

# Range of the 32-bit INTEGER column backing published_year.
INTEGER_MIN = -(2**31)
INTEGER_MAX = 2**31 - 1


class StoredBook(BaseModel):
    """Schema every stored document must satisfy, whoever wrote it."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str = Field(min_length=1)
    author: str = Field(min_length=1)
    genre: str | None = None
    published_year: int | None = Field(default=None, ge=INTEGER_MIN, le=INTEGER_MAX)
    rating: float | None = Field(default=None, ge=1, le=5)


def check_document(fields: Mapping[str, Any]) -> dict[str, Any]:
    try:
        document = StoredBook.model_validate({name: fields.get(name) for name in BOOK_FIELDS})
    except SchemaError as exc:
        raise ValidationError(describe_errors(exc)) from exc
    return document.model_dump()


_PLACEHOLDER_DOCUMENT = {"title": "-", "author": "-"}


def check_patch(patch: BookPatch) -> None:
    """Reject patch values the schema forbids whatever record they land on."""
    check_document(apply_patch(_PLACEHOLDER_DOCUMENT, patch))


def _now() -> datetime:
    return datetime.now(timezone.utc)


class BookRepository(ABC):
    @abstractmethod
    def list_all(self) -> list[Book]: ...

    @abstractmethod
    def find(self, book_id: str) -> Optional[Book]: ...

    @abstractmethod
    def create(self, fields: Mapping[str, Any]) -> Book: ...

    @abstractmethod
    def find_and_update(self, book_id: str, patch: BookPatch) -> Optional[Book]: ...

    @abstractmethod
    def find_and_delete(self, book_id: str) -> Optional[Book]: ...

    def is_well_formed_id(self, value: object) -> bool:
        return is_well_formed_id(value)


class SqlBookRepository(BookRepository):
    def __init__(self, session: Session):
        self.session = session

    @contextmanager
    def _storage_errors(self, action: str) -> Iterator[None]:
        try:
            yield
        except ValidationError:
            self.session.rollback()
            raise
        except (IntegrityError, DataError) as exc:
            self.session.rollback()
            raise ValidationError(f"Book validation failed: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("storage.failure", extra={"action": action})
            raise Unavailable("Book storage is unavailable") from exc

    def list_all(self) -> list[Book]:
        with self._storage_errors("list"):
            records = self.session.execute(select(BookRecord)).scalars().all()
        return [self._to_schema(record) for record in records]

    def find(self, book_id: str) -> Optional[Book]:
        with self._storage_errors("find"):
            record = self.session.get(BookRecord, book_id)
        return self._to_schema(record) if record is not None else None

    def create(self, fields: Mapping[str, Any]) -> Book:
        with self._storage_errors("create"):
            document = check_document(fields)
            now = _now()
            record = BookRecord(id=new_object_id(), created_at=now, updated_at=now, **document)
            self.session.add(record)
            self.session.commit()
            self.session.refresh(record)
        return self._to_schema(record)

    def find_and_update(self, book_id: str, patch: BookPatch) -> Optional[Book]:
        with self._storage_errors("update"):
            check_patch(patch)
            record = self.session.execute(
                select(BookRecord).where(BookRecord.id == book_id).with_for_update()
            ).scalar_one_or_none()
            if record is None:
                self.session.rollback()
                return None
            current = {name: getattr(record, name) for name in BOOK_FIELDS}
            document = check_document(apply_patch(current, patch))
            for name, value in document.items():
                setattr(record, name, value)
            record.updated_at = _now()
            self.session.commit()
            self.session.refresh(record)
        return self._to_schema(record)

    def find_and_delete(self, book_id: str) -> Optional[Book]:
        with self._storage_errors("delete"):
            record = self.session.execute(
                select(BookRecord).where(BookRecord.id == book_id).with_for_update()
            ).scalar_one_or_none()
            if record is None:
                self.session.rollback()
                return None
            removed = self._to_schema(record)
            self.session.delete(record)
            self.session.commit()
        return removed

    @staticmethod
    def _to_schema(record: BookRecord) -> Book:
        return Book.model_validate(record, from_attributes=True)


class InMemoryBookRepository(BookRepository):
    def __init__(self):
        self._documents: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def list_all(self) -> list[Book]:
        with self._lock:
            return [Book.model_validate(document) for document in self._documents.values()]

    def find(self, book_id: str) -> Optional[Book]:
        with self._lock:
            document = self._documents.get(book_id)
            return Book.model_validate(document) if document is not None else None

    def create(self, fields: Mapping[str, Any]) -> Book:
        document = check_document(fields)
        now = _now()
        document.update(id=new_object_id(), created_at=now, updated_at=now)
        with self._lock:
            self._documents[document["id"]] = document
        return Book.model_validate(document)

    def find_and_update(self, book_id: str, patch: BookPatch) -> Optional[Book]:
        check_patch(patch)
        with self._lock:
            existing = self._documents.get(book_id)
            if existing is None:
                return None
            merged = dict(existing, **check_document(apply_patch(existing, patch)))
            merged["updated_at"] = _now()
            self._documents[book_id] = merged
            return Book.model_validate(merged)

    def find_and_delete(self, book_id: str) -> Optional[Book]:
        with self._lock:
            document = self._documents.pop(book_id, None)
        return Book.model_validate(document) if document is not None else None

    def clear(self) -> None:
        with self._lock:
            self._documents.clear()
