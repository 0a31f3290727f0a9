import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import DataError
from sqlalchemy.orm import Session

from book_catalog.errors import Unavailable, ValidationError
from book_catalog.identifiers import is_well_formed_id
from book_catalog.models import BOOK_FIELDS, BookPatch
from book_catalog.repository import SqlBookRepository

MISSING_ID = "64d2a2fc9a6d5b1d843f33a1"


def test_list_all_empty(repository):
    assert repository.list_all() == []


def test_create_assigns_id_and_timestamps(repository):
    book = repository.create({"title": "Dune", "author": "Herbert", "genre": "SF", "published_year": 1965, "rating": 4.8})
    assert is_well_formed_id(book.id)
    assert book.created_at == book.updated_at
    assert (book.title, book.author, book.genre, book.published_year, book.rating) == ("Dune", "Herbert", "SF", 1965, 4.8)
    assert repository.find(book.id) == book


@pytest.mark.parametrize("rating", [0, 0.99, 5.01, 10])
def test_create_rejects_out_of_range_rating(repository, rating):
    with pytest.raises(ValidationError):
        repository.create({"title": "t", "author": "a", "rating": rating})
    assert repository.list_all() == []


def test_create_rejects_empty_required_text(repository):
    with pytest.raises(ValidationError):
        repository.create({"title": "", "author": "a"})


def test_find_and_update_merges_patch(repository):
    book = repository.create({"title": "Old Title", "author": "Author", "genre": "Drama"})
    updated = repository.find_and_update(book.id, BookPatch.model_validate({"title": "New Title", "rating": 4.5}))
    assert updated.id == book.id
    assert (updated.title, updated.author, updated.genre, updated.rating) == ("New Title", "Author", "Drama", 4.5)
    assert updated.created_at == book.created_at
    assert updated.updated_at >= book.updated_at


def test_find_and_update_rejects_invalid_merge(repository):
    book = repository.create({"title": "t", "author": "a", "rating": 3})
    with pytest.raises(ValidationError):
        repository.find_and_update(book.id, BookPatch.model_validate({"rating": 6}))
    assert repository.find(book.id).rating == 3


def test_find_and_update_missing_returns_none(repository):
    assert repository.find_and_update(MISSING_ID, BookPatch.model_validate({"title": "x"})) is None


def test_find_and_delete(repository):
    book = repository.create({"title": "To Delete", "author": "Author"})
    removed = repository.find_and_delete(book.id)
    assert removed == book
    assert repository.find(book.id) is None
    assert repository.find_and_delete(book.id) is None


def test_table_constraints_back_up_schema_check(db_session, monkeypatch):
    monkeypatch.setattr(
        "book_catalog.repository.check_document",
        lambda fields: {name: fields.get(name) for name in BOOK_FIELDS},
    )
    repository = SqlBookRepository(db_session)
    with pytest.raises(ValidationError):
        repository.create({"title": "t", "author": "a", "rating": 9})
    assert repository.list_all() == []


def test_storage_failure_is_unavailable(tmp_path):
    broken = create_engine(f"sqlite:///{tmp_path / 'missing' / 'books.db'}")
    repository = SqlBookRepository(Session(bind=broken))
    with pytest.raises(Unavailable):
        repository.list_all()
    with pytest.raises(Unavailable):
        repository.create({"title": "t", "author": "a"})


@pytest.mark.parametrize("year", [2**31, -(2**31) - 1, 10**19])
def test_create_rejects_year_outside_column_range(repository, year):
    with pytest.raises(ValidationError) as exc:
        repository.create({"title": "t", "author": "a", "published_year": year})
    assert "publishedYear" in exc.value.message
    assert repository.list_all() == []


def test_update_rejects_year_outside_column_range(repository):
    book = repository.create({"title": "t", "author": "a", "published_year": 1999})
    with pytest.raises(ValidationError):
        repository.find_and_update(book.id, BookPatch.model_validate({"publishedYear": 10**19}))
    assert repository.find(book.id).published_year == 1999


def test_invalid_patch_rejected_before_lookup(repository):
    with pytest.raises(ValidationError):
        repository.find_and_update(MISSING_ID, BookPatch.model_validate({"rating": 7}))


def test_data_errors_are_validation_errors(db_session, monkeypatch):
    repository = SqlBookRepository(db_session)

    def reject(*args, **kwargs):
        raise DataError("INSERT INTO books ...", {}, Exception("integer out of range"))

    monkeypatch.setattr(db_session, "commit", reject)
    with pytest.raises(ValidationError):
        repository.create({"title": "t", "author": "a"})
