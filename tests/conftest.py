import os

os.environ.setdefault("APP_DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("APP_OTEL_ENABLED", "false")

import pytest
from sqlalchemy import delete
from sqlalchemy.orm import sessionmaker

from book_catalog.db import Base, build_engine, init_db
from book_catalog.entities import BookRecord
from book_catalog.repository import InMemoryBookRepository, SqlBookRepository


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(scope="session")
def engine():
    engine = build_engine("sqlite+pysqlite:///:memory:")
    init_db(engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session(engine):
    Session = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
    session = Session()
    session.execute(delete(BookRecord))
    session.commit()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(params=["sql", "memory"])
def repository(request):
    if request.param == "memory":
        return InMemoryBookRepository()
    return SqlBookRepository(request.getfixturevalue("db_session"))
