import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, List

from fastapi import APIRouter, Body, Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from .config import get_settings
from .db import get_session, init_db
from .errors import CatalogError
from .models import Book, BookPatch, DeleteConfirmation, describe_errors
from .otel import configure_telemetry
from .repository import BookRepository, InMemoryBookRepository, SqlBookRepository
from .service import BookService

settings = get_settings()

PATCH_SCHEMA = BookPatch.model_json_schema(by_alias=True)

memory_repository = InMemoryBookRepository()


def get_sql_repository(session: Session = Depends(get_session)) -> BookRepository:
    return SqlBookRepository(session)


def get_memory_repository() -> BookRepository:
    return memory_repository


get_book_repository = get_memory_repository if settings.storage_backend == "memory" else get_sql_repository


def get_book_service(repository: BookRepository = Depends(get_book_repository)) -> BookService:
    return BookService(repository)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.storage_backend == "sql":
        init_db()
    yield


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    description="Catalog of books: create, list, update and remove entries.",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)
configure_telemetry(app, settings)

if settings.allowed_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )


@app.exception_handler(CatalogError)
async def catalog_error_handler(request, exc: CatalogError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": describe_errors(exc)})


router = APIRouter(prefix=f"{settings.api_prefix}/books", tags=["books"])


@app.get(f"{settings.api_prefix}/health", tags=["health"])
def health() -> dict:
    return {"status": "ok"}


@router.get("", response_model=List[Book], response_model_exclude_none=True)
def list_books(service: BookService = Depends(get_book_service)) -> List[Book]:
    return service.list()


@router.post("", response_model=Book, response_model_exclude_none=True, status_code=status.HTTP_201_CREATED)
def create_book(payload: dict[str, Any] = Body(...), service: BookService = Depends(get_book_service)) -> Book:
    return service.create(payload)


@router.get("/{book_id}", response_model=Book, response_model_exclude_none=True)
def get_book(book_id: str, service: BookService = Depends(get_book_service)) -> Book:
    return service.get(book_id)


@router.put(
    "/{book_id}",
    response_model=Book,
    response_model_exclude_none=True,
    openapi_extra={"requestBody": {"required": True, "content": {"application/json": {"schema": PATCH_SCHEMA}}}},
)
async def update_book(book_id: str, request: Request, service: BookService = Depends(get_book_service)) -> Book:
    # Body is parsed by the service, after the id check.
    payload = await request.body()
    return await run_in_threadpool(service.update, book_id, payload)


@router.delete("/{book_id}", response_model=DeleteConfirmation)
def delete_book(book_id: str, service: BookService = Depends(get_book_service)) -> DeleteConfirmation:
    service.delete(book_id)
    return DeleteConfirmation()


app.include_router(router)


request_logger = logging.getLogger("book_catalog.requests")


@app.middleware("http")
async def request_logging_middleware(request, call_next):
    request_logger.info("request.start", extra={"path": request.url.path, "method": request.method})
    response = await call_next(request)
    request_logger.info(
        "request.end",
        extra={"path": request.url.path, "method": request.method, "status": response.status_code},
    )
    return response


@app.middleware("http")
async def request_id_middleware(request, call_next):
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response
