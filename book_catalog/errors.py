"""Failure kinds raised by the catalog and mapped to responses by the app."""

from fastapi import status


class CatalogError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(CatalogError):
    """Input violates a required-field or storage schema rule."""

    status_code = status.HTTP_400_BAD_REQUEST


class MalformedIdentifier(CatalogError):
    """Identifier does not have the storage id shape."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, value: object, message: str = "Invalid book ID format"):
        self.value = value
        super().__init__(message)


class NotFound(CatalogError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, book_id: str, message: str = "Book not found"):
        self.book_id = book_id
        super().__init__(message)


class Unavailable(CatalogError):
    """Storage failed for reasons unrelated to the caller's input."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
