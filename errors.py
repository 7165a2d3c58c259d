"""
Error types shared by the product service and the import pipelines.

Each error carries the HTTP status the API layer answers with.
"""

from typing import List, Optional


class CatalogError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CatalogError):
    """Bad or missing input; ``errors`` holds one message per invalid field."""

    status_code = 400

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or []


class InvalidIdError(CatalogError):
    status_code = 400


class NotFoundError(CatalogError):
    status_code = 404


class SourceNotFoundError(CatalogError):
    """The import/seed data.json could not be located."""


class InvalidFormatError(CatalogError):
    """The seed data.json does not have the expected top-level shape."""


class StoreFailure(CatalogError):
    """The database is unavailable."""
