# Overview: Error taxonomy shared by services and routes.

"""
Service errors

Every service raises a subclass of ThummaError. Routes map the class to an
HTTP status via `http_status` and return {"error": message, "details": ...}.

- ValidationError: bad input (missing field, invalid numeric range)
- NotFoundError: referenced record does not exist
- ConflictError: business rule conflict (duplicate SKU, record in use)
- DatastoreError: the database rejected the write; the session was rolled back
"""


class ThummaError(Exception):
    """Base class for errors surfaced to API clients."""
    http_status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(ThummaError):
    """400-level input problem."""


class NotFoundError(ThummaError):
    http_status = 404


class ConflictError(ThummaError):
    """409-level business rule conflict (e.g., duplicate SKU)."""
    http_status = 409


class PermissionDeniedError(ThummaError):
    http_status = 403


class DatastoreError(ThummaError):
    """Write rejected by the database. Carries the raw backend message."""
    http_status = 503
