"""
Centralized error types for sync and read API failures.
Each error carries its HTTP status so routes stay thin and new error types are easy to add.
"""
from __future__ import annotations

from fastapi import HTTPException

# ---------------------------------------------------------------------------
# Constants: status codes for known error categories
# ---------------------------------------------------------------------------

STATUS_BAD_REQUEST = 400
STATUS_NOT_FOUND = 404
STATUS_CONFLICT = 409
STATUS_INTERNAL_ERROR = 500
STATUS_BAD_GATEWAY = 502  # provider down, non-2xx, malformed payload


class AppError(Exception):
    """Base for every error the service raises on purpose."""

    status_code = STATUS_INTERNAL_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """Malformed date or missing required query param."""

    status_code = STATUS_BAD_REQUEST


class NotFoundError(AppError):
    """Unknown product id."""

    status_code = STATUS_NOT_FOUND


class FetchError(AppError):
    """Network failure, non-2xx response, or malformed provider payload. Not retried."""

    status_code = STATUS_BAD_GATEWAY

    def __init__(
        self,
        message: str,
        *,
        product_id: int | None = None,
        day: str | None = None,
        upstream_status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.product_id = product_id
        self.day = day
        self.upstream_status = upstream_status


class MergeError(AppError):
    """Storage failure during reconciliation; the whole (product, date) merge is rolled back."""

    status_code = STATUS_INTERNAL_ERROR


class RaceConflict(AppError):
    """Unique-constraint collision that survived one re-read retry."""

    status_code = STATUS_CONFLICT


def error_to_http(exc: Exception) -> HTTPException:
    """
    Map an exception from a service call into an HTTPException.
    AppError subclasses keep their own status; anything else is a 500 with the exception message.
    """
    if isinstance(exc, AppError):
        return HTTPException(status_code=exc.status_code, detail=exc.message)
    return HTTPException(status_code=STATUS_INTERNAL_ERROR, detail=str(exc))
