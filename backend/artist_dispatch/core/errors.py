"""
Centralized error handling for dispatch operations.
Typed exceptions raised by services, plus a rule table and helper so routes stay thin
and new error types are easy to add.
"""
from __future__ import annotations

from fastapi import HTTPException

# ---------------------------------------------------------------------------
# Exceptions raised by services
# ---------------------------------------------------------------------------


class DispatchError(Exception):
    """Base for every error a dispatch operation raises on purpose."""


class ValidationError(DispatchError):
    """Malformed input. Raised before any mutation."""


class NotFoundError(DispatchError):
    pass


class ConflictError(DispatchError):
    """The request is well-formed but the current state does not allow it."""


class AlreadyRespondedError(ConflictError):
    pass


class BatchNotOpenError(ConflictError):
    pass


class DuplicateOpenBatchError(ConflictError):
    pass


class CategoryChangeError(ConflictError):
    pass


class BookingSourceError(DispatchError):
    """Board unreachable, misconfigured, or returned errors."""


class NotificationError(DispatchError):
    """Push delivery or board automation write failed."""


# ---------------------------------------------------------------------------
# Constants: status codes
# ---------------------------------------------------------------------------

STATUS_BAD_REQUEST = 400
STATUS_NOT_FOUND = 404
STATUS_CONFLICT = 409
STATUS_BAD_GATEWAY = 502  # board / push provider failed
STATUS_INTERNAL_ERROR = 500


# ---------------------------------------------------------------------------
# Error rules: (exception type, status_code, error code)
# Add new rules here instead of scattering checks in routes. First match wins,
# so subclasses go before their base.
# ---------------------------------------------------------------------------

DISPATCH_ERROR_RULES: list[tuple[type[DispatchError], int, str]] = [
    (ValidationError, STATUS_BAD_REQUEST, "validation_error"),
    (NotFoundError, STATUS_NOT_FOUND, "not_found"),
    (AlreadyRespondedError, STATUS_CONFLICT, "already_responded"),
    (BatchNotOpenError, STATUS_CONFLICT, "batch_not_open"),
    (DuplicateOpenBatchError, STATUS_CONFLICT, "duplicate_open_batch"),
    (CategoryChangeError, STATUS_CONFLICT, "category_change"),
    (ConflictError, STATUS_CONFLICT, "conflict"),
    (BookingSourceError, STATUS_BAD_GATEWAY, "booking_source_error"),
    (NotificationError, STATUS_BAD_GATEWAY, "notification_error"),
]


def dispatch_error_to_http(exc: Exception) -> HTTPException:
    """
    Map an exception from a dispatch service into an HTTPException.
    Uses DISPATCH_ERROR_RULES for known types; otherwise returns 500 with the exception message.
    Detail is {"code": ..., "message": ...} so callers can tell conflicts apart.
    """
    msg = str(exc)
    for exc_type, status_code, code in DISPATCH_ERROR_RULES:
        if isinstance(exc, exc_type):
            return HTTPException(status_code=status_code, detail={"code": code, "message": msg})
    return HTTPException(status_code=STATUS_INTERNAL_ERROR, detail={"code": "internal_error", "message": msg})
