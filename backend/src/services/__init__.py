"""
Service layer for roster business logic.

Service classes are imported from their own modules; this package only
re-exports the exception hierarchy so callers can catch service errors
without importing any model.
"""

from backend.src.services.exceptions import (
    ServiceError,
    NotFoundError,
    InvalidStateError,
    ConflictError,
    PermissionDeniedError,
    ValidationError,
    CycleDetectedError,
)

__all__ = [
    "ServiceError",
    "NotFoundError",
    "InvalidStateError",
    "ConflictError",
    "PermissionDeniedError",
    "ValidationError",
    "CycleDetectedError",
]
