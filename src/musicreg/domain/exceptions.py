"""Custom exceptions for the registration domain.

Each error carries the HTTP status, machine-readable code and error type
that the API layer renders into the error envelope.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorType(StrEnum):
    """Category reported in the ``error.type`` field."""

    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    SERVER = "server"


class MusicRegError(Exception):
    """Base exception for musicreg errors."""

    status_code = 500
    code = "INTERNAL_ERROR"
    error_type = ErrorType.SERVER

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or {}


class ValidationError(MusicRegError):
    """Input is malformed or missing required data."""

    status_code = 400
    code = "VALIDATION_ERROR"
    error_type = ErrorType.VALIDATION


class NotFoundError(MusicRegError):
    """Requested record does not exist."""

    status_code = 404
    code = "NOT_FOUND"
    error_type = ErrorType.NOT_FOUND


class ConflictError(MusicRegError):
    """Operation collides with existing state (duplicate, schedule clash)."""

    status_code = 409
    code = "CONFLICT"
    error_type = ErrorType.CONFLICT


class UnauthorizedError(MusicRegError):
    """No valid credential was presented."""

    status_code = 401
    code = "UNAUTHORIZED"
    error_type = ErrorType.AUTHENTICATION


class ForbiddenError(MusicRegError):
    """Credential is valid but lacks the required role."""

    status_code = 403
    code = "FORBIDDEN"
    error_type = ErrorType.AUTHORIZATION
