"""
core/errors.py -- Error taxonomy shared by every layer.

Every failure path ends in exactly one of these classes (or in an unexpected
exception, which the API layer reports as an opaque 500):

  Unauthenticated  401  missing / malformed / expired / forged bearer token
  Forbidden        403  valid identity, insufficient role
  ValidationFailed 422  field-keyed validation messages
  Conflict         409  uniqueness violation (duplicate email, duplicate application)
  NotFound         404  referenced job or user is absent

The API layer turns an AppError into a response with exc.status_code. When the
error carries field messages, the body is the bare {field: message} mapping;
otherwise it is the standard {"error": {"code", "message"}} envelope.

Layer rule: no imports from api/, auth/, or jobs/.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for expected, caller-recoverable outcomes."""

    status_code: int = 500
    code: str = "internal_error"
    message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None, fields: dict[str, str] | None = None) -> None:
        super().__init__(message or self.message)
        if message is not None:
            self.message = message
        self.fields = dict(fields) if fields else None


class Unauthenticated(AppError):
    status_code = 401
    code = "unauthorized"
    message = "Authentication required."


class Forbidden(AppError):
    status_code = 403
    code = "forbidden"
    message = "You do not have permission to perform this action."


class ValidationFailed(AppError):
    status_code = 422
    code = "validation_error"
    message = "Request validation failed."


class Conflict(AppError):
    status_code = 409
    code = "conflict"
    message = "The resource already exists."


class NotFound(AppError):
    status_code = 404
    code = "not_found"
    message = "The requested resource could not be found."
