"""
Error taxonomy shared by services, guards and the HTTP layer.

Services raise these; ``main.py`` turns them into JSON responses with the
matching status code. Storage constraint violations are translated here so
no route handler has to look at driver error codes.
"""
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError

# PostgreSQL SQLSTATE codes
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    error = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        super().__init__(message or self.error)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.error}
        if self.message:
            body["message"] = self.message
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(AppError):
    status_code = 400
    error = "Validation failed"


class InvalidReference(ValidationError):
    """A referenced user or team does not exist."""
    error = "Invalid reference"


class Unauthorized(AppError):
    status_code = 401
    error = "Authentication required"


class Forbidden(AppError):
    status_code = 403
    error = "Access denied"


class NotFound(AppError):
    status_code = 404
    error = "Not found"


class Conflict(AppError):
    status_code = 409
    error = "Conflict"


class InternalError(AppError):
    pass


def integrity_kind(exc: IntegrityError) -> Optional[str]:
    """
    Classify an IntegrityError as ``"unique"`` or ``"foreign_key"``.

    Uses the SQLSTATE exposed by the PostgreSQL drivers and falls back to the
    message text SQLite produces.
    """
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code == UNIQUE_VIOLATION:
        return "unique"
    if code == FOREIGN_KEY_VIOLATION:
        return "foreign_key"

    text = str(orig if orig is not None else exc).lower()
    if "unique" in text or "duplicate key" in text:
        return "unique"
    if "foreign key" in text:
        return "foreign_key"
    return None


def translate_integrity_error(
    exc: IntegrityError,
    conflict_message: str,
    reference_message: str = "Invalid user or team ID",
) -> AppError:
    """Map a constraint violation onto Conflict / InvalidReference, else InternalError."""
    kind = integrity_kind(exc)
    if kind == "unique":
        return Conflict(conflict_message)
    if kind == "foreign_key":
        return InvalidReference(reference_message)
    return InternalError()
