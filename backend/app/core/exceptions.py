"""Domain exceptions raised by the service layer.

Each exception carries a machine-readable ``code`` and the HTTP status the
API layer renders it with. Services never build HTTP responses themselves.
"""

from typing import Optional


class AppError(Exception):
    """Base class for all domain errors."""

    code: str = "INTERNAL_SERVER_ERROR"
    status_code: int = 500

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


class NotFoundError(AppError):
    """Entity absent, soft-deleted, or owned by another seller."""

    code = "NOT_FOUND"
    status_code = 404


class ForbiddenError(AppError):
    """Caller is not an active, verified seller."""

    code = "FORBIDDEN"
    status_code = 403


class BadRequestError(AppError):
    """Illegal state transition or invalid input."""

    code = "BAD_REQUEST"
    status_code = 400


class ConflictError(AppError):
    """Uniqueness violation."""

    code = "CONFLICT"
    status_code = 409
