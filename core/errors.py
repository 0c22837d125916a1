"""
core/errors.py -- Domain error taxonomy for Taskboard.

Services and stores raise these; api/main.py has a single exception handler
that turns any AppError into the standard ErrorResponse envelope with the
error's status_code. Nothing below api/ needs to know about HTTP exceptions.

Layer rule: core/ is the kernel. No imports from api/, auth/, tasks/, cache/.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for errors that map to a structured HTTP response."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str, code: str | None = None, detail: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.detail = detail


class ValidationError(AppError):
    """Malformed or missing input."""

    status_code = 400
    code = "validation_error"


class AuthError(AppError):
    """Missing, invalid, or expired credentials."""

    status_code = 401
    code = "unauthorized"


class ForbiddenError(AppError):
    """Authenticated, but the role is not permitted."""

    status_code = 403
    code = "forbidden"


class NotFoundError(AppError):
    """Resource absent, or not owned by the caller (the two are indistinguishable)."""

    status_code = 404
    code = "not_found"


class ConflictError(AppError):
    # Duplicate registrations are reported as 400 to match the public API.
    status_code = 400
    code = "conflict"


class InternalError(AppError):
    status_code = 500
    code = "internal_error"
