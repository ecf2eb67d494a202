"""
Error taxonomy.

Every domain failure is raised as one of these and converted into the
uniform error envelope at the HTTP boundary (see taskapi.api.app).
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed input, malformed id or missing required field."""

    status_code = 400
    default_message = "Invalid request"


class AuthenticationError(AppError):
    """
    Missing, invalid or expired credential.

    The reason code is for logs only; callers see the message.
    """

    status_code = 401
    default_message = "Not authorized"

    MISSING = "missing"
    INVALID = "invalid"
    EXPIRED = "expired"
    NOT_FOUND = "not_found"

    def __init__(self, message: str | None = None, reason: str = INVALID):
        super().__init__(message)
        self.reason = reason


class AuthorizationError(AppError):
    """Authenticated but not permitted."""

    status_code = 403
    default_message = "Forbidden"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class ConflictError(AppError):
    """Uniqueness violation (e.g. duplicate email)."""

    status_code = 409
    default_message = "Conflict"


class UnexpectedError(AppError):
    status_code = 500
