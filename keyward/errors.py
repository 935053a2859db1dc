"""Keyward error types.

Error codes are stable strings for programmatic handling. Each error carries
the HTTP status it maps to when raised out of a route.
"""

from __future__ import annotations

from typing import Any


class KeywardError(Exception):
    """Base error for all Keyward exceptions."""

    code: str = "internal_error"
    message: str = "An internal error occurred"
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.__class__.message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self, request_id: str | None = None) -> dict[str, Any]:
        """Render the error as an API response body."""
        error: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if request_id:
            error["request_id"] = request_id
        if self.details:
            error["details"] = self.details
        return {"error": error}


class NotFoundError(KeywardError):
    """No user, key or code matches (404)."""

    code = "not_found"
    message = "Resource not found"
    status_code = 404


class ConflictError(KeywardError):
    """Duplicate email or hash collision on insert (409)."""

    code = "conflict"
    message = "Conflict"
    status_code = 409


class InvalidOrUsedCodeError(KeywardError):
    """Activation code unknown, already used, or superseded (400).

    The three cases are deliberately reported as one.
    """

    code = "invalid_or_used_code"
    message = "Invalid or already used activation code"
    status_code = 400


class ValidationError(KeywardError):
    """Request validation error (400)."""

    code = "validation_error"
    message = "Validation error"
    status_code = 400


class UnauthorizedError(KeywardError):
    """Presented secret verifies negatively (401)."""

    code = "unauthorized"
    message = "Authentication required"
    status_code = 401


class ForbiddenError(KeywardError):
    """Authenticated but role is insufficient (403)."""

    code = "forbidden"
    message = "Permission denied"
    status_code = 403


class RateLimitedError(KeywardError):
    """Caller exhausted its request budget (429)."""

    code = "rate_limited"
    message = "Too many requests"
    status_code = 429


class BackendUnavailableError(KeywardError):
    """A remote collaborator could not be reached (503)."""

    code = "backend_unavailable"
    message = "Identity service unavailable"
    status_code = 503


class InternalError(KeywardError):
    """Store or transport failure not otherwise classified (500)."""
