"""
Caller-facing errors and their HTTP mapping.
"""

from typing import Any

from fastapi import HTTPException, status


class AppError(HTTPException):
    """Base error surfaced to callers, tagged with a stable ``code``."""

    code = "INTERNAL_ERROR"
    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal error"

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        status_code: int | None = None,
    ):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(
            status_code=status_code or self.default_status, detail=self.message
        )

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


class ValidationError(AppError):
    """Validation error exception"""

    code = "VALIDATION_ERROR"
    default_status = status.HTTP_400_BAD_REQUEST
    default_message = "Validation error"


class NotFoundError(AppError):
    """Not found error exception"""

    code = "NOT_FOUND"
    default_status = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class ConflictError(AppError):
    """Conflict error exception"""

    code = "CONFLICT"
    default_status = status.HTTP_409_CONFLICT
    default_message = "Resource conflict"


class RateLimitExceededError(AppError):
    """Too many attempts within the allowed window"""

    code = "RATE_LIMIT_EXCEEDED"
    default_status = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Rate limit exceeded"
