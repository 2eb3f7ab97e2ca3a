from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base class for errors that map onto a client-visible response."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: str | None = None, **extra: Any) -> None:
        super().__init__(message or self.message)
        if message:
            self.message = message
        self.extra = {k: v for k, v in extra.items() if v is not None}

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message, **self.extra}


class ValidationError(AppError):
    status_code = 400
    message = "Invalid request"


class AuthenticationError(AppError):
    status_code = 401
    message = "Invalid token"


class AuthorizationError(AppError):
    status_code = 403
    message = "Not authorized"


class NotFoundError(AppError):
    status_code = 404
    message = "Not found"


class RateLimitError(AppError):
    status_code = 429
    message = "Too many requests"

    def __init__(
        self,
        message: str | None = None,
        *,
        retry_after: int | None = None,
        upgrade_required: bool | None = None,
    ) -> None:
        super().__init__(message, retry_after=retry_after, upgrade_required=upgrade_required)
        self.retry_after = retry_after
        self.upgrade_required = upgrade_required


class TransientStorageError(AppError):
    """Storage timed out or dropped the connection; the client may retry."""

    status_code = 500
    message = "Temporary storage failure, please retry"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message, retryable=True)


class TransientUpstreamError(AppError):
    """An external service (Supabase auth, JWKS) timed out or failed; the client may retry."""

    status_code = 500
    message = "Temporary upstream failure, please retry"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message, retryable=True)
