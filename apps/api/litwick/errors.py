"""Application exception types."""

from typing import Any

from litwick.schemas.error import ErrorResponse


class ApiError(Exception):
    """Structured API error that maps directly to contract error payloads."""

    def __init__(self, status_code: int, code: str, message: str, details: dict[str, Any] | None = None) -> None:
        self.status_code = status_code
        self.payload = ErrorResponse(code=code, message=message, details=details)
        super().__init__(message)


class ValidationError(ApiError):
    """Malformed input, unknown catalogue entry, or a state that forbids the request."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "VALIDATION_ERROR",
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, code=code, message=message, details=details)


class NotFoundError(ApiError):
    """Missing or not owned by the caller; the body never says which."""

    def __init__(self) -> None:
        super().__init__(status_code=404, code="RESOURCE_NOT_FOUND", message="Resource not found")


class ProviderError(ApiError):
    def __init__(self, message: str, *, code: str = "PROVIDER_ERROR", details: dict[str, Any] | None = None) -> None:
        super().__init__(status_code=502, code=code, message=message, details=details)


class InsufficientCreditsError(ApiError):
    def __init__(self, *, required: int, available: int) -> None:
        super().__init__(
            status_code=402,
            code="INSUFFICIENT_CREDITS",
            message="insufficient credits",
            details={"required": required, "available": available},
        )


class AuthenticityError(ApiError):
    def __init__(self, message: str = "Invalid webhook signature") -> None:
        super().__init__(status_code=401, code="WEBHOOK_SIGNATURE_INVALID", message=message)


class InternalPersistenceError(ApiError):
    """Store write failed before any external side effect; safe to retry."""

    def __init__(self, message: str = "Persistence failure, please retry") -> None:
        super().__init__(status_code=503, code="PERSISTENCE_FAILED", message=message)


__all__ = [
    "ApiError",
    "AuthenticityError",
    "InsufficientCreditsError",
    "InternalPersistenceError",
    "NotFoundError",
    "ProviderError",
    "ValidationError",
]
