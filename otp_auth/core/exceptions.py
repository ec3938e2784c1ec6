from fastapi import HTTPException
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_429_TOO_MANY_REQUESTS,
)

GENERIC_ERROR_MESSAGE = "An error occurred. Please try again."


class OtpError(HTTPException):
    """Client-facing rejection. Rendered as ``{"error": detail, **extra}``."""

    def __init__(self, detail: str, status_code: int = HTTP_400_BAD_REQUEST, extra: dict | None = None):
        super().__init__(status_code=status_code, detail=detail)
        self.extra = extra or {}


class OtpValidationError(OtpError):
    def __init__(self, detail: str = "Invalid request"):
        super().__init__(detail=detail)


class RateLimitedError(OtpError):
    def __init__(self, retry_after: int, detail: str | None = None):
        minutes = -(-retry_after // 60)
        super().__init__(
            detail=detail or f"Too many OTP requests. Please wait {minutes} minutes.",
            status_code=HTTP_429_TOO_MANY_REQUESTS,
            extra={"retryAfter": retry_after},
        )
        self.retry_after = retry_after


class InvalidOrExpiredError(OtpError):
    def __init__(self, detail: str = "Invalid or expired verification code", remaining_attempts: int | None = None):
        extra = {} if remaining_attempts is None else {"remainingAttempts": remaining_attempts}
        super().__init__(detail=detail, extra=extra)
        self.remaining_attempts = remaining_attempts


class CodeExpiredError(OtpError):
    def __init__(self, detail: str = "Verification code has expired. Please request a new one."):
        super().__init__(detail=detail)


class LockedOutError(OtpError):
    def __init__(self, detail: str = "Too many failed attempts. Please request a new code."):
        super().__init__(detail=detail, status_code=HTTP_429_TOO_MANY_REQUESTS)


# Internal failures. Never shown to the client; the handler boundary maps them to a generic 500.

class DeliveryError(Exception):
    pass


class AccountProviderError(Exception):
    pass


class CodeConflictError(Exception):
    """A versioned update on an OTP row lost a race with a concurrent request."""
