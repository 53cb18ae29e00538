"""
Error types for the FFMS SDK.

Every failure raised by the client derives from FFMSError and carries a
category, so callers can branch on what went wrong without string matching.
"""

from enum import Enum
from typing import Optional

import httpx


class ErrorCategory(str, Enum):
    """Categories of errors for classification."""

    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    PROTOCOL = "protocol"
    INITIALIZATION = "initialization"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    AUTH = "auth"
    NETWORK = "network"
    RATE_LIMIT = "rate_limit"
    SERVER = "server"
    UNKNOWN = "unknown"


class FFMSError(Exception):
    """Base exception for all FFMS SDK errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        status_code: Optional[int] = None,
        retryable: bool = False,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.status_code = status_code
        self.retryable = retryable
        self.cause = cause

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, category={self.category})"


class ConfigurationError(FFMSError):
    """Raised when the client is constructed with missing or invalid options."""

    def __init__(self, message: str = "Invalid configuration"):
        super().__init__(message, category=ErrorCategory.CONFIGURATION)


class ValidationError(FFMSError):
    """Raised when the server rejects the credentials or validation cannot complete."""

    def __init__(self, message: str = "Validation failed", cause: Optional[BaseException] = None):
        super().__init__(
            message,
            category=ErrorCategory.VALIDATION,
            status_code=getattr(cause, "status_code", None),
            cause=cause,
        )


class ProtocolError(FFMSError):
    """Raised when a server response does not have the expected shape."""

    def __init__(self, message: str = "Invalid response format from server."):
        super().__init__(message, category=ErrorCategory.PROTOCOL)


class InitializationError(FFMSError):
    """Raised when the bulk flag fetch fails at the transport level."""

    def __init__(self, message: str = "Failed to initialize", cause: Optional[BaseException] = None):
        super().__init__(
            message,
            category=ErrorCategory.INITIALIZATION,
            status_code=getattr(cause, "status_code", None),
            retryable=getattr(cause, "retryable", False),
            cause=cause,
        )


class NotFoundError(FFMSError):
    """Raised when a flag is not present in the cache."""

    def __init__(self, message: str = "Feature toggle does not exist."):
        super().__init__(message, category=ErrorCategory.NOT_FOUND)


class UnauthorizedError(FFMSError):
    """Raised when live updates are requested before a successful validation."""

    def __init__(self, message: str = "Cannot start WebSocket updates without validation."):
        super().__init__(message, category=ErrorCategory.UNAUTHORIZED)


class AuthenticationError(FFMSError):
    """Raised when authentication fails (401/403)."""

    def __init__(self, message: str = "Authentication failed", status_code: int = 401):
        super().__init__(
            message,
            category=ErrorCategory.AUTH,
            status_code=status_code,
            retryable=False,
        )


class NetworkError(FFMSError):
    """Raised when a network error or timeout occurs."""

    def __init__(self, message: str = "Network error", cause: Optional[BaseException] = None):
        super().__init__(
            message,
            category=ErrorCategory.NETWORK,
            retryable=True,
            cause=cause,
        )


class RateLimitError(FFMSError):
    """Raised when rate limited (429)."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: Optional[int] = None,
    ):
        super().__init__(
            message,
            category=ErrorCategory.RATE_LIMIT,
            status_code=429,
            retryable=True,
        )
        self.retry_after = retry_after


class ServerError(FFMSError):
    """Raised when the server answers with a 5xx status."""

    def __init__(self, message: str = "Internal server error", status_code: int = 500):
        super().__init__(
            message,
            category=ErrorCategory.SERVER,
            status_code=status_code,
            retryable=True,
        )


class RetryExhaustedError(FFMSError):
    """Raised by retry_async once every attempt has failed."""

    def __init__(self, message: str, attempts: int, cause: Optional[BaseException] = None):
        super().__init__(message, category=ErrorCategory.UNKNOWN, cause=cause)
        self.attempts = attempts


def error_for_status(response: httpx.Response) -> Optional[FFMSError]:
    """
    Map an unsuccessful HTTP response to an FFMSError.

    Args:
        response: The response to inspect

    Returns:
        None for 2xx responses, otherwise the classified error
    """
    status = response.status_code
    if response.is_success:
        return None

    if status == 401 or status == 403:
        return AuthenticationError(f"Authentication failed: {status}", status)

    if status == 429:
        retry_after = response.headers.get("Retry-After")
        return RateLimitError(
            "Rate limit exceeded",
            retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
        )

    if status >= 500:
        return ServerError(f"Server error: {status}", status)

    return FFMSError(f"Request failed: {status}", status_code=status)


def classify_error(error: BaseException, status_code: Optional[int] = None) -> FFMSError:
    """
    Classify an exception into an FFMSError.

    Args:
        error: The original exception
        status_code: Optional HTTP status code

    Returns:
        A classified FFMSError
    """
    if isinstance(error, FFMSError):
        return error

    message = str(error) or error.__class__.__name__

    if isinstance(error, httpx.TimeoutException):
        return NetworkError(f"Request timed out: {message}", cause=error)

    if isinstance(error, httpx.TransportError):
        return NetworkError(message, cause=error)

    if isinstance(error, httpx.HTTPStatusError):
        classified = error_for_status(error.response)
        if classified is not None:
            return classified

    if status_code:
        if status_code == 401 or status_code == 403:
            return AuthenticationError(message, status_code)
        if status_code == 429:
            return RateLimitError(message)
        if 500 <= status_code < 600:
            return ServerError(message, status_code)

    return FFMSError(message, status_code=status_code)
