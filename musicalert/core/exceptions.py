"""
Exception classes for the catalog client.

Hierarchy:
    CatalogError (base)
        AuthError - credential endpoint or token failure
        ApiError - non-2xx response that is neither auth nor rate limiting
            ReleaseDetailsError - every album detail fetch failed
        NetworkError - transport failure after retries were exhausted
    RateLimitOutcome - deferred result of a 429, consumed by the rate-limit gate
"""

from typing import Any


class CatalogError(Exception):
    """
    Base exception for all errors raised by the catalog client.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (status, url, ...).
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class AuthError(CatalogError):
    """Raised when a token cannot be obtained or is rejected after a refresh."""


class ApiError(CatalogError):
    """Raised for a non-2xx response that is not a 401 or a 429."""

    def __init__(self, status: int, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(f"API returned status {status}: {message}", details)
        self.status = status
        self.reason = message


class ReleaseDetailsError(ApiError):
    """Raised when no album detail could be fetched for an artist."""

    def __init__(self, errors: list[Exception]) -> None:
        status = next((e.status for e in errors if isinstance(e, ApiError)), 502)
        super().__init__(
            status,
            f"none of the {len(errors)} album detail fetches succeeded",
            details={"errors": [str(e) for e in errors]},
        )
        self.errors = errors


class NetworkError(CatalogError):
    """Raised when the transport keeps failing after all retries."""

    def __init__(self, message: str, original: Exception | None = None) -> None:
        super().__init__(message, details={"original_error": repr(original)} if original else None)
        self.original = original


class RateLimitOutcome(Exception):
    """
    Not an error: signals that a request hit the rate limit and must be deferred.

    The executor raises it after recording the rate-limit window; the gate
    catches it and queues the request. Callers of the gate never see it.
    """

    def __init__(self, retry_after: int) -> None:
        super().__init__(f"rate limited for {retry_after}s")
        self.retry_after = retry_after
