"""
Exception hierarchy for Vlossom API calls.

Every failure surfaced by the REST layer is an ApiError so callers can show
one message and keep their pre-mutation state. Subclasses let them branch on
the cases that need different handling.
"""

from typing import Optional


class ApiError(Exception):
    """
    Base exception for all API failures.

    Attributes:
        message: Human-readable message (taken from the response body when present)
        status: HTTP status code, or None when no response was received
        code: Machine-readable error code from the response body (e.g. TOKEN_EXPIRED)
    """

    def __init__(self, message: str, status: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code

    def __str__(self) -> str:
        if self.status is None:
            return self.message
        return f"{self.message} (HTTP {self.status})"


class NotFoundError(ApiError):
    """
    Raised on HTTP 404.

    Some clients translate this into a None return (profile not created yet,
    no shared context); everywhere else it propagates.
    """

    pass


class AuthenticationError(ApiError):
    """
    Raised on HTTP 401/403 once the single refresh-and-retry is exhausted.

    The caller has to log in again.
    """

    pass


class NetworkError(ApiError):
    """
    Raised when no HTTP response was received (DNS failure, refused connection, timeout).

    Query retry policy treats these more leniently than server errors.
    """

    def __init__(self, message: str):
        super().__init__(message, status=None, code="NETWORK_ERROR")
