"""Typed errors raised by the Dexcom Share client."""
from __future__ import annotations

from enum import Enum
from typing import ClassVar, Optional


class ErrorKind(str, Enum):
    """Closed set of failure categories surfaced to callers."""

    AUTHENTICATION = "authentication"
    SESSION_EXPIRED = "session_expired"
    SESSION_RENEWAL_FAILED = "session_renewal_failed"
    RATE_LIMITED = "rate_limited"
    NETWORK = "network"
    HTTP = "http"
    NO_DATA = "no_data"


class ShareErrorCode(str, Enum):
    """``Code`` values the Share service puts in its error bodies."""

    SESSION_NOT_VALID = "SessionNotValid"
    SESSION_ID_NOT_FOUND = "SessionIdNotFound"
    ACCOUNT_PASSWORD_INVALID = "AccountPasswordInvalid"
    ACCOUNT_NOT_FOUND = "AccountNotFound"
    SSO_AUTHENTICATE_PASSWORD_INVALID = "SSO_AuthenticatePasswordInvalid"
    SSO_AUTHENTICATE_MAX_ATTEMPTS_EXCEEDED = "SSO_AuthenticateMaxAttemptsExceeed"
    SSO_INTERNAL_ERROR = "SSO_InternalError"
    INVALID_ARGUMENT = "InvalidArgument"

    @classmethod
    def parse(cls, value: object) -> Optional["ShareErrorCode"]:
        if not isinstance(value, str):
            return None
        try:
            return cls(value)
        except ValueError:
            return None


SESSION_EXPIRED_CODES = frozenset(
    {ShareErrorCode.SESSION_NOT_VALID, ShareErrorCode.SESSION_ID_NOT_FOUND}
)


class ShareClientError(Exception):
    """Base exception for Dexcom Share client errors"""

    kind: ClassVar[ErrorKind]


class AuthenticationError(ShareClientError):
    """Bad credentials or a malformed identity response"""

    kind = ErrorKind.AUTHENTICATION


class SessionExpiredError(ShareClientError):
    """The service reported the session id as invalid"""

    kind = ErrorKind.SESSION_EXPIRED


class SessionRenewalFailedError(ShareClientError):
    """Session kept expiring after the allowed re-authentication"""

    kind = ErrorKind.SESSION_RENEWAL_FAILED


class RateLimitedError(ShareClientError):
    """Exception for rate limiting (429 responses)"""

    kind = ErrorKind.RATE_LIMITED


class NetworkError(ShareClientError):
    """DNS, connection or timeout failure before any HTTP status was received"""

    kind = ErrorKind.NETWORK


class HttpError(ShareClientError):
    """Uncategorized HTTP failure"""

    kind = ErrorKind.HTTP

    def __init__(self, status: int, body: str, code: Optional[ShareErrorCode] = None) -> None:
        super().__init__(f"Request failed with status {status}: {body}")
        self.status = status
        self.body = body
        self.code = code


class NoDataError(ShareClientError):
    """The latest-reading query returned no readings"""

    kind = ErrorKind.NO_DATA


__all__ = [
    "AuthenticationError",
    "ErrorKind",
    "HttpError",
    "NetworkError",
    "NoDataError",
    "RateLimitedError",
    "SESSION_EXPIRED_CODES",
    "SessionExpiredError",
    "SessionRenewalFailedError",
    "ShareClientError",
    "ShareErrorCode",
]
