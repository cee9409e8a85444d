"""
Error types raised by the remote SQL generation path.
"""
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    MISSING_CREDENTIALS = "missing_credentials"
    INVALID_CREDENTIALS = "invalid_credentials"
    RATE_LIMITED = "rate_limited"
    NETWORK_FAILURE = "network_failure"
    CROSS_ORIGIN_BLOCKED = "cross_origin_blocked"
    EMPTY_COMPLETION = "empty_completion"
    NON_SELECT_BLOCKED = "non_select_blocked"
    GENERIC_API_ERROR = "generic_api_error"


class NL2SQLError(Exception):
    """Base exception for SQL generation failures."""
    kind: ErrorKind = ErrorKind.GENERIC_API_ERROR

    def __init__(self, message: str = "", status_code: Optional[int] = None):
        self.message = message or self.kind.value
        self.status_code = status_code
        super().__init__(self.message)


class MissingCredentials(NL2SQLError):
    kind = ErrorKind.MISSING_CREDENTIALS


class InvalidCredentials(NL2SQLError):
    kind = ErrorKind.INVALID_CREDENTIALS


class RateLimited(NL2SQLError):
    kind = ErrorKind.RATE_LIMITED


class NetworkFailure(NL2SQLError):
    kind = ErrorKind.NETWORK_FAILURE


class CrossOriginBlocked(NL2SQLError):
    kind = ErrorKind.CROSS_ORIGIN_BLOCKED


class EmptyCompletion(NL2SQLError):
    kind = ErrorKind.EMPTY_COMPLETION


class NonSelectBlocked(NL2SQLError):
    kind = ErrorKind.NON_SELECT_BLOCKED


class GenericApiError(NL2SQLError):
    """Non-2xx response not covered by a more specific kind."""
    kind = ErrorKind.GENERIC_API_ERROR

    def __init__(self, status_code: Optional[int], message: str = ""):
        super().__init__(message or f"API error (status {status_code})", status_code=status_code)
