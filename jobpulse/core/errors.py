from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    NETWORK = "network"
    PARSE = "parse"
    RATE_LIMIT = "rate_limit"
    # Assigned by the orchestrator when an adapter misses its deadline.
    TIMEOUT = "timeout"


class SourceError(Exception):
    """Base error for a failed source fetch; carries retryability."""

    kind: ErrorKind = ErrorKind.NETWORK

    def __init__(self, message: str, *, retryable: bool) -> None:  # noqa: D401
        super().__init__(message)
        self.retryable = retryable


class ConfigurationError(SourceError):
    """Missing credentials or settings. Not an outage, never retried."""

    kind = ErrorKind.CONFIGURATION

    def __init__(self, message: str) -> None:
        super().__init__(message, retryable=False)


class NetworkError(SourceError):
    """Timeout, DNS failure, refused connection or 5xx; safe to retry next call."""

    kind = ErrorKind.NETWORK

    def __init__(self, message: str) -> None:
        super().__init__(message, retryable=True)


class ParseError(SourceError):
    """Response structure changed; the source is marked degraded."""

    kind = ErrorKind.PARSE

    def __init__(self, message: str) -> None:
        super().__init__(message, retryable=False)


class RateLimitError(SourceError):
    """Explicit throttling from a source (429 and friends)."""

    kind = ErrorKind.RATE_LIMIT

    def __init__(self, message: str, *, retry_after: float | None = None) -> None:
        super().__init__(message, retryable=True)
        self.retry_after = retry_after


__all__ = [
    "ErrorKind",
    "SourceError",
    "ConfigurationError",
    "NetworkError",
    "ParseError",
    "RateLimitError",
]
