"""Exception hierarchy for the HTTP repository pipeline.

Calls made through :class:`~RestKit.HttpRepository.repository.base.AbstractHttpRepository`
never raise these to the caller; they are captured on the returned result
wrapper. The one exception is :class:`UnknownRequestKindError`, which signals a
defect in the dispatch table and always propagates.
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "HttpRepositoryError",
    "UnknownRequestKindError",
    "InvalidUrlError",
    "RequestAlreadySentError",
    "SerializationError",
    "DeserializationError",
    "HttpStatusError",
    "PipelineTimeoutError",
    "AttemptTimeoutError",
    "OperationCancelledError",
    "BreakerOpenError",
]


class HttpRepositoryError(RuntimeError):
    """Base exception for request preparation, dispatch, or classification failures."""


class UnknownRequestKindError(HttpRepositoryError, ValueError):
    """Raised when a request kind has no entry in the dispatch table."""

    def __init__(self, kind: object) -> None:
        super().__init__(f"Unknown request kind: {kind!r}")
        self.kind = kind


class InvalidUrlError(HttpRepositoryError, ValueError):
    """Raised when a URL builder cannot resolve to an absolute http(s) URL."""


class RequestAlreadySentError(HttpRepositoryError):
    """Raised when an outgoing request is mutated after being handed to the transport."""


class SerializationError(HttpRepositoryError):
    """Raised when a payload cannot be encoded as JSON or form content."""


class DeserializationError(HttpRepositoryError):
    """Raised when a response body does not match the requested type."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        body_excerpt: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body_excerpt = body_excerpt


class HttpStatusError(HttpRepositoryError):
    """Describes a non-2xx response."""

    def __init__(
        self,
        status_code: int,
        *,
        reason: str = "",
        body_excerpt: Optional[str] = None,
    ) -> None:
        message = f"HTTP {status_code}"
        if reason:
            message = f"{message} {reason}"
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason
        self.body_excerpt = body_excerpt


class PipelineTimeoutError(HttpRepositoryError, TimeoutError):
    """Raised when a resilience pipeline exceeds its total time budget."""

    def __init__(self, message: str, *, timeout_s: Optional[float] = None) -> None:
        super().__init__(message)
        self.timeout_s = timeout_s


class AttemptTimeoutError(HttpRepositoryError, TimeoutError):
    """Raised when a single transport attempt exceeds its per-attempt timeout."""


class OperationCancelledError(HttpRepositoryError):
    """Raised when a call is aborted through its cancellation token."""


class BreakerOpenError(HttpRepositoryError):
    """Raised when the circuit breaker for a request kind is open."""
