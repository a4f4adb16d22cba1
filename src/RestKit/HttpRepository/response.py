# === NAVMAP v1 ===
# {
#   "module": "RestKit.HttpRepository.response",
#   "purpose": "Immutable success/failure wrapper returned from every repository call.",
#   "sections": [
#     {"id": "httpresponse", "name": "HttpResponse", "anchor": "class-httpresponse", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Uniform result wrapper returned from every repository call.

Exactly one :class:`HttpResponse` is produced per call regardless of how many
attempts the resilience pipeline made. Failed wrappers always hold the
caller-supplied default as ``value``.

Example:
    >>> ok = HttpResponse.success({"id": 1}, status_code=200)
    >>> ok.is_success, ok.value
    (True, {'id': 1})
    >>> failed = HttpResponse.failure([], error="HTTP 503", status_code=503)
    >>> failed.is_success, failed.value
    (False, [])
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Optional, TypeVar

from .enums import FailureKind
from .errors import HttpRepositoryError

TR = TypeVar("TR")

#: Maximum number of characters of a response body kept on a failed wrapper
BODY_EXCERPT_LIMIT = 512


def make_body_excerpt(content: Optional[bytes], limit: int = BODY_EXCERPT_LIMIT) -> Optional[str]:
    """Decode the leading part of a response body for diagnostics."""

    if not content:
        return None
    text = content[: limit * 4].decode("utf-8", errors="replace")
    return text[:limit]


@dataclass(frozen=True)
class HttpResponse(Generic[TR]):
    """Tagged outcome of one repository call."""

    is_success: bool
    value: Optional[TR]
    status_code: Optional[int] = None
    error: Optional[str] = None
    failure_kind: Optional[FailureKind] = None
    body_excerpt: Optional[str] = None
    exception: Optional[BaseException] = field(default=None, repr=False, compare=False)

    @classmethod
    def success(cls, value: Optional[TR], *, status_code: Optional[int] = None) -> "HttpResponse[TR]":
        return cls(is_success=True, value=value, status_code=status_code)

    @classmethod
    def failure(
        cls,
        default: Optional[TR],
        *,
        error: str,
        kind: FailureKind = FailureKind.TRANSPORT,
        status_code: Optional[int] = None,
        body_excerpt: Optional[str] = None,
        exception: Optional[BaseException] = None,
    ) -> "HttpResponse[TR]":
        return cls(
            is_success=False,
            value=default,
            status_code=status_code,
            error=error,
            failure_kind=kind,
            body_excerpt=body_excerpt,
            exception=exception,
        )

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        default: Optional[TR],
        *,
        kind: FailureKind,
        status_code: Optional[int] = None,
        body_excerpt: Optional[str] = None,
    ) -> "HttpResponse[TR]":
        """Build a failed wrapper from ``exc``, using its status/body attributes when present."""

        return cls.failure(
            default,
            error=str(exc) or type(exc).__name__,
            kind=kind,
            status_code=status_code if status_code is not None else getattr(exc, "status_code", None),
            body_excerpt=body_excerpt if body_excerpt is not None else getattr(exc, "body_excerpt", None),
            exception=exc,
        )

    def unwrap(self) -> Optional[TR]:
        """Return ``value`` on success, otherwise raise the captured failure."""

        if self.is_success:
            return self.value
        if self.exception is not None:
            raise self.exception
        raise HttpRepositoryError(self.error or "request failed")

    def to_dict(self) -> Dict[str, Any]:
        """Caller-facing view: ``isSuccess``/``value``/``statusCode``/``error`` plus diagnostics."""

        return {
            "isSuccess": self.is_success,
            "value": self.value,
            "statusCode": self.status_code,
            "error": self.error,
            "failureKind": self.failure_kind.value if self.failure_kind else None,
            "bodyExcerpt": self.body_excerpt,
        }


__all__ = ["HttpResponse", "BODY_EXCERPT_LIMIT", "make_body_excerpt"]
