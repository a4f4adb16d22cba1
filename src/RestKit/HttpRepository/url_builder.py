"""URL builder contract and a small immutable implementation.

The repository treats a builder as opaque and read-only: it only ever calls
``build_url()``. :class:`UrlBuilder` is provided for callers that do not bring
their own; every method returns a new builder.

Example:
    >>> builder = UrlBuilder("https://api.example.com/v1").path("users", 42).query(expand="roles")
    >>> builder.build_url()
    'https://api.example.com/v1/users/42?expand=roles'
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Protocol, Tuple, runtime_checkable
from urllib.parse import quote

import httpx

from .errors import InvalidUrlError


@runtime_checkable
class UrlBuilderLike(Protocol):
    """Anything that can resolve to a complete absolute URL."""

    def build_url(self) -> str: ...


@dataclass(frozen=True)
class UrlBuilder:
    """Immutable base URL + path segments + query parameters."""

    base_url: str
    segments: Tuple[str, ...] = ()
    params: Tuple[Tuple[str, str], ...] = ()

    def path(self, *segments: Any) -> "UrlBuilder":
        """Append path segments; each segment is percent-encoded."""

        return replace(self, segments=self.segments + tuple(str(s) for s in segments))

    def query(self, **params: Any) -> "UrlBuilder":
        """Append query parameters; ``None`` values are skipped."""

        extra = tuple((key, _format_param(value)) for key, value in params.items() if value is not None)
        return replace(self, params=self.params + extra)

    def build_url(self) -> str:
        try:
            url = httpx.URL(self.base_url)
        except (httpx.InvalidURL, TypeError) as exc:
            raise InvalidUrlError(f"Invalid base URL {self.base_url!r}: {exc}") from exc
        if url.scheme not in ("http", "https") or not url.host:
            raise InvalidUrlError(f"Base URL must be absolute http(s): {self.base_url!r}")

        if self.segments:
            tail = "/".join(quote(segment, safe="") for segment in self.segments)
            url = url.copy_with(path=f"{url.path.rstrip('/')}/{tail}")
        if self.params:
            url = url.copy_merge_params(list(self.params))
        return str(url)

    def __str__(self) -> str:
        return self.build_url()


def _format_param(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


__all__ = ["UrlBuilderLike", "UrlBuilder"]
