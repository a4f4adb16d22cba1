# === NAVMAP v1 ===
# {
#   "module": "RestKit.HttpRepository.network.transport",
#   "purpose": "Outgoing request handle, transport contract, and the httpx-backed transport.",
#   "sections": [
#     {"id": "outgoingrequest", "name": "OutgoingRequest", "anchor": "class-outgoingrequest", "kind": "class"},
#     {"id": "rawresponse", "name": "RawResponse", "anchor": "class-rawresponse", "kind": "class"},
#     {"id": "transport", "name": "Transport", "anchor": "class-transport", "kind": "class"},
#     {"id": "httpxtransport", "name": "HttpxTransport", "anchor": "class-httpxtransport", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Transport seam between the repository and the HTTP library.

:class:`OutgoingRequest` is the per-call request handle: header and query
mutations are allowed until the handle is sealed for sending, after which any
mutation raises :class:`~RestKit.HttpRepository.errors.RequestAlreadySentError`.
Retries re-send the same sealed handle, so every attempt carries identical
bytes.

:class:`HttpxTransport` implements the :class:`Transport` protocol on top of
``httpx.AsyncClient``. The cancellation token is checked before each send; the
resilience pipeline cancels the awaiting task when the token fires, which
aborts the in-flight ``httpx`` request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, List, Mapping, Optional, Protocol, Tuple

import httpx

from ..cancellation import CancellationToken
from ..errors import RequestAlreadySentError

if TYPE_CHECKING:  # pragma: no cover
    from ..settings import TransportSettings

LOGGER = logging.getLogger(__name__)

#: Content type for every POST/PUT/PATCH body
JSON_CONTENT_TYPE = "application/json; charset=utf-8"


@dataclass
class OutgoingRequest:
    """Mutable-until-sent description of one HTTP call."""

    url: str
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    params: List[Tuple[str, str]] = field(default_factory=list)
    method: Optional[str] = None
    content: Optional[bytes] = None
    content_type: Optional[str] = None
    sent: bool = False

    def set_header(self, name: str, value: str) -> None:
        self._ensure_mutable()
        self.headers[name] = value

    def add_query(self, pairs: List[Tuple[str, str]]) -> None:
        self._ensure_mutable()
        self.params.extend(pairs)

    def seal(
        self,
        method: str,
        content: Optional[bytes] = None,
        content_type: Optional[str] = None,
    ) -> None:
        """Fix method and body for sending.

        Sealing again with the same method and body is a no-op so retries can
        re-send the handle; anything else raises ``RequestAlreadySentError``.
        """

        if self.sent:
            if (self.method, self.content, self.content_type) != (method, content, content_type):
                raise RequestAlreadySentError(
                    f"Request to {self.url} was already sent as {self.method}"
                )
            return
        self.method = method
        self.content = content
        self.content_type = content_type
        if content_type is not None:
            self.headers["Content-Type"] = content_type
        self.sent = True

    def _ensure_mutable(self) -> None:
        if self.sent:
            raise RequestAlreadySentError(f"Request to {self.url} was already sent")


class RawResponse(Protocol):
    """What the repository reads from a transport response."""

    status_code: int
    content: bytes
    headers: Mapping[str, str]


class Transport(Protocol):
    """Verb-specific async operations consumed by the dispatcher."""

    async def get(self, request: OutgoingRequest, *, token: CancellationToken) -> RawResponse: ...

    async def post(
        self,
        request: OutgoingRequest,
        content: Optional[bytes],
        content_type: Optional[str],
        *,
        token: CancellationToken,
    ) -> RawResponse: ...

    async def put(
        self,
        request: OutgoingRequest,
        content: Optional[bytes],
        content_type: Optional[str],
        *,
        token: CancellationToken,
    ) -> RawResponse: ...

    async def patch(
        self,
        request: OutgoingRequest,
        content: Optional[bytes],
        content_type: Optional[str],
        *,
        token: CancellationToken,
    ) -> RawResponse: ...

    async def delete(self, request: OutgoingRequest, *, token: CancellationToken) -> RawResponse: ...


class HttpxTransport:
    """:class:`Transport` backed by ``httpx.AsyncClient``.

    Args:
        client: Client to send through. When omitted a client is created from
            ``settings`` and closed by :meth:`aclose`.
        settings: Transport settings for the owned client.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        settings: Optional["TransportSettings"] = None,
    ) -> None:
        if client is None:
            from .client import create_async_http_client

            client = create_async_http_client(settings)
            self._owns_client = True
        else:
            self._owns_client = False
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    async def get(self, request: OutgoingRequest, *, token: CancellationToken) -> httpx.Response:
        return await self._send("GET", request, None, None, token)

    async def post(
        self,
        request: OutgoingRequest,
        content: Optional[bytes],
        content_type: Optional[str],
        *,
        token: CancellationToken,
    ) -> httpx.Response:
        return await self._send("POST", request, content, content_type, token)

    async def put(
        self,
        request: OutgoingRequest,
        content: Optional[bytes],
        content_type: Optional[str],
        *,
        token: CancellationToken,
    ) -> httpx.Response:
        return await self._send("PUT", request, content, content_type, token)

    async def patch(
        self,
        request: OutgoingRequest,
        content: Optional[bytes],
        content_type: Optional[str],
        *,
        token: CancellationToken,
    ) -> httpx.Response:
        return await self._send("PATCH", request, content, content_type, token)

    async def delete(self, request: OutgoingRequest, *, token: CancellationToken) -> httpx.Response:
        return await self._send("DELETE", request, None, None, token)

    async def _send(
        self,
        method: str,
        request: OutgoingRequest,
        content: Optional[bytes],
        content_type: Optional[str],
        token: CancellationToken,
    ) -> httpx.Response:
        token.raise_if_cancelled()
        request.seal(method, content, content_type)
        # Form pairs extend the builder's query; ``params=`` would replace it.
        url = httpx.URL(request.url)
        if request.params:
            url = url.copy_merge_params(request.params)
        kwargs: dict[str, Any] = {"headers": request.headers}
        if request.content is not None:
            kwargs["content"] = request.content
        return await self._client.request(method, url, **kwargs)

    async def aclose(self) -> None:
        """Close the underlying client if this transport created it."""

        if self._owns_client:
            await self._client.aclose()
            LOGGER.debug("HTTP transport closed")

    async def __aenter__(self) -> "HttpxTransport":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


__all__ = [
    "JSON_CONTENT_TYPE",
    "OutgoingRequest",
    "RawResponse",
    "Transport",
    "HttpxTransport",
]
