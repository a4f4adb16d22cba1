# === NAVMAP v1 ===
# {
#   "module": "RestKit.HttpRepository.repository.dispatch",
#   "purpose": "Request kind to verb record table: header attacher, body policy, transport verb",
#   "sections": [
#     {"id": "verbroute", "name": "VerbRoute", "anchor": "class-verbroute", "kind": "class"},
#     {"id": "build-dispatch-table", "name": "build_dispatch_table", "anchor": "function-build-dispatch-table", "kind": "function"},
#     {"id": "dispatcher", "name": "Dispatcher", "anchor": "class-dispatcher", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Dispatch table mapping each :class:`RequestKind` to its verb behaviour.

The table is built once per repository from bound methods and is checked for
exhaustiveness at construction. A kind that cannot be routed is a defect in
the table, so :meth:`Dispatcher.route` raises
:class:`~RestKit.HttpRepository.errors.UnknownRequestKindError` instead of
producing a failed result.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Optional

from ..cancellation import CancellationToken
from ..enums import RequestKind
from ..errors import UnknownRequestKindError
from ..network.transport import JSON_CONTENT_TYPE, OutgoingRequest, RawResponse, Transport

if TYPE_CHECKING:  # pragma: no cover
    from .base import AbstractHttpRepository

SendFn = Callable[[OutgoingRequest, Optional[bytes], CancellationToken], Awaitable[RawResponse]]


@dataclass(frozen=True)
class VerbRoute:
    """Everything that differs between request kinds."""

    kind: RequestKind
    attach_headers: Callable[[OutgoingRequest], None]
    attach_body: Optional[Callable[[OutgoingRequest, Any], None]]
    sends_body: bool
    send: SendFn


def _without_body(verb: Callable[..., Awaitable[RawResponse]]) -> SendFn:
    async def send(
        request: OutgoingRequest, body: Optional[bytes], token: CancellationToken
    ) -> RawResponse:
        return await verb(request, token=token)

    return send


def _with_json_body(verb: Callable[..., Awaitable[RawResponse]]) -> SendFn:
    async def send(
        request: OutgoingRequest, body: Optional[bytes], token: CancellationToken
    ) -> RawResponse:
        content_type = JSON_CONTENT_TYPE if body is not None else None
        return await verb(request, body, content_type, token=token)

    return send


def build_dispatch_table(
    repository: "AbstractHttpRepository", transport: Transport
) -> Mapping[RequestKind, VerbRoute]:
    """Bind the repository's attachers and the transport's verbs per kind."""

    return MappingProxyType(
        {
            RequestKind.GET: VerbRoute(
                kind=RequestKind.GET,
                attach_headers=repository.attach_get_headers,
                attach_body=repository.attach_get_form_content,
                sends_body=False,
                send=_without_body(transport.get),
            ),
            RequestKind.POST: VerbRoute(
                kind=RequestKind.POST,
                attach_headers=repository.attach_post_headers,
                attach_body=None,
                sends_body=True,
                send=_with_json_body(transport.post),
            ),
            RequestKind.PUT: VerbRoute(
                kind=RequestKind.PUT,
                attach_headers=repository.attach_put_headers,
                attach_body=None,
                sends_body=True,
                send=_with_json_body(transport.put),
            ),
            RequestKind.PATCH: VerbRoute(
                kind=RequestKind.PATCH,
                attach_headers=repository.attach_patch_headers,
                attach_body=None,
                sends_body=True,
                send=_with_json_body(transport.patch),
            ),
            RequestKind.DELETE: VerbRoute(
                kind=RequestKind.DELETE,
                attach_headers=repository.attach_delete_headers,
                attach_body=None,
                sends_body=False,
                send=_without_body(transport.delete),
            ),
        }
    )


class Dispatcher:
    """Routes a request kind to its :class:`VerbRoute`."""

    def __init__(self, table: Mapping[RequestKind, VerbRoute]) -> None:
        missing = [kind.value for kind in RequestKind if kind not in table]
        if missing:
            raise ValueError(f"Dispatch table has no route for: {', '.join(missing)}")
        for kind, route in table.items():
            if route.kind is not kind:
                raise ValueError(f"Route for {kind.value} is registered as {route.kind.value}")
        self._table = table

    def route(self, kind: Any) -> VerbRoute:
        """Return the route for ``kind`` or raise :class:`UnknownRequestKindError`."""

        try:
            return self._table[RequestKind(kind)]
        except (ValueError, KeyError) as exc:
            raise UnknownRequestKindError(kind) from exc

    def attach(self, request: OutgoingRequest, kind: Any, data: Any = None) -> None:
        """Apply headers, then body content, for ``kind``."""

        route = self.route(kind)
        route.attach_headers(request)
        if route.attach_body is not None and data is not None:
            route.attach_body(request, data)

    async def dispatch(
        self,
        request: OutgoingRequest,
        kind: Any,
        body: Optional[bytes],
        *,
        token: CancellationToken,
    ) -> RawResponse:
        """Perform exactly one transport call for ``kind``."""

        route = self.route(kind)
        return await route.send(request, body if route.sends_body else None, token)


__all__ = ["VerbRoute", "Dispatcher", "build_dispatch_table"]
