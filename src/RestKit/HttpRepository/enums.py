# === NAVMAP v1 ===
# {
#   "module": "RestKit.HttpRepository.enums",
#   "purpose": "Request kinds, per-call states, and failure categories.",
#   "sections": [
#     {"id": "requestkind", "name": "RequestKind", "anchor": "class-requestkind", "kind": "class"},
#     {"id": "callstate", "name": "CallState", "anchor": "class-callstate", "kind": "class"},
#     {"id": "failurekind", "name": "FailureKind", "anchor": "class-failurekind", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Enumerations shared by the request execution pipeline."""

from __future__ import annotations

from enum import Enum


class RequestKind(str, Enum):
    """HTTP verb category selecting headers, body handling, and resilience policy."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"

    @property
    def is_idempotent(self) -> bool:
        return self in (RequestKind.GET, RequestKind.PUT, RequestKind.DELETE)


class CallState(str, Enum):
    """Lifecycle of a single repository call.

    ``SUCCESS`` and ``FAILURE`` are terminal.
    """

    IDLE = "idle"
    PREPARING_REQUEST = "preparing_request"
    ATTACHING = "attaching"
    DISPATCHING = "dispatching"
    CLASSIFYING = "classifying"
    SUCCESS = "success"
    FAILURE = "failure"


class FailureKind(str, Enum):
    """Category recorded on a failed result wrapper."""

    PRECONDITION = "precondition"
    SERIALIZATION = "serialization"
    TRANSPORT = "transport"
    STATUS = "status"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    CIRCUIT_OPEN = "circuit_open"
    DESERIALIZATION = "deserialization"


__all__ = ["RequestKind", "CallState", "FailureKind"]
