# === NAVMAP v1 ===
# {
#   "module": "RestKit.HttpRepository",
#   "purpose": "Public API for the resilient typed HTTP repository",
#   "sections": []
# }
# === /NAVMAP ===

"""Public API for building typed, resilient HTTP API clients.

Subclass :class:`AbstractHttpRepository` (or use :class:`JsonApiRepository`),
pass URL builders to its verb methods, and inspect the returned
:class:`HttpResponse`::

    async with JsonApiRepository(base_url="https://api.example.com/v1") as api:
        result = await api.get(api.url("users", 42), User, default=None)
        if result.is_success:
            print(result.value.name)
"""

from __future__ import annotations

from .cancellation import CancellationToken
from .enums import CallState, FailureKind, RequestKind
from .errors import (
    AttemptTimeoutError,
    BreakerOpenError,
    DeserializationError,
    HttpRepositoryError,
    HttpStatusError,
    InvalidUrlError,
    OperationCancelledError,
    PipelineTimeoutError,
    RequestAlreadySentError,
    SerializationError,
    UnknownRequestKindError,
)
from .network import (
    JSON_CONTENT_TYPE,
    HttpxTransport,
    OutgoingRequest,
    RawResponse,
    Transport,
    create_async_http_client,
)
from .repository import (
    AbstractHttpRepository,
    Dispatcher,
    JsonApiRepository,
    VerbRoute,
    build_dispatch_table,
)
from .resilience import (
    DEFAULT_POLICIES,
    BreakerPolicy,
    ResiliencePipeline,
    ResiliencePipelineRegistry,
    ResiliencePolicy,
)
from .response import HttpResponse
from .serialization import JsonSerializer, NamingPolicy, Serializer, SerializerOptions
from .settings import HttpRepositorySettings, get_settings, reset_settings
from .url_builder import UrlBuilder, UrlBuilderLike

__all__ = [
    "AbstractHttpRepository",
    "AttemptTimeoutError",
    "BreakerOpenError",
    "BreakerPolicy",
    "CallState",
    "CancellationToken",
    "DEFAULT_POLICIES",
    "DeserializationError",
    "Dispatcher",
    "FailureKind",
    "HttpRepositoryError",
    "HttpRepositorySettings",
    "HttpResponse",
    "HttpStatusError",
    "HttpxTransport",
    "InvalidUrlError",
    "JSON_CONTENT_TYPE",
    "JsonApiRepository",
    "JsonSerializer",
    "NamingPolicy",
    "OperationCancelledError",
    "OutgoingRequest",
    "PipelineTimeoutError",
    "RawResponse",
    "RequestAlreadySentError",
    "RequestKind",
    "ResiliencePipeline",
    "ResiliencePipelineRegistry",
    "ResiliencePolicy",
    "SerializationError",
    "Serializer",
    "SerializerOptions",
    "Transport",
    "UnknownRequestKindError",
    "UrlBuilder",
    "UrlBuilderLike",
    "VerbRoute",
    "build_dispatch_table",
    "create_async_http_client",
    "get_settings",
    "reset_settings",
]
