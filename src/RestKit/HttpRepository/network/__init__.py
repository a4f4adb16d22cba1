# === NAVMAP v1 ===
# {
#   "module": "RestKit.HttpRepository.network",
#   "purpose": "Transport layer: request handle, httpx transport, client factory, instrumentation.",
#   "sections": []
# }
# === /NAVMAP ===

"""Transport layer for the HTTP repository.

Example:
    >>> from RestKit.HttpRepository.network import HttpxTransport, create_async_http_client
    >>> transport = HttpxTransport(create_async_http_client())
"""

from .client import create_async_http_client, default_user_agent
from .instrumentation import START_TIME_EXTENSION, create_http_event_hooks
from .transport import (
    JSON_CONTENT_TYPE,
    HttpxTransport,
    OutgoingRequest,
    RawResponse,
    Transport,
)

__all__ = [
    "JSON_CONTENT_TYPE",
    "START_TIME_EXTENSION",
    "HttpxTransport",
    "OutgoingRequest",
    "RawResponse",
    "Transport",
    "create_async_http_client",
    "create_http_event_hooks",
    "default_user_agent",
]
