# === NAVMAP v1 ===
# {
#   "module": "RestKit.HttpRepository.network.client",
#   "purpose": "Factory for the default httpx.AsyncClient used by HttpxTransport.",
#   "sections": [
#     {"id": "create-async-http-client", "name": "create_async_http_client", "anchor": "function-create-async-http-client", "kind": "function"},
#     {"id": "create-ssl-context", "name": "_create_ssl_context", "anchor": "function-create-ssl-context", "kind": "function"},
#     {"id": "default-user-agent", "name": "default_user_agent", "anchor": "function-default-user-agent", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""HTTPX async client factory.

Each repository owns its transport, so unlike a process-wide singleton the
factory returns a fresh ``httpx.AsyncClient`` on every call. Timeouts, pool
limits, TLS trust, and redirect handling come from
:class:`~RestKit.HttpRepository.settings.TransportSettings`, falling back to
the constants in :mod:`.policy`.

Example:
    >>> client = create_async_http_client()
    >>> client.follow_redirects
    False
"""

from __future__ import annotations

import logging
import ssl
from importlib import metadata
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

import certifi
import httpx

from .instrumentation import create_http_event_hooks
from .policy import (
    FOLLOW_REDIRECTS,
    HTTP2_ENABLED,
    HTTP_CONNECT_TIMEOUT,
    HTTP_POOL_TIMEOUT,
    HTTP_READ_TIMEOUT,
    HTTP_WRITE_TIMEOUT,
    KEEPALIVE_EXPIRY,
    MAX_CONNECTIONS,
    MAX_KEEPALIVE_CONNECTIONS,
    TLS_VERIFY_ENABLED,
    USER_AGENT_TEMPLATE,
)

if TYPE_CHECKING:  # pragma: no cover
    from ..settings import TransportSettings

logger = logging.getLogger(__name__)

EventHooks = Dict[str, List[Callable[..., Any]]]


def default_user_agent() -> str:
    """Return ``restkit-http/<version>`` for the installed distribution."""

    try:
        version = metadata.version("restkit-http")
    except metadata.PackageNotFoundError:
        version = "0.0.0"
    return USER_AGENT_TEMPLATE.format(version=version)


def _create_ssl_context(verify: bool = TLS_VERIFY_ENABLED) -> ssl.SSLContext:
    """Create an SSL context trusting the certifi bundle.

    With ``verify`` disabled, hostname checks and certificate verification are
    turned off and a warning is logged.
    """
    if not verify:
        ctx = ssl.create_default_context()
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
        logger.warning("TLS verification DISABLED (development only!)")
        return ctx

    ctx = ssl.create_default_context(cafile=certifi.where())
    ctx.check_hostname = True
    ctx.verify_mode = ssl.CERT_REQUIRED
    return ctx


def create_async_http_client(
    settings: Optional["TransportSettings"] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    event_hooks: Optional[EventHooks] = None,
) -> httpx.AsyncClient:
    """Create a configured ``httpx.AsyncClient``.

    Args:
        settings: Transport settings; policy defaults are used when omitted.
        transport: Optional low-level transport (``httpx.MockTransport`` in tests).
        event_hooks: Hooks to install instead of the default ``net.request`` logging hooks.

    Returns:
        A new client. The caller owns it and must ``aclose()`` it.
    """

    if settings is not None:
        timeout = httpx.Timeout(
            connect=settings.connect_timeout,
            read=settings.read_timeout,
            write=settings.write_timeout,
            pool=settings.pool_timeout,
        )
        limits = httpx.Limits(
            max_connections=settings.max_connections,
            max_keepalive_connections=settings.max_keepalive_connections,
            keepalive_expiry=settings.keepalive_expiry,
        )
        http2 = settings.http2
        follow_redirects = settings.follow_redirects
        verify = settings.verify_tls
        user_agent = settings.user_agent or default_user_agent()
    else:
        timeout = httpx.Timeout(
            connect=HTTP_CONNECT_TIMEOUT,
            read=HTTP_READ_TIMEOUT,
            write=HTTP_WRITE_TIMEOUT,
            pool=HTTP_POOL_TIMEOUT,
        )
        limits = httpx.Limits(
            max_connections=MAX_CONNECTIONS,
            max_keepalive_connections=MAX_KEEPALIVE_CONNECTIONS,
            keepalive_expiry=KEEPALIVE_EXPIRY,
        )
        http2 = HTTP2_ENABLED
        follow_redirects = FOLLOW_REDIRECTS
        verify = TLS_VERIFY_ENABLED
        user_agent = default_user_agent()

    client_kwargs: Dict[str, Any] = {
        "timeout": timeout,
        "follow_redirects": follow_redirects,
        "headers": {"User-Agent": user_agent},
        "event_hooks": event_hooks if event_hooks is not None else create_http_event_hooks(),
    }
    if transport is not None:
        client_kwargs["transport"] = transport
    else:
        client_kwargs["limits"] = limits
        client_kwargs["http2"] = http2
        client_kwargs["verify"] = _create_ssl_context(verify)

    client = httpx.AsyncClient(**client_kwargs)

    logger.debug(
        "HTTPX async client created",
        extra={
            "http2": http2,
            "follow_redirects": follow_redirects,
            "max_connections": limits.max_connections,
            "mock_transport": transport is not None,
        },
    )
    return client


__all__ = ["create_async_http_client", "default_user_agent"]
