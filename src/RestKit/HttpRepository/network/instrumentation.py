# === NAVMAP v1 ===
# {
#   "module": "RestKit.HttpRepository.network.instrumentation",
#   "purpose": "HTTPX event hooks emitting per-attempt net.request debug records.",
#   "sections": [
#     {
#       "id": "create-http-event-hooks",
#       "name": "create_http_event_hooks",
#       "anchor": "function-create-http-event-hooks",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""HTTP transport instrumentation.

Emits one ``net.request`` DEBUG record per transport attempt with method,
redacted URL, status, and elapsed time. These are attempt-level records on the
``network`` logger; the repository's single per-call outcome record is
separate and goes to the injected sink.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from ..logging_utils import redact_url

LOGGER = logging.getLogger(__name__)

#: Request extension key holding the ``perf_counter`` value at send time
START_TIME_EXTENSION = "restkit.start_time"


def create_http_event_hooks(logger: Optional[logging.Logger] = None) -> Dict[str, List[Any]]:
    """Create async HTTPX event hooks for attempt telemetry.

    Returns:
        Dict with 'request' and 'response' hooks for ``httpx.AsyncClient``

    Usage:
        >>> hooks = create_http_event_hooks()
        >>> client = httpx.AsyncClient(event_hooks=hooks)
    """
    log = logger or LOGGER

    async def on_request(request: httpx.Request) -> None:
        # Lives and dies with the request, including attempts that never get a response
        request.extensions[START_TIME_EXTENSION] = time.perf_counter()

    async def on_response(response: httpx.Response) -> None:
        start_time = response.request.extensions.get(START_TIME_EXTENSION)
        if start_time is None or not log.isEnabledFor(logging.DEBUG):
            return
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        log.debug(
            "net.request",
            extra={
                "method": response.request.method,
                "url_redacted": redact_url(str(response.request.url)),
                "host": response.request.url.host or "unknown",
                "status": response.status_code,
                "http_version": response.http_version,
                "elapsed_ms": round(elapsed_ms, 3),
            },
        )

    return {
        "request": [on_request],
        "response": [on_response],
    }


__all__ = ["START_TIME_EXTENSION", "create_http_event_hooks"]
