"""
Hermetic HTTP helpers for repository tests.

Provides an ``httpx.MockTransport`` handler that records every request and
replays a scripted sequence of responses or exceptions, a record-capturing
logging handler, and a concrete repository used across the suite.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import httpx

from RestKit.HttpRepository import (
    AbstractHttpRepository,
    CancellationToken,
    HttpxTransport,
    NamingPolicy,
    OutgoingRequest,
    RequestKind,
    ResiliencePipelineRegistry,
    ResiliencePolicy,
    SerializerOptions,
)

Scripted = Union[httpx.Response, BaseException, Callable[[httpx.Request], httpx.Response]]


async def no_sleep(_seconds: float) -> None:
    """Async sleep replacement so retry tests do not wait on backoff."""
    return None


@dataclass
class SentRequest:
    """What the mock transport observed for one attempt."""

    method: str
    url: httpx.URL
    headers: httpx.Headers
    content: bytes


@dataclass
class ScriptedServer:
    """Replays scripted outcomes; the last entry repeats once the script runs out."""

    script: List[Scripted] = field(default_factory=list)
    sent: List[SentRequest] = field(default_factory=list)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.sent.append(
            SentRequest(
                method=request.method,
                url=request.url,
                headers=request.headers,
                content=request.read(),
            )
        )
        index = min(len(self.sent) - 1, len(self.script) - 1)
        outcome = self.script[index] if self.script else httpx.Response(200, json={})
        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome) and not isinstance(outcome, httpx.Response):
            return outcome(request)
        # Fresh object per attempt; httpx binds a response to its request
        return httpx.Response(outcome.status_code, headers=outcome.headers, content=outcome.content)

    @property
    def last(self) -> SentRequest:
        return self.sent[-1]


def json_response(
    status_code: int, payload: Any, headers: Optional[Dict[str, str]] = None
) -> httpx.Response:
    """Build a response whose body is ``payload`` encoded as JSON."""
    return httpx.Response(
        status_code,
        content=json.dumps(payload).encode("utf-8"),
        headers={"content-type": "application/json", **(headers or {})},
    )


class CapturingHandler(logging.Handler):
    """Keeps every record it receives."""

    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.records: List[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


class StubRepository(AbstractHttpRepository):
    """Repository whose lifecycle hook counts calls and can be told to fail."""

    def __init__(
        self, *args: Any, extra_headers: Optional[Mapping[str, str]] = None, **kwargs: Any
    ) -> None:
        super().__init__(*args, **kwargs)
        self.prepare_calls = 0
        self.prepare_error: Optional[BaseException] = None
        self.extra_headers = dict(extra_headers or {})

    async def prepare_request(self) -> None:
        self.prepare_calls += 1
        if self.prepare_error is not None:
            raise self.prepare_error

    def default_headers(self) -> Dict[str, str]:
        return dict(self.extra_headers)


class NeverResolvingTransport:
    """Transport whose calls block until cancelled."""

    def __init__(self) -> None:
        self.started = 0
        self.cancelled = 0

    async def _block(self, request: OutgoingRequest, token: CancellationToken) -> Any:
        self.started += 1
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled += 1
            raise

    async def get(self, request: OutgoingRequest, *, token: CancellationToken) -> Any:
        return await self._block(request, token)

    async def post(self, request, content, content_type, *, token):
        return await self._block(request, token)

    async def put(self, request, content, content_type, *, token):
        return await self._block(request, token)

    async def patch(self, request, content, content_type, *, token):
        return await self._block(request, token)

    async def delete(self, request: OutgoingRequest, *, token: CancellationToken) -> Any:
        return await self._block(request, token)


def single_attempt_policies(**overrides: Any) -> Dict[RequestKind, ResiliencePolicy]:
    """Policies with one attempt, no breaker, and ``overrides`` applied to every kind."""
    base: Dict[str, Any] = {"max_attempts": 1, "breaker": None}
    base.update(overrides)
    return {kind: ResiliencePolicy(**base) for kind in RequestKind}


def build_repository(
    server: ScriptedServer,
    logger: logging.Logger,
    *,
    policies: Optional[Mapping[RequestKind, ResiliencePolicy]] = None,
    naming_policy: NamingPolicy = NamingPolicy.CAMEL,
    extra_headers: Optional[Mapping[str, str]] = None,
) -> StubRepository:
    """Wire a ``StubRepository`` to ``server`` through ``httpx.MockTransport``."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(server.handler))
    pipelines = ResiliencePipelineRegistry.from_policies(
        policies or single_attempt_policies(), sleep=no_sleep
    )
    return StubRepository(
        HttpxTransport(client),
        pipelines=pipelines,
        serializer_options=SerializerOptions(naming_policy=naming_policy),
        logger=logger,
        extra_headers=extra_headers,
    )
