# === NAVMAP v1 ===
# {
#   "module": "RestKit.HttpRepository.repository.base",
#   "purpose": "Abstract repository: lifecycle hook, request building, attachment, resilient dispatch, classification",
#   "sections": [
#     {"id": "abstracthttprepository", "name": "AbstractHttpRepository", "anchor": "class-abstracthttprepository", "kind": "class"},
#     {"id": "failure-kind-for", "name": "failure_kind_for", "anchor": "function-failure-kind-for", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Base class for typed HTTP API clients.

Every verb call runs the same fixed sequence::

    prepare_request() -> create_request() -> attach headers/body
        -> pipeline.execute(dispatch) -> deserialize_result()

and always returns exactly one :class:`~RestKit.HttpRepository.response.HttpResponse`.
Failures at any step become a failed wrapper holding the caller's default and
are logged once on the injected logger. The single exception is an unknown
request kind, which is a defect in the dispatch table and raises
:class:`~RestKit.HttpRepository.errors.UnknownRequestKindError`.

Subclasses implement :meth:`AbstractHttpRepository.prepare_request` and may
override the ``attach_*_headers`` and ``default_headers`` seams::

    class UsersApi(AbstractHttpRepository):
        async def prepare_request(self) -> None:
            pass

        async def user(self, user_id: int):
            return await self.get(UrlBuilder(BASE).path("users", user_id), User)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, TypeVar

import httpx

from ..cancellation import CancellationToken
from ..enums import CallState, FailureKind, RequestKind
from ..errors import (
    AttemptTimeoutError,
    BreakerOpenError,
    DeserializationError,
    HttpStatusError,
    InvalidUrlError,
    OperationCancelledError,
    PipelineTimeoutError,
    SerializationError,
    UnknownRequestKindError,
)
from ..logging_utils import redact_url
from ..network.policy import DEFAULT_ACCEPT
from ..network.transport import HttpxTransport, OutgoingRequest, RawResponse, Transport
from ..resilience.pipeline import ResiliencePipeline, ResiliencePipelineRegistry
from ..response import HttpResponse, make_body_excerpt
from ..serialization import JsonSerializer, Serializer, SerializerOptions
from ..settings import HttpRepositorySettings, get_settings
from ..url_builder import UrlBuilderLike
from .dispatch import Dispatcher, build_dispatch_table

LOGGER = logging.getLogger(__name__)

TR = TypeVar("TR")


def failure_kind_for(exc: BaseException) -> FailureKind:
    """Map an exception raised during dispatch to its failure category."""

    if isinstance(exc, SerializationError):
        return FailureKind.SERIALIZATION
    if isinstance(exc, DeserializationError):
        return FailureKind.DESERIALIZATION
    if isinstance(exc, (PipelineTimeoutError, AttemptTimeoutError, httpx.TimeoutException)):
        return FailureKind.TIMEOUT
    if isinstance(exc, OperationCancelledError):
        return FailureKind.CANCELLED
    if isinstance(exc, BreakerOpenError):
        return FailureKind.CIRCUIT_OPEN
    return FailureKind.TRANSPORT


class AbstractHttpRepository(ABC):
    """Generic request executor for JSON HTTP APIs.

    Args:
        transport: Verb-level transport; an :class:`HttpxTransport` is created
            from ``settings`` when omitted and closed by :meth:`aclose`.
        pipelines: Per-kind resilience pipelines; built from ``settings`` when omitted.
        serializer: Payload serializer; :class:`JsonSerializer` by default.
        serializer_options: Options fixed for this client; from ``settings`` when omitted.
        logger: Sink for the one outcome record per call.
        settings: Configuration source for anything not passed explicitly.
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        *,
        pipelines: Optional[ResiliencePipelineRegistry] = None,
        serializer: Optional[Serializer] = None,
        serializer_options: Optional[SerializerOptions] = None,
        logger: Optional[logging.Logger] = None,
        settings: Optional[HttpRepositorySettings] = None,
    ) -> None:
        if settings is None and (
            transport is None or pipelines is None or serializer_options is None
        ):
            settings = get_settings()
        if transport is None:
            transport = HttpxTransport(settings=settings.transport)
            self._owns_transport = True
        else:
            self._owns_transport = False
        self._transport = transport
        self._pipelines = pipelines if pipelines is not None else settings.build_pipelines()
        self._serializer = serializer if serializer is not None else JsonSerializer()
        self._serializer_options = (
            serializer_options if serializer_options is not None else settings.serializer_options()
        )
        self._logger = logger if logger is not None else LOGGER
        self._dispatcher = Dispatcher(build_dispatch_table(self, transport))

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def pipelines(self) -> ResiliencePipelineRegistry:
        return self._pipelines

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    # ── Verb methods ──────────────────────────────────────────────────────────

    async def get(
        self,
        builder: UrlBuilderLike,
        response_type: Any = Any,
        *,
        form_content: Any = None,
        default: Optional[TR] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> HttpResponse[Any]:
        """GET ``builder``; ``form_content`` is encoded into the query string."""

        return await self._send_request_internal(
            builder, RequestKind.GET, form_content, response_type, default, cancel_token
        )

    async def post(
        self,
        builder: UrlBuilderLike,
        data: Any,
        response_type: Any = Any,
        *,
        default: Optional[TR] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> HttpResponse[Any]:
        """POST ``data`` as a JSON body."""

        return await self._send_request_internal(
            builder, RequestKind.POST, data, response_type, default, cancel_token
        )

    async def put(
        self,
        builder: UrlBuilderLike,
        data: Any,
        response_type: Any = Any,
        *,
        default: Optional[TR] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> HttpResponse[Any]:
        return await self._send_request_internal(
            builder, RequestKind.PUT, data, response_type, default, cancel_token
        )

    async def patch(
        self,
        builder: UrlBuilderLike,
        data: Any,
        response_type: Any = Any,
        *,
        default: Optional[TR] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> HttpResponse[Any]:
        return await self._send_request_internal(
            builder, RequestKind.PATCH, data, response_type, default, cancel_token
        )

    async def delete(
        self,
        builder: UrlBuilderLike,
        response_type: Any = Any,
        *,
        default: Optional[TR] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> HttpResponse[Any]:
        return await self._send_request_internal(
            builder, RequestKind.DELETE, None, response_type, default, cancel_token
        )

    # ── Lifecycle and strategy seams ──────────────────────────────────────────

    @abstractmethod
    async def prepare_request(self) -> None:
        """Run before every call (e.g. refresh credentials); raising aborts the call."""

    def create_request(self, builder: UrlBuilderLike) -> OutgoingRequest:
        """Resolve ``builder`` into a fresh request handle without mutating it."""

        url = builder.build_url()
        try:
            parsed = httpx.URL(str(url))
        except (httpx.InvalidURL, TypeError) as exc:
            raise InvalidUrlError(f"Invalid URL {url!r}: {exc}") from exc
        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise InvalidUrlError(f"URL must be absolute http(s): {url!r}")
        return OutgoingRequest(url=str(parsed))

    def default_headers(self) -> Dict[str, str]:
        """Headers added to every request kind after ``Accept``."""

        return {}

    def attach_get_headers(self, request: OutgoingRequest) -> None:
        self._attach_common_headers(request)

    def attach_post_headers(self, request: OutgoingRequest) -> None:
        self._attach_common_headers(request)

    def attach_put_headers(self, request: OutgoingRequest) -> None:
        self._attach_common_headers(request)

    def attach_patch_headers(self, request: OutgoingRequest) -> None:
        self._attach_common_headers(request)

    def attach_delete_headers(self, request: OutgoingRequest) -> None:
        self._attach_common_headers(request)

    def _attach_common_headers(self, request: OutgoingRequest) -> None:
        request.set_header("Accept", DEFAULT_ACCEPT)
        for name, value in self.default_headers().items():
            request.set_header(name, value)

    def attach_get_form_content(self, request: OutgoingRequest, data: Any) -> None:
        """Encode ``data`` into query parameters on ``request``."""

        request.add_query(self._serializer.to_form(data, self.get_serializer_options()))

    def get_pipeline(self, kind: RequestKind) -> ResiliencePipeline:
        return self._pipelines.for_kind(kind)

    def get_serializer_options(self) -> SerializerOptions:
        return self._serializer_options

    # ── Execution ─────────────────────────────────────────────────────────────

    async def _send_request_internal(
        self,
        builder: UrlBuilderLike,
        kind: Any,
        data: Any,
        response_type: Any,
        default: Any,
        cancel_token: Optional[CancellationToken],
    ) -> HttpResponse[Any]:
        route = self._dispatcher.route(kind)
        state = CallState.IDLE
        url = ""
        try:
            state = CallState.PREPARING_REQUEST
            await self.prepare_request()
            request = self.create_request(builder)
            url = request.url
            state = CallState.ATTACHING
            self._dispatcher.attach(request, route.kind, data)
        except UnknownRequestKindError:
            raise
        except Exception as exc:
            failure_kind = (
                FailureKind.SERIALIZATION
                if isinstance(exc, SerializationError)
                else FailureKind.PRECONDITION
            )
            result = HttpResponse.from_exception(exc, default, kind=failure_kind)
            self.log_response(route.kind, url, result, exc=exc, state=state)
            return result

        return await self.send_request(
            request,
            route.kind,
            data if route.sends_body else None,
            response_type,
            default,
            cancel_token=cancel_token,
        )

    async def send_request(
        self,
        request: OutgoingRequest,
        kind: Any,
        data: Any,
        response_type: Any,
        default: Any,
        *,
        cancel_token: Optional[CancellationToken] = None,
    ) -> HttpResponse[Any]:
        """Serialize once, dispatch inside the kind's pipeline, then classify."""

        route = self._dispatcher.route(kind)
        token = cancel_token.create_child() if cancel_token is not None else CancellationToken()
        state = CallState.ATTACHING
        try:
            body: Optional[bytes] = None
            if route.sends_body and data is not None:
                body = self._serializer.serialize(data, self.get_serializer_options())
            pipeline = self.get_pipeline(route.kind)
            state = CallState.DISPATCHING

            async def _dispatch(attempt_token: CancellationToken) -> RawResponse:
                return await self._dispatcher.dispatch(
                    request, route.kind, body, token=attempt_token
                )

            raw = await pipeline.execute(_dispatch, token=token)
        except UnknownRequestKindError:
            raise
        except Exception as exc:
            result = HttpResponse.from_exception(exc, default, kind=failure_kind_for(exc))
            self.log_response(route.kind, request.url, result, exc=exc, state=state)
            return result

        return self.deserialize_result(raw, route.kind, request.url, response_type, default)

    def deserialize_result(
        self,
        raw: RawResponse,
        kind: RequestKind,
        url: str,
        response_type: Any,
        default: Any,
    ) -> HttpResponse[Any]:
        """Classify ``raw`` into a result wrapper and log it exactly once."""

        status = raw.status_code
        content = raw.content or b""

        if not 200 <= status < 300:
            exc = HttpStatusError(
                status,
                reason=getattr(raw, "reason_phrase", "") or "",
                body_excerpt=make_body_excerpt(content),
            )
            result = HttpResponse.from_exception(exc, default, kind=FailureKind.STATUS)
            self.log_response(kind, url, result, state=CallState.CLASSIFYING)
            return result

        if not content.strip():
            result = HttpResponse.success(default, status_code=status)
            self.log_response(kind, url, result)
            return result

        try:
            value = self._serializer.deserialize(content, response_type, self.get_serializer_options())
        except Exception as exc:
            error = DeserializationError(
                str(exc), status_code=status, body_excerpt=make_body_excerpt(content)
            )
            error.__cause__ = exc
            result = HttpResponse.from_exception(error, default, kind=FailureKind.DESERIALIZATION)
            self.log_response(kind, url, result, state=CallState.CLASSIFYING)
            return result

        result = HttpResponse.success(value, status_code=status)
        self.log_response(kind, url, result)
        return result

    def log_response(
        self,
        kind: RequestKind,
        url: str,
        result: HttpResponse[Any],
        *,
        exc: Optional[BaseException] = None,
        state: Optional[CallState] = None,
    ) -> None:
        """Emit the single outcome record for a call."""

        method = RequestKind(kind).value
        safe_url = redact_url(url) if url else "<unresolved>"
        extra: Dict[str, Any] = {
            "method": method,
            "url": safe_url,
            "status": result.status_code,
            "outcome": CallState.SUCCESS.value if result.is_success else CallState.FAILURE.value,
        }
        if result.is_success:
            self._logger.info(f"{method} {safe_url} -> {result.status_code}", extra=extra)
            return

        extra["failure_kind"] = result.failure_kind.value if result.failure_kind else None
        extra["failed_state"] = state.value if state is not None else None
        extra["error"] = result.error
        if exc is None:
            self._logger.warning(f"{method} {safe_url} failed: {result.error}", extra=extra)
        else:
            self._logger.error(
                f"{method} {safe_url} failed: {result.error}", extra=extra, exc_info=exc
            )

    # ── Resource management ───────────────────────────────────────────────────

    async def aclose(self) -> None:
        """Close the transport if this repository created it."""

        if self._owns_transport:
            close = getattr(self._transport, "aclose", None)
            if close is not None:
                await close()

    async def __aenter__(self) -> "AbstractHttpRepository":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


__all__ = ["AbstractHttpRepository", "failure_kind_for"]
