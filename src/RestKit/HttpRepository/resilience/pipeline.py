# === NAVMAP v1 ===
# {
#   "module": "RestKit.HttpRepository.resilience.pipeline",
#   "purpose": "Per-kind resilience pipelines: retry, backoff, timeout, circuit breaking, cancellation",
#   "sections": [
#     {"id": "resiliencepolicy", "name": "ResiliencePolicy", "anchor": "class-resiliencepolicy", "kind": "class"},
#     {"id": "resiliencepipeline", "name": "ResiliencePipeline", "anchor": "class-resiliencepipeline", "kind": "class"},
#     {"id": "resiliencepipelineregistry", "name": "ResiliencePipelineRegistry", "anchor": "class-resiliencepipelineregistry", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Resilience pipelines keyed by request kind.

A :class:`ResiliencePipeline` wraps one logical transport call. It owns no
per-call state: every :meth:`ResiliencePipeline.execute` builds its own
Tenacity controller and runs the attempts in a task bound to the call's
:class:`~RestKit.HttpRepository.cancellation.CancellationToken`. When the
total budget (``timeout_s``) elapses the token is cancelled, which cancels the
in-flight attempt, and :class:`~RestKit.HttpRepository.errors.PipelineTimeoutError`
is raised.

The circuit breaker is the only state shared between calls on the same
pipeline; pybreaker serialises its updates.

Example:
    >>> registry = ResiliencePipelineRegistry.default()
    >>> registry.for_kind(RequestKind.GET).policy.max_attempts
    3
    >>> registry.for_kind("POST").policy.max_attempts
    1
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import (
    Any,
    Awaitable,
    Callable,
    FrozenSet,
    Iterator,
    Mapping,
    Optional,
    TypeVar,
)

from ..cancellation import CancellationToken
from ..enums import RequestKind
from ..errors import (
    AttemptTimeoutError,
    HttpStatusError,
    OperationCancelledError,
    PipelineTimeoutError,
    UnknownRequestKindError,
)
from .breakers import BreakerPolicy, CircuitBreakerGate
from .retry import build_retrying

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
Operation = Callable[[CancellationToken], Awaitable[T]]
SleepFn = Callable[[float], Awaitable[Any]]

DEFAULT_RETRY_STATUSES: FrozenSet[int] = frozenset({408, 429, 500, 502, 503, 504})


@dataclass(frozen=True)
class ResiliencePolicy:
    """Execution budget for one request kind.

    Attributes:
        max_attempts: Total attempts including the first (``1`` disables retry).
        backoff_multiplier: Full-jitter exponential backoff multiplier (seconds).
        backoff_max_s: Ceiling for a single backoff sleep.
        timeout_s: Total budget across all attempts and sleeps; ``None`` for unbounded.
        attempt_timeout_s: Budget for a single attempt; ``None`` leaves it to the transport.
        retry_statuses: Response statuses that trigger another attempt.
        retry_on_timeout: Whether transport and attempt timeouts are retried.
        retry_after_cap_s: Upper bound on honoured ``Retry-After`` delays.
        breaker: Circuit breaker settings, or ``None`` to disable breaking.
    """

    max_attempts: int = 1
    backoff_multiplier: float = 0.5
    backoff_max_s: float = 10.0
    timeout_s: Optional[float] = 30.0
    attempt_timeout_s: Optional[float] = None
    retry_statuses: FrozenSet[int] = DEFAULT_RETRY_STATUSES
    retry_on_timeout: bool = True
    retry_after_cap_s: float = 60.0
    breaker: Optional[BreakerPolicy] = field(default_factory=BreakerPolicy)


class ResiliencePipeline:
    """Retry/backoff/timeout/breaker wrapper around one transport call."""

    def __init__(
        self,
        policy: ResiliencePolicy,
        *,
        name: str,
        sleep: Optional[SleepFn] = None,
    ) -> None:
        self.policy = policy
        self.name = name
        self._sleep = sleep
        self._gate = (
            CircuitBreakerGate(policy.breaker, name=name) if policy.breaker is not None else None
        )

    @property
    def breaker(self) -> Optional[CircuitBreakerGate]:
        return self._gate

    async def execute(
        self,
        operation: Operation[T],
        *,
        token: Optional[CancellationToken] = None,
    ) -> T:
        """Run ``operation`` under this pipeline's policy.

        Raises:
            PipelineTimeoutError: The total budget elapsed; the attempt was cancelled.
            OperationCancelledError: ``token`` was cancelled by the caller.
            BreakerOpenError: The breaker rejected the call.
            Exception: The last non-retryable or exhausted attempt error.
        """

        token = token if token is not None else CancellationToken()
        token.raise_if_cancelled()
        retrying = build_retrying(self.policy, name=self.name, sleep=self._sleep)
        runner = asyncio.ensure_future(retrying(self._attempt, operation, token))
        try:
            with token.bind(runner):
                done, _ = await asyncio.wait({runner}, timeout=self.policy.timeout_s)
                if not done:
                    message = f"{self.name} pipeline timed out after {self.policy.timeout_s}s"
                    token.cancel(message)
                    await asyncio.gather(runner, return_exceptions=True)
                    raise PipelineTimeoutError(message, timeout_s=self.policy.timeout_s)
        finally:
            if not runner.done():
                # The caller's own task was cancelled while waiting
                runner.cancel()
        if runner.cancelled():
            raise OperationCancelledError(token.reason or "cancelled")
        return runner.result()

    async def _attempt(self, operation: Operation[T], token: CancellationToken) -> T:
        token.raise_if_cancelled()
        if self._gate is not None:
            self._gate.allow()
        try:
            if self.policy.attempt_timeout_s is not None:
                try:
                    result = await asyncio.wait_for(
                        operation(token), timeout=self.policy.attempt_timeout_s
                    )
                except asyncio.TimeoutError as exc:
                    raise AttemptTimeoutError(
                        f"{self.name} attempt timed out after {self.policy.attempt_timeout_s}s"
                    ) from exc
            else:
                result = await operation(token)
        except Exception as exc:
            if self._gate is not None and self._gate.counts_as_failure(exception=exc):
                self._gate.record_failure(exc)
            raise
        if self._gate is not None:
            status = getattr(result, "status_code", None)
            if self._gate.counts_as_failure(status=status):
                self._gate.record_failure(HttpStatusError(status))
            else:
                self._gate.record_success()
        return result


DEFAULT_POLICIES: Mapping[RequestKind, ResiliencePolicy] = MappingProxyType(
    {
        RequestKind.GET: ResiliencePolicy(max_attempts=3),
        RequestKind.POST: ResiliencePolicy(max_attempts=1),
        RequestKind.PUT: ResiliencePolicy(max_attempts=3),
        RequestKind.PATCH: ResiliencePolicy(max_attempts=1),
        RequestKind.DELETE: ResiliencePolicy(max_attempts=3),
    }
)


class ResiliencePipelineRegistry(Mapping[RequestKind, ResiliencePipeline]):
    """Immutable request kind → pipeline mapping, built once per client."""

    def __init__(self, pipelines: Mapping[RequestKind, ResiliencePipeline]) -> None:
        missing = [kind.value for kind in RequestKind if kind not in pipelines]
        if missing:
            raise ValueError(f"No resilience pipeline configured for: {', '.join(missing)}")
        self._pipelines: Mapping[RequestKind, ResiliencePipeline] = MappingProxyType(
            {RequestKind(kind): pipeline for kind, pipeline in pipelines.items()}
        )

    @classmethod
    def from_policies(
        cls,
        policies: Mapping[RequestKind, ResiliencePolicy],
        *,
        sleep: Optional[SleepFn] = None,
    ) -> "ResiliencePipelineRegistry":
        return cls(
            {
                kind: ResiliencePipeline(policy, name=RequestKind(kind).value, sleep=sleep)
                for kind, policy in policies.items()
            }
        )

    @classmethod
    def default(cls, *, sleep: Optional[SleepFn] = None) -> "ResiliencePipelineRegistry":
        return cls.from_policies(DEFAULT_POLICIES, sleep=sleep)

    def for_kind(self, kind: Any) -> ResiliencePipeline:
        try:
            return self._pipelines[RequestKind(kind)]
        except (ValueError, KeyError) as exc:
            raise UnknownRequestKindError(kind) from exc

    def __getitem__(self, kind: RequestKind) -> ResiliencePipeline:
        return self._pipelines[kind]

    def __iter__(self) -> Iterator[RequestKind]:
        return iter(self._pipelines)

    def __len__(self) -> int:
        return len(self._pipelines)


__all__ = [
    "DEFAULT_POLICIES",
    "DEFAULT_RETRY_STATUSES",
    "ResiliencePolicy",
    "ResiliencePipeline",
    "ResiliencePipelineRegistry",
]
