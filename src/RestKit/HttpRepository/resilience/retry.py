# === NAVMAP v1 ===
# {
#   "module": "RestKit.HttpRepository.resilience.retry",
#   "purpose": "Tenacity retry controller, transient-failure predicates, and Retry-After aware waits.",
#   "sections": [
#     {"id": "parse-retry-after", "name": "parse_retry_after", "anchor": "function-parse-retry-after", "kind": "function"},
#     {"id": "retryafterorbackoff", "name": "RetryAfterOrBackoff", "anchor": "class-retryafterorbackoff", "kind": "class"},
#     {"id": "is-transient-exception", "name": "is_transient_exception", "anchor": "function-is-transient-exception", "kind": "function"},
#     {"id": "build-retrying", "name": "build_retrying", "anchor": "function-build-retrying", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Retry decisions for the resilience pipeline.

Retry is keyed by request kind (through the policy's attempt budget) AND by
failure class. Only transient failures are retried:

- ``httpx`` transport errors (connect/read/write/remote protocol)
- timeouts, when the policy enables ``retry_on_timeout``
- responses whose status is in the policy's ``retry_statuses``

Cancellation, open breakers, and anything else propagate after the first
attempt. When the attempt budget is spent on a retryable status, the last
response is returned so the classifier reports the real status.
"""

from __future__ import annotations

import email.utils
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    before_sleep_log,
    retry_if_exception,
    retry_if_result,
    stop_after_attempt,
    wait_random_exponential,
)
from tenacity.wait import wait_base

from ..errors import AttemptTimeoutError, BreakerOpenError, OperationCancelledError

if TYPE_CHECKING:  # pragma: no cover
    from .pipeline import ResiliencePolicy

LOGGER = logging.getLogger(__name__)

_NEVER_RETRIED = (
    BreakerOpenError,
    OperationCancelledError,
    httpx.UnsupportedProtocol,
    httpx.LocalProtocolError,
    httpx.ProxyError,
)


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Convert a Retry-After header value into a delay in seconds.

    Examples:
        >>> parse_retry_after("3")
        3.0
        >>> parse_retry_after("soon") is None
        True
    """
    if not value:
        return None

    try:
        delay = float(int(value.strip()))
    except ValueError:
        try:
            dt = email.utils.parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        delay = (dt - datetime.now(timezone.utc)).total_seconds()

    return max(0.0, delay)


class RetryAfterOrBackoff(wait_base):
    """Wait strategy that honours Retry-After before falling back to backoff."""

    def __init__(self, fallback_wait: wait_base, cap_s: float) -> None:
        self._fallback_wait = fallback_wait
        self._cap_s = cap_s

    def __call__(self, retry_state: RetryCallState) -> float:
        delay = self._retry_after_delay(retry_state)
        if delay is not None:
            return min(delay, float(self._cap_s))
        return float(self._fallback_wait(retry_state))

    def _retry_after_delay(self, retry_state: RetryCallState) -> Optional[float]:
        outcome = retry_state.outcome
        if outcome is None or outcome.failed:
            return None
        headers = getattr(outcome.result(), "headers", None)
        if headers is None:
            return None
        return parse_retry_after(headers.get("Retry-After"))


def is_transient_exception(exc: BaseException, *, retry_on_timeout: bool = True) -> bool:
    """Return ``True`` when ``exc`` is worth another attempt."""

    if isinstance(exc, _NEVER_RETRIED):
        return False
    if isinstance(exc, (httpx.TimeoutException, AttemptTimeoutError)):
        return retry_on_timeout
    return isinstance(exc, httpx.TransportError)


def build_retrying(
    policy: "ResiliencePolicy",
    *,
    name: str,
    sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
) -> AsyncRetrying:
    """Create the Tenacity controller for one pipeline.

    Args:
        policy: Attempt budget, backoff, and retryable statuses.
        name: Pipeline name used in retry log records.
        sleep: Async sleep to use between attempts (tests pass a no-op).

    Returns:
        ``AsyncRetrying`` that re-raises the last exception and returns the
        last response once the attempt budget is exhausted.
    """

    retry_statuses = frozenset(policy.retry_statuses)

    def _retry_on_exception(exc: BaseException) -> bool:
        return is_transient_exception(exc, retry_on_timeout=policy.retry_on_timeout)

    def _retry_on_status(response: Any) -> bool:
        return getattr(response, "status_code", None) in retry_statuses

    def _give_up(retry_state: RetryCallState) -> Any:
        # Exhausted: surface the last outcome unchanged
        return retry_state.outcome.result()

    wait_strategy = RetryAfterOrBackoff(
        fallback_wait=wait_random_exponential(
            multiplier=policy.backoff_multiplier,
            max=policy.backoff_max_s,
        ),
        cap_s=policy.retry_after_cap_s,
    )

    kwargs: dict[str, Any] = {}
    if sleep is not None:
        kwargs["sleep"] = sleep

    return AsyncRetrying(
        stop=stop_after_attempt(max(1, policy.max_attempts)),
        wait=wait_strategy,
        retry=retry_if_exception(_retry_on_exception) | retry_if_result(_retry_on_status),
        before_sleep=before_sleep_log(logging.getLogger(f"{__name__}.{name}"), logging.DEBUG),
        retry_error_callback=_give_up,
        reraise=True,
        **kwargs,
    )


__all__ = [
    "parse_retry_after",
    "RetryAfterOrBackoff",
    "is_transient_exception",
    "build_retrying",
]
