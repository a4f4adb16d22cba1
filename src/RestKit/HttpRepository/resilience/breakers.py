# === NAVMAP v1 ===
# {
#   "module": "RestKit.HttpRepository.resilience.breakers",
#   "purpose": "Per-request-kind circuit breaker gate built on pybreaker",
#   "sections": [
#     {"id": "breakerpolicy", "name": "BreakerPolicy", "anchor": "class-breakerpolicy", "kind": "class"},
#     {"id": "circuitbreakergate", "name": "CircuitBreakerGate", "anchor": "class-circuitbreakergate", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Circuit breaker gate for one resilience pipeline.

Each pipeline owns one gate wrapping a ``pybreaker.CircuitBreaker``. The gate
is consulted before every attempt (:meth:`CircuitBreakerGate.allow`) and is
told the attempt's outcome afterwards. Only transient failures and statuses in
``failure_statuses`` count against the breaker; a 404 or a validation error is
the caller's problem, not the remote service's.

Typical usage:
    gate = CircuitBreakerGate(BreakerPolicy(fail_max=5, reset_timeout_s=30), name="GET")
    gate.allow()                  # raises BreakerOpenError while open
    ...
    gate.record_failure(exc)      # or gate.record_success()
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, Optional

import pybreaker

from ..errors import BreakerOpenError
from .retry import is_transient_exception

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class BreakerPolicy:
    """Trip threshold and cooldown for one breaker."""

    fail_max: int = 5
    reset_timeout_s: float = 30.0
    failure_statuses: FrozenSet[int] = field(
        default_factory=lambda: frozenset({429, 500, 502, 503, 504})
    )


class _OpenedAtListener(pybreaker.CircuitBreakerListener):
    """Records when the breaker last opened and logs transitions."""

    def __init__(self, gate: "CircuitBreakerGate") -> None:
        self._gate = gate

    def state_change(self, cb, old_state, new_state) -> None:  # type: ignore[override]
        new_name = getattr(new_state, "name", str(new_state))
        if new_name == pybreaker.STATE_OPEN:
            self._gate._opened_at = self._gate._clock()
        LOGGER.warning(
            "circuit breaker state change",
            extra={
                "breaker": self._gate.name,
                "old_state": getattr(old_state, "name", str(old_state)),
                "new_state": new_name,
            },
        )


def _raise(exc: BaseException) -> None:
    raise exc


class CircuitBreakerGate:
    """Thread-safe pre-flight check and outcome recorder around pybreaker."""

    def __init__(
        self,
        policy: BreakerPolicy,
        *,
        name: str,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.policy = policy
        self.name = name
        self._clock = clock
        self._opened_at: Optional[float] = None
        self._lock = threading.Lock()
        self._breaker = pybreaker.CircuitBreaker(
            fail_max=policy.fail_max,
            reset_timeout=policy.reset_timeout_s,
            listeners=[_OpenedAtListener(self)],
            name=name,
        )

    @property
    def state(self) -> str:
        return self._breaker.current_state

    def allow(self) -> None:
        """Raise :class:`BreakerOpenError` while the breaker is open and cooling down."""

        with self._lock:
            if self._breaker.current_state != pybreaker.STATE_OPEN:
                return
            opened_at = self._opened_at if self._opened_at is not None else self._clock()
            remaining = self.policy.reset_timeout_s - (self._clock() - opened_at)
        if remaining > 0:
            raise BreakerOpenError(
                f"breaker={self.name} state=open remaining_ms={int(remaining * 1000)}"
            )

    def counts_as_failure(
        self, *, status: Optional[int] = None, exception: Optional[BaseException] = None
    ) -> bool:
        if exception is not None:
            return is_transient_exception(exception)
        return status is not None and status in self.policy.failure_statuses

    def record_success(self) -> None:
        with self._lock:
            try:
                self._breaker.call(lambda: None)
            except pybreaker.CircuitBreakerError:
                # Still cooling down; the success is not counted
                pass

    def record_failure(self, exc: BaseException) -> None:
        with self._lock:
            try:
                self._breaker.call(_raise, exc)
            except pybreaker.CircuitBreakerError:
                pass
            except BaseException as replayed:
                if replayed is not exc:
                    raise


__all__ = ["BreakerPolicy", "CircuitBreakerGate"]
