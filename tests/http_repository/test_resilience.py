"""Tests for retry predicates, Retry-After waits, breakers, and pipelines."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from typing import List

import httpx
import pytest

from RestKit.HttpRepository import (
    AttemptTimeoutError,
    BreakerOpenError,
    BreakerPolicy,
    CancellationToken,
    OperationCancelledError,
    PipelineTimeoutError,
    RequestKind,
    ResiliencePipeline,
    ResiliencePipelineRegistry,
    ResiliencePolicy,
    UnknownRequestKindError,
)
from RestKit.HttpRepository.resilience import (
    CircuitBreakerGate,
    is_transient_exception,
    parse_retry_after,
)


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class Scripted:
    """Operation returning or raising scripted outcomes in order."""

    def __init__(self, *outcomes) -> None:
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self, token: CancellationToken):
        outcome = self.outcomes[min(self.calls, len(self.outcomes) - 1)]
        self.calls += 1
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def _pipeline(sleep=None, **policy) -> ResiliencePipeline:
    policy.setdefault("breaker", None)
    return ResiliencePipeline(ResiliencePolicy(**policy), name="test", sleep=sleep or SleepRecorder())


class TestParseRetryAfter:
    def test_integer_seconds(self):
        assert parse_retry_after("7") == 7.0

    def test_http_date(self):
        future = datetime.now(timezone.utc) + timedelta(seconds=30)
        delay = parse_retry_after(format_datetime(future, usegmt=True))
        assert 25.0 <= delay <= 30.0

    def test_past_date_clamps_to_zero(self):
        past = datetime.now(timezone.utc) - timedelta(minutes=5)
        assert parse_retry_after(format_datetime(past, usegmt=True)) == 0.0

    @pytest.mark.parametrize("value", [None, "", "later", "-"])
    def test_unparseable(self, value):
        assert parse_retry_after(value) is None


class TestTransientClassification:
    @pytest.mark.parametrize(
        "exc",
        [
            httpx.ConnectError("refused"),
            httpx.ReadError("reset"),
            httpx.RemoteProtocolError("eof"),
            httpx.ReadTimeout("slow"),
            AttemptTimeoutError("slow"),
        ],
    )
    def test_transient(self, exc):
        assert is_transient_exception(exc) is True

    @pytest.mark.parametrize(
        "exc",
        [
            BreakerOpenError("open"),
            OperationCancelledError("stop"),
            httpx.UnsupportedProtocol("ftp"),
            httpx.LocalProtocolError("bad header"),
            ValueError("bug"),
        ],
    )
    def test_not_transient(self, exc):
        assert is_transient_exception(exc) is False

    def test_timeouts_respect_policy_flag(self):
        assert is_transient_exception(httpx.ConnectTimeout("t"), retry_on_timeout=False) is False


class TestResiliencePipeline:
    """Retry, wait, timeout, and cancellation behaviour of one pipeline."""

    def test_retries_retryable_status_then_returns_success(self):
        operation = Scripted(httpx.Response(503), httpx.Response(200))
        pipeline = _pipeline(max_attempts=3)

        result = asyncio.run(pipeline.execute(operation))

        assert result.status_code == 200
        assert operation.calls == 2

    def test_honours_retry_after_header(self):
        sleep = SleepRecorder()
        operation = Scripted(httpx.Response(429, headers={"Retry-After": "2"}), httpx.Response(200))
        pipeline = _pipeline(sleep=sleep, max_attempts=2)

        asyncio.run(pipeline.execute(operation))

        assert sleep.delays == [2.0]

    def test_retry_after_is_capped(self):
        sleep = SleepRecorder()
        operation = Scripted(httpx.Response(503, headers={"Retry-After": "600"}), httpx.Response(200))
        pipeline = _pipeline(sleep=sleep, max_attempts=2, retry_after_cap_s=5.0)

        asyncio.run(pipeline.execute(operation))

        assert sleep.delays == [5.0]

    def test_backoff_stays_within_ceiling(self):
        sleep = SleepRecorder()
        operation = Scripted(httpx.ConnectError("refused"))
        pipeline = _pipeline(sleep=sleep, max_attempts=4, backoff_multiplier=1.0, backoff_max_s=2.0)

        with pytest.raises(httpx.ConnectError):
            asyncio.run(pipeline.execute(operation))

        assert operation.calls == 4
        assert len(sleep.delays) == 3
        assert all(0.0 <= delay <= 2.0 for delay in sleep.delays)

    def test_exhausted_status_returns_last_response(self):
        operation = Scripted(httpx.Response(500), httpx.Response(502))
        pipeline = _pipeline(max_attempts=2)

        result = asyncio.run(pipeline.execute(operation))

        assert result.status_code == 502

    def test_single_attempt_policy_does_not_retry(self):
        operation = Scripted(httpx.ConnectError("refused"), httpx.Response(200))
        pipeline = _pipeline(max_attempts=1)

        with pytest.raises(httpx.ConnectError):
            asyncio.run(pipeline.execute(operation))

        assert operation.calls == 1

    def test_attempt_timeout_is_retried(self):
        class SlowThenFast:
            calls = 0

            async def __call__(self, token):
                self.calls += 1
                if self.calls == 1:
                    await asyncio.sleep(1.0)
                return httpx.Response(200)

        operation = SlowThenFast()
        pipeline = _pipeline(max_attempts=2, attempt_timeout_s=0.02)

        result = asyncio.run(pipeline.execute(operation))

        assert result.status_code == 200
        assert operation.calls == 2

    def test_total_timeout_cancels_attempt(self):
        cancelled = []

        async def _hang(token):
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.append(True)
                raise

        token = CancellationToken()
        pipeline = _pipeline(timeout_s=0.05)

        with pytest.raises(PipelineTimeoutError) as excinfo:
            asyncio.run(pipeline.execute(_hang, token=token))

        assert excinfo.value.timeout_s == 0.05
        assert cancelled == [True]
        assert token.is_cancelled() is True

    def test_pre_cancelled_token_skips_operation(self):
        operation = Scripted(httpx.Response(200))
        token = CancellationToken()
        token.cancel("shutdown")

        with pytest.raises(OperationCancelledError, match="shutdown"):
            asyncio.run(_pipeline().execute(operation, token=token))

        assert operation.calls == 0

    def test_cancellation_during_backoff_stops_retries(self):
        token = CancellationToken()

        async def _cancelling_sleep(seconds: float) -> None:
            token.cancel("stop")
            await asyncio.sleep(0)

        operation = Scripted(httpx.Response(503), httpx.Response(200))
        pipeline = _pipeline(sleep=_cancelling_sleep, max_attempts=3)

        with pytest.raises(OperationCancelledError):
            asyncio.run(pipeline.execute(operation, token=token))

        assert operation.calls == 1


class TestCircuitBreakerGate:
    def test_opens_after_fail_max_and_reports_remaining(self):
        now = [100.0]
        gate = CircuitBreakerGate(
            BreakerPolicy(fail_max=2, reset_timeout_s=10.0), name="GET", clock=lambda: now[0]
        )

        gate.record_failure(httpx.ConnectError("refused"))
        gate.allow()
        gate.record_failure(httpx.ConnectError("refused"))

        assert gate.state == "open"
        now[0] += 4.0
        with pytest.raises(BreakerOpenError, match="remaining_ms=6000"):
            gate.allow()

    def test_allows_probe_after_cooldown(self):
        now = [0.0]
        gate = CircuitBreakerGate(
            BreakerPolicy(fail_max=1, reset_timeout_s=5.0), name="PUT", clock=lambda: now[0]
        )
        gate.record_failure(httpx.ReadError("reset"))

        now[0] += 5.5
        gate.allow()

    def test_success_resets_failure_count(self):
        gate = CircuitBreakerGate(BreakerPolicy(fail_max=2), name="DELETE")

        gate.record_failure(httpx.ConnectError("refused"))
        gate.record_success()
        gate.record_failure(httpx.ConnectError("refused"))

        assert gate.state == "closed"

    def test_failure_classification(self):
        gate = CircuitBreakerGate(BreakerPolicy(), name="GET")

        assert gate.counts_as_failure(status=503) is True
        assert gate.counts_as_failure(status=404) is False
        assert gate.counts_as_failure(exception=httpx.ConnectError("x")) is True
        assert gate.counts_as_failure(exception=ValueError("x")) is False


class TestPipelineRegistry:
    def test_default_policies_by_kind(self):
        registry = ResiliencePipelineRegistry.default()

        assert registry.for_kind(RequestKind.GET).policy.max_attempts == 3
        assert registry.for_kind(RequestKind.PUT).policy.max_attempts == 3
        assert registry.for_kind(RequestKind.DELETE).policy.max_attempts == 3
        assert registry.for_kind(RequestKind.POST).policy.max_attempts == 1
        assert registry.for_kind(RequestKind.PATCH).policy.max_attempts == 1
        assert len(registry) == len(RequestKind)

    def test_pipelines_are_distinct_per_kind(self):
        registry = ResiliencePipelineRegistry.default()

        assert registry[RequestKind.GET].breaker is not registry[RequestKind.DELETE].breaker

    def test_missing_kind_is_rejected(self):
        policies = {RequestKind.GET: ResiliencePolicy()}

        with pytest.raises(ValueError, match="POST"):
            ResiliencePipelineRegistry.from_policies(policies)

    def test_unknown_kind_lookup_raises(self):
        registry = ResiliencePipelineRegistry.default()

        with pytest.raises(UnknownRequestKindError):
            registry.for_kind("OPTIONS")
