"""Resilience pipelines (retry, backoff, timeout, circuit breaking) keyed by request kind."""

from .breakers import BreakerPolicy, CircuitBreakerGate
from .pipeline import (
    DEFAULT_POLICIES,
    DEFAULT_RETRY_STATUSES,
    ResiliencePipeline,
    ResiliencePipelineRegistry,
    ResiliencePolicy,
)
from .retry import RetryAfterOrBackoff, build_retrying, is_transient_exception, parse_retry_after

__all__ = [
    "BreakerPolicy",
    "CircuitBreakerGate",
    "DEFAULT_POLICIES",
    "DEFAULT_RETRY_STATUSES",
    "ResiliencePipeline",
    "ResiliencePipelineRegistry",
    "ResiliencePolicy",
    "RetryAfterOrBackoff",
    "build_retrying",
    "is_transient_exception",
    "parse_retry_after",
]
