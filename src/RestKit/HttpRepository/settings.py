# === NAVMAP v1 ===
# {
#   "module": "RestKit.HttpRepository.settings",
#   "purpose": "Environment-backed configuration for transport, serialization, retry, and logging.",
#   "sections": [
#     {"id": "transportsettings", "name": "TransportSettings", "anchor": "class-transportsettings", "kind": "class"},
#     {"id": "serializationsettings", "name": "SerializationSettings", "anchor": "class-serializationsettings", "kind": "class"},
#     {"id": "retrysettings", "name": "RetrySettings", "anchor": "class-retrysettings", "kind": "class"},
#     {"id": "retrytable", "name": "RetryTable", "anchor": "class-retrytable", "kind": "class"},
#     {"id": "loggingsettings", "name": "LoggingSettings", "anchor": "class-loggingsettings", "kind": "class"},
#     {"id": "httprepositorysettings", "name": "HttpRepositorySettings", "anchor": "class-httprepositorysettings", "kind": "class"},
#     {"id": "get-settings", "name": "get_settings", "anchor": "function-get-settings", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Configuration for HTTP repositories.

Settings are read from ``RESTKIT_``-prefixed environment variables with ``__``
separating nested sections, e.g.::

    RESTKIT_TRANSPORT__READ_TIMEOUT=10
    RESTKIT_RETRY__GET__MAX_ATTEMPTS=5
    RESTKIT_SERIALIZATION__NAMING_POLICY=snake

Settings are consumed once, when a repository is constructed: the retry table
becomes an immutable :class:`ResiliencePipelineRegistry` and the serialization
section becomes the client's :class:`SerializerOptions`.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Dict, FrozenSet, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .enums import RequestKind
from .network import policy as net_policy
from .resilience.breakers import BreakerPolicy
from .resilience.pipeline import (
    DEFAULT_RETRY_STATUSES,
    ResiliencePipelineRegistry,
    ResiliencePolicy,
    SleepFn,
)
from .serialization import NamingPolicy, SerializerOptions

__all__ = [
    "TransportSettings",
    "SerializationSettings",
    "RetrySettings",
    "RetryTable",
    "LoggingSettings",
    "HttpRepositorySettings",
    "get_settings",
    "reset_settings",
]


class TransportSettings(BaseModel):
    """Default ``httpx.AsyncClient`` configuration."""

    connect_timeout: float = Field(default=net_policy.HTTP_CONNECT_TIMEOUT, gt=0.0, le=300.0)
    read_timeout: float = Field(default=net_policy.HTTP_READ_TIMEOUT, gt=0.0, le=3600.0)
    write_timeout: float = Field(default=net_policy.HTTP_WRITE_TIMEOUT, gt=0.0, le=3600.0)
    pool_timeout: float = Field(default=net_policy.HTTP_POOL_TIMEOUT, gt=0.0, le=300.0)
    max_connections: int = Field(default=net_policy.MAX_CONNECTIONS, ge=1, le=4096)
    max_keepalive_connections: int = Field(
        default=net_policy.MAX_KEEPALIVE_CONNECTIONS, ge=0, le=4096
    )
    keepalive_expiry: float = Field(default=net_policy.KEEPALIVE_EXPIRY, ge=0.0, le=600.0)
    http2: bool = Field(default=net_policy.HTTP2_ENABLED)
    verify_tls: bool = Field(default=net_policy.TLS_VERIFY_ENABLED)
    follow_redirects: bool = Field(default=net_policy.FOLLOW_REDIRECTS)
    user_agent: Optional[str] = Field(
        default=None, description="User-Agent header; defaults to restkit-http/<version>"
    )

    model_config = {"validate_assignment": True, "extra": "ignore"}


class SerializationSettings(BaseModel):
    """Serializer options fixed once per client."""

    naming_policy: NamingPolicy = Field(default=NamingPolicy.CAMEL)
    ignore_none: bool = Field(default=True, description="Omit null members from request bodies")

    model_config = {"validate_assignment": True, "extra": "ignore"}

    def to_options(self) -> SerializerOptions:
        return SerializerOptions(naming_policy=self.naming_policy, ignore_none=self.ignore_none)


class RetrySettings(BaseModel):
    """Resilience budget for a single request kind."""

    max_attempts: int = Field(default=1, ge=1, le=20)
    backoff_multiplier: float = Field(default=0.5, ge=0.0, le=60.0)
    backoff_max_s: float = Field(default=10.0, ge=0.0, le=600.0)
    timeout_s: Optional[float] = Field(default=30.0, gt=0.0, le=3600.0)
    attempt_timeout_s: Optional[float] = Field(default=None, gt=0.0, le=3600.0)
    retry_statuses: FrozenSet[int] = Field(default=DEFAULT_RETRY_STATUSES)
    retry_on_timeout: bool = Field(default=True)
    retry_after_cap_s: float = Field(default=60.0, ge=0.0, le=3600.0)
    breaker_enabled: bool = Field(default=True)
    breaker_fail_max: int = Field(default=5, ge=1, le=1000)
    breaker_reset_timeout_s: float = Field(default=30.0, gt=0.0, le=3600.0)

    model_config = {"validate_assignment": True, "extra": "ignore"}

    @field_validator("retry_statuses")
    @classmethod
    def validate_statuses(cls, value: FrozenSet[int]) -> FrozenSet[int]:
        """Reject values that are not HTTP status codes."""

        invalid = sorted(status for status in value if not 100 <= status <= 599)
        if invalid:
            raise ValueError(f"retry_statuses must be HTTP status codes, got {invalid}")
        return value

    def to_policy(self) -> ResiliencePolicy:
        breaker = (
            BreakerPolicy(
                fail_max=self.breaker_fail_max,
                reset_timeout_s=self.breaker_reset_timeout_s,
            )
            if self.breaker_enabled
            else None
        )
        return ResiliencePolicy(
            max_attempts=self.max_attempts,
            backoff_multiplier=self.backoff_multiplier,
            backoff_max_s=self.backoff_max_s,
            timeout_s=self.timeout_s,
            attempt_timeout_s=self.attempt_timeout_s,
            retry_statuses=frozenset(self.retry_statuses),
            retry_on_timeout=self.retry_on_timeout,
            retry_after_cap_s=self.retry_after_cap_s,
            breaker=breaker,
        )


class RetryTable(BaseModel):
    """One :class:`RetrySettings` per request kind; idempotent kinds retry by default."""

    get: RetrySettings = Field(default_factory=lambda: RetrySettings(max_attempts=3))
    post: RetrySettings = Field(default_factory=RetrySettings)
    put: RetrySettings = Field(default_factory=lambda: RetrySettings(max_attempts=3))
    patch: RetrySettings = Field(default_factory=RetrySettings)
    delete: RetrySettings = Field(default_factory=lambda: RetrySettings(max_attempts=3))

    model_config = {"validate_assignment": True, "extra": "ignore"}

    def for_kind(self, kind: RequestKind) -> RetrySettings:
        return getattr(self, RequestKind(kind).value.lower())

    def to_policies(self) -> Dict[RequestKind, ResiliencePolicy]:
        return {kind: self.for_kind(kind).to_policy() for kind in RequestKind}


class LoggingSettings(BaseModel):
    """Logging configuration used by :func:`~RestKit.HttpRepository.logging_utils.setup_logging`."""

    level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    json_file: Optional[Path] = Field(default=None, description="Optional JSON-lines log file")

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        """Normalise logging levels and ensure they match the supported set."""

        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR"}
        upper = value.upper()
        if upper not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}")
        return upper

    model_config = {"validate_assignment": True}


class HttpRepositorySettings(BaseSettings):
    """Top-level settings, populated from ``RESTKIT_*`` environment variables."""

    transport: TransportSettings = Field(default_factory=TransportSettings)
    serialization: SerializationSettings = Field(default_factory=SerializationSettings)
    retry: RetryTable = Field(default_factory=RetryTable)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(
        env_prefix="RESTKIT_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    def build_pipelines(self, *, sleep: Optional[SleepFn] = None) -> ResiliencePipelineRegistry:
        """Build the immutable per-kind pipeline registry for one client."""

        return ResiliencePipelineRegistry.from_policies(self.retry.to_policies(), sleep=sleep)

    def serializer_options(self) -> SerializerOptions:
        return self.serialization.to_options()


_SETTINGS: Optional[HttpRepositorySettings] = None
_SETTINGS_LOCK = threading.Lock()


def get_settings() -> HttpRepositorySettings:
    """Return the process-wide settings, reading the environment on first use."""

    global _SETTINGS  # noqa: PLW0603
    with _SETTINGS_LOCK:
        if _SETTINGS is None:
            _SETTINGS = HttpRepositorySettings()
        return _SETTINGS


def reset_settings() -> None:
    """Forget cached settings so the next :func:`get_settings` re-reads the environment."""

    global _SETTINGS  # noqa: PLW0603
    with _SETTINGS_LOCK:
        _SETTINGS = None
