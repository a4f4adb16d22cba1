"""Structured logging helpers shared across the HTTP repository components."""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

__all__ = ["JSONFormatter", "mask_sensitive_data", "redact_url", "setup_logging"]

LOGGER_NAME = "RestKit.HttpRepository"

_SENSITIVE_KEYS = {
    "authorization",
    "proxy-authorization",
    "api_key",
    "apikey",
    "x-api-key",
    "token",
    "access_token",
    "refresh_token",
    "secret",
    "password",
    "cookie",
    "set-cookie",
}
_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9+/=_-]{32,}$")
_BEARER_PATTERN = re.compile(r"^(Bearer|Basic|Token)\s+\S+$", re.IGNORECASE)

# Attributes every LogRecord carries; anything else arrived through ``extra=``
_RESERVED_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def mask_sensitive_data(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``payload`` with common secret fields masked."""

    def _mask_value(value: Any, key_hint: Optional[str] = None) -> Any:
        if isinstance(value, dict):
            return {
                sub_key: _mask_value(sub_value, str(sub_key).lower())
                for sub_key, sub_value in value.items()
            }
        if isinstance(value, (list, tuple)):
            masked = [_mask_value(item, key_hint) for item in value]
            return masked if isinstance(value, list) else tuple(masked)
        if key_hint in _SENSITIVE_KEYS:
            return "***masked***"
        if isinstance(value, str) and (
            _BEARER_PATTERN.match(value) or _TOKEN_PATTERN.match(value)
        ):
            return "***masked***"
        return value

    return {key: _mask_value(value, str(key).lower()) for key, value in payload.items()}


def redact_url(url: str) -> str:
    """Strip query string, fragment, and userinfo from ``url``.

    Examples:
        >>> redact_url("https://user:pw@api.example.com/v1/items?api_key=abc#top")
        'https://api.example.com/v1/items'
    """

    try:
        parts = urlsplit(url)
        host = parts.hostname or ""
        port = parts.port
    except ValueError:
        return "[URL_REDACTION_FAILED]"
    if ":" in host:
        host = f"[{host}]"
    netloc = f"{host}:{port}" if port is not None else host
    return urlunsplit((parts.scheme, netloc, parts.path, "", ""))


class JSONFormatter(logging.Formatter):
    """Formatter emitting masked JSON log entries for repository calls."""

    def format(self, record: logging.LogRecord) -> str:
        """Render ``record`` as a JSON string including ``extra`` fields."""

        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(mask_sensitive_data(payload), default=str)


def setup_logging(
    *,
    level: str = "INFO",
    json_file: Optional[Path] = None,
    propagate: bool = False,
) -> logging.Logger:
    """Configure console logging and an optional JSON-lines file handler."""

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        if getattr(handler, "_restkit_managed", False):
            logger.removeHandler(handler)
            if isinstance(handler, logging.StreamHandler):
                stream = getattr(handler, "stream", None)
                if stream in (sys.stdout, sys.stderr):
                    continue
            handler.close()

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    stream_handler._restkit_managed = True  # type: ignore[attr-defined]
    logger.addHandler(stream_handler)

    if json_file is not None:
        json_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(json_file, encoding="utf-8")
        file_handler.setFormatter(JSONFormatter())
        file_handler._restkit_managed = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)

    logger.propagate = propagate
    return logger
