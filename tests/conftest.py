# === NAVMAP v1 ===
# {
#   "module": "tests.conftest",
#   "purpose": "Shared pytest fixtures for suite",
#   "sections": [
#     {
#       "id": "isolate-settings",
#       "name": "isolate_settings",
#       "anchor": "function-isolate-settings",
#       "kind": "function"
#     },
#     {
#       "id": "restore-package-logger",
#       "name": "restore_package_logger",
#       "anchor": "function-restore-package-logger",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""
Pytest Configuration

This module configures shared pytest behaviour: it puts ``src`` on
``sys.path`` for runs without an editable install, keeps cached settings from
leaking between tests, and undoes logging handlers installed by the CLI.

Usage:
    pytest tests/http_repository -q
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Generator

import pytest

# --- Globals ---

ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from RestKit.HttpRepository.logging_utils import LOGGER_NAME  # noqa: E402
from RestKit.HttpRepository.settings import reset_settings  # noqa: E402

# --- Fixtures ---


@pytest.fixture(autouse=True)
def isolate_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Drop RESTKIT_* variables and cached settings around each test."""

    import os

    for name in list(os.environ):
        if name.upper().startswith("RESTKIT_"):
            monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture(autouse=True)
def restore_package_logger() -> Generator[None, None, None]:
    """Remove handlers that ``setup_logging`` attached during a test."""

    logger = logging.getLogger(LOGGER_NAME)
    level, propagate = logger.level, logger.propagate
    yield
    for handler in list(logger.handlers):
        if getattr(handler, "_restkit_managed", False):
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)
    logger.propagate = propagate
