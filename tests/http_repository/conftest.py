"""Fixtures for the HTTP repository suite."""

from __future__ import annotations

import itertools
import logging
from typing import Generator, Tuple

import pytest

from tests.http_repository.support import CapturingHandler

_logger_ids = itertools.count()


@pytest.fixture
def capture_logger() -> Generator[Tuple[logging.Logger, CapturingHandler], None, None]:
    """Isolated logger plus the handler collecting its records."""
    logger = logging.getLogger(f"tests.http_repository.capture.{next(_logger_ids)}")
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    handler = CapturingHandler()
    logger.addHandler(handler)
    yield logger, handler
    logger.removeHandler(handler)
