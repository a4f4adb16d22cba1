"""Cancellation tokens shared by repository calls and resilience pipelines.

Each repository call owns exactly one :class:`CancellationToken`. The
resilience pipeline binds the task running the transport attempts to that
token, so that a pipeline timeout or an external ``cancel()`` aborts the
in-flight attempt instead of abandoning it. Callers that want to cancel a
batch of calls hand the same parent token to each call; every call derives a
child token from it, so a pipeline timeout on one call never cancels the
others.
"""

from __future__ import annotations

import asyncio
import threading
import weakref
from contextlib import contextmanager
from typing import Iterator, Optional

from .errors import OperationCancelledError


class CancellationToken:
    """Thread-safe cancellation token that can cancel bound asyncio tasks.

    Examples:
        >>> token = CancellationToken()
        >>> child = token.create_child()
        >>> token.cancel("shutdown")
        >>> child.is_cancelled(), child.reason
        (True, 'shutdown')
    """

    def __init__(self) -> None:
        self._is_cancelled = threading.Event()
        self._lock = threading.Lock()
        self._reason: Optional[str] = None
        self._tasks: set[asyncio.Task] = set()
        self._children: "weakref.WeakSet[CancellationToken]" = weakref.WeakSet()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        """Signal cancellation, cancelling bound tasks and child tokens."""

        with self._lock:
            if self._is_cancelled.is_set():
                return
            self._reason = reason
            self._is_cancelled.set()
            tasks = list(self._tasks)
            children = list(self._children)
        for task in tasks:
            _cancel_task(task)
        for child in children:
            child.cancel(reason)

    def is_cancelled(self) -> bool:
        return self._is_cancelled.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise :class:`OperationCancelledError` when cancellation was requested."""

        if self._is_cancelled.is_set():
            raise OperationCancelledError(self._reason or "cancelled")

    def create_child(self) -> "CancellationToken":
        """Create a token that is cancelled whenever this token is."""

        child = CancellationToken()
        with self._lock:
            cancelled = self._is_cancelled.is_set()
            if not cancelled:
                self._children.add(child)
        if cancelled:
            child.cancel(self._reason or "cancelled")
        return child

    @contextmanager
    def bind(self, task: asyncio.Task) -> Iterator[asyncio.Task]:
        """Cancel ``task`` if this token is cancelled while the block runs."""

        with self._lock:
            cancelled = self._is_cancelled.is_set()
            if not cancelled:
                self._tasks.add(task)
        if cancelled:
            _cancel_task(task)
        try:
            yield task
        finally:
            with self._lock:
                self._tasks.discard(task)

    def reset(self) -> None:
        """Return the token to its initial state (tests only)."""

        with self._lock:
            self._is_cancelled.clear()
            self._reason = None


def _cancel_task(task: asyncio.Task) -> None:
    if task.done():
        return
    loop = task.get_loop()
    try:
        running = asyncio.get_running_loop()
    except RuntimeError:
        running = None
    if running is loop:
        task.cancel()
    else:
        loop.call_soon_threadsafe(task.cancel)


__all__ = ["CancellationToken"]
