"""Rendering-context dispatch queue."""

from __future__ import annotations

import queue
import threading
from collections.abc import Callable
from typing import Any

from live_detect.core.logging import get_logger

logger = get_logger(__name__)


class RenderContext:
    """Work queue executed on the single thread allowed to touch overlay state.

    Any thread may ``post``; only the thread that first calls ``drain``
    (normally the UI loop) runs the posted work.
    """

    def __init__(self) -> None:
        self._queue: queue.SimpleQueue[tuple[Callable[..., Any], tuple[Any, ...]]] = (
            queue.SimpleQueue()
        )
        self._owner: int | None = None

    @property
    def pending(self) -> int:
        """Approximate number of queued work items."""
        return self._queue.qsize()

    def is_current(self) -> bool:
        """True when called on the rendering thread."""
        return self._owner is not None and self._owner == threading.get_ident()

    def post(self, fn: Callable[..., Any], *args: Any) -> None:
        """Queue ``fn(*args)`` for the rendering thread."""
        self._queue.put((fn, args))

    def drain(self, max_items: int | None = None) -> int:
        """Run queued work on the calling thread.

        Args:
            max_items: Stop after this many items (all queued items if None)

        Returns:
            Number of items executed

        Raises:
            RuntimeError: If called from a thread other than the rendering thread
        """
        ident = threading.get_ident()
        if self._owner is None:
            self._owner = ident
        elif self._owner != ident:
            raise RuntimeError("RenderContext drained from a foreign thread")

        executed = 0
        while max_items is None or executed < max_items:
            try:
                fn, args = self._queue.get_nowait()
            except queue.Empty:
                break
            try:
                fn(*args)
            except Exception:
                logger.exception("Render task %r failed", fn)
            executed += 1
        return executed
