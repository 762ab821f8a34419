"""Keeps fire-and-forget asyncio tasks alive until they finish."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
import logging
from typing import Any

LOGGER = logging.getLogger(__name__)


class TaskManager:
    """Hold strong references to background tasks.

    The event loop only keeps weak references to tasks, so a task nobody
    awaits can be garbage collected mid-flight. Tracked tasks drop out of the
    set by themselves once they complete.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def add(self, task: asyncio.Task[Any]) -> None:
        """Track ``task`` until it completes."""
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        task.add_done_callback(self._log_exception)

    def spawn(
        self, coro: Coroutine[Any, Any, Any], name: str | None = None
    ) -> asyncio.Task[Any]:
        """Schedule ``coro`` on the running loop and track the task."""
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self.add(task)
        return task

    def _log_exception(self, task: asyncio.Task[Any]) -> None:
        """Log unhandled exceptions so they are not silently lost."""
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.warning(
                "task.background.exception",
                extra={
                    "event": "task.background.exception",
                    "task": task.get_name(),
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
