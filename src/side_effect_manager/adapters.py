"""Executors that turn event subscriptions and asyncio timers into side effects.

Each factory returns an executor. Running the executor allocates the resource
and returns the platform's own cancel or unsubscribe callable as the disposer.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .disposers import Disposer
    from .events import EventBus

LOGGER = logging.getLogger(__name__)


def subscription(
    bus: EventBus, event_name: str, handler: Callable[..., Any]
) -> Callable[[], Disposer]:
    """Subscribe ``handler`` to ``event_name`` on ``bus``."""

    def executor() -> Disposer:
        return bus.subscribe(event_name, handler)

    return executor


def timeout(
    callback: Callable[[], Any],
    delay: float,
    on_fire: Callable[[Disposer], None] | None = None,
) -> Callable[[], Disposer]:
    """Run ``callback`` once after ``delay`` seconds.

    ``on_fire`` receives the timer's own disposer right before ``callback``
    runs, so the owner can forget a timer that no longer needs cancelling.
    """

    def executor() -> Disposer:
        loop = asyncio.get_running_loop()

        def fire() -> None:
            if on_fire is not None:
                on_fire(disposer)
            try:
                callback()
            except Exception as exc:
                LOGGER.error(
                    "timeout.callback.failed",
                    extra={
                        "event": "timeout.callback.failed",
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                    },
                    exc_info=exc,
                )

        handle = loop.call_later(delay, fire)
        disposer = handle.cancel
        return disposer

    return executor


def interval(callback: Callable[[], Any], period: float) -> Callable[[], Disposer]:
    """Run ``callback`` every ``period`` seconds until disposed."""
    if period <= 0:
        raise ValueError("period must be positive.")

    async def tick() -> None:
        while True:
            await asyncio.sleep(period)
            try:
                callback()
            except Exception as exc:
                LOGGER.error(
                    "interval.callback.failed",
                    extra={
                        "event": "interval.callback.failed",
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                    },
                    exc_info=exc,
                )

    def executor() -> Disposer:
        task = asyncio.get_running_loop().create_task(tick())
        return task.cancel

    return executor
