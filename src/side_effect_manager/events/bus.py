"""In-process event bus whose subscriptions are disposable.

Usage:
    bus = EventBus()

    async def on_file_changed(event):
        print(f"File changed: {event.data['file']}")

    unsubscribe = bus.subscribe("file.changed", on_file_changed)
    await bus.publish("file.changed", {"file": "/path/to/file"})
    unsubscribe()
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import inspect
import logging
from typing import Any

LOGGER = logging.getLogger(__name__)


@dataclass
class Event:
    """Event data container."""

    name: str
    data: dict[str, Any]
    source: str | None = None


class EventBus:
    """Simple publish/subscribe bus.

    ``subscribe`` hands back the matching unsubscribe callable, which is
    exactly the disposer shape the side effect managers store.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Callable]] = {}

    def subscribe(self, event_name: str, handler: Callable) -> Callable[[], None]:
        """Subscribe to an event.

        Args:
            event_name: Event to listen for (e.g., "file.changed")
            handler: Sync or async function called with each ``Event``

        Returns:
            A callable that removes this subscription.
        """
        self._subscribers.setdefault(event_name, []).append(handler)
        LOGGER.debug(f"Subscribed to event: {event_name}")

        def unsubscribe() -> None:
            self.unsubscribe(event_name, handler)

        return unsubscribe

    def unsubscribe(self, event_name: str, handler: Callable) -> None:
        """Unsubscribe from an event. Unknown handlers are ignored."""
        handlers = self._subscribers.get(event_name)
        if not handlers:
            return
        try:
            handlers.remove(handler)
        except ValueError:
            return
        LOGGER.debug(f"Unsubscribed from event: {event_name}")
        if not handlers:
            del self._subscribers[event_name]

    def subscriber_count(self, event_name: str) -> int:
        return len(self._subscribers.get(event_name, ()))

    async def publish(
        self, event_name: str, data: dict[str, Any], source: str | None = None
    ) -> int:
        """Deliver an ``Event`` to every current subscriber, in order.

        A failing handler is logged and skipped. Handlers that subscribe or
        unsubscribe while the event is being delivered take effect from the
        next publish.

        Returns:
            The number of handlers that completed without raising.
        """
        event = Event(name=event_name, data=data, source=source)
        delivered = 0
        for handler in tuple(self._subscribers.get(event_name, ())):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                LOGGER.error(
                    "event.handler.failed",
                    extra={
                        "event": "event.handler.failed",
                        "event_name": event_name,
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                    },
                    exc_info=exc,
                )
            else:
                delivered += 1
        return delivered

    def clear(self, event_name: str | None = None) -> None:
        """Drop the subscribers of ``event_name``, or of every event."""
        if event_name is None:
            self._subscribers.clear()
        else:
            self._subscribers.pop(event_name, None)
