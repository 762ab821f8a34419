"""Anonymous bag of disposers, flushed one by one or all together."""

from __future__ import annotations

from collections.abc import Callable, Iterable, KeysView
import logging
from typing import TYPE_CHECKING, Any

from . import adapters
from .disposers import Disposer, ErrorHandler, invoke
from .task_manager import TaskManager

if TYPE_CHECKING:
    from .events import EventBus

LOGGER = logging.getLogger(__name__)


def _log_error(error: Exception) -> None:
    LOGGER.error(
        "disposable.disposer.failed",
        extra={
            "event": "disposable.disposer.failed",
            "error_type": type(error).__name__,
            "error": str(error),
        },
        exc_info=error,
    )


class Disposable:
    """Collects disposers without keys; the disposer itself is the handle."""

    def __init__(self, *, on_error: ErrorHandler | None = None) -> None:
        # dict as an insertion-ordered set
        self._disposers: dict[Disposer, None] = {}
        self._on_error = on_error or _log_error
        self._tasks = TaskManager()

    @property
    def disposers(self) -> KeysView[Disposer]:
        return self._disposers.keys()

    def __len__(self) -> int:
        return len(self._disposers)

    def add_disposer(self, disposers: Disposer | Iterable[Disposer]) -> None:
        """Add a disposer or a list of disposers directly."""
        if callable(disposers):
            self._disposers[disposers] = None
            return
        for disposer in disposers:
            self._disposers[disposer] = None

    push = add_disposer

    def add(self, executor: Callable[[], Any]) -> None:
        """Run ``executor`` and keep what it returns. Falsy results are ignored.

        Unlike the keyed managers, the bag has no key to report against, so an
        exception raised by ``executor`` propagates to the caller and nothing
        is added.
        """
        disposers = executor()
        if disposers:
            self.push(disposers)

    def subscribe(
        self, bus: EventBus, event_name: str, handler: Callable[..., Any]
    ) -> Disposer:
        """Sugar for ``bus.subscribe``. Returns the unsubscribe disposer."""
        disposer = adapters.subscription(bus, event_name, handler)()
        self.push(disposer)
        return disposer

    def call_later(self, delay: float, callback: Callable[[], Any]) -> Disposer:
        """Sugar for ``loop.call_later``. Returns the cancel disposer."""
        disposer = adapters.timeout(callback, delay, self.remove)()
        self.push(disposer)
        return disposer

    def call_every(self, period: float, callback: Callable[[], Any]) -> Disposer:
        """Run ``callback`` every ``period`` seconds. Returns the cancel disposer."""
        disposer = adapters.interval(callback, period)()
        self.push(disposer)
        return disposer

    def remove(self, disposer: Disposer) -> None:
        """Remove but not run the disposer. Do nothing if not found."""
        self._disposers.pop(disposer, None)

    def flush(self, disposer: Disposer) -> None:
        """Remove and run the disposer."""
        self.remove(disposer)
        invoke(disposer, self._on_error, self._tasks)

    def flush_all(self) -> None:
        """Remove and run all of the disposers."""
        disposers = list(self._disposers)
        self._disposers.clear()
        for disposer in disposers:
            invoke(disposer, self._on_error, self._tasks)
