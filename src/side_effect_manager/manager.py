"""Synchronous keyed side effect registry."""

from __future__ import annotations

from collections.abc import Callable, Mapping
import functools
import inspect
import logging
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from . import adapters
from .disposers import (
    Disposer,
    ErrorReporter,
    Executor,
    invoke,
    normalize_result,
    report_failure,
    to_disposer,
)
from .exceptions import InvalidExecutorResultError
from .task_manager import TaskManager
from .uid import gen_uid

if TYPE_CHECKING:
    from .events import EventBus

LOGGER = logging.getLogger(__name__)


class SideEffectManager:
    """Keyed registry of side effects whose setup and teardown are synchronous.

    Adding under an existing key disposes of the old effect first. Disposer
    failures are reported to ``on_error`` instead of raised.
    """

    def __init__(
        self,
        *,
        on_error: ErrorReporter | None = None,
        key_factory: Callable[[], str] | None = None,
    ) -> None:
        self._disposers: dict[str, Disposer] = {}
        self._on_error = on_error or report_failure
        self._key_factory = key_factory or gen_uid
        self._tasks = TaskManager()

    @property
    def disposers(self) -> Mapping[str, Disposer]:
        """Read-only view of the installed disposers."""
        return MappingProxyType(self._disposers)

    def __len__(self) -> int:
        return len(self._disposers)

    def __contains__(self, key: object) -> bool:
        return key in self._disposers

    def gen_uid(self) -> str:
        while True:
            uid = self._key_factory()
            if uid not in self._disposers:
                return uid

    def add_disposer(self, disposer: Disposer, key: str | None = None) -> str:
        """Add a disposer directly.

        Args:
            disposer: a disposer
            key: Optional key for the disposer

        Returns:
            The key.
        """
        if key is None:
            key = self.gen_uid()
        self.flush(key)
        self._disposers[key] = disposer
        return key

    def add(self, executor: Executor, key: str | None = None) -> str:
        """Add a side effect.

        The executor returns a disposer, a list of disposers (disposed of as
        one unit), or a falsy value to register nothing.
        """
        if key is None:
            key = self.gen_uid()
        self.flush(key)
        try:
            value = executor()
            if inspect.isawaitable(value):
                if inspect.iscoroutine(value):
                    value.close()
                raise InvalidExecutorResultError(
                    "SideEffectManager executors must be synchronous; "
                    "use AsyncSideEffectManager for async setup."
                )
            result = normalize_result(value)
        except Exception as exc:
            self._report(exc, key, "executor")
            return key
        disposer = to_disposer(result, lambda exc: self._report(exc, key, "disposer"))
        if disposer is not None:
            self._disposers[key] = disposer
        return key

    def subscribe(
        self,
        bus: EventBus,
        event_name: str,
        handler: Callable[..., Any],
        key: str | None = None,
    ) -> str:
        """Sugar for ``bus.subscribe``."""
        return self.add(adapters.subscription(bus, event_name, handler), key)

    def call_later(
        self, delay: float, callback: Callable[[], Any], key: str | None = None
    ) -> str:
        """Sugar for ``loop.call_later``. Needs a running event loop."""
        if key is None:
            key = self.gen_uid()
        on_fire = functools.partial(self._forget, key)
        return self.add(adapters.timeout(callback, delay, on_fire), key)

    def call_every(
        self, period: float, callback: Callable[[], Any], key: str | None = None
    ) -> str:
        """Run ``callback`` every ``period`` seconds. Needs a running event loop."""
        return self.add(adapters.interval(callback, period), key)

    def remove(self, key: str) -> Disposer | None:
        """Remove but not run the disposer. Do nothing if not found."""
        return self._disposers.pop(key, None)

    def flush(self, key: str) -> None:
        """Remove and run the disposer. Do nothing if not found."""
        disposer = self.remove(key)
        if disposer is not None:
            invoke(
                disposer, lambda exc: self._report(exc, key, "disposer"), self._tasks
            )

    def flush_all(self) -> None:
        """Remove and run all of the disposers."""
        items = list(self._disposers.items())
        self._disposers.clear()
        for key, disposer in items:
            invoke(
                disposer,
                functools.partial(self._report, key=key, phase="disposer"),
                self._tasks,
            )

    def _forget(self, key: str, disposer: Disposer) -> None:
        if self._disposers.get(key) is disposer:
            del self._disposers[key]

    def _report(self, error: Exception, key: str, phase: str) -> None:
        try:
            self._on_error(error, key, phase)
        except Exception:
            LOGGER.exception(
                "side_effect.reporter.failed",
                extra={"event": "side_effect.reporter.failed", "key": key},
            )
