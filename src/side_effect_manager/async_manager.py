"""Keyed lifecycle manager for side effects with async setup and teardown."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
import functools
import logging
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from . import adapters
from .disposers import (
    Disposer,
    ErrorReporter,
    Executor,
    maybe_await,
    normalize_result,
    report_failure,
    to_disposer,
)
from .quiescence import QuiescenceSignal
from .task_manager import TaskManager
from .uid import SOUP, UID_LENGTH, gen_uid, make_uid_factory

if TYPE_CHECKING:
    from .events import EventBus

LOGGER = logging.getLogger(__name__)


class AsyncSideEffectManager:
    """Register side effects under keys and tear them down in order.

    Registering under a key first disposes of whatever that key held, then runs
    the new executor and stores the disposer it returns. Executors and
    disposers may be plain or async callables.

    At most one setup/teardown sequence runs per key. A request for a busy key
    is parked as that key's single pending request and runs when the current
    sequence ends. A newer request replaces the parked one, whose executor
    then never runs at all (last writer wins, not FIFO). Different keys run
    concurrently with no ordering between them.

    ``register``, ``flush`` and ``flush_all`` return immediately and never
    raise for executor or disposer failures; those go to ``on_error``.
    Await ``finished()`` to wait until nothing is running or queued.
    """

    def __init__(
        self,
        *,
        on_error: ErrorReporter | None = None,
        key_factory: Callable[[], str] | None = None,
    ) -> None:
        self._disposers: dict[str, Disposer] = {}
        self._running: set[str] = set()
        self._next_task: dict[str, Callable[[], None]] = {}
        self._quiescence = QuiescenceSignal(self._is_quiet)
        self._tasks = TaskManager()
        self._on_error = on_error or report_failure
        self._key_factory = key_factory or gen_uid

    @classmethod
    def from_config(
        cls, config: Mapping[str, Any], *, on_error: ErrorReporter | None = None
    ) -> AsyncSideEffectManager:
        """Build a manager from a mapping returned by ``load_config``."""
        manager_config = config.get("manager", {})
        key_factory = make_uid_factory(
            manager_config.get("key_length", UID_LENGTH),
            manager_config.get("key_alphabet", SOUP),
        )
        return cls(on_error=on_error, key_factory=key_factory)

    @property
    def disposers(self) -> Mapping[str, Disposer]:
        """Read-only view of the installed disposers, one per live key."""
        return MappingProxyType(self._disposers)

    def __len__(self) -> int:
        return len(self._disposers)

    def __contains__(self, key: object) -> bool:
        return key in self._disposers

    @property
    def is_idle(self) -> bool:
        """``True`` when no sequence is running or queued."""
        return self._quiescence.is_idle

    async def finished(self) -> None:
        """Wait until every running and queued sequence has completed."""
        await self._quiescence.wait()

    def gen_uid(self) -> str:
        """Generate a key that is not currently in use."""
        while True:
            uid = self._key_factory()
            if uid not in self._disposers:
                return uid

    def register(self, executor: Executor, key: str | None = None) -> str:
        """Add a side effect.

        Args:
            executor: Performs the setup and returns a disposer, a list of
                disposers, or a falsy value when nothing was allocated.
            key: Slot to register under; an existing effect there is
                disposed of first. Generated when omitted.

        Returns:
            The key.
        """
        if key is None:
            key = self.gen_uid()
        self._dispatch(key, functools.partial(self._run_register, executor, key))
        return key

    add = register

    def push(
        self, disposers: Disposer | Sequence[Disposer], key: str | None = None
    ) -> str:
        """Add an already-allocated disposer, or a list of them, directly."""
        return self.register(lambda: disposers, key)

    def subscribe(
        self,
        bus: EventBus,
        event_name: str,
        handler: Callable[..., Any],
        key: str | None = None,
    ) -> str:
        """Sugar for ``bus.subscribe`` that unsubscribes on disposal."""
        return self.register(adapters.subscription(bus, event_name, handler), key)

    def call_later(
        self, delay: float, callback: Callable[[], Any], key: str | None = None
    ) -> str:
        """Sugar for ``loop.call_later`` that cancels on disposal."""
        if key is None:
            key = self.gen_uid()
        on_fire = functools.partial(self._forget, key)
        return self.register(adapters.timeout(callback, delay, on_fire), key)

    def call_every(
        self, period: float, callback: Callable[[], Any], key: str | None = None
    ) -> str:
        """Run ``callback`` every ``period`` seconds until disposed."""
        return self.register(adapters.interval(callback, period), key)

    def remove(self, key: str) -> Disposer | None:
        """Remove but not run the disposer. Do nothing if not found."""
        return self._disposers.pop(key, None)

    def flush(self, key: str) -> None:
        """Remove and run the disposer. Do nothing if not found.

        Waits behind a running sequence for the same key, like ``register``.
        """
        self._dispatch(key, functools.partial(self._run_flush, key))

    def flush_all(self) -> None:
        """Remove and run all of the disposers."""
        for key in list(self._disposers):
            self.flush(key)

    def _dispatch(self, key: str, job: Callable[[], None]) -> None:
        if key in self._running:
            if key in self._next_task:
                LOGGER.debug(
                    "side_effect.coalesced",
                    extra={"event": "side_effect.coalesced", "key": key},
                )
            self._next_task[key] = job
        else:
            job()

    def _run_register(self, executor: Executor, key: str) -> None:
        self._start_task(key)
        previous = self.remove(key)
        self._tasks.spawn(
            self._register(executor, key, previous), name=f"side-effect:{key}"
        )

    async def _register(
        self, executor: Executor, key: str, previous: Disposer | None
    ) -> None:
        # Cancellation propagates, but the key must never stay in flight.
        try:
            if previous is not None:
                await self._dispose(previous, key)

            try:
                result = normalize_result(await maybe_await(executor))
            except Exception as exc:
                self._report(exc, key, "executor")
            else:
                disposer = to_disposer(
                    result, lambda exc: self._report(exc, key, "disposer")
                )
                if disposer is not None:
                    self._disposers[key] = disposer
        finally:
            self._end_task(key)

    def _run_flush(self, key: str) -> None:
        disposer = self.remove(key)
        if disposer is None:
            self._drain(key)
            return
        self._start_task(key)
        self._tasks.spawn(self._flush(disposer, key), name=f"side-effect:{key}")

    async def _flush(self, disposer: Disposer, key: str) -> None:
        try:
            await self._dispose(disposer, key)
        finally:
            self._end_task(key)

    async def _dispose(self, disposer: Disposer, key: str) -> None:
        try:
            await maybe_await(disposer)
        except Exception as exc:
            self._report(exc, key, "disposer")

    def _forget(self, key: str, disposer: Disposer) -> None:
        # A fired timer has nothing left to cancel; keep a replacement intact.
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

    def _start_task(self, key: str) -> None:
        self._quiescence.signal_busy()
        self._running.add(key)

    def _end_task(self, key: str) -> None:
        self._running.discard(key)
        self._drain(key)

    def _drain(self, key: str) -> None:
        job = self._next_task.pop(key, None)
        if job is not None:
            job()
        self._quiescence.signal_idle_if_quiet()

    def _is_quiet(self) -> bool:
        return not self._running and not self._next_task
