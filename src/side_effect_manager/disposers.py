"""Disposer types, executor result normalization and disposer aggregation.

Executors may hand back a bare callable, a list of callables or a falsy value.
``normalize_result`` turns those shapes into an explicit ``SetupResult`` so the
managers never have to inspect raw return values themselves.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
import inspect
import logging
from typing import TYPE_CHECKING, Any, Union

from .exceptions import InvalidExecutorResultError, SideEffectError

if TYPE_CHECKING:
    from .task_manager import TaskManager

LOGGER = logging.getLogger(__name__)

Disposer = Callable[[], Union[Awaitable[Any], None]]
Executor = Callable[[], Any]
ErrorHandler = Callable[[Exception], None]
ErrorReporter = Callable[[Exception, str, str], None]


@dataclass(frozen=True)
class NoResource:
    """The executor allocated nothing, so there is nothing to dispose."""


@dataclass(frozen=True)
class Single:
    """The executor allocated exactly one releasable resource."""

    disposer: Disposer


@dataclass(frozen=True)
class Many:
    """The executor allocated several resources released as one unit."""

    disposers: tuple[Disposer, ...]


SetupResult = Union[NoResource, Single, Many]


def normalize_result(value: Any) -> SetupResult:
    """Map a raw executor return value onto ``SetupResult``.

    Raises:
        InvalidExecutorResultError: ``value`` is truthy but neither a
            callable nor a list/tuple of callables.
    """
    if isinstance(value, (NoResource, Single, Many)):
        return value
    if not value:
        return NoResource()
    if callable(value):
        return Single(value)
    if isinstance(value, (list, tuple)):
        for item in value:
            if not callable(item):
                raise InvalidExecutorResultError(
                    f"Executor returned a {type(item).__name__!r} inside its "
                    "disposer list; every item must be callable."
                )
        return Many(tuple(value))
    raise InvalidExecutorResultError(
        f"Executor returned a {type(value).__name__!r}; expected a disposer, "
        "a list of disposers or a falsy value."
    )


def to_disposer(
    result: SetupResult, on_error: ErrorHandler | None = None
) -> Disposer | None:
    """Collapse a ``SetupResult`` into the single disposer to store, if any."""
    if isinstance(result, Single):
        return result.disposer
    if isinstance(result, Many) and result.disposers:
        return join_disposers(result.disposers, on_error)
    return None


def report_failure(error: Exception, key: str, phase: str) -> None:
    """Default error reporter: log the failure and carry on."""
    LOGGER.error(
        f"side_effect.{phase}.failed",
        extra={
            "event": f"side_effect.{phase}.failed",
            "key": key,
            "phase": phase,
            "error_type": type(error).__name__,
            "error": str(error),
        },
        exc_info=error,
    )


def join_disposers(
    disposers: Iterable[Disposer], on_error: ErrorHandler | None = None
) -> Disposer:
    """Combine ``disposers`` into one disposer that runs all of them.

    Every disposer is called in order. Failures go to ``on_error`` one by one
    and never stop the remaining disposers. When any of them returns an
    awaitable, the combined disposer returns an awaitable that waits for all
    of them; otherwise it finishes synchronously.
    """
    items = tuple(disposers)
    if not items:
        raise ValueError("join_disposers() needs at least one disposer.")
    report = on_error or _log_disposer_error

    def dispose() -> Awaitable[None] | None:
        pending: list[Awaitable[Any]] = []
        for disposer in items:
            try:
                result = disposer()
            except Exception as exc:
                report(exc)
                continue
            if inspect.isawaitable(result):
                pending.append(result)
        if pending:
            return _await_all(pending, report)
        return None

    return dispose


async def _await_all(pending: list[Awaitable[Any]], report: ErrorHandler) -> None:
    results = await asyncio.gather(*pending, return_exceptions=True)
    for result in results:
        if isinstance(result, Exception):
            report(result)
        elif isinstance(result, BaseException):
            raise result


def _log_disposer_error(error: Exception) -> None:
    LOGGER.error(
        "disposer.failed",
        extra={
            "event": "disposer.failed",
            "error_type": type(error).__name__,
            "error": str(error),
        },
        exc_info=error,
    )


async def maybe_await(func: Callable[[], Any]) -> Any:
    """Call ``func`` and await the result when it is awaitable."""
    result = func()
    if inspect.isawaitable(result):
        return await result
    return result


def invoke(disposer: Disposer, on_error: ErrorHandler, tasks: TaskManager) -> None:
    """Call ``disposer`` from synchronous code without letting it raise.

    An awaitable result is finished in the background on the running loop.
    Outside of a loop there is nothing to drive it, which is reported.
    """
    try:
        result = disposer()
    except Exception as exc:
        on_error(exc)
        return
    if not inspect.isawaitable(result):
        return
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        if inspect.iscoroutine(result):
            result.close()
        on_error(
            SideEffectError("Async disposer called without a running event loop.")
        )
        return
    tasks.spawn(_guarded(result, on_error))


async def _guarded(awaitable: Awaitable[Any], on_error: ErrorHandler) -> None:
    try:
        await awaitable
    except Exception as exc:
        on_error(exc)
