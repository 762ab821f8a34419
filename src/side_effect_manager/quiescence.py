"""Shared "no work in flight" signal for the async side effect manager."""

from __future__ import annotations

import asyncio
from collections.abc import Callable


class QuiescenceSignal:
    """A resettable completion signal backed by one shared future.

    The signal starts out idle. ``signal_busy`` swaps in a fresh unresolved
    future on the idle to busy transition; repeated calls while busy keep the
    same future. ``signal_idle_if_quiet`` resolves it, but only when the
    ``is_quiet`` predicate confirms that no work is running or queued.
    """

    def __init__(self, is_quiet: Callable[[], bool]) -> None:
        self._is_quiet = is_quiet
        self._future: asyncio.Future[None] | None = None

    @property
    def is_idle(self) -> bool:
        return self._future is None

    def signal_busy(self) -> None:
        """Mark the signal busy. Must be called with a running event loop."""
        if self._future is None:
            self._future = asyncio.get_running_loop().create_future()

    def signal_idle_if_quiet(self) -> bool:
        """Resolve the pending future if nothing is in flight.

        Returns ``True`` when this call performed the busy to idle transition.
        """
        if self._future is None or not self._is_quiet():
            return False
        future, self._future = self._future, None
        if not future.done():
            future.set_result(None)
        return True

    async def wait(self) -> None:
        """Wait until the signal is idle.

        The shared future is shielded, so a cancelled waiter does not cancel
        it for the others.
        """
        future = self._future
        if future is not None:
            await asyncio.shield(future)
