"""
Schedulers driving a running simulation.

The simulation never owns a timer. Whoever embeds it injects a scheduler
that calls a callback repeatedly at a fixed interval until cancelled:

- ManualScheduler: fires callbacks on explicit ``advance()`` calls (tests,
  batch processing, custom render loops)
- AsyncioScheduler: fires callbacks on an asyncio event loop via
  ``loop.call_later``
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Protocol, runtime_checkable

from .validation import InvalidParameterError

logger = logging.getLogger(__name__)


@runtime_checkable
class Cancellable(Protocol):
    """Handle returned by :meth:`Scheduler.schedule`."""

    def cancel(self) -> None: ...

    @property
    def cancelled(self) -> bool: ...


@runtime_checkable
class Scheduler(Protocol):
    """Anything able to call ``callback`` every ``interval`` seconds until cancelled."""

    def schedule(self, interval: float, callback: Callable[[], None]) -> Cancellable: ...


def _validate_interval(interval: float) -> float:
    if interval <= 0:
        raise InvalidParameterError(f"interval must be > 0, got {interval}")
    return float(interval)


# -----------------------------------------------------------------------------
# Manual scheduler
# -----------------------------------------------------------------------------


class _ManualHandle:
    def __init__(self, scheduler: ManualScheduler, interval: float, callback: Callable[[], None]):
        self._scheduler = scheduler
        self.interval = interval
        self.callback = callback
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if not self._cancelled:
            self._cancelled = True
            self._scheduler._remove(self)


class ManualScheduler:
    """
    Deterministic scheduler advanced by hand.

    Interval values are recorded but ignored; each :meth:`advance` step fires
    every live callback once, in registration order.

    Example:
        scheduler = ManualScheduler()
        sim = Simulation(node_ids=ids, forces=forces, scheduler=scheduler)
        sim.start()
        scheduler.advance(10)
    """

    def __init__(self) -> None:
        self._handles: list[_ManualHandle] = []

    @property
    def pending(self) -> int:
        """Number of live (not cancelled) callbacks."""
        return len(self._handles)

    def schedule(self, interval: float, callback: Callable[[], None]) -> Cancellable:
        handle = _ManualHandle(self, _validate_interval(interval), callback)
        self._handles.append(handle)
        return handle

    def advance(self, count: int = 1) -> int:
        """
        Fire every live callback ``count`` times.

        Callbacks cancelled during a step do not fire again, including later
        in the same step.

        Returns:
            Total number of callback invocations.
        """
        fired = 0
        for _ in range(count):
            if not self._handles:
                break
            for handle in list(self._handles):
                if handle.cancelled:
                    continue
                handle.callback()
                fired += 1
        return fired

    def _remove(self, handle: _ManualHandle) -> None:
        if handle in self._handles:
            self._handles.remove(handle)


# -----------------------------------------------------------------------------
# asyncio scheduler
# -----------------------------------------------------------------------------


class _AsyncioHandle:
    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        interval: float,
        callback: Callable[[], None],
    ) -> None:
        self._loop = loop
        self._interval = interval
        self._callback = callback
        self._timer: Optional[asyncio.TimerHandle] = None
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _arm(self) -> None:
        self._timer = self._loop.call_later(self._interval, self._fire)

    def _fire(self) -> None:
        self._timer = None
        if self._cancelled:
            return
        try:
            self._callback()
        except Exception:
            # A failing callback ends the schedule; the loop reports the error.
            self._cancelled = True
            raise
        # The callback may have cancelled us.
        if not self._cancelled:
            self._arm()


class AsyncioScheduler:
    """
    Scheduler backed by an asyncio event loop.

    Callbacks run on the loop thread. The next call is armed only after the
    current one returns, so ticks never overlap.

    Example:
        async def main():
            scheduler = AsyncioScheduler()
            sim = Simulation(node_ids=ids, forces=forces, scheduler=scheduler)
            sim.start(interval=1 / 30)
            await asyncio.sleep(2)
            sim.stop()
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """
        Args:
            loop: Event loop to schedule on. Defaults to the running loop at
                the time :meth:`schedule` is called.
        """
        self._loop = loop

    def schedule(self, interval: float, callback: Callable[[], None]) -> Cancellable:
        loop = self._loop if self._loop is not None else asyncio.get_running_loop()
        handle = _AsyncioHandle(loop, _validate_interval(interval), callback)
        handle._arm()
        logger.debug("Scheduled callback every %.4fs on %r", interval, loop)
        return handle


__all__ = ["Cancellable", "Scheduler", "ManualScheduler", "AsyncioScheduler"]
