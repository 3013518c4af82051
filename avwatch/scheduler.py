"""
Timer primitives on top of the asyncio event loop. All callbacks run on the
loop thread, one at a time.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


class Cancellable(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    def now(self) -> float:
        ...

    def call_later(self, seconds: float, callback: Callable[[], None]) -> Cancellable:
        ...

    def call_every(self, seconds: float, callback: Callable[[], None]) -> Cancellable:
        ...


class RepeatingTimer:
    """Re-arms itself with call_later after each run until cancelled."""

    def __init__(self, loop: asyncio.AbstractEventLoop, interval: float, callback: Callable[[], None]) -> None:
        self._loop = loop
        self._interval = interval
        self._callback = callback
        self._handle: asyncio.TimerHandle | None = None
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def start(self) -> RepeatingTimer:
        self._handle = self._loop.call_later(self._interval, self._run)
        return self

    def _run(self) -> None:
        if self._cancelled:
            return
        try:
            self._callback()
        except Exception:
            logger.exception("Timer callback %r failed", self._callback)
        if not self._cancelled:
            self._handle = self._loop.call_later(self._interval, self._run)

    def cancel(self) -> None:
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class AsyncioScheduler:
    """Scheduler bound to an event loop (the running one by default)."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return time.monotonic()

    def call_later(self, seconds: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        def run() -> None:
            try:
                callback()
            except Exception:
                logger.exception("Delayed callback %r failed", callback)

        return self.loop.call_later(max(0.0, seconds), run)

    def call_every(self, seconds: float, callback: Callable[[], None]) -> RepeatingTimer:
        if seconds <= 0:
            raise ValueError(f"Interval must be positive, got {seconds!r}")
        return RepeatingTimer(self.loop, seconds, callback).start()
