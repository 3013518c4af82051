"""
Monitor a conferencing app's own mute state. The app grabs the microphone and
mutes internally, so the device stays "in use" while muted; polling the app is
the only way to know.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

from avwatch.scheduler import Cancellable, Scheduler
from avwatch.sources import AppLifecycleSource, ExternalAppProbe
from avwatch.utils import call_isolated

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0


class MonitorState(Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"


class ZoomMuteMonitor:
    """
    INACTIVE while the app is not running (no timer), ACTIVE while it runs
    (polling every interval). The cached mute value survives termination but
    is only authoritative while ACTIVE.
    """

    def __init__(
        self,
        app: ExternalAppProbe,
        lifecycle: AppLifecycleSource,
        scheduler: Scheduler,
        interval_seconds: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self._app = app
        self._lifecycle = lifecycle
        self._scheduler = scheduler
        self.interval_seconds = float(interval_seconds)
        self._state = MonitorState.INACTIVE
        self._timer: Cancellable | None = None
        self._muted: bool | None = None
        self._callback: Callable[[bool], None] | None = None
        self._running_callback: Callable[[bool], None] | None = None
        self._subscribed = False
        self._started = False

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def active(self) -> bool:
        return self._state == MonitorState.ACTIVE

    @property
    def muted(self) -> bool:
        """Last polled mute value (False before the first poll)."""
        return bool(self._muted)

    @property
    def app_name(self) -> str:
        return self._app.name

    def set_callback(self, cb: Callable[[bool], None] | None) -> None:
        """Called with the new mute value whenever a poll sees it change."""
        self._callback = cb

    def set_running_callback(self, cb: Callable[[bool], None] | None) -> None:
        """Called with True on ACTIVE and False on INACTIVE transitions."""
        self._running_callback = cb

    def start(self) -> None:
        if self._started:
            return
        self._started = True
        logger.debug("Starting mute monitor for %s", self._app.name)
        if not self._subscribed:
            self._lifecycle.subscribe(self.on_app_launched, self.on_app_terminated)
            self._subscribed = True
        self._lifecycle.start()
        if self._app.is_running():
            logger.debug("%s is already running, starting timer.", self._app.name)
            self._activate()

    def stop(self) -> None:
        if not self._started:
            return
        self._started = False
        logger.debug("Stopping mute monitor for %s", self._app.name)
        self._lifecycle.stop()
        was_active = self.active
        self._stop_timer()
        self._state = MonitorState.INACTIVE
        if was_active and self._running_callback is not None:
            call_isolated(self._running_callback, False, context=f"{self._app.name} monitor stopped")

    def on_app_launched(self) -> None:
        if not self._started or self._state == MonitorState.ACTIVE:
            return
        logger.debug("%s launch detected. Starting timer.", self._app.name)
        self._activate()

    def on_app_terminated(self) -> None:
        if self._state == MonitorState.INACTIVE:
            return
        logger.debug("%s termination detected. Stopping timer.", self._app.name)
        self._stop_timer()
        self._state = MonitorState.INACTIVE
        if self._running_callback is not None:
            call_isolated(self._running_callback, False, context=f"{self._app.name} terminated")

    def poll(self) -> None:
        """Query the app's mute state; fire the callback only on change."""
        try:
            muted = self._app.is_muted()
        except Exception as e:
            logger.warning("Querying %s mute state failed: %s", self._app.name, e)
            return
        if self._muted is not None and muted == self._muted:
            return
        logger.debug("Mute state changed: %s", muted)
        self._muted = muted
        if self._callback is not None:
            call_isolated(self._callback, muted, context=f"{self._app.name} mute changed")

    def _activate(self) -> None:
        self._state = MonitorState.ACTIVE
        if self._running_callback is not None:
            call_isolated(self._running_callback, True, context=f"{self._app.name} launched")
        self.poll()
        self._timer = self._scheduler.call_every(self.interval_seconds, self.poll)

    def _stop_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
