"""
AVWatcher wires the signal sources, debounce filter, mute monitor, engine and
indicator registry together and exposes the control surface used by the CLI
and the menu bar.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from avwatch.config import IndicatorsConfig, MonitorConfig
from avwatch.debounce import DebounceFilter
from avwatch.engine import AggregationEngine
from avwatch.flasher import FlashingIconIndicator
from avwatch.indicator import Indicator
from avwatch.menubar import MenuBarIndicator
from avwatch.models import DeviceHandle, DeviceKind, DisplayState, Rect
from avwatch.mute_monitor import ZoomMuteMonitor
from avwatch.registry import IndicatorRegistry
from avwatch.scheduler import Cancellable, Scheduler
from avwatch.screen_border import ScreenBorderIndicator
from avwatch.sources import (
    AppLifecycleSource,
    DeviceEventSource,
    DeviceSnapshot,
    ExternalAppProbe,
    PollingDeviceEventSource,
)
from avwatch.surfaces import CanvasFactory, Screen, ScreenError, StatusItem
from avwatch.utils import call_each

logger = logging.getLogger(__name__)


class ScreenWatcher:
    """Polls the screen frame and calls on_change when it differs."""

    def __init__(
        self,
        screen: Screen,
        scheduler: Scheduler,
        on_change: Callable[[], None],
        interval_seconds: float = 10.0,
    ) -> None:
        self._screen = screen
        self._scheduler = scheduler
        self._on_change = on_change
        self._interval = interval_seconds
        self._timer: Cancellable | None = None
        self._frame: Rect | None = None

    def start(self) -> None:
        if self._timer is not None:
            return
        self._frame = self._read()
        self._timer = self._scheduler.call_every(self._interval, self.poll)

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def poll(self) -> None:
        frame = self._read()
        if frame is None or frame == self._frame:
            return
        logger.info("Screen geometry changed: %dx%d", frame.w, frame.h)
        self._frame = frame
        self._on_change()

    def _read(self) -> Rect | None:
        try:
            return self._screen.frame()
        except ScreenError as e:
            logger.debug("Screen frame unavailable: %s", e)
            return None


def build_event_source(
    config: MonitorConfig,
    snapshot: DeviceSnapshot,
    scheduler: Scheduler,
    push_source: DeviceEventSource | None = None,
) -> DeviceEventSource:
    """Push events when configured and available, otherwise snapshot polling."""
    if config.signal_source == "stream" and push_source is not None:
        return push_source
    return PollingDeviceEventSource(snapshot, scheduler, config.device_poll_interval_seconds)


class AVWatcher:
    def __init__(
        self,
        snapshot: DeviceSnapshot,
        events: DeviceEventSource,
        scheduler: Scheduler,
        external_app: ExternalAppProbe | None = None,
        app_lifecycle: AppLifecycleSource | None = None,
        screen: Screen | None = None,
        config: MonitorConfig | None = None,
    ) -> None:
        self._snapshot = snapshot
        self._events = events
        self._scheduler = scheduler
        self._external_app = external_app
        self._app_lifecycle = app_lifecycle
        self._screen = screen
        self.registry = IndicatorRegistry()
        self.engine = AggregationEngine(snapshot, self.registry)
        self.debounce: DebounceFilter | None = None
        self.mute_monitor: ZoomMuteMonitor | None = None
        self._screen_watcher: ScreenWatcher | None = None
        self._subscribed = False
        self._running = False
        self.configure(config or MonitorConfig())

    @property
    def config(self) -> MonitorConfig:
        return self.engine.config

    @property
    def running(self) -> bool:
        return self._running

    def configure(self, options: MonitorConfig | Mapping[str, Any]) -> None:
        """Apply monitor options. Only allowed while stopped."""
        if self._running:
            raise RuntimeError("Stop the watcher before reconfiguring it")
        config = options if isinstance(options, MonitorConfig) else MonitorConfig.from_dict(dict(options))
        self.engine.config = config
        self.debounce = DebounceFilter(
            self._snapshot,
            self._scheduler,
            on_used=self.engine.on_device_used,
            on_unused=self.engine.on_device_unused,
            delay_seconds=config.camera_off_debounce_seconds,
        )
        self.engine.debounce = self.debounce
        if self.mute_monitor is not None:
            # Keeps its lifecycle subscription.
            self.mute_monitor.interval_seconds = config.app_mute_poll_interval_seconds
        elif self._external_app is not None and self._app_lifecycle is not None:
            self.mute_monitor = ZoomMuteMonitor(
                self._external_app,
                self._app_lifecycle,
                self._scheduler,
                interval_seconds=config.app_mute_poll_interval_seconds,
            )
            self.mute_monitor.set_callback(self.engine.on_external_mute_changed)
            self.mute_monitor.set_running_callback(self.engine.on_external_app_running_changed)
        self._screen_watcher = None
        if self._screen is not None:
            self._screen_watcher = ScreenWatcher(
                self._screen,
                self._scheduler,
                self.registry.broadcast_refresh,
                interval_seconds=config.screen_poll_interval_seconds,
            )

    def start(self) -> AVWatcher:
        if self._running:
            return self
        logger.debug("Starting")
        self._running = True
        if not self._subscribed:
            self._events.subscribe(
                self._on_device_added,
                self._on_device_removed,
                self._on_became_used,
                self._on_became_unused,
            )
            self._subscribed = True
        if self.config.monitor_cameras or self.config.monitor_mics:
            self._events.start()
        if self.config.monitor_mics and self.config.honor_external_app_mute and self.mute_monitor is not None:
            logger.debug("Starting %s mute monitor", self.mute_monitor.app_name)
            self.mute_monitor.start()
        if self._screen_watcher is not None:
            self._screen_watcher.start()
        if self.engine.user_muted:
            self.registry.broadcast_mute()
        self.engine.publish()
        return self

    def stop(self) -> AVWatcher:
        if not self._running:
            return self
        logger.debug("Stopping")
        self._running = False
        self._events.stop()
        if self.debounce is not None:
            self.debounce.cancel_all()
        if self.mute_monitor is not None:
            self.mute_monitor.stop()
        if self._screen_watcher is not None:
            self._screen_watcher.stop()
        self.registry.teardown_all()
        return self

    def register_indicator(self, indicator: Indicator | None) -> bool:
        """Add an indicator; while running it immediately receives the mute flag and current state."""
        if not self.registry.register(indicator):
            return False
        if self._running:
            if self.engine.user_muted:
                call_each([indicator], "mute", context="register")
            call_each([indicator], "update", self.engine.current_display_state(), None, context="register")
        return True

    def mute(self) -> None:
        self.engine.set_user_muted(True)

    def unmute(self) -> None:
        self.engine.set_user_muted(False)

    def toggle_mute(self) -> None:
        self.engine.set_user_muted(not self.engine.user_muted)

    def current_display_state(self) -> DisplayState:
        return self.engine.current_display_state()

    def cameras_in_use(self) -> list[DeviceHandle]:
        return self.engine.cameras_in_use()

    def mics_in_use(self) -> list[DeviceHandle]:
        return self.engine.mics_in_use()

    def _resolve(self, device: DeviceHandle, event: str) -> DeviceHandle | None:
        resolved = self._snapshot.find_device(device.id)
        if resolved is None:
            logger.warning("Unknown device %s (%s); ignoring", device.id, event)
        return resolved

    def _monitored(self, device: DeviceHandle) -> bool:
        if device.kind == DeviceKind.CAMERA:
            return self.config.monitor_cameras
        return self.config.monitor_mics

    def _on_device_added(self, device: DeviceHandle) -> None:
        logger.info("%s added: %s", device.kind.value.capitalize(), device.name)

    def _on_device_removed(self, device: DeviceHandle) -> None:
        logger.info("%s removed: %s", device.kind.value.capitalize(), device.name)
        if self.debounce is not None and device.kind == DeviceKind.CAMERA:
            self.debounce.discard(device)
        if self._monitored(device):
            self.engine.publish(device)

    def _on_became_used(self, device: DeviceHandle) -> None:
        if not self._monitored(device):
            return
        resolved = self._resolve(device, "became used")
        if resolved is None:
            return
        if resolved.kind == DeviceKind.CAMERA and self.debounce is not None:
            self.debounce.on_camera_became_used(resolved)
        else:
            self.engine.on_device_used(resolved)

    def _on_became_unused(self, device: DeviceHandle) -> None:
        if not self._monitored(device):
            return
        resolved = self._resolve(device, "became unused")
        if resolved is None:
            return
        if resolved.kind == DeviceKind.CAMERA and self.debounce is not None:
            self.debounce.on_camera_became_unused(resolved)
        else:
            self.engine.on_device_unused(resolved)


def create_indicators(
    config: IndicatorsConfig,
    watcher: AVWatcher,
    scheduler: Scheduler,
    screen: Screen,
    canvas_factory: CanvasFactory,
    status_item: StatusItem | None = None,
) -> list[Indicator | None]:
    """
    Build the configured indicators, in order: menu bar, screen border, then
    flashers. Entries whose creation failed are None.
    """
    indicators: list[Indicator | None] = []
    if config.menubar.enabled and status_item is not None:
        indicators.append(MenuBarIndicator(config.menubar, status_item, watcher))
    if config.screen_border.enabled:
        logger.debug("Adding default ScreenBorder indicator")
        indicators.append(ScreenBorderIndicator.create(config.screen_border, screen, canvas_factory))
    for flasher in config.flashers:
        indicators.append(FlashingIconIndicator.create(flasher, screen, canvas_factory, scheduler))
    return indicators
