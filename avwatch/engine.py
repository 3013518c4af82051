"""
Aggregation engine: the single source of truth for what the indicators show.
"""
from __future__ import annotations

import logging

from avwatch.config import MonitorConfig
from avwatch.debounce import DebounceFilter
from avwatch.models import DeviceHandle, DisplayState, compute_display_state
from avwatch.registry import IndicatorRegistry
from avwatch.sources import DeviceSnapshot

logger = logging.getLogger(__name__)


class AggregationEngine:
    """
    Combines the device snapshot, pending camera-off transitions, the external
    app's mute state and the user's mute toggle into a DisplayState, and
    broadcasts it to the registry. The display state is always computed fresh;
    the cached booleans only serve change detection.
    """

    def __init__(
        self,
        snapshot: DeviceSnapshot,
        registry: IndicatorRegistry,
        config: MonitorConfig | None = None,
        debounce: DebounceFilter | None = None,
    ) -> None:
        self._snapshot = snapshot
        self._registry = registry
        self.config = config or MonitorConfig()
        self.debounce = debounce
        self._user_muted = False
        self._external_app_muted = False
        self._external_app_running = False
        self._camera_in_use = False
        self._mic_in_use = False
        self._last_broadcast: DisplayState | None = None

    @property
    def user_muted(self) -> bool:
        return self._user_muted

    @property
    def external_app_muted(self) -> bool:
        return self._external_app_muted

    @property
    def external_app_running(self) -> bool:
        return self._external_app_running

    @property
    def last_broadcast(self) -> DisplayState | None:
        return self._last_broadcast

    @property
    def last_known(self) -> tuple[bool, bool]:
        """(camera_in_use, mic_in_use) as of the last recompute."""
        return self._camera_in_use, self._mic_in_use

    def cameras_in_use(self) -> list[DeviceHandle]:
        """Active cameras, including those whose off transition is still pending."""
        if not self.config.monitor_cameras:
            return []
        cameras = set(self._snapshot.active_cameras())
        if self.debounce is not None:
            cameras |= self.debounce.pending_devices()
        return sorted(cameras, key=lambda d: d.id)

    def mics_in_use(self) -> list[DeviceHandle]:
        """Active microphones per the device snapshot, ignoring the external app's mute."""
        if not self.config.monitor_mics:
            return []
        return sorted(self._snapshot.active_microphones(), key=lambda d: d.id)

    def camera_in_use(self) -> bool:
        return bool(self.cameras_in_use())

    def mic_in_use(self) -> bool:
        if not self.config.monitor_mics:
            return False
        if self.config.honor_external_app_mute and self._external_app_running and self._external_app_muted:
            return False
        return bool(self._snapshot.active_microphones())

    def recompute(self, instigator: DeviceHandle | None = None) -> DisplayState:
        camera, mic = self.camera_in_use(), self.mic_in_use()
        if (camera, mic) != (self._camera_in_use, self._mic_in_use):
            logger.debug(
                "Usage changed%s: camera=%s mic=%s",
                f" ({instigator.name})" if instigator else "",
                camera,
                mic,
            )
        self._camera_in_use, self._mic_in_use = camera, mic
        return compute_display_state(camera, mic, self._user_muted)

    def current_display_state(self) -> DisplayState:
        return self.recompute()

    def publish(self, instigator: DeviceHandle | None = None) -> DisplayState:
        """Recompute and broadcast to every indicator."""
        state = self.recompute(instigator)
        if state != self._last_broadcast:
            logger.info("Display state: %s", state.value)
        self._last_broadcast = state
        self._registry.broadcast_update(state, instigator)
        return state

    def set_user_muted(self, muted: bool) -> DisplayState:
        changed = muted != self._user_muted
        self._user_muted = muted
        if changed:
            logger.info("Indicators %s", "muted" if muted else "unmuted")
            if muted:
                self._registry.broadcast_mute()
            else:
                self._registry.broadcast_unmute()
        return self.publish()

    def on_external_mute_changed(self, muted: bool) -> None:
        self._external_app_muted = muted
        self._publish_if_changed()

    def on_external_app_running_changed(self, running: bool) -> None:
        self._external_app_running = running
        self._publish_if_changed()

    def on_device_used(self, device: DeviceHandle) -> None:
        self.publish(device)

    def on_device_unused(self, device: DeviceHandle) -> None:
        self.publish(device)

    def _publish_if_changed(self) -> None:
        if self.recompute() != self._last_broadcast:
            self.publish()
