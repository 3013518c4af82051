"""
Camera-off debounce. Cameras report brief spurious "stopped" transitions
around sleep/wake; the off transition is held back and re-checked against
live state when the delay expires.
"""
from __future__ import annotations

import logging
from typing import Callable

from avwatch.models import DeviceHandle, PendingTransition
from avwatch.scheduler import Cancellable, Scheduler
from avwatch.sources import DeviceSnapshot, is_in_use

logger = logging.getLogger(__name__)

DEFAULT_CAMERA_OFF_DELAY = 5.0


class DebounceFilter:
    """
    Forwards "became used" immediately. "Became unused" is forwarded after
    delay_seconds, and only if the device is still unused at that moment.
    """

    def __init__(
        self,
        snapshot: DeviceSnapshot,
        scheduler: Scheduler,
        on_used: Callable[[DeviceHandle], None],
        on_unused: Callable[[DeviceHandle], None],
        delay_seconds: float = DEFAULT_CAMERA_OFF_DELAY,
    ) -> None:
        if delay_seconds < 0:
            raise ValueError(f"delay_seconds must be non-negative, got {delay_seconds!r}")
        self._snapshot = snapshot
        self._scheduler = scheduler
        self._on_used = on_used
        self._on_unused = on_unused
        self.delay_seconds = float(delay_seconds)
        self._pending: dict[str, tuple[PendingTransition, Cancellable]] = {}

    def pending(self) -> list[PendingTransition]:
        return [transition for transition, _ in self._pending.values()]

    def pending_devices(self) -> frozenset[DeviceHandle]:
        """Cameras whose off transition has not been published yet."""
        return frozenset(transition.device for transition, _ in self._pending.values())

    def on_camera_became_used(self, device: DeviceHandle) -> None:
        self._cancel(device)
        self._on_used(device)

    def on_camera_became_unused(self, device: DeviceHandle) -> None:
        if self.delay_seconds == 0:
            self._on_unused(device)
            return
        self._cancel(device)
        logger.debug("Delaying off event from camera %s for %s seconds.", device.name, self.delay_seconds)
        transition = PendingTransition(
            device=device,
            scheduled_at=self._scheduler.now(),
            delay_seconds=self.delay_seconds,
        )
        handle = self._scheduler.call_later(self.delay_seconds, lambda: self._fire(transition))
        self._pending[device.id] = (transition, handle)

    def discard(self, device: DeviceHandle) -> None:
        """Drop any pending transition for a device without publishing it."""
        self._cancel(device)

    def cancel_all(self) -> None:
        for _, handle in self._pending.values():
            handle.cancel()
        self._pending.clear()

    def _cancel(self, device: DeviceHandle) -> None:
        entry = self._pending.pop(device.id, None)
        if entry is not None:
            entry[1].cancel()

    def _fire(self, transition: PendingTransition) -> None:
        entry = self._pending.get(transition.device.id)
        if entry is None or entry[0] is not transition:
            return
        del self._pending[transition.device.id]
        device = transition.device
        if is_in_use(self._snapshot, device):
            logger.debug("Camera %s back in use; dropping off event.", device.name)
            return
        logger.debug("Camera %s still unused after %ss.", device.name, transition.delay_seconds)
        self._on_unused(device)
