"""
Interfaces for the device and application signal collaborators, plus
poll-based event sources that work on top of any snapshot provider.
"""
from __future__ import annotations

import logging
from typing import Callable, Iterable, Protocol

from avwatch.models import DeviceHandle, DeviceKind
from avwatch.scheduler import Cancellable, Scheduler
from avwatch.utils import call_isolated

logger = logging.getLogger(__name__)

DeviceCallback = Callable[[DeviceHandle], None]
AppCallback = Callable[[], None]


class DeviceSnapshot(Protocol):
    """On-demand, non-blocking view of the capture devices."""

    def known_devices(self) -> frozenset[DeviceHandle]:
        ...

    def active_cameras(self) -> frozenset[DeviceHandle]:
        ...

    def active_microphones(self) -> frozenset[DeviceHandle]:
        ...

    def find_device(self, device_id: str) -> DeviceHandle | None:
        ...


class DeviceEventSource(Protocol):
    def subscribe(
        self,
        on_added: DeviceCallback,
        on_removed: DeviceCallback,
        on_became_used: DeviceCallback,
        on_became_unused: DeviceCallback,
    ) -> None:
        ...

    def start(self) -> None:
        ...

    def stop(self) -> None:
        ...


class ExternalAppProbe(Protocol):
    name: str

    def is_running(self) -> bool:
        ...

    def is_muted(self) -> bool:
        ...


class AppLifecycleSource(Protocol):
    def subscribe(self, on_launch: AppCallback, on_terminate: AppCallback) -> None:
        ...

    def start(self) -> None:
        ...

    def stop(self) -> None:
        ...


def is_in_use(snapshot: DeviceSnapshot, device: DeviceHandle) -> bool:
    """Whether the given device is in the snapshot's active set right now."""
    if device.kind == DeviceKind.CAMERA:
        return device in snapshot.active_cameras()
    return device in snapshot.active_microphones()


class DeviceEvents:
    """Subscriber list shared by the device event sources."""

    def __init__(self) -> None:
        self._subscribers: list[tuple[DeviceCallback, DeviceCallback, DeviceCallback, DeviceCallback]] = []

    def subscribe(
        self,
        on_added: DeviceCallback,
        on_removed: DeviceCallback,
        on_became_used: DeviceCallback,
        on_became_unused: DeviceCallback,
    ) -> None:
        self._subscribers.append((on_added, on_removed, on_became_used, on_became_unused))

    def clear(self) -> None:
        self._subscribers.clear()

    def emit_diff(
        self,
        known_before: Iterable[DeviceHandle],
        known_after: Iterable[DeviceHandle],
        active_before: Iterable[DeviceHandle],
        active_after: Iterable[DeviceHandle],
    ) -> None:
        """Fire added/removed/used/unused callbacks for the difference between two snapshots."""
        known_before, known_after = set(known_before), set(known_after)
        active_before, active_after = set(active_before), set(active_after)
        for device in sorted(known_after - known_before, key=lambda d: d.id):
            self._emit(0, device, "added")
        for device in sorted(active_after - active_before, key=lambda d: d.id):
            self._emit(2, device, "became used")
        for device in sorted(active_before - active_after, key=lambda d: d.id):
            self._emit(3, device, "became unused")
        for device in sorted(known_before - known_after, key=lambda d: d.id):
            self._emit(1, device, "removed")

    def _emit(self, slot: int, device: DeviceHandle, event: str) -> None:
        logger.debug("Device %s %s", device.name, event)
        for callbacks in list(self._subscribers):
            call_isolated(callbacks[slot], device, context=f"{device.id} {event}")


class PollingDeviceEventSource:
    """
    Derives device events by diffing snapshots on a fixed interval. Used where
    the platform's push notifications cannot be relied on.
    """

    def __init__(self, snapshot: DeviceSnapshot, scheduler: Scheduler, interval_seconds: float = 2.0) -> None:
        self._snapshot = snapshot
        self._scheduler = scheduler
        self._interval = interval_seconds
        self._events = DeviceEvents()
        self._timer: Cancellable | None = None
        self._known: frozenset[DeviceHandle] = frozenset()
        self._active: frozenset[DeviceHandle] = frozenset()

    def subscribe(
        self,
        on_added: DeviceCallback,
        on_removed: DeviceCallback,
        on_became_used: DeviceCallback,
        on_became_unused: DeviceCallback,
    ) -> None:
        self._events.subscribe(on_added, on_removed, on_became_used, on_became_unused)

    def start(self) -> None:
        if self._timer is not None:
            return
        self._known, self._active = self._read()
        logger.debug("Polling devices every %ss", self._interval)
        self._timer = self._scheduler.call_every(self._interval, self.poll)

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def poll(self) -> None:
        known, active = self._read()
        if known == self._known and active == self._active:
            return
        known_before, active_before = self._known, self._active
        self._known, self._active = known, active
        self._events.emit_diff(known_before, known, active_before, active)

    def _read(self) -> tuple[frozenset[DeviceHandle], frozenset[DeviceHandle]]:
        active = self._snapshot.active_cameras() | self._snapshot.active_microphones()
        return self._snapshot.known_devices() | active, active


class PollingAppLifecycleSource:
    """Fires launch/terminate callbacks by polling whether the app is running."""

    def __init__(self, app: ExternalAppProbe, scheduler: Scheduler, interval_seconds: float = 5.0) -> None:
        self._app = app
        self._scheduler = scheduler
        self._interval = interval_seconds
        self._subscribers: list[tuple[AppCallback, AppCallback]] = []
        self._timer: Cancellable | None = None
        self._running: bool | None = None

    def subscribe(self, on_launch: AppCallback, on_terminate: AppCallback) -> None:
        self._subscribers.append((on_launch, on_terminate))

    def start(self) -> None:
        if self._timer is not None:
            return
        self._running = self._app.is_running()
        self._timer = self._scheduler.call_every(self._interval, self.poll)

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def poll(self) -> None:
        running = self._app.is_running()
        if running == self._running:
            return
        self._running = running
        logger.info("%s %s", self._app.name, "launched" if running else "terminated")
        for on_launch, on_terminate in list(self._subscribers):
            call_isolated(on_launch if running else on_terminate, context=self._app.name)
