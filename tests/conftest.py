"""Shared fakes: manual-clock scheduler, device snapshot, canvases, screen, external app."""
from __future__ import annotations

from typing import Callable

import pytest

from avwatch.models import DeviceHandle, DeviceKind, DisplayState, Rect
from avwatch.surfaces import CanvasError, ScreenError


class FakeTimer:
    def __init__(self, due: float, callback: Callable[[], None], interval: float | None = None) -> None:
        self.due = due
        self.callback = callback
        self.interval = interval
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Timers only run when the test advances the clock."""

    def __init__(self) -> None:
        self.time = 0.0
        self.timers: list[FakeTimer] = []

    def now(self) -> float:
        return self.time

    def call_later(self, seconds: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self.time + seconds, callback)
        self.timers.append(timer)
        return timer

    def call_every(self, seconds: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self.time + seconds, callback, interval=seconds)
        self.timers.append(timer)
        return timer

    @property
    def active_timers(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled]

    def advance(self, seconds: float) -> None:
        target = self.time + seconds
        while True:
            due = [t for t in self.active_timers if t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self.time = timer.due
            if timer.interval is None:
                timer.cancelled = True
            else:
                timer.due += timer.interval
            timer.callback()
        self.time = target


class FakeSnapshot:
    def __init__(self) -> None:
        self.devices: dict[str, DeviceHandle] = {}
        self.active: set[str] = set()

    def add(self, device: DeviceHandle, active: bool = False) -> DeviceHandle:
        self.devices[device.id] = device
        if active:
            self.active.add(device.id)
        return device

    def set_active(self, device: DeviceHandle, active: bool = True) -> None:
        if active:
            self.active.add(device.id)
        else:
            self.active.discard(device.id)

    def remove(self, device: DeviceHandle) -> None:
        self.devices.pop(device.id, None)
        self.active.discard(device.id)

    def known_devices(self) -> frozenset[DeviceHandle]:
        return frozenset(self.devices.values())

    def _active(self, kind: DeviceKind) -> frozenset[DeviceHandle]:
        return frozenset(d for i, d in self.devices.items() if i in self.active and d.kind == kind)

    def active_cameras(self) -> frozenset[DeviceHandle]:
        return self._active(DeviceKind.CAMERA)

    def active_microphones(self) -> frozenset[DeviceHandle]:
        return self._active(DeviceKind.MICROPHONE)

    def find_device(self, device_id: str) -> DeviceHandle | None:
        return self.devices.get(device_id)


class FakeCanvas:
    def __init__(self, frame: Rect, shape: object) -> None:
        self.frame = frame
        self.shape = shape
        self.showing = False
        self.show_calls = 0
        self.hide_calls = 0
        self.deleted = False

    def show(self) -> None:
        self.show_calls += 1
        self.showing = True

    def hide(self) -> None:
        self.hide_calls += 1
        self.showing = False

    def is_showing(self) -> bool:
        return self.showing

    def move_to(self, frame: Rect) -> None:
        self.frame = frame

    def delete(self) -> None:
        self.deleted = True
        self.showing = False


class FakeCanvasFactory:
    def __init__(self) -> None:
        self.created: list[FakeCanvas] = []
        self.fail = False

    def __call__(self, frame: Rect, shape: object) -> FakeCanvas:
        if self.fail:
            raise CanvasError("no display")
        canvas = FakeCanvas(frame, shape)
        self.created.append(canvas)
        return canvas


class FakeScreen:
    def __init__(self, w: float = 1440, h: float = 900) -> None:
        self.rect = Rect(x=0, y=0, w=w, h=h)
        self.fail = False

    def frame(self) -> Rect:
        if self.fail:
            raise ScreenError("no screen")
        return self.rect


class FakeApp:
    def __init__(self, name: str = "zoom.us", running: bool = False, muted: bool = False) -> None:
        self.name = name
        self.running = running
        self.muted = muted
        self.mute_queries = 0

    def is_running(self) -> bool:
        return self.running

    def is_muted(self) -> bool:
        self.mute_queries += 1
        return self.muted


class FakeLifecycle:
    def __init__(self) -> None:
        self.subscribers: list[tuple[Callable[[], None], Callable[[], None]]] = []
        self.started = False

    def subscribe(self, on_launch: Callable[[], None], on_terminate: Callable[[], None]) -> None:
        self.subscribers.append((on_launch, on_terminate))

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.started = False

    def launch(self) -> None:
        for on_launch, _ in self.subscribers:
            on_launch()

    def terminate(self) -> None:
        for _, on_terminate in self.subscribers:
            on_terminate()


class RecordingIndicator:
    """Indicator that records calls; methods named in fail_on raise."""

    def __init__(self, name: str, fail_on: tuple[str, ...] = ()) -> None:
        self.name = name
        self.fail_on = fail_on
        self.calls: list[tuple] = []
        self.states: list[DisplayState] = []

    def _record(self, method: str, *args: object) -> None:
        self.calls.append((method, *args))
        if method in self.fail_on:
            raise RuntimeError(f"{self.name}.{method} exploded")

    def update(self, state: DisplayState, instigator: DeviceHandle | None = None) -> None:
        self.states.append(state)
        self._record("update", state, instigator)

    def refresh(self) -> None:
        self._record("refresh")

    def show(self) -> None:
        self._record("show")

    def hide(self) -> None:
        self._record("hide")

    def mute(self) -> None:
        self._record("mute")

    def unmute(self) -> None:
        self._record("unmute")

    def delete(self) -> None:
        self._record("delete")


CAM = DeviceHandle(id="cam:com.apple.FaceTime", kind=DeviceKind.CAMERA, display_name="FaceTime HD Camera")
MIC = DeviceHandle(id="mic:us.zoom.xos", kind=DeviceKind.MICROPHONE, display_name="MacBook Pro Microphone")


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def snapshot() -> FakeSnapshot:
    snap = FakeSnapshot()
    snap.add(CAM)
    snap.add(MIC)
    return snap


@pytest.fixture
def screen() -> FakeScreen:
    return FakeScreen()


@pytest.fixture
def canvas_factory() -> FakeCanvasFactory:
    return FakeCanvasFactory()


@pytest.fixture
def app() -> FakeApp:
    return FakeApp()


@pytest.fixture
def lifecycle() -> FakeLifecycle:
    return FakeLifecycle()


@pytest.fixture
def cam() -> DeviceHandle:
    return CAM


@pytest.fixture
def mic() -> DeviceHandle:
    return MIC


@pytest.fixture
def make_indicator() -> Callable[..., RecordingIndicator]:
    return RecordingIndicator
