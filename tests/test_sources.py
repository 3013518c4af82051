"""Unit tests for the polling event sources."""
from unittest.mock import MagicMock, patch

import pytest

from avwatch.models import DeviceHandle, DeviceKind
from avwatch.sources import DeviceEvents, PollingAppLifecycleSource, PollingDeviceEventSource, is_in_use


@pytest.fixture
def recorded() -> list:
    return []


def subscribe(source, recorded) -> None:
    source.subscribe(
        lambda d: recorded.append(("added", d.id)),
        lambda d: recorded.append(("removed", d.id)),
        lambda d: recorded.append(("used", d.id)),
        lambda d: recorded.append(("unused", d.id)),
    )


def test_is_in_use(snapshot, cam, mic) -> None:
    assert not is_in_use(snapshot, cam)
    snapshot.set_active(cam)
    assert is_in_use(snapshot, cam)
    assert not is_in_use(snapshot, mic)


def test_polling_emits_nothing_at_start(snapshot, scheduler, recorded, cam) -> None:
    snapshot.set_active(cam)
    source = PollingDeviceEventSource(snapshot, scheduler, interval_seconds=2)
    subscribe(source, recorded)
    source.start()
    scheduler.advance(10)
    assert recorded == []


def test_polling_emits_usage_changes(snapshot, scheduler, recorded, cam, mic) -> None:
    source = PollingDeviceEventSource(snapshot, scheduler, interval_seconds=2)
    subscribe(source, recorded)
    source.start()
    snapshot.set_active(cam)
    snapshot.set_active(mic)
    scheduler.advance(2)
    assert recorded == [("used", cam.id), ("used", mic.id)]
    snapshot.set_active(cam, False)
    scheduler.advance(2)
    assert recorded[-1] == ("unused", cam.id)


def test_polling_emits_hotplug(snapshot, scheduler, recorded, cam) -> None:
    usb = DeviceHandle(id="cam:usb", kind=DeviceKind.CAMERA)
    source = PollingDeviceEventSource(snapshot, scheduler, interval_seconds=2)
    subscribe(source, recorded)
    source.start()
    snapshot.add(usb)
    snapshot.set_active(cam)
    snapshot.remove(cam)
    snapshot.set_active(cam)
    scheduler.advance(2)
    assert recorded == [("added", "cam:usb"), ("removed", cam.id)]


def test_polling_stop_cancels(snapshot, scheduler, recorded, cam) -> None:
    source = PollingDeviceEventSource(snapshot, scheduler, interval_seconds=2)
    subscribe(source, recorded)
    source.start()
    source.start()
    assert len(scheduler.active_timers) == 1
    source.stop()
    snapshot.set_active(cam)
    scheduler.advance(10)
    assert recorded == []


def test_emit_diff_order_and_isolation(cam, mic) -> None:
    events = DeviceEvents()
    recorded = []

    def boom(device):
        raise RuntimeError("subscriber failed")

    events.subscribe(boom, boom, boom, boom)
    subscribe(events, recorded)
    usb = DeviceHandle(id="cam:usb", kind=DeviceKind.CAMERA)
    with patch("avwatch.utils.logger") as mock_logger:
        events.emit_diff({cam, mic}, {mic, usb}, {mic}, {usb})
    assert recorded == [("added", "cam:usb"), ("used", "cam:usb"), ("unused", mic.id), ("removed", cam.id)]
    assert mock_logger.exception.call_count == 4


def test_app_lifecycle_polls_transitions(app, scheduler) -> None:
    launched, terminated = MagicMock(), MagicMock()
    source = PollingAppLifecycleSource(app, scheduler, interval_seconds=5)
    source.subscribe(launched, terminated)
    source.start()
    scheduler.advance(5)
    launched.assert_not_called()
    app.running = True
    scheduler.advance(5)
    launched.assert_called_once_with()
    scheduler.advance(5)
    launched.assert_called_once()
    app.running = False
    scheduler.advance(5)
    terminated.assert_called_once_with()
    source.stop()
    assert scheduler.active_timers == []


def test_app_lifecycle_already_running_fires_nothing(app, scheduler) -> None:
    app.running = True
    launched = MagicMock()
    source = PollingAppLifecycleSource(app, scheduler)
    source.subscribe(launched, MagicMock())
    source.start()
    scheduler.advance(20)
    launched.assert_not_called()
