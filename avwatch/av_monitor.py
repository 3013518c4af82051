"""
Camera/microphone detection via macOS log stream (control center sensor-indicators).
Uses the same events that drive the menu bar indicator dots. Each attribution
("cam:<bundle id>" or "mic:<bundle id>") is reported as one device handle.
"""
from __future__ import annotations

import asyncio
import json
import logging
import re
import subprocess
import sys
from typing import AsyncIterator

from avwatch.models import DeviceHandle, DeviceKind
from avwatch.sources import DeviceCallback, DeviceEvents

# Predicate for sensor-indicators (cam/mic/loc). Must match macOS log format.
LOG_PREDICATE = (
    "subsystem == 'com.apple.controlcenter' AND "
    "category == 'sensor-indicators' AND "
    "formatString BEGINSWITH 'Active '"
)
PREFIX = "Active activity attributions changed to ["

_KIND_BY_TAG = {"cam": DeviceKind.CAMERA, "mic": DeviceKind.MICROPHONE}

logger = logging.getLogger(__name__)


def parse_event_message(event_message: str) -> frozenset[DeviceHandle]:
    """
    Parse a single eventMessage string from log stream.
    Returns the set of active camera and microphone attributions.
    """
    if not event_message.startswith(PREFIX):
        return frozenset()
    suffix = event_message[len(PREFIX) :].rstrip("]").strip()
    if not suffix:
        return frozenset()
    devices = set()
    # Items are like "cam:com.apple.FaceTime" or "mic:us.zoom.xos", comma-separated
    for part in re.split(r",\s*", suffix):
        part = part.strip().strip("'\"")
        tag, sep, owner = part.partition(":")
        kind = _KIND_BY_TAG.get(tag)
        if not sep or kind is None:
            continue
        devices.add(DeviceHandle(id=part, kind=kind, display_name=owner))
    return frozenset(devices)


def _message_from_line(line: str) -> str | None:
    obj = json.loads(line)
    msg = obj.get("eventMessage") or obj.get("message") or ""
    if msg.startswith(PREFIX):
        return msg
    return None


def get_initial_state() -> frozenset[DeviceHandle]:
    """
    Run `log show --last 60s` with the sensor-indicators predicate and return
    the active devices from the most recent event. If no events, returns an empty set.
    """
    cmd = [
        "/usr/bin/log", "show", "--last", "60s",
        "--style", "ndjson",
        "--predicate", LOG_PREDICATE,
    ]
    try:
        out = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=15,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return frozenset()
    if out.returncode != 0 or not out.stdout:
        return frozenset()
    lines = [ln.strip() for ln in out.stdout.strip().splitlines() if ln.strip()]
    for line in reversed(lines):
        try:
            msg = _message_from_line(line)
        except (json.JSONDecodeError, AttributeError):
            continue
        if msg is not None:
            return parse_event_message(msg)
    return frozenset()


async def stream_av_events() -> AsyncIterator[frozenset[DeviceHandle]]:
    """
    Run `log stream` with the sensor-indicators predicate; parse NDJSON and
    yield the active device set only when it changes.
    """
    cmd = [
        "/usr/bin/log", "stream",
        "--style", "ndjson",
        "--predicate", LOG_PREDICATE,
    ]
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.DEVNULL,
    )
    last: frozenset[DeviceHandle] | None = None
    try:
        assert proc.stdout is not None
        while True:
            raw = await proc.stdout.readline()
            if not raw:
                break
            line = raw.decode("utf-8", errors="replace").strip()
            if not line or line.startswith("Filtering"):
                continue
            try:
                msg = _message_from_line(line)
            except (json.JSONDecodeError, AttributeError):
                continue
            if msg is None:
                continue
            state = parse_event_message(msg)
            if state != last:
                last = state
                yield state
    finally:
        try:
            proc.terminate()
            await asyncio.wait_for(proc.wait(), timeout=2.0)
        except (ProcessLookupError, asyncio.TimeoutError):
            proc.kill()


class SensorIndicatorMonitor:
    """
    Device snapshot and push event source backed by the sensor-indicators log
    stream. Attributions are remembered once seen so that off events for them
    still resolve.
    """

    def __init__(self) -> None:
        self._events = DeviceEvents()
        self._known: dict[str, DeviceHandle] = {}
        self._active: frozenset[DeviceHandle] = frozenset()
        self._task: asyncio.Task[None] | None = None

    def known_devices(self) -> frozenset[DeviceHandle]:
        return frozenset(self._known.values())

    def active_cameras(self) -> frozenset[DeviceHandle]:
        return frozenset(d for d in self._active if d.kind == DeviceKind.CAMERA)

    def active_microphones(self) -> frozenset[DeviceHandle]:
        return frozenset(d for d in self._active if d.kind == DeviceKind.MICROPHONE)

    def find_device(self, device_id: str) -> DeviceHandle | None:
        return self._known.get(device_id)

    def subscribe(
        self,
        on_added: DeviceCallback,
        on_removed: DeviceCallback,
        on_became_used: DeviceCallback,
        on_became_unused: DeviceCallback,
    ) -> None:
        self._events.subscribe(on_added, on_removed, on_became_used, on_became_unused)

    def load_initial_state(self) -> None:
        """Seed the snapshot from recent log history without firing events."""
        self._active = get_initial_state()
        for device in self._active:
            self._known[device.id] = device
        logger.debug("Initial active devices: %s", sorted(d.id for d in self._active))

    def apply(self, active: frozenset[DeviceHandle]) -> None:
        """Replace the active set and fire events for what changed."""
        known_before = self.known_devices()
        for device in active:
            self._known.setdefault(device.id, device)
        active_before, self._active = self._active, active
        self._events.emit_diff(known_before, self.known_devices(), active_before, active)

    def start(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        try:
            async for active in stream_av_events():
                self.apply(active)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("AV stream error: %s", e)


if __name__ == "__main__":
    # Quick test: print initial state then first few stream events
    print("Initial state (last 60s):", sorted(d.id for d in get_initial_state()))
    print("Streaming (Ctrl+C to stop)...")

    async def _run():
        async for devices in stream_av_events():
            print("  active:", sorted(d.id for d in devices))

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        sys.exit(0)
