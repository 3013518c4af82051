"""
Core value types: device handles, display state, geometry and colors.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class DeviceKind(Enum):
    CAMERA = "camera"
    MICROPHONE = "microphone"


@dataclass(frozen=True)
class DeviceHandle:
    """A camera or microphone as reported by the platform. Equality is by id."""
    id: str
    kind: DeviceKind = field(compare=False)
    display_name: str = field(default="", compare=False)

    @property
    def name(self) -> str:
        return self.display_name or self.id


class DisplayState(Enum):
    IDLE = "idle"
    CAMERA_ACTIVE = "camera_active"
    MIC_ACTIVE = "mic_active"
    BOTH_ACTIVE = "both_active"
    SUPPRESSED_ACTIVE = "suppressed_active"
    SUPPRESSED_IDLE = "suppressed_idle"

    @property
    def suppressed(self) -> bool:
        return self in (DisplayState.SUPPRESSED_ACTIVE, DisplayState.SUPPRESSED_IDLE)

    @property
    def camera_active(self) -> bool:
        return self in (DisplayState.CAMERA_ACTIVE, DisplayState.BOTH_ACTIVE)

    @property
    def mic_active(self) -> bool:
        return self in (DisplayState.MIC_ACTIVE, DisplayState.BOTH_ACTIVE)

    @property
    def active(self) -> bool:
        return self.camera_active or self.mic_active


def compute_display_state(camera_in_use: bool, mic_in_use: bool, user_muted: bool) -> DisplayState:
    """
    Map the three display-affecting booleans to a DisplayState. Suppression is
    all-or-nothing: when muted, any activity gives SUPPRESSED_ACTIVE.
    """
    if user_muted:
        if camera_in_use or mic_in_use:
            return DisplayState.SUPPRESSED_ACTIVE
        return DisplayState.SUPPRESSED_IDLE
    if camera_in_use and mic_in_use:
        return DisplayState.BOTH_ACTIVE
    if camera_in_use:
        return DisplayState.CAMERA_ACTIVE
    if mic_in_use:
        return DisplayState.MIC_ACTIVE
    return DisplayState.IDLE


class ShowFilter(Enum):
    """Which activity an indicator reacts to."""
    CAMERA = "camera"
    MICROPHONE = "microphone"
    ANY = "any"

    def matches(self, state: DisplayState) -> bool:
        if self == ShowFilter.CAMERA:
            return state.camera_active
        if self == ShowFilter.MICROPHONE:
            return state.mic_active
        return state.active


@dataclass(frozen=True)
class PendingTransition:
    """A debounced camera-off event waiting for its fire-time check."""
    device: DeviceHandle
    scheduled_at: float
    delay_seconds: float

    @property
    def due_at(self) -> float:
        return self.scheduled_at + self.delay_seconds


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    w: float
    h: float


@dataclass(frozen=True)
class Geometry:
    """
    Indicator placement relative to the primary screen. Negative x or y are
    offsets from the right or bottom edge.
    """
    x: float
    y: float
    w: float
    h: float

    def place(self, frame: Rect) -> Rect:
        x = frame.x + self.x
        if self.x < 0:
            x += frame.w
        y = frame.y + self.y
        if self.y < 0:
            y += frame.h
        return Rect(x=x, y=y, w=self.w, h=self.h)


@dataclass(frozen=True)
class Color:
    red: float = 0.0
    green: float = 0.0
    blue: float = 0.0
    alpha: float = 1.0

    def to_hex(self) -> str:
        def channel(v: float) -> int:
            return max(0, min(255, round(v * 255)))

        return "#{:02x}{:02x}{:02x}".format(channel(self.red), channel(self.green), channel(self.blue))


RED = Color(red=1.0)
