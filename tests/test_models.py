"""Unit tests for display state computation and value types."""
import itertools

import pytest

from avwatch.models import (
    Color,
    DeviceHandle,
    DeviceKind,
    DisplayState,
    Geometry,
    Rect,
    ShowFilter,
    compute_display_state,
)


@pytest.mark.parametrize(
    "camera, mic, muted, expected",
    [
        (False, False, False, DisplayState.IDLE),
        (True, False, False, DisplayState.CAMERA_ACTIVE),
        (False, True, False, DisplayState.MIC_ACTIVE),
        (True, True, False, DisplayState.BOTH_ACTIVE),
        (False, False, True, DisplayState.SUPPRESSED_IDLE),
        (True, False, True, DisplayState.SUPPRESSED_ACTIVE),
        (False, True, True, DisplayState.SUPPRESSED_ACTIVE),
        (True, True, True, DisplayState.SUPPRESSED_ACTIVE),
    ],
)
def test_compute_display_state(camera: bool, mic: bool, muted: bool, expected: DisplayState) -> None:
    assert compute_display_state(camera, mic, muted) == expected


def test_compute_display_state_is_pure() -> None:
    for inputs in itertools.product((False, True), repeat=3):
        first = compute_display_state(*inputs)
        assert isinstance(first, DisplayState)
        assert all(compute_display_state(*inputs) == first for _ in range(3))


def test_suppressed_states_report_nothing_active() -> None:
    for state in (DisplayState.SUPPRESSED_ACTIVE, DisplayState.SUPPRESSED_IDLE):
        assert state.suppressed
        assert not state.active
        assert not state.camera_active
        assert not state.mic_active


def test_both_active_counts_for_camera_and_mic() -> None:
    assert DisplayState.BOTH_ACTIVE.camera_active
    assert DisplayState.BOTH_ACTIVE.mic_active
    assert not DisplayState.BOTH_ACTIVE.suppressed


@pytest.mark.parametrize(
    "show, state, expected",
    [
        (ShowFilter.CAMERA, DisplayState.CAMERA_ACTIVE, True),
        (ShowFilter.CAMERA, DisplayState.MIC_ACTIVE, False),
        (ShowFilter.MICROPHONE, DisplayState.MIC_ACTIVE, True),
        (ShowFilter.MICROPHONE, DisplayState.BOTH_ACTIVE, True),
        (ShowFilter.ANY, DisplayState.CAMERA_ACTIVE, True),
        (ShowFilter.ANY, DisplayState.IDLE, False),
        (ShowFilter.ANY, DisplayState.SUPPRESSED_ACTIVE, False),
    ],
)
def test_show_filter(show: ShowFilter, state: DisplayState, expected: bool) -> None:
    assert show.matches(state) is expected


def test_device_handle_equality_is_by_id() -> None:
    a = DeviceHandle(id="cam:1", kind=DeviceKind.CAMERA, display_name="FaceTime")
    b = DeviceHandle(id="cam:1", kind=DeviceKind.CAMERA, display_name="Renamed")
    assert a == b
    assert len({a, b}) == 1
    assert a.name == "FaceTime"
    assert DeviceHandle(id="mic:2", kind=DeviceKind.MICROPHONE).name == "mic:2"


def test_geometry_place_positive_offsets() -> None:
    frame = Rect(x=0, y=25, w=1440, h=875)
    assert Geometry(x=20, y=20, w=20, h=20).place(frame) == Rect(x=20, y=45, w=20, h=20)


def test_geometry_place_negative_offsets_from_right_and_bottom() -> None:
    frame = Rect(x=0, y=25, w=1440, h=875)
    placed = Geometry(x=-60, y=-70, w=50, h=50).place(frame)
    assert placed == Rect(x=1380, y=830, w=50, h=50)


def test_color_to_hex() -> None:
    assert Color(red=1.0).to_hex() == "#ff0000"
    assert Color(red=1.0, green=0.67).to_hex() == "#ffab00"
