"""Unit tests for the screen border indicator."""
from avwatch.config import ScreenBorderConfig
from avwatch.models import DisplayState, Rect, ShowFilter
from avwatch.screen_border import ScreenBorderIndicator
from avwatch.surfaces import BorderShape


def make_border(screen, canvas_factory, **kwargs) -> ScreenBorderIndicator:
    border = ScreenBorderIndicator.create(ScreenBorderConfig(**kwargs), screen, canvas_factory)
    assert border is not None
    return border


def test_create_covers_screen(screen, canvas_factory) -> None:
    make_border(screen, canvas_factory, width=1.0)
    (canvas,) = canvas_factory.created
    assert canvas.frame == Rect(x=0, y=0, w=1440, h=900)
    assert canvas.shape.width_percent == 1.0
    assert isinstance(canvas.shape, BorderShape)


def test_create_failure_returns_none(screen, canvas_factory) -> None:
    canvas_factory.fail = True
    assert ScreenBorderIndicator.create(ScreenBorderConfig(), screen, canvas_factory) is None


def test_visible_while_active(screen, canvas_factory) -> None:
    border = make_border(screen, canvas_factory)
    canvas = canvas_factory.created[0]
    border.update(DisplayState.MIC_ACTIVE)
    assert canvas.showing
    border.update(DisplayState.BOTH_ACTIVE)
    assert canvas.show_calls == 1
    border.update(DisplayState.IDLE)
    assert not canvas.showing


def test_show_hide_idempotent(screen, canvas_factory) -> None:
    border = make_border(screen, canvas_factory)
    canvas = canvas_factory.created[0]
    border.show()
    border.show()
    border.hide()
    border.hide()
    assert canvas.show_calls == 1
    assert canvas.hide_calls == 1


def test_show_filter_microphone(screen, canvas_factory) -> None:
    border = make_border(screen, canvas_factory, show=ShowFilter.MICROPHONE)
    border.update(DisplayState.CAMERA_ACTIVE)
    assert not border.visible
    border.update(DisplayState.MIC_ACTIVE)
    assert border.visible


def test_mute_overrides_activity(screen, canvas_factory) -> None:
    border = make_border(screen, canvas_factory)
    canvas = canvas_factory.created[0]
    border.update(DisplayState.CAMERA_ACTIVE)
    border.mute()
    assert not canvas.showing
    border.update(DisplayState.CAMERA_ACTIVE)
    assert not canvas.showing
    border.unmute()
    assert canvas.showing


def test_refresh_same_size_keeps_canvas(screen, canvas_factory) -> None:
    border = make_border(screen, canvas_factory)
    screen.rect = Rect(x=100, y=0, w=1440, h=900)
    border.refresh()
    assert len(canvas_factory.created) == 1
    assert canvas_factory.created[0].frame == Rect(x=100, y=0, w=1440, h=900)


def test_refresh_new_size_rebuilds_and_keeps_visibility(screen, canvas_factory) -> None:
    border = make_border(screen, canvas_factory)
    border.update(DisplayState.CAMERA_ACTIVE)
    screen.rect = Rect(x=0, y=0, w=2560, h=1440)
    border.refresh()
    old, new = canvas_factory.created
    assert old.deleted
    assert new.frame == Rect(x=0, y=0, w=2560, h=1440)
    assert new.showing
    border.update(DisplayState.IDLE)
    assert not new.showing


def test_delete(screen, canvas_factory) -> None:
    border = make_border(screen, canvas_factory)
    border.update(DisplayState.CAMERA_ACTIVE)
    border.delete()
    assert canvas_factory.created[0].deleted
