"""Unit tests for the overlay helper process protocol (parent side)."""
import json
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from avwatch.models import RED, Rect
from avwatch.overlay import OverlayCanvas, _draw, _shape_to_dict
from avwatch.surfaces import BorderShape, CanvasError, CircleShape

FRAME = Rect(x=1380, y=20, w=50, h=50)


@pytest.fixture
def proc() -> MagicMock:
    proc = MagicMock()
    proc.poll.return_value = None
    proc.returncode = None
    proc.pid = 4321
    proc.stdout.readline.return_value = "ready\n"
    return proc


def sent(proc: MagicMock) -> list:
    return [c.args[0] for c in proc.stdin.write.call_args_list]


def make_canvas(proc, readable=True) -> OverlayCanvas:
    with (
        patch("avwatch.overlay.subprocess.Popen", return_value=proc) as mock_popen,
        patch("avwatch.overlay.select.select", return_value=([proc.stdout] if readable else [], [], [])),
    ):
        canvas = OverlayCanvas(FRAME, CircleShape(RED), python="python3")
    args, _ = mock_popen.call_args
    assert args[0][:3] == ["python3", "-m", "avwatch.overlay"]
    spec = json.loads(args[0][3])
    assert spec["frame"] == {"x": 1380, "y": 20, "w": 50, "h": 50}
    assert spec["shape"]["kind"] == "circle"
    return canvas


def test_show_hide_move_commands(proc) -> None:
    canvas = make_canvas(proc)
    canvas.show()
    assert canvas.is_showing()
    canvas.move_to(Rect(x=10.7, y=20, w=50, h=50))
    canvas.hide()
    assert not canvas.is_showing()
    assert sent(proc) == ["show\n", "move 10 20\n", "hide\n"]


def test_helper_not_ready_raises(proc) -> None:
    with pytest.raises(CanvasError, match="did not start"):
        make_canvas(proc, readable=False)
    proc.kill.assert_called_once()


def test_helper_wrong_handshake_raises(proc) -> None:
    proc.stdout.readline.return_value = "Traceback\n"
    with pytest.raises(CanvasError):
        make_canvas(proc)


def test_popen_failure_raises_canvas_error() -> None:
    with patch("avwatch.overlay.subprocess.Popen", side_effect=FileNotFoundError("python3")):
        with pytest.raises(CanvasError, match="Could not start"):
            OverlayCanvas(FRAME, CircleShape(RED), python="python3")


def test_send_to_dead_helper_raises(proc) -> None:
    canvas = make_canvas(proc)
    proc.poll.return_value = 1
    proc.returncode = 1
    with pytest.raises(CanvasError, match="exited"):
        canvas.show()


def test_broken_pipe_raises(proc) -> None:
    canvas = make_canvas(proc)
    proc.stdin.write.side_effect = BrokenPipeError()
    with pytest.raises(CanvasError, match="unreachable"):
        canvas.show()


def test_delete_sends_quit(proc) -> None:
    canvas = make_canvas(proc)
    canvas.show()
    canvas.delete()
    assert sent(proc)[-1] == "quit\n"
    proc.wait.assert_called_once_with(timeout=2.0)
    proc.kill.assert_not_called()
    assert not canvas.is_showing()


def test_delete_kills_unresponsive_helper(proc) -> None:
    canvas = make_canvas(proc)
    proc.wait.side_effect = [subprocess.TimeoutExpired(cmd="overlay", timeout=2.0), 0]
    canvas.delete()
    proc.kill.assert_called_once()


def test_shape_to_dict() -> None:
    border = _shape_to_dict(BorderShape(color=RED, width_percent=0.5))
    assert border["kind"] == "border"
    assert border["width_percent"] == 0.5
    assert border["color"]["red"] == 1.0


def test_draw_border_uses_four_rectangles() -> None:
    canvas = MagicMock()
    _draw(canvas, _shape_to_dict(BorderShape(color=RED, width_percent=1)), 1000, 500)
    assert canvas.create_rectangle.call_count == 4
    top = canvas.create_rectangle.call_args_list[0]
    assert top.args == (0, 0, 1000, 5)
    assert top.kwargs["fill"] == "#ff0000"


def test_draw_circle() -> None:
    canvas = MagicMock()
    _draw(canvas, _shape_to_dict(CircleShape(RED)), 50, 50)
    canvas.create_oval.assert_called_once_with(0, 0, 50, 50, fill="#ff0000", outline="")
