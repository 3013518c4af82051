"""
On-screen overlay canvases. Each canvas is a small helper process running a
borderless, always-on-top Tk window, because macOS requires Tk windows to be
created on the main thread. The parent drives it with one command per line on
stdin: "show", "hide", "move X Y", "quit".

Run directly (python -m avwatch.overlay SPEC_JSON) only as a helper.
"""
from __future__ import annotations

import json
import logging
import os
import queue
import select
import signal
import subprocess
import sys
import threading
from dataclasses import asdict
from typing import Any

from avwatch.models import Color, Rect
from avwatch.surfaces import CanvasError, CircleShape, ScreenError, Shape

logger = logging.getLogger(__name__)

READY = "ready"
STARTUP_TIMEOUT = 5.0


def _shape_to_dict(shape: Shape) -> dict[str, Any]:
    kind = "circle" if isinstance(shape, CircleShape) else "border"
    return {"kind": kind, **asdict(shape)}


class OverlayCanvas:
    """Canvas backed by an overlay helper process."""

    def __init__(self, frame: Rect, shape: Shape, python: str = sys.executable) -> None:
        spec = json.dumps({"frame": asdict(frame), "shape": _shape_to_dict(shape)})
        try:
            self._proc = subprocess.Popen(
                [python, "-m", "avwatch.overlay", spec],
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                text=True,
            )
        except OSError as e:
            raise CanvasError(f"Could not start overlay helper: {e}") from e
        if not self._wait_ready():
            self._kill()
            raise CanvasError("Overlay helper did not start (no display?)")
        logger.debug("Overlay helper %d ready", self._proc.pid)
        self._showing = False
        self._frame = frame

    def _wait_ready(self) -> bool:
        assert self._proc.stdout is not None
        readable, _, _ = select.select([self._proc.stdout], [], [], STARTUP_TIMEOUT)
        if not readable:
            return False
        return self._proc.stdout.readline().strip() == READY

    def _send(self, command: str) -> None:
        if self._proc.poll() is not None:
            raise CanvasError(f"Overlay helper exited with {self._proc.returncode}")
        assert self._proc.stdin is not None
        try:
            self._proc.stdin.write(command + "\n")
            self._proc.stdin.flush()
        except (BrokenPipeError, OSError) as e:
            raise CanvasError(f"Overlay helper unreachable: {e}") from e

    def show(self) -> None:
        self._send("show")
        self._showing = True

    def hide(self) -> None:
        self._send("hide")
        self._showing = False

    def is_showing(self) -> bool:
        return self._showing

    def move_to(self, frame: Rect) -> None:
        self._send(f"move {int(frame.x)} {int(frame.y)}")
        self._frame = frame

    def delete(self) -> None:
        if self._proc.poll() is None:
            try:
                self._send("quit")
                self._proc.wait(timeout=2.0)
            except (CanvasError, subprocess.TimeoutExpired):
                self._kill()
        self._showing = False

    def _kill(self) -> None:
        try:
            self._proc.kill()
            self._proc.wait(timeout=2.0)
        except (ProcessLookupError, subprocess.TimeoutExpired):
            pass


class TkScreen:
    """Primary screen frame, read through a hidden Tk root."""

    def __init__(self) -> None:
        self._root: Any = None

    def frame(self) -> Rect:
        try:
            import tkinter as tk
        except ImportError as e:
            raise ScreenError("tkinter is not available") from e
        try:
            if self._root is None:
                self._root = tk.Tk()
                self._root.withdraw()
            self._root.update()
            return Rect(x=0, y=0, w=self._root.winfo_screenwidth(), h=self._root.winfo_screenheight())
        except tk.TclError as e:
            self._root = None
            raise ScreenError(f"Cannot read screen size: {e}") from e

    def close(self) -> None:
        if self._root is not None:
            self._root.destroy()
            self._root = None


def _draw(canvas: Any, shape: dict[str, Any], w: int, h: int) -> None:
    color = Color(**shape["color"]).to_hex()
    if shape["kind"] == "circle":
        canvas.create_oval(0, 0, w, h, fill=color, outline="")
        return
    # Border: four rectangles, width_percent of each dimension
    bw = max(1, int(w * shape["width_percent"] / 100))
    bh = max(1, int(h * shape["width_percent"] / 100))
    canvas.create_rectangle(0, 0, w, bh, fill=color, outline="")  # Top
    canvas.create_rectangle(0, h - bh, w, h, fill=color, outline="")  # Bottom
    canvas.create_rectangle(0, 0, bw, h, fill=color, outline="")  # Left
    canvas.create_rectangle(w - bw, 0, w, h, fill=color, outline="")  # Right


def main(argv: list[str] | None = None) -> int:
    import tkinter as tk

    argv = sys.argv[1:] if argv is None else argv
    spec = json.loads(argv[0])
    frame = spec["frame"]
    x, y, w, h = (int(frame[k]) for k in ("x", "y", "w", "h"))

    try:
        root = tk.Tk()
    except tk.TclError:
        return 1
    root.withdraw()
    root.overrideredirect(True)
    root.attributes("-topmost", True)
    bg = "systemTransparent" if sys.platform == "darwin" else "black"
    if sys.platform == "darwin":
        root.attributes("-transparent", True)
    root.config(bg=bg)
    root.geometry(f"{w}x{h}+{x}+{y}")
    canvas = tk.Canvas(root, width=w, height=h, highlightthickness=0, bg=bg)
    canvas.pack()
    _draw(canvas, spec["shape"], w, h)

    commands: queue.Queue[str] = queue.Queue()

    def read_stdin() -> None:
        for line in sys.stdin:
            commands.put(line.strip())
        commands.put("quit")

    threading.Thread(target=read_stdin, daemon=True).start()
    parent_pid = os.getppid()

    def pump() -> None:
        try:
            os.kill(parent_pid, 0)
        except OSError:
            root.quit()
            return
        while True:
            try:
                command = commands.get_nowait()
            except queue.Empty:
                break
            if command == "show":
                root.deiconify()
                root.lift()
            elif command == "hide":
                root.withdraw()
            elif command.startswith("move "):
                _, mx, my = command.split()
                root.geometry(f"+{mx}+{my}")
            elif command == "quit":
                root.quit()
                return
        root.after(50, pump)

    signal.signal(signal.SIGTERM, lambda signum, frame: root.quit())
    root.after(50, pump)
    print(READY, flush=True)
    root.mainloop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
