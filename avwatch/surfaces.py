"""
Rendering collaborators used by the indicators: on-screen canvases, the screen
frame, and a status (menu bar) item.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Protocol, Union

from avwatch.models import Color, Rect


class CanvasError(Exception):
    """A canvas could not be created (no display, helper process died, ...)."""


class ScreenError(Exception):
    """The screen frame could not be determined."""


@dataclass(frozen=True)
class CircleShape:
    """Filled circle covering the canvas."""
    color: Color


@dataclass(frozen=True)
class BorderShape:
    """Rectangle outline; width is a percentage of the screen size."""
    color: Color
    width_percent: float


Shape = Union[CircleShape, BorderShape]


class Canvas(Protocol):
    def show(self) -> None:
        ...

    def hide(self) -> None:
        ...

    def is_showing(self) -> bool:
        ...

    def move_to(self, frame: Rect) -> None:
        ...

    def delete(self) -> None:
        ...


# Creates a canvas at the given frame, raising CanvasError on failure.
CanvasFactory = Callable[[Rect, Shape], Canvas]


class Screen(Protocol):
    def frame(self) -> Rect:
        ...


@dataclass(frozen=True)
class MenuItem:
    title: str
    callback: Callable[[], None] | None = None


class StatusItem(Protocol):
    def set_title(self, title: str) -> None:
        ...

    def show(self) -> None:
        ...

    def hide(self) -> None:
        ...

    def is_showing(self) -> bool:
        ...

    def set_menu(self, builder: Callable[[], list[MenuItem]]) -> None:
        ...

    def delete(self) -> None:
        ...


class LogStatusItem:
    """Headless status item: reports title and visibility changes to the log."""

    def __init__(self, name: str = "menubar") -> None:
        self.name = name
        self.title = ""
        self._showing = False
        self._menu: Callable[[], list[MenuItem]] | None = None
        self._log = logging.getLogger(f"{__name__}.{name}")

    def set_title(self, title: str) -> None:
        if title != self.title:
            self.title = title
            if self._showing:
                self._log.info("Status: %s", title)

    def show(self) -> None:
        if not self._showing:
            self._showing = True
            self._log.info("Status: %s", self.title)

    def hide(self) -> None:
        if self._showing:
            self._showing = False
            self._log.info("Status hidden")

    def is_showing(self) -> bool:
        return self._showing

    def set_menu(self, builder: Callable[[], list[MenuItem]]) -> None:
        self._menu = builder

    def menu(self) -> list[MenuItem]:
        return self._menu() if self._menu is not None else []

    def delete(self) -> None:
        self._showing = False
        self._menu = None
