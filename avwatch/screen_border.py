"""
Screen border indicator: a steady colored border around the primary screen
while a camera or microphone is in use.
"""
from __future__ import annotations

import logging

from avwatch.config import ScreenBorderConfig
from avwatch.indicator import PlacedCanvas, VisibilityTracker
from avwatch.models import DeviceHandle, DisplayState, Geometry
from avwatch.surfaces import BorderShape, CanvasError, CanvasFactory, Screen, ScreenError


def _full_screen(screen: Screen) -> Geometry:
    frame = screen.frame()
    return Geometry(x=0, y=0, w=frame.w, h=frame.h)


class ScreenBorderIndicator:
    def __init__(self, config: ScreenBorderConfig, placed: PlacedCanvas, screen: Screen) -> None:
        self.config = config
        self.name = config.name
        self._placed = placed
        self._screen = screen
        self._visibility = VisibilityTracker(self)
        self.log = logging.getLogger(f"{__name__}.{config.name}")

    @classmethod
    def create(
        cls,
        config: ScreenBorderConfig,
        screen: Screen,
        canvas_factory: CanvasFactory,
    ) -> ScreenBorderIndicator | None:
        try:
            shape = BorderShape(color=config.color, width_percent=config.width)
            placed = PlacedCanvas(_full_screen(screen), screen, canvas_factory, shape)
        except (CanvasError, ScreenError) as e:
            logging.getLogger(__name__).error("Failed to create screen border %s: %s", config.name, e)
            return None
        return cls(config, placed, screen)

    @property
    def visible(self) -> bool:
        return self._visibility.visible

    @property
    def muted(self) -> bool:
        return self._visibility.muted

    def update(self, state: DisplayState, instigator: DeviceHandle | None = None) -> None:
        self._visibility.update(self.config.show.matches(state))

    def refresh(self) -> None:
        """Follow the screen: move, or rebuild the canvas if the screen size changed."""
        geometry = _full_screen(self._screen)
        if (geometry.w, geometry.h) != (self._placed.geometry.w, self._placed.geometry.h):
            self.log.debug("Screen size changed to %dx%d", geometry.w, geometry.h)
            self._placed.resize(geometry)
        else:
            self._placed.refresh()

    def mute(self) -> None:
        self._visibility.mute()

    def unmute(self) -> None:
        self._visibility.unmute()

    def show(self) -> None:
        canvas = self._placed.canvas
        if not canvas.is_showing():
            self.log.debug("Showing border")
            canvas.show()

    def hide(self) -> None:
        canvas = self._placed.canvas
        if canvas.is_showing():
            self.log.debug("Hiding border")
            canvas.hide()

    def delete(self) -> None:
        self.hide()
        self._placed.canvas.delete()
