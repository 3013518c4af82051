"""
Flashing icon indicator: a filled circle on screen that blinks while the
devices it watches are in use.
"""
from __future__ import annotations

import logging

from avwatch.config import FlasherConfig
from avwatch.indicator import PlacedCanvas, VisibilityTracker
from avwatch.models import DeviceHandle, DisplayState
from avwatch.scheduler import Cancellable, Scheduler
from avwatch.surfaces import CanvasError, CanvasFactory, CircleShape, Screen, ScreenError


class FlashingIconIndicator:
    """
    With blink_interval > 0, show()/hide() start and stop a blink timer that
    toggles the canvas; with 0 the icon is steady and no timer exists.
    """

    def __init__(self, config: FlasherConfig, placed: PlacedCanvas, scheduler: Scheduler) -> None:
        self.config = config
        self.name = config.name
        self._placed = placed
        self._scheduler = scheduler
        self._blink_timer: Cancellable | None = None
        self._visibility = VisibilityTracker(self)
        self.log = logging.getLogger(f"{__name__}.{config.name}")

    @classmethod
    def create(
        cls,
        config: FlasherConfig,
        screen: Screen,
        canvas_factory: CanvasFactory,
        scheduler: Scheduler,
    ) -> FlashingIconIndicator | None:
        """Build the indicator, or log and return None if its canvas cannot be created."""
        try:
            placed = PlacedCanvas(config.geometry, screen, canvas_factory, CircleShape(config.color))
        except (CanvasError, ScreenError) as e:
            logging.getLogger(__name__).error("Failed to create flasher %s: %s", config.name, e)
            return None
        return cls(config, placed, scheduler)

    @property
    def blinking(self) -> bool:
        return self._blink_timer is not None

    @property
    def visible(self) -> bool:
        """Whether the indicator is in its shown state (blinking counts as shown)."""
        return self._visibility.visible

    @property
    def muted(self) -> bool:
        return self._visibility.muted

    @property
    def canvas_showing(self) -> bool:
        return self._placed.canvas.is_showing()

    def update(self, state: DisplayState, instigator: DeviceHandle | None = None) -> None:
        self._visibility.update(self.config.show.matches(state))

    def refresh(self) -> None:
        self._placed.refresh()

    def mute(self) -> None:
        self._visibility.mute()

    def unmute(self) -> None:
        self._visibility.unmute()

    def show(self) -> None:
        canvas = self._placed.canvas
        if self.config.blink_interval > 0:
            if self._blink_timer is not None:
                return
            self.log.debug("Starting indicator blinking")
            canvas.show()
            self._blink_timer = self._scheduler.call_every(self.config.blink_interval, self.blink)
        elif not canvas.is_showing():
            self.log.debug("Showing indicator")
            canvas.show()

    def hide(self) -> None:
        if self._blink_timer is not None:
            self.log.debug("Stopping indicator blinking")
            self._blink_timer.cancel()
            self._blink_timer = None
        canvas = self._placed.canvas
        if canvas.is_showing():
            self.log.debug("Hiding indicator")
            canvas.hide()

    def blink(self) -> None:
        """Toggle the canvas."""
        canvas = self._placed.canvas
        if canvas.is_showing():
            canvas.hide()
        else:
            canvas.show()

    def delete(self) -> None:
        self.hide()
        self._placed.canvas.delete()
