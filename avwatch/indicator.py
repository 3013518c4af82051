"""
The Indicator interface and the canvas placement helper shared by the
on-screen indicators.
"""
from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from avwatch.models import DeviceHandle, DisplayState, Geometry
from avwatch.state_machine import VisibilityAction, VisibilityStateMachine
from avwatch.surfaces import Canvas, CanvasFactory, Screen, Shape

logger = logging.getLogger(__name__)


@runtime_checkable
class Indicator(Protocol):
    """Anything the registry can drive. show()/hide() must be idempotent."""

    name: str

    def update(self, state: DisplayState, instigator: DeviceHandle | None = None) -> None:
        ...

    def refresh(self) -> None:
        ...

    def show(self) -> None:
        ...

    def hide(self) -> None:
        ...

    def mute(self) -> None:
        ...

    def unmute(self) -> None:
        ...

    def delete(self) -> None:
        ...


class PlacedCanvas:
    """
    A canvas positioned from a Geometry relative to the screen frame. Creating
    one raises CanvasError or ScreenError; there is no half-built instance.
    """

    def __init__(self, geometry: Geometry, screen: Screen, factory: CanvasFactory, shape: Shape) -> None:
        self.geometry = geometry
        self.shape = shape
        self._screen = screen
        self._factory = factory
        self.frame = geometry.place(screen.frame())
        self.canvas: Canvas = factory(self.frame, shape)

    def refresh(self) -> None:
        self.frame = self.geometry.place(self._screen.frame())
        logger.debug("Refreshing canvas geometry: x = %d y = %d", self.frame.x, self.frame.y)
        self.canvas.move_to(self.frame)

    def resize(self, geometry: Geometry) -> None:
        """Replace the canvas with one of a new size, keeping its visibility."""
        showing = self.canvas.is_showing()
        frame = geometry.place(self._screen.frame())
        canvas = self._factory(frame, self.shape)
        self.canvas.delete()
        self.canvas, self.geometry, self.frame = canvas, geometry, frame
        if showing:
            self.canvas.show()


def apply_action(indicator: Indicator, action: VisibilityAction | None) -> None:
    """Perform a state machine action on an indicator."""
    if action == "show":
        indicator.show()
    elif action == "hide":
        indicator.hide()


class VisibilityTracker:
    """
    Mute/visibility bookkeeping delegated to by the canvas indicators: feeds the
    state machine and applies its actions back onto the owning indicator.
    """

    def __init__(self, owner: Indicator) -> None:
        self._owner = owner
        self.machine = VisibilityStateMachine()

    @property
    def visible(self) -> bool:
        return self.machine.visible

    @property
    def muted(self) -> bool:
        return self.machine.muted

    def update(self, active: bool) -> None:
        self._apply(self.machine.update(active))

    def mute(self) -> None:
        self._apply(self.machine.mute())

    def unmute(self) -> None:
        self._apply(self.machine.unmute())

    def _apply(self, action: VisibilityAction | None) -> None:
        try:
            apply_action(self._owner, action)
        except Exception:
            self.machine.revert()
            raise
