"""
Menu bar indicator: a status item whose title reflects the display state,
with a menu to mute/unmute and a list of the devices in use.
"""
from __future__ import annotations

import logging
from typing import Protocol

from avwatch.config import CAMERA, MICROPHONE, MenubarConfig
from avwatch.models import DeviceHandle, DisplayState
from avwatch.surfaces import MenuItem, StatusItem

logger = logging.getLogger(__name__)


class MenuController(Protocol):
    def mute(self) -> None:
        ...

    def unmute(self) -> None:
        ...

    def cameras_in_use(self) -> list[DeviceHandle]:
        ...

    def mics_in_use(self) -> list[DeviceHandle]:
        ...


class MenuBarIndicator:
    """
    Unlike the on-screen indicators, muting does not hide the menu bar item:
    it stays as the way to unmute, showing the suppressed title instead.
    """

    def __init__(self, config: MenubarConfig, item: StatusItem, controller: MenuController) -> None:
        self.config = config
        self.name = config.name
        self._item = item
        self._controller = controller
        self._muted = False
        self._state: DisplayState | None = None
        self._item.set_menu(self.menu)

    @property
    def title(self) -> str:
        return self.config.titles.for_state(self._state) if self._state is not None else ""

    @property
    def visible(self) -> bool:
        return self._item.is_showing()

    @property
    def muted(self) -> bool:
        return self._muted

    def update(self, state: DisplayState, instigator: DeviceHandle | None = None) -> None:
        self._state = state
        if state == DisplayState.IDLE and not self.config.show_when_idle:
            logger.debug("Updating menubar icon: Nothing in use")
            self.hide()
            return
        logger.debug("Updating menubar icon: %s", state.value)
        # Show before setting the title so the new title takes effect.
        self.show()
        self._item.set_title(self.config.titles.for_state(state))

    def refresh(self) -> None:
        logger.debug("refresh() called - doing nothing.")

    def show(self) -> None:
        if not self._item.is_showing():
            self._item.show()

    def hide(self) -> None:
        if self._item.is_showing():
            self._item.hide()

    def mute(self) -> None:
        self._muted = True

    def unmute(self) -> None:
        self._muted = False

    def delete(self) -> None:
        logger.debug("Deleting menubar")
        self._item.delete()

    def menu(self) -> list[MenuItem]:
        """Built on demand so it lists the devices in use at click time."""
        if self._muted:
            items = [MenuItem("Unmute Indicators", self._controller.unmute)]
        else:
            items = [MenuItem("Mute Indicators", self._controller.mute)]
        if self.config.list_cameras:
            items.extend(MenuItem(CAMERA + c.name) for c in self._controller.cameras_in_use())
        if self.config.list_mics:
            items.extend(MenuItem(MICROPHONE + m.name) for m in self._controller.mics_in_use())
        return items
