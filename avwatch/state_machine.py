"""
Indicator visibility state machine: HIDDEN / VISIBLE with an orthogonal muted
flag that forces HIDDEN. Returns the action ("show" or "hide") the indicator
should perform, or None.
"""
from __future__ import annotations

from enum import Enum
from typing import Literal


class Visibility(Enum):
    HIDDEN = "hidden"
    VISIBLE = "visible"


# Action returned when the caller should show or hide its resource.
VisibilityAction = Literal["show", "hide"]


class VisibilityStateMachine:
    """
    Tracks whether an indicator wants to be visible (its activity) and whether
    it is muted. Call update(active) with the latest activity; mute()/unmute()
    toggle the override. Each returns the action to take, or None.
    """

    def __init__(self) -> None:
        self._state = Visibility.HIDDEN
        self._previous = Visibility.HIDDEN
        self._active = False
        self._muted = False

    @property
    def state(self) -> Visibility:
        return self._state

    @property
    def visible(self) -> bool:
        return self._state == Visibility.VISIBLE

    @property
    def active(self) -> bool:
        return self._active

    @property
    def muted(self) -> bool:
        return self._muted

    def update(self, active: bool) -> VisibilityAction | None:
        self._active = active
        return self._settle()

    def mute(self) -> VisibilityAction | None:
        self._muted = True
        return self._settle()

    def unmute(self) -> VisibilityAction | None:
        self._muted = False
        return self._settle()

    def revert(self) -> None:
        """Undo the last transition; its action failed, so the next settle retries it."""
        self._state = self._previous

    def _settle(self) -> VisibilityAction | None:
        want = Visibility.VISIBLE if (self._active and not self._muted) else Visibility.HIDDEN
        if want == self._state:
            return None
        self._previous, self._state = self._state, want
        return "show" if want == Visibility.VISIBLE else "hide"
