"""
Ordered list of indicators with failure-isolated broadcast.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from avwatch.indicator import Indicator
from avwatch.models import DeviceHandle, DisplayState
from avwatch.utils import call_each, describe

logger = logging.getLogger(__name__)


@dataclass
class IndicatorHandle:
    indicator: Indicator
    active: bool = True


class IndicatorRegistry:
    """
    Dispatch list only: indicators own their on-screen resources. Every
    broadcast calls each indicator in registration order; an exception from
    one is logged and the rest still run.
    """

    def __init__(self) -> None:
        self._handles: list[IndicatorHandle] = []

    def __len__(self) -> int:
        return len(self.indicators)

    @property
    def indicators(self) -> list[Indicator]:
        return [h.indicator for h in self._handles if h.active]

    def register(self, indicator: Indicator | None) -> bool:
        """
        Append an indicator. No duplicate check. None (an indicator whose
        creation failed) is ignored. Returns True if something was added.
        """
        if indicator is None:
            logger.warning("Indicator creation failed; not registering it")
            return False
        self._handles.append(IndicatorHandle(indicator))
        logger.debug("Added indicator %s: %d total", describe(indicator), len(self))
        return True

    def unregister(self, indicator: Indicator) -> bool:
        """Stop dispatching to an indicator and release it."""
        for handle in self._handles:
            if handle.indicator is indicator and handle.active:
                handle.active = False
                self._handles.remove(handle)
                call_each([indicator], "delete", context="unregister")
                return True
        return False

    def broadcast_update(self, state: DisplayState, instigator: DeviceHandle | None = None) -> None:
        indicators = self.indicators
        logger.debug("Updating %d indicators: %s", len(indicators), state.value)
        context = f"state={state.value}" + (f", instigator={instigator.id}" if instigator else "")
        call_each(indicators, "update", state, instigator, context=context)

    def broadcast_refresh(self) -> None:
        logger.debug("Refreshing %d indicators", len(self))
        call_each(self.indicators, "refresh")

    def broadcast_mute(self) -> None:
        call_each(self.indicators, "mute")

    def broadcast_unmute(self) -> None:
        call_each(self.indicators, "unmute")

    def teardown_all(self) -> None:
        indicators = self.indicators
        for handle in self._handles:
            handle.active = False
        call_each(indicators, "delete", context="teardown")
        self._handles.clear()
