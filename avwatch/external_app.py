"""
Probes for a conferencing app that mutes the microphone internally (Zoom keeps
the device open while muted). Running state via pgrep, mute state via the
app's menu bar through System Events.
"""
from __future__ import annotations

import asyncio
import logging

logger = logging.getLogger(__name__)

ZOOM_APP_NAME = "zoom.us"

# Zoom shows "Unmute Audio" in its Meeting menu while muted.
MUTED_MENU = ("Meeting", "Unmute Audio")

PROBE_TIMEOUT = 5.0

_MENU_ITEM_SCRIPT = """
tell application "System Events"
  if not (exists process "{app}") then return "false"
  tell process "{app}"
    return exists menu item "{item}" of menu 1 of menu bar item "{menu}" of menu bar 1
  end tell
end tell
"""


async def _run(cmd: list[str], timeout: float = PROBE_TIMEOUT) -> tuple[int, str] | None:
    """Run cmd; (returncode, stdout), or None if it is missing or times out."""
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except FileNotFoundError as e:
        logger.debug("%s failed: %s", cmd[0], e)
        return None
    try:
        stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.debug("%s timed out after %ss", cmd[0], timeout)
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        await proc.wait()
        return None
    return proc.returncode, stdout.decode("utf-8", errors="replace")


class ExternalApp:
    """
    Running/muted state for one application, by process name.

    The probes are subprocesses, so they run from refresh() on the event loop
    (start() repeats it every interval). is_running() and is_muted() return the
    values from the last refresh and never block.
    """

    def __init__(
        self,
        name: str = ZOOM_APP_NAME,
        muted_menu: tuple[str, str] = MUTED_MENU,
        interval_seconds: float = 5.0,
    ) -> None:
        self.name = name
        self.muted_menu = muted_menu
        self.interval_seconds = interval_seconds
        self._running = False
        self._muted = False
        self._task: asyncio.Task[None] | None = None

    def is_running(self) -> bool:
        return self._running

    def is_muted(self) -> bool:
        """True if the app's menu offered to unmute. Only meaningful while running."""
        return self._muted

    async def refresh(self) -> None:
        out = await _run(["/usr/bin/pgrep", "-x", self.name])
        self._running = out is not None and out[0] == 0
        if not self._running:
            return
        menu, item = self.muted_menu
        script = _MENU_ITEM_SCRIPT.format(app=self.name, menu=menu, item=item)
        out = await _run(["/usr/bin/osascript", "-e", script])
        self._muted = out is not None and out[0] == 0 and out[1].strip().lower() == "true"

    def start(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.get_running_loop().create_task(self._refresh_forever())

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _refresh_forever(self) -> None:
        while True:
            try:
                await self.refresh()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception("Refreshing %s state failed: %s", self.name, e)
            await asyncio.sleep(self.interval_seconds)
