"""
avwatch: entry point. Run with: python -m avwatch [--config PATH] [--debug]
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from avwatch.av_monitor import SensorIndicatorMonitor
from avwatch.config import Config
from avwatch.external_app import ExternalApp
from avwatch.overlay import OverlayCanvas, TkScreen
from avwatch.scheduler import AsyncioScheduler
from avwatch.sources import PollingAppLifecycleSource
from avwatch.surfaces import LogStatusItem
from avwatch.watcher import AVWatcher, build_event_source, create_indicators

logger = logging.getLogger("avwatch")


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


async def run(config_path: Path | None = None, debug: bool = False) -> None:
    config = Config.load(config_path)
    setup_logging("DEBUG" if debug else config.log_level)
    scheduler = AsyncioScheduler()

    monitor = SensorIndicatorMonitor()
    monitor.load_initial_state()
    events = build_event_source(config.monitor, monitor, scheduler, push_source=monitor)
    if events is not monitor:
        # The stream keeps the snapshot current; polling only derives the events.
        monitor.start()

    app = ExternalApp(config.monitor.external_app, interval_seconds=config.monitor.app_mute_poll_interval_seconds)
    if config.monitor.monitor_mics and config.monitor.honor_external_app_mute:
        # Probes run in the background; the mute monitor reads the cached values.
        await app.refresh()
        app.start()
    screen = TkScreen()
    watcher = AVWatcher(
        monitor,
        events,
        scheduler,
        external_app=app,
        app_lifecycle=PollingAppLifecycleSource(app, scheduler, config.monitor.app_lifecycle_poll_interval_seconds),
        screen=screen,
        config=config.monitor,
    )
    for indicator in create_indicators(
        config.indicators,
        watcher,
        scheduler,
        screen,
        OverlayCanvas,
        status_item=LogStatusItem(),
    ):
        watcher.register_indicator(indicator)

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGUSR1, watcher.toggle_mute)
    except (NotImplementedError, AttributeError):
        logger.debug("SIGUSR1 mute toggle unavailable on this platform")

    watcher.start()
    logger.info("Monitoring camera/mic... (send SIGUSR1 to toggle mute)")
    try:
        await asyncio.Future()
    except asyncio.CancelledError:
        pass
    finally:
        try:
            loop.remove_signal_handler(signal.SIGUSR1)
        except (NotImplementedError, AttributeError):
            pass
        watcher.stop()
        app.stop()
        monitor.stop()
        screen.close()
        logger.info("Shutdown complete.")


def main() -> None:
    parser = argparse.ArgumentParser(prog="avwatch", description="Show when a camera or microphone is in use.")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.yaml")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args()
    try:
        asyncio.run(run(config_path=args.config, debug=args.debug))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
        sys.exit(0)


if __name__ == "__main__":
    main()
