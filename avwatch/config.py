"""
Load and validate config.yaml with defaults.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from avwatch.external_app import ZOOM_APP_NAME
from avwatch.models import RED, Color, DisplayState, Geometry, ShowFilter


SIGNAL_SOURCES = ("stream", "poll")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

GREEN_DOT = "🟢"
RED_DOT = "🔴"
ORANGE_DIAMOND = "🔶"  # U+1F536
YELLOW_DOT = "🟡"
CAMERA = "📷"
MICROPHONE = "🎙"


def _number(raw: dict[str, Any], key: str, default: float, allow_zero: bool = True) -> float:
    if key not in raw or raw[key] is None:
        return default
    value = raw[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0 or (value == 0 and not allow_zero):
        qualifier = "non-negative" if allow_zero else "positive"
        raise ValueError(f"{key} must be a {qualifier} number, got {value!r}")
    return float(value)


def _flag(raw: dict[str, Any], key: str, default: bool) -> bool:
    if key not in raw or raw[key] is None:
        return default
    value = raw[key]
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be true or false, got {value!r}")
    return value


def _choice(raw: dict[str, Any], key: str, default: str, choices: tuple[str, ...]) -> str:
    value = raw.get(key) or default
    if value not in choices:
        raise ValueError(f"{key} must be one of {', '.join(choices)}, got {value!r}")
    return value


def _mapping(value: Any, name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{name} must be a mapping, got {value!r}")
    return value


def _color(raw: dict[str, Any] | None, default: Color) -> Color:
    if raw is None:
        return default
    if not isinstance(raw, dict):
        raise ValueError(f"color must be a mapping of red/green/blue/alpha, got {raw!r}")
    values = {}
    for key in ("red", "green", "blue", "alpha"):
        values[key] = _number(raw, key, getattr(Color(), key))
        if values[key] > 1.0:
            raise ValueError(f"color {key} must be between 0 and 1, got {values[key]!r}")
    return Color(**values)


def _geometry(raw: dict[str, Any] | None, default: Geometry) -> Geometry:
    if raw is None:
        return default
    raw = _mapping(raw, "geometry")
    values = {}
    for key in ("x", "y", "w", "h"):
        value = raw.get(key, getattr(default, key))
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"geometry {key} must be a number, got {value!r}")
        values[key] = float(value)
    if values["w"] <= 0 or values["h"] <= 0:
        raise ValueError("geometry w and h must be positive")
    return Geometry(**values)


@dataclass(frozen=True)
class MonitorConfig:
    """Options for the aggregation core."""
    monitor_cameras: bool = True
    monitor_mics: bool = True
    honor_external_app_mute: bool = True
    camera_off_debounce_seconds: float = 5.0
    app_mute_poll_interval_seconds: float = 5.0
    external_app: str = ZOOM_APP_NAME
    signal_source: str = "stream"
    device_poll_interval_seconds: float = 2.0
    app_lifecycle_poll_interval_seconds: float = 5.0
    screen_poll_interval_seconds: float = 10.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MonitorConfig:
        """Accepts the YAML keys (cameras, camera_off_debounce, ...) or the field names."""
        aliases = {
            "cameras": "monitor_cameras",
            "microphones": "monitor_mics",
            "camera_off_debounce": "camera_off_debounce_seconds",
            "app_mute_poll_interval": "app_mute_poll_interval_seconds",
            "device_poll_interval": "device_poll_interval_seconds",
            "app_lifecycle_poll_interval": "app_lifecycle_poll_interval_seconds",
            "screen_poll_interval": "screen_poll_interval_seconds",
        }
        raw = {aliases.get(k, k): v for k, v in _mapping(data, "monitor").items()}
        unknown = set(raw) - set(cls.__dataclass_fields__)
        if unknown:
            raise ValueError(f"Unknown monitor options: {', '.join(sorted(unknown))}")
        defaults = cls()
        return cls(
            monitor_cameras=_flag(raw, "monitor_cameras", defaults.monitor_cameras),
            monitor_mics=_flag(raw, "monitor_mics", defaults.monitor_mics),
            honor_external_app_mute=_flag(raw, "honor_external_app_mute", defaults.honor_external_app_mute),
            camera_off_debounce_seconds=_number(raw, "camera_off_debounce_seconds", defaults.camera_off_debounce_seconds),
            app_mute_poll_interval_seconds=_number(
                raw, "app_mute_poll_interval_seconds", defaults.app_mute_poll_interval_seconds, allow_zero=False
            ),
            external_app=raw.get("external_app") or defaults.external_app,
            signal_source=_choice(raw, "signal_source", defaults.signal_source, SIGNAL_SOURCES),
            device_poll_interval_seconds=_number(
                raw, "device_poll_interval_seconds", defaults.device_poll_interval_seconds, allow_zero=False
            ),
            app_lifecycle_poll_interval_seconds=_number(
                raw, "app_lifecycle_poll_interval_seconds", defaults.app_lifecycle_poll_interval_seconds, allow_zero=False
            ),
            screen_poll_interval_seconds=_number(
                raw, "screen_poll_interval_seconds", defaults.screen_poll_interval_seconds, allow_zero=False
            ),
        )


@dataclass(frozen=True)
class MenubarTitles:
    camera: str = RED_DOT
    mic: str = RED_DOT
    both: str = RED_DOT
    idle: str = GREEN_DOT
    suppressed_active: str = ORANGE_DIAMOND
    suppressed_idle: str = YELLOW_DOT

    def for_state(self, state: DisplayState) -> str:
        return {
            DisplayState.IDLE: self.idle,
            DisplayState.CAMERA_ACTIVE: self.camera,
            DisplayState.MIC_ACTIVE: self.mic,
            DisplayState.BOTH_ACTIVE: self.both,
            DisplayState.SUPPRESSED_ACTIVE: self.suppressed_active,
            DisplayState.SUPPRESSED_IDLE: self.suppressed_idle,
        }[state]


@dataclass(frozen=True)
class MenubarConfig:
    enabled: bool = True
    name: str = "menubar"
    show_when_idle: bool = False
    list_cameras: bool = True
    list_mics: bool = True
    titles: MenubarTitles = field(default_factory=MenubarTitles)


@dataclass(frozen=True)
class ScreenBorderConfig:
    enabled: bool = True
    name: str = "border"
    width: float = 0.5  # percent of screen
    color: Color = RED
    show: ShowFilter = ShowFilter.ANY


@dataclass(frozen=True)
class FlasherConfig:
    """One flashing icon. blink_interval 0 gives a steady icon."""
    name: str = "flasher"
    show: ShowFilter = ShowFilter.ANY
    geometry: Geometry = Geometry(x=-60, y=20, w=50, h=50)
    color: Color = RED
    blink_interval: float = 1.0


@dataclass(frozen=True)
class IndicatorsConfig:
    menubar: MenubarConfig = field(default_factory=MenubarConfig)
    screen_border: ScreenBorderConfig = field(default_factory=ScreenBorderConfig)
    flashers: tuple[FlasherConfig, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> IndicatorsConfig:
        data = _mapping(data, "indicators")
        mb_data = _mapping(data.get("menubar"), "menubar")
        sb_data = _mapping(data.get("screen_border"), "screen_border")
        titles_data = _mapping(mb_data.get("titles"), "menubar titles")
        flashers_data = data.get("flashers") or []
        if not isinstance(flashers_data, list):
            raise ValueError(f"flashers must be a list, got {flashers_data!r}")

        unknown = set(titles_data) - set(MenubarTitles.__dataclass_fields__)
        if unknown:
            raise ValueError(f"Unknown menubar titles: {', '.join(sorted(unknown))}")

        def show_filter(raw: dict[str, Any], default: ShowFilter) -> ShowFilter:
            value = raw.get("show")
            if value is None:
                return default
            try:
                return ShowFilter(value)
            except ValueError:
                raise ValueError(f"show must be camera, microphone or any, got {value!r}") from None

        def flasher(i: int, raw: dict[str, Any] | str) -> FlasherConfig:
            if isinstance(raw, str):
                return FlasherConfig(name=raw)
            raw = _mapping(raw, f"flasher {i}")
            defaults = FlasherConfig()
            return FlasherConfig(
                name=raw.get("name") or f"flasher{i}",
                show=show_filter(raw, defaults.show),
                geometry=_geometry(raw.get("geometry"), defaults.geometry),
                color=_color(raw.get("color"), defaults.color),
                blink_interval=_number(raw, "blink_interval", defaults.blink_interval),
            )

        sb_defaults = ScreenBorderConfig()
        width = _number(sb_data, "width", sb_defaults.width)
        if width >= 50:
            raise ValueError(f"width must be below 50 percent, got {width!r}")

        return cls(
            menubar=MenubarConfig(
                enabled=_flag(mb_data, "enabled", True),
                show_when_idle=_flag(mb_data, "show_when_idle", False),
                list_cameras=_flag(mb_data, "list_cameras", True),
                list_mics=_flag(mb_data, "list_mics", True),
                titles=MenubarTitles(**titles_data),
            ),
            screen_border=ScreenBorderConfig(
                enabled=_flag(sb_data, "enabled", True),
                width=width,
                color=_color(sb_data.get("color"), sb_defaults.color),
                show=show_filter(sb_data, sb_defaults.show),
            ),
            flashers=tuple(flasher(i, item) for i, item in enumerate(flashers_data)),
        )


@dataclass(frozen=True)
class Config:
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    indicators: IndicatorsConfig = field(default_factory=IndicatorsConfig)
    log_level: str = "INFO"

    @classmethod
    def load(cls, path: str | Path | None = None) -> Config:
        if path is None:
            path = _default_config_path()
            if not path.is_file():
                return cls()
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        if not isinstance(data, dict):
            raise ValueError(f"Config must be a mapping, got {type(data).__name__}")
        level = str(data.get("log_level") or "INFO").upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {level!r}")
        return cls(
            monitor=MonitorConfig.from_dict(data.get("monitor")),
            indicators=IndicatorsConfig.from_dict(data.get("indicators")),
            log_level=level,
        )


def _default_config_path() -> Path:
    for candidate in (Path.cwd(), Path(__file__).resolve().parent.parent):
        p = candidate / "config.yaml"
        if p.is_file():
            return p
    return Path.cwd() / "config.yaml"
