"""Logging configuration and the simple per-component settings file."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from narrator.config import Settings

_LEVEL_MAP: dict[str, int | None] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "off": None,
}

_DEFAULT_KEYS = ("terminal", "playback", "voice", "segmentation")
_DEFAULT_LEVEL = "info"

# Loggers controlled by each component key (terminal controls the console handler)
_COMPONENT_LOGGERS: dict[str, tuple[str, ...]] = {
    "playback": ("narrator.services.playback", "narrator.engine"),
    "voice": (
        "narrator.services.echo_suppressor",
        "narrator.services.command_interpreter",
    ),
    "segmentation": (
        "narrator.services.text_segmenter",
        "narrator.services.pronunciation",
    ),
}

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class LoggingSettings:
    terminal_level: int | None
    playback_level: int | None
    voice_level: int | None
    segmentation_level: int | None


def _normalize_level(value: str) -> str:
    return value.strip().lower()


def _resolve_level(value: str) -> int | None:
    return _LEVEL_MAP.get(_normalize_level(value), _LEVEL_MAP[_DEFAULT_LEVEL])


def parse_logging_settings(path: Path) -> LoggingSettings:
    """Parse the human-readable logging settings file.

    Lines look like ``playback = debug``; ``#`` starts a comment. Unknown keys
    are ignored and unknown levels fall back to ``info``.
    """

    levels: dict[str, int | None] = {
        key: _LEVEL_MAP[_DEFAULT_LEVEL] for key in _DEFAULT_KEYS
    }

    if path.exists():
        for raw_line in path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue
            key, value = (part.strip() for part in line.split("=", 1))
            normalized_key = key.lower()
            if normalized_key in _DEFAULT_KEYS:
                levels[normalized_key] = _resolve_level(value)

    return LoggingSettings(
        terminal_level=levels["terminal"],
        playback_level=levels["playback"],
        voice_level=levels["voice"],
        segmentation_level=levels["segmentation"],
    )


def _apply_component_level(names: tuple[str, ...], level: int | None) -> None:
    for name in names:
        component_logger = logging.getLogger(name)
        if level is None:
            component_logger.disabled = True
        else:
            component_logger.disabled = False
            component_logger.setLevel(level)


def configure_logging(settings: "Settings") -> LoggingSettings:
    """Configure logging from LOG_LEVEL/LOG_FILE and the component settings file."""

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    component_settings = parse_logging_settings(settings.logging_settings_path)

    formatter = logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT)
    handlers: list[logging.Handler] = []

    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if component_settings.terminal_level is not None:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        console_handler.setLevel(component_settings.terminal_level)
        handlers.append(console_handler)

    logging.basicConfig(
        level=log_level,
        handlers=handlers or [logging.NullHandler()],
        force=True,  # Override any existing configuration
    )

    # Ensure our modules use the configured level
    logging.getLogger("narrator").setLevel(log_level)

    _apply_component_level(
        _COMPONENT_LOGGERS["playback"], component_settings.playback_level
    )
    _apply_component_level(_COMPONENT_LOGGERS["voice"], component_settings.voice_level)
    _apply_component_level(
        _COMPONENT_LOGGERS["segmentation"], component_settings.segmentation_level
    )

    return component_settings


__all__ = ["LoggingSettings", "configure_logging", "parse_logging_settings"]
