from __future__ import annotations

import configparser
import os
from dataclasses import dataclass
from typing import Any

from .errors import ConfigError, ValidationError
from .logger import get_logger
from .path_utils import abs_path_str

_logger = get_logger("settings")

DEFAULT_CONFIG_NAME = "termleek.ini"

# Hard floors for the window size; configured values below them are clamped.
MIN_WIDTH = 340
MIN_HEIGHT = 185


def clamp_min(value: int, floor: int) -> int:
    return floor if value < floor else value


@dataclass(frozen=True)
class Configuration:
    """Resolved, validated settings consumed by the app controller."""

    background_source: str | None = None
    preserve_aspect_ratio: bool = False
    min_width: int = 680
    min_height: int = 370
    opacity: float = 1.0
    font: str = "monospace 10"
    icon: str | None = None
    shell: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "min_width", clamp_min(int(self.min_width), MIN_WIDTH))
        object.__setattr__(self, "min_height", clamp_min(int(self.min_height), MIN_HEIGHT))

    @property
    def has_background(self) -> bool:
        return bool(self.background_source)


class SettingsManager:
    """Reads the INI configuration file.

    Malformed individual values fall back to their defaults with a warning;
    only an unreadable file or a missing referenced file is an error.
    """

    DEFAULTS: dict[str, dict[str, Any]] = {
        "Background": {
            "source": "",
            "preserve_aspect_ratio": False,
        },
        "Terminal": {
            "font": "monospace 10",
            "min_width": 680,
            "min_height": 370,
            "opacity": 1.0,
            "icon": "",
            "shell": "",
        },
    }

    def __init__(self, settings_path: str):
        self.settings_path = settings_path
        self._parser = configparser.ConfigParser(interpolation=None)
        self.load()

    def load(self) -> None:
        if not os.path.isfile(self.settings_path):
            raise ConfigError(f"Failed to read file: {self.settings_path}: no such file")
        try:
            with open(self.settings_path, encoding="utf-8") as f:
                self._parser.read_file(f)
        except (OSError, UnicodeDecodeError, configparser.Error) as e:
            raise ConfigError(f"Failed to read file: {self.settings_path}: {e}") from e
        _logger.debug("settings loaded: %s", self.settings_path)

    def _default(self, section: str, key: str) -> Any:
        return self.DEFAULTS[section][key]

    def get(self, section: str, key: str) -> str:
        default = str(self._default(section, key))
        if self._parser.has_option(section, key):
            # An empty value means "unset" for keys with a non-empty default.
            return self._parser.get(section, key).strip() or default
        return default

    def get_bool(self, section: str, key: str) -> bool:
        default = bool(self._default(section, key))
        if not self._parser.has_option(section, key):
            return default
        try:
            return self._parser.getboolean(section, key)
        except ValueError:
            _logger.warning("invalid bool for [%s] %s: %r", section, key, self.get(section, key))
            return default

    def get_int(self, section: str, key: str) -> int:
        default = int(self._default(section, key))
        if not self._parser.has_option(section, key):
            return default
        try:
            return self._parser.getint(section, key)
        except ValueError:
            _logger.warning("invalid int for [%s] %s: %r", section, key, self.get(section, key))
            return default

    def get_float(self, section: str, key: str) -> float:
        default = float(self._default(section, key))
        if not self._parser.has_option(section, key):
            return default
        try:
            return self._parser.getfloat(section, key)
        except ValueError:
            _logger.warning("invalid float for [%s] %s: %r", section, key, self.get(section, key))
            return default

    def _existing_path(self, section: str, key: str) -> str | None:
        raw = self.get(section, key)
        if not raw:
            return None
        path = abs_path_str(raw)
        if not os.path.exists(path):
            raise ValidationError(f"stat {raw}: no such file or directory")
        return path

    def resolve(self) -> Configuration:
        """Build the immutable configuration, validating referenced files."""
        config = Configuration(
            background_source=self._existing_path("Background", "source"),
            preserve_aspect_ratio=self.get_bool("Background", "preserve_aspect_ratio"),
            min_width=self.get_int("Terminal", "min_width"),
            min_height=self.get_int("Terminal", "min_height"),
            opacity=self.get_float("Terminal", "opacity"),
            font=self.get("Terminal", "font"),
            icon=self._existing_path("Terminal", "icon"),
            shell=self.get("Terminal", "shell") or None,
        )
        _logger.debug("configuration resolved: %s", config)
        return config


def load_configuration(settings_path: str = DEFAULT_CONFIG_NAME) -> Configuration:
    return SettingsManager(settings_path).resolve()
