"""
Settings for todo-threader, loaded from a TOML file.

Example ``todo-threader.toml``::

    [serial]
    baudrate = 9600
    timeout_ms = 500
    flow_control = "software"   # or "none"
    deassert_lines = true

    [protocol]
    encoding = "utf-8"

Command-line options override values from the file.
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional

from .transport import DEFAULT_BAUDRATE, FlowControl

_logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "todo-threader.toml"
CONFIG_ENV = "TODO_THREADER_CONFIG"


class ConfigError(ValueError):
    """Configuration file is missing, unreadable or holds a bad value."""


@dataclass(frozen=True)
class Settings:
    baudrate: int = DEFAULT_BAUDRATE
    timeout_ms: int = 500
    flow_control: str = FlowControl.Software.value
    deassert_lines: bool = True
    encoding: str = "utf-8"

    @property
    def timeout(self) -> float:
        """Timeout in seconds, as pyserial expects it."""
        return self.timeout_ms / 1000.0

    def merged(self, **overrides: Any) -> "Settings":
        """Return a copy with every override that is not None applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        return _validated(replace(self, **values))


def _load_toml(path: Path) -> dict:
    with path.open("rb") as f:
        return tomllib.load(f)


def _validated(settings: Settings) -> Settings:
    for name, kind in (("baudrate", int), ("timeout_ms", int), ("deassert_lines", bool),
                       ("flow_control", str), ("encoding", str)):
        value = getattr(settings, name)
        # bool is an int subclass; only accept it where a bool is wanted
        if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
            raise ConfigError(f"{name} must be of type {kind.__name__}, got {value!r}")
    if settings.baudrate <= 0:
        raise ConfigError(f"baudrate must be positive, got {settings.baudrate}")
    if settings.timeout_ms < 0:
        raise ConfigError(f"timeout_ms must not be negative, got {settings.timeout_ms}")
    try:
        FlowControl(settings.flow_control)
    except ValueError:
        choices = ", ".join(f.value for f in FlowControl)
        raise ConfigError(f"flow_control must be one of {choices}, got {settings.flow_control!r}")
    # Commands are ASCII on the wire; the encoding must leave ASCII untouched
    try:
        ascii_safe = "ping".encode(settings.encoding) == b"ping"
    except (LookupError, UnicodeError):
        ascii_safe = False
    if not ascii_safe:
        raise ConfigError(f"unknown encoding {settings.encoding!r}: must be an ASCII compatible text encoding")
    return settings


def _from_dict(config: dict) -> Settings:
    serial_cfg = config.get("serial", {})
    protocol_cfg = config.get("protocol", {})
    if not isinstance(serial_cfg, dict) or not isinstance(protocol_cfg, dict):
        raise ConfigError("[serial] and [protocol] must be tables")

    known = {f.name for f in fields(Settings)}
    values = {}
    for section, table in (("serial", serial_cfg), ("protocol", protocol_cfg)):
        for key, value in table.items():
            if key not in known:
                _logger.warning("Ignoring unknown config key %s.%s", section, key)
                continue
            values[key] = value
    return _validated(Settings(**values))


def load_settings(config_path: Optional[str] = None) -> Settings:
    """
    Load settings from a TOML file.
    Args:
        config_path (str, optional): Explicit file to read. Falls back to
            $TODO_THREADER_CONFIG, then ./todo-threader.toml
    Returns:
        Settings: Parsed settings, or defaults when no file is present
    Raises:
        ConfigError: If an explicitly requested file is missing, or any file
            cannot be parsed or holds invalid values
    """
    explicit = config_path or os.environ.get(CONFIG_ENV)
    path = Path(explicit or DEFAULT_CONFIG_PATH)

    if not path.exists():
        if explicit:
            raise ConfigError(f"Config file {path} not found")
        _logger.debug("Config file %s not found. Using default values.", path)
        return Settings()

    try:
        config = _load_toml(path)
    except (OSError, tomllib.TOMLDecodeError) as ex:
        raise ConfigError(f"Failed to parse config {path}: {ex}") from ex
    _logger.debug("Loaded config from %s", path)
    return _from_dict(config)
