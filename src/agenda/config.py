"""Configuration management for Agenda."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

AGENDA_HOME = Path(os.environ.get("AGENDA_HOME", Path.home() / "agenda"))
CONFIG_FILE = AGENDA_HOME / "config" / "agenda.conf"
DATA_DIR = AGENDA_HOME / "data"


@dataclass
class Config:
    """Agenda configuration."""

    store: str = "json"  # memory, json or http
    store_dir: str = ""
    store_url: str = ""
    store_token: str = ""
    timezone: str = "UTC"
    window_buffer_days: int = 7
    refresh_interval: int = 60
    appointment_color: str = "#3b82f6"
    blocked_color: str = "#6b7280"

    @property
    def data_dir(self) -> Path:
        if self.store_dir:
            return Path(self.store_dir).expanduser()
        return DATA_DIR


def _parse_int(key: str, value: str, default: int) -> int:
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Invalid integer for {key.upper()}: {value!r}, using {default}")
        return default


def _strip_value(value: str) -> str:
    # Handle quoted values with inline comments: "value" # comment
    if value.startswith('"') or value.startswith("'"):
        quote = value[0]
        end_quote = value.find(quote, 1)
        return value[1:end_quote] if end_quote != -1 else value[1:]
    # Unquoted: strip inline comments. Only " #" starts one, so hex colors survive
    if " #" in value:
        value = value.split(" #")[0].strip()
    return value


def load_config(path: Path | None = None) -> Config:
    """Load configuration from agenda.conf file."""
    config = Config()
    path = path or CONFIG_FILE

    if not path.exists():
        return config

    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = _strip_value(value.strip())

        match key:
            case "store":
                config.store = value.lower()
            case "store_dir":
                config.store_dir = value
            case "store_url":
                config.store_url = value
            case "store_token":
                config.store_token = value
            case "timezone":
                config.timezone = value
            case "window_buffer_days":
                config.window_buffer_days = _parse_int(key, value, config.window_buffer_days)
            case "refresh_interval":
                config.refresh_interval = _parse_int(key, value, config.refresh_interval)
            case "appointment_color":
                config.appointment_color = value
            case "blocked_color":
                config.blocked_color = value

    return config
