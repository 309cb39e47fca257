from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional


_HOME_ENV = "FERMENT_RELAY_HOME"
_CONFIG_PATH_ENV = "FERMENT_RELAY_CONFIG_PATH"
_LOG_PATH_ENV = "FERMENT_RELAY_LOG_PATH"
_DEVICE_SERVICE_URL_ENV = "DEVICE_SERVICE_URL"
_LOG_SINK_URL_ENV = "LOG_SINK_URL"
_POLL_INTERVAL_ENV = "POLL_INTERVAL_SECONDS"
_RETRY_DELAY_ENV = "RETRY_DELAY_SECONDS"
_LOG_LEVEL_ENV = "LOG_LEVEL"

PROGRAM_NAME = "ferment-relay"
DEFAULT_DEVICE_SERVICE_URL = "https://community.grainfather.com"
DEFAULT_LOG_SINK_URL = "https://log.brewfather.net"
DEFAULT_POLL_INTERVAL = 15 * 60 + 1
DEFAULT_RETRY_DELAY = 10


@dataclass(frozen=True)
class Settings:
    home_path: Path
    config_path: Path
    log_path: Optional[Path]
    device_service_url: str
    log_sink_url: str
    poll_interval: float
    retry_delay: float
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_seconds(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    home = Path(
        _read_str_env(_HOME_ENV, str(Path.home() / f".{PROGRAM_NAME}"))
    ).expanduser()
    log_path = _read_optional_env(_LOG_PATH_ENV, str(home / f"{PROGRAM_NAME}.log"))
    return Settings(
        home_path=home,
        config_path=Path(
            _read_str_env(_CONFIG_PATH_ENV, str(home / f"{PROGRAM_NAME}.toml"))
        ).expanduser(),
        log_path=Path(log_path).expanduser() if log_path else None,
        device_service_url=_read_str_env(
            _DEVICE_SERVICE_URL_ENV, DEFAULT_DEVICE_SERVICE_URL
        ).rstrip("/"),
        log_sink_url=_read_str_env(_LOG_SINK_URL_ENV, DEFAULT_LOG_SINK_URL).rstrip("/"),
        poll_interval=_read_seconds(_POLL_INTERVAL_ENV, DEFAULT_POLL_INTERVAL),
        retry_delay=_read_seconds(_RETRY_DELAY_ENV, DEFAULT_RETRY_DELAY),
        log_level=_read_log_level("INFO"),
    )
