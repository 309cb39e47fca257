from __future__ import annotations

import tomllib
from pathlib import Path

from pydantic import BaseModel, ValidationError

DEFAULT_CONFIG = """\
# ferment-relay configuration.
#
# Credentials of the account that owns the fermentation devices.
[device_service.auth]
email = "you@example.com"
password = "change-me"

# Logging id of the brewing log "stream" integration.
[log_sink]
logging_id = "change-me"
"""


class ConfigError(Exception):
    """The configuration file is missing or invalid."""


class DeviceServiceAuth(BaseModel):
    email: str
    password: str


class DeviceServiceSection(BaseModel):
    auth: DeviceServiceAuth


class LogSinkSection(BaseModel):
    logging_id: str


class RelayConfig(BaseModel):
    device_service: DeviceServiceSection
    log_sink: LogSinkSection

    @property
    def email(self) -> str:
        return self.device_service.auth.email

    @property
    def password(self) -> str:
        return self.device_service.auth.password

    @property
    def logging_id(self) -> str:
        return self.log_sink.logging_id


def ensure_config_file(path: Path) -> bool:
    """Write the default configuration if ``path`` does not exist yet."""
    if path.exists():
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DEFAULT_CONFIG, encoding="utf-8")
    return True


def load_config(path: Path) -> RelayConfig:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read configuration file {path}: {exc}") from exc

    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Failed to parse configuration file {path}: {exc}") from exc

    try:
        return RelayConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration file {path}: {exc}") from exc
