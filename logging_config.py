from __future__ import annotations

import logging
from logging.config import dictConfig
from pathlib import Path
from typing import Any, Dict, Iterable, Sequence

from settings import get_settings

_DEFAULT_EXTRA_KEYS = (
    "device_id",
    "device",
    "temperature",
    "observed_at",
    "verdict",
    "status_code",
    "delay_s",
)

_configured = False


class ContextualFormatter(logging.Formatter):

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        extra_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._extra_keys: Sequence[str] = tuple(extra_keys or _DEFAULT_EXTRA_KEYS)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context_parts: list[str] = []
        for key in self._extra_keys:
            if not hasattr(record, key):
                continue
            value = getattr(record, key, None)
            if value is None:
                continue
            context_parts.append(f"{key}={value}")
        if context_parts:
            return f"{message} | {' '.join(context_parts)}"
        return message


def configure_logging(
    level: str | int | None = None,
    log_path: Path | None = None,
) -> None:
    """Configure terminal and file logging with contextual formatting.

    The file handler is only installed when a log path is given (or set in the
    settings); its parent directory is created on demand.
    """
    global _configured
    if _configured:
        return

    settings = get_settings()
    log_level = level if level is not None else settings.log_level
    file_path = log_path if log_path is not None else settings.log_path

    handlers: Dict[str, Dict[str, Any]] = {
        "terminal": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": "contextual",
        }
    }
    if file_path is not None:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.FileHandler",
            "level": log_level,
            "formatter": "contextual",
            "filename": str(file_path),
            "mode": "a",
            "encoding": "utf-8",
        }

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "contextual": {
                    "()": "logging_config.ContextualFormatter",
                    "fmt": "%(asctime)s.%(msecs)03d | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                    "style": "%",
                    "extra_keys": list(_DEFAULT_EXTRA_KEYS),
                }
            },
            "handlers": handlers,
            "root": {"handlers": list(handlers), "level": log_level},
        }
    )

    _configured = True
