"""Latest-sample extraction from device history payloads."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from clients.errors import ResponseParsingError, ResponseTimestampError
from models.records import TemperatureReading
from models.schemas import TemperatureSeries

TEMPERATURE_KEY = "temperature"


def _find_series(payload: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    # Top-level key names are not stable; the first object with a temperature
    # key is the one we trust.
    for value in payload.values():
        if isinstance(value, Mapping) and TEMPERATURE_KEY in value:
            return value
    return None


def _millis_to_datetime(timestamp_millis: int) -> datetime:
    seconds = abs(timestamp_millis) // 1000
    if timestamp_millis < 0:
        seconds = -seconds
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as exc:
        raise ResponseTimestampError(timestamp_millis) from exc


def extract_latest_reading(payload: Mapping[str, Any]) -> Optional[TemperatureReading]:
    """Return the most recent sample in a history payload.

    ``None`` means the payload holds no sample at all. A payload whose
    temperature series is malformed raises :class:`ResponseParsingError`
    instead of falling through to other candidates.
    """
    candidate = _find_series(payload)
    if candidate is None:
        return None

    try:
        series = TemperatureSeries.model_validate(
            {TEMPERATURE_KEY: candidate[TEMPERATURE_KEY]}
        )
    except ValidationError as exc:
        raise ResponseParsingError(json.dumps(candidate, default=str)) from exc

    latest: Optional[tuple[int, float]] = None
    for timestamp_millis, value in series.temperature:
        if latest is None or timestamp_millis >= latest[0]:
            latest = (timestamp_millis, value)

    if latest is None:
        return None

    timestamp_millis, value = latest
    return TemperatureReading(value=value, observed_at=_millis_to_datetime(timestamp_millis))
