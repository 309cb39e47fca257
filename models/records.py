"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import NewType

DeviceId = NewType("DeviceId", int)


@dataclass(frozen=True, slots=True)
class Device:
    """A monitored fermentation device, as listed by the device service."""

    id: DeviceId
    name: str


@dataclass(frozen=True, slots=True)
class TemperatureReading:
    """A single temperature sample.

    ``observed_at`` is the time the sample was taken on the device service's
    clock, not the time it was retrieved.
    """

    value: float
    observed_at: datetime
