"""Pydantic schemas for the payloads exchanged with the remote services."""

from __future__ import annotations

from typing import List, Optional, Tuple

from pydantic import BaseModel, Field, StrictFloat, StrictInt, TypeAdapter


class LoginRequest(BaseModel):
    """Credentials posted to the device service login form."""

    email: str
    password: str
    remember: bool = False


class DeviceEntry(BaseModel):
    """One element of the device listing response. Unknown fields are ignored."""

    id: StrictInt
    name: str


class TemperatureSeries(BaseModel):
    """The history object carrying ``[timestamp_millis, value]`` pairs."""

    temperature: List[Tuple[StrictInt, StrictFloat]] = Field(default_factory=list)


class LoggingEvent(BaseModel):
    """Body submitted to the log sink stream endpoint."""

    name: str
    temp: float


class SinkAcknowledgement(BaseModel):
    """Acknowledgement returned by the log sink."""

    result: Optional[str] = None


device_listing_adapter = TypeAdapter(List[DeviceEntry])
