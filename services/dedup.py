"""Staleness and duplicate suppression for readings about to be forwarded."""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from models.records import TemperatureReading

STALE_AFTER = timedelta(minutes=30)


class Verdict(str, Enum):
    """Outcome of the forwarding decision for a single reading."""

    forward = "forward"
    skip_too_old = "skip_too_old"
    skip_already_logged = "skip_already_logged"


def decide(
    now: datetime,
    last_submitted: Optional[datetime],
    reading: TemperatureReading,
) -> Verdict:
    """Decide whether ``reading`` should be submitted.

    ``last_submitted`` is the observation time of the last reading forwarded
    for the same device. It is compared against ``now``, not against the new
    reading's timestamp.
    """
    if now - reading.observed_at > STALE_AFTER:
        return Verdict.skip_too_old
    if last_submitted is not None and now <= last_submitted:
        return Verdict.skip_already_logged
    return Verdict.forward
