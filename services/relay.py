"""Poll loop that relays device temperatures to the log sink."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from clients.device_service import DeviceSession
from clients.errors import NotAuthenticatedError, RelayError, UnexpectedStatusCodeError
from clients.log_sink import LogSinkClient
from models.records import Device, DeviceId
from services.dedup import Verdict, decide
from settings import DEFAULT_POLL_INTERVAL, DEFAULT_RETRY_DELAY, Settings, get_settings

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_authorization_failure(exc: RelayError) -> bool:
    if isinstance(exc, NotAuthenticatedError):
        return True
    return isinstance(exc, UnexpectedStatusCodeError) and exc.is_authorization_error


@dataclass
class IterationReport:
    """What happened during one pass over the devices."""

    devices: int = 0
    submitted: int = 0
    skipped: int = 0
    without_reading: int = 0
    failed: int = 0
    aborted: bool = False
    error: Optional[str] = None


class TemperatureRelay:
    """Owns the device session and the per-device submission memory.

    ``last_submitted`` maps each device to the observation time of the last
    reading the sink accepted. It is only written from :meth:`run_iteration`
    and is never pruned.
    """

    def __init__(
        self,
        email: str,
        password: str,
        session_factory: Callable[[], DeviceSession],
        sink: LogSinkClient,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._email = email
        self._password = password
        self._session_factory = session_factory
        self.sink = sink
        self.poll_interval = poll_interval
        self.retry_delay = retry_delay
        self._clock = clock
        self._sleep = sleep
        self.last_submitted: Dict[DeviceId, datetime] = {}
        self._session: Optional[DeviceSession] = None
        self._session_invalidated = False

    @property
    def session(self) -> Optional[DeviceSession]:
        return self._session

    def run_forever(self, max_iterations: Optional[int] = None) -> None:
        """Poll until the process stops, or for ``max_iterations`` passes."""
        completed = 0
        while max_iterations is None or completed < max_iterations:
            try:
                report = self.run_iteration()
            except Exception:  # noqa: BLE001
                logger.exception("Unexpected error during poll iteration.")
                report = IterationReport(aborted=True, error="unexpected error")
            completed += 1
            if max_iterations is not None and completed >= max_iterations:
                return

            delay = self.retry_delay if report.aborted else self.poll_interval
            logger.debug("Sleeping before next iteration.", extra={"delay_s": delay})
            self._sleep(delay)

    def run_iteration(self) -> IterationReport:
        report = IterationReport()

        try:
            session = self._ensure_session()
        except RelayError as exc:
            logger.error("Error logging in to the device service: %s", exc)
            report.aborted = True
            report.error = str(exc)
            return report

        try:
            devices = session.list_devices()
        except RelayError as exc:
            logger.error(
                "Error getting fermenters: %s",
                exc,
                extra={"status_code": getattr(exc, "status_code", None)},
            )
            if _is_authorization_failure(exc):
                self._session_invalidated = True
            report.aborted = True
            report.error = str(exc)
            return report

        report.devices = len(devices)
        for device in devices:
            self._process_device(session, device, report)

        return report

    def close(self) -> None:
        self._drop_session()
        self.sink.close()

    def _ensure_session(self) -> DeviceSession:
        if self._session is not None and not self._session_invalidated:
            return self._session

        self._drop_session()
        session = self._session_factory()
        try:
            session.login(self._email, self._password)
        except RelayError:
            session.close()
            raise
        self._session = session
        self._session_invalidated = False
        return session

    def _drop_session(self) -> None:
        if self._session is not None:
            self._session.close()
        self._session = None

    def _process_device(
        self, session: DeviceSession, device: Device, report: IterationReport
    ) -> None:
        context = {"device_id": device.id, "device": device.name}

        try:
            reading = session.latest_temperature(device.id)
        except RelayError as exc:
            logger.error(
                'Error getting temperature of fermenter "%s": %s', device.name, exc, extra=context
            )
            if _is_authorization_failure(exc):
                self._session_invalidated = True
            report.failed += 1
            return

        if reading is None:
            logger.info('No recent temperature record of fermenter "%s".', device.name, extra=context)
            report.without_reading += 1
            return

        context.update(temperature=reading.value, observed_at=reading.observed_at.isoformat())
        logger.info('Fermenter "%s": %.2f C', device.name, reading.value, extra=context)

        verdict = decide(self._clock(), self.last_submitted.get(device.id), reading)
        if verdict is Verdict.skip_too_old:
            logger.warning(
                'Not logging temperature of fermenter "%s": reading is too old.',
                device.name,
                extra={**context, "verdict": verdict.value},
            )
            report.skipped += 1
            return
        if verdict is Verdict.skip_already_logged:
            logger.warning(
                'Not logging temperature of fermenter "%s": already logged.',
                device.name,
                extra={**context, "verdict": verdict.value},
            )
            report.skipped += 1
            return

        try:
            self.sink.submit(device.name, reading.value)
        except RelayError as exc:
            logger.error(
                'Error logging the temperature of fermenter "%s": %s',
                device.name,
                exc,
                extra=context,
            )
            report.failed += 1
            return

        self.last_submitted[device.id] = reading.observed_at
        logger.info('Logged temperature of fermenter "%s".', device.name, extra=context)
        report.submitted += 1


def build_relay(
    email: str,
    password: str,
    logging_id: str,
    settings: Optional[Settings] = None,
) -> TemperatureRelay:
    """Factory that wires the relay with real HTTP clients."""
    settings = settings or get_settings()
    return TemperatureRelay(
        email=email,
        password=password,
        session_factory=lambda: DeviceSession(base_url=settings.device_service_url),
        sink=LogSinkClient(logging_id, base_url=settings.log_sink_url),
        poll_interval=settings.poll_interval,
        retry_delay=settings.retry_delay,
    )
