"""Cookie-authenticated client for the fermentation device service."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import httpx
from pydantic import ValidationError

from clients.csrf import extract_token
from clients.errors import (
    AuthCookieNotFoundError,
    InvalidSetCookieHeaderError,
    NoSetCookieHeaderError,
    NotAuthenticatedError,
    ResponseParsingError,
    TransportError,
    UnexpectedStatusCodeError,
)
from models.records import Device, DeviceId, TemperatureReading
from models.schemas import LoginRequest, device_listing_adapter
from services.extractor import extract_latest_reading
from settings import DEFAULT_DEVICE_SERVICE_URL

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=60.0)
AUTH_COOKIE_PREFIX = "remember_web_"
CSRF_HEADER = "X-CSRF-TOKEN"
HISTORY_LOOKBACK = timedelta(hours=1)

_LOGIN_PATH = "/login"
_DEVICES_PATH = "/my-equipment/fermentation-device/data"
_HISTORY_PATH = "/my-equipment/fermentation-device/{device_id}/history"


class SessionState(str, Enum):
    """Lifecycle of a device service session."""

    unauthenticated = "unauthenticated"
    authenticating = "authenticating"
    authenticated = "authenticated"


def build_http_client() -> httpx.Client:
    return httpx.Client(timeout=DEFAULT_TIMEOUT)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_history_from(moment: datetime) -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def _cookie_pairs(response: httpx.Response) -> List[tuple[str, str]]:
    headers = response.headers.get_list("set-cookie")
    if not headers:
        raise NoSetCookieHeaderError()

    pairs: List[tuple[str, str]] = []
    for header in headers:
        pair = header.split(";", 1)[0]
        name, sep, value = pair.partition("=")
        name = name.strip()
        if not sep or not name:
            raise InvalidSetCookieHeaderError(header)
        pairs.append((name, value.strip()))
    return pairs


class DeviceSession:
    """One authenticated conversation with the device service.

    A session moves from ``unauthenticated`` to ``authenticated`` through
    :meth:`login` and never goes back; once the service starts rejecting the
    auth cookie the caller is expected to build a new session.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_DEVICE_SERVICE_URL,
        client: Optional[httpx.Client] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or build_http_client()
        self._owns_client = client is None
        self._clock = clock
        self.state = SessionState.unauthenticated
        self._auth_cookie: Optional[str] = None

    @property
    def auth_cookie(self) -> Optional[str]:
        return self._auth_cookie

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def login(self, email: str, password: str) -> str:
        """Authenticate and return the ``name=value`` auth cookie."""
        if self.state is not SessionState.unauthenticated:
            raise RuntimeError(f"Cannot log in from state {self.state.value!r}.")

        self.state = SessionState.authenticating
        try:
            self._auth_cookie = self._login(email, password)
        except Exception:
            self.state = SessionState.unauthenticated
            raise
        self.state = SessionState.authenticated
        logger.info("Logged in to the device service.")
        return self._auth_cookie

    def _login(self, email: str, password: str) -> str:
        url = f"{self.base_url}{_LOGIN_PATH}"

        response = self._send("GET", url)
        if response.status_code != httpx.codes.OK:
            raise UnexpectedStatusCodeError(response.status_code, response.text)

        cookies = "; ".join(f"{name}={value}" for name, value in _cookie_pairs(response))
        csrf_token = extract_token(response.text)

        payload = LoginRequest(email=email, password=password, remember=False)
        response = self._send(
            "POST",
            url,
            json=payload.model_dump(),
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json, text/plain, */*",
                CSRF_HEADER: csrf_token,
                "Cookie": cookies,
            },
        )
        if response.status_code != httpx.codes.OK:
            raise UnexpectedStatusCodeError(response.status_code, response.text)

        try:
            pairs = _cookie_pairs(response)
        except (NoSetCookieHeaderError, InvalidSetCookieHeaderError) as exc:
            raise AuthCookieNotFoundError() from exc

        for name, value in pairs:
            if name.startswith(AUTH_COOKIE_PREFIX):
                return f"{name}={value}"
        raise AuthCookieNotFoundError()

    def list_devices(self) -> List[Device]:
        cookie = self._require_auth_cookie()
        response = self._send(
            "GET",
            f"{self.base_url}{_DEVICES_PATH}",
            headers={"Accept": "application/json", "Cookie": cookie},
        )
        if response.status_code != httpx.codes.OK:
            raise UnexpectedStatusCodeError(response.status_code, response.text)

        try:
            entries = device_listing_adapter.validate_json(response.content)
        except ValidationError as exc:
            raise ResponseParsingError(response.text) from exc
        return [Device(id=DeviceId(entry.id), name=entry.name) for entry in entries]

    def fetch_history(self, device_id: DeviceId) -> Dict[str, Any]:
        """Fetch the last hour of history for a device as a raw JSON object."""
        cookie = self._require_auth_cookie()
        since = self._clock() - HISTORY_LOOKBACK
        response = self._send(
            "GET",
            f"{self.base_url}{_HISTORY_PATH.format(device_id=device_id)}",
            params={"from": format_history_from(since)},
            headers={
                "Accept": "application/json",
                "Cookie": cookie,
                "Origin": self.base_url,
            },
        )
        if response.status_code != httpx.codes.OK:
            raise UnexpectedStatusCodeError(response.status_code, response.text)

        try:
            payload = response.json()
        except ValueError as exc:
            raise ResponseParsingError(response.text) from exc
        if not isinstance(payload, dict):
            raise ResponseParsingError(response.text)
        return payload

    def latest_temperature(self, device_id: DeviceId) -> Optional[TemperatureReading]:
        return extract_latest_reading(self.fetch_history(device_id))

    def _require_auth_cookie(self) -> str:
        if self.state is not SessionState.authenticated or self._auth_cookie is None:
            raise NotAuthenticatedError(self.state.value)
        return self._auth_cookie

    def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._client.request(method, url, **kwargs)
        except httpx.RequestError as exc:
            raise TransportError(exc) from exc
