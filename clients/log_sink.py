from __future__ import annotations

from typing import Any, Optional

import httpx
from pydantic import ValidationError

from clients.errors import (
    NoResultError,
    ResponseParsingError,
    TransportError,
    UnexpectedResultError,
    UnexpectedStatusCodeError,
)
from models.schemas import LoggingEvent, SinkAcknowledgement
from settings import DEFAULT_LOG_SINK_URL

DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=60.0)
SUCCESS_RESULTS = frozenset({"OK", "success"})

_STREAM_PATH = "/stream"


class LogSinkClient:
    """Submits temperature events to the brewing log stream endpoint."""

    def __init__(
        self,
        logging_id: str,
        base_url: str = DEFAULT_LOG_SINK_URL,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.logging_id = logging_id
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=DEFAULT_TIMEOUT)
        self._owns_client = client is None

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def submit(self, name: str, temperature: float) -> None:
        """Post one reading; returns only when the sink acknowledged success."""
        event = LoggingEvent(name=name, temp=temperature)
        try:
            response = self._client.post(
                f"{self.base_url}{_STREAM_PATH}",
                params={"id": self.logging_id},
                json=event.model_dump(),
                headers={"Content-Type": "application/json"},
            )
        except httpx.RequestError as exc:
            raise TransportError(exc) from exc

        if response.status_code != httpx.codes.OK:
            raise UnexpectedStatusCodeError(response.status_code, response.text)

        try:
            ack = SinkAcknowledgement.model_validate_json(response.content)
        except ValidationError as exc:
            raise ResponseParsingError(response.text) from exc

        self._check_result(ack.result)

    @staticmethod
    def _check_result(result: Any) -> None:
        if result is None:
            raise NoResultError()
        if result not in SUCCESS_RESULTS:
            raise UnexpectedResultError(result)
