"""Error taxonomy for the device service and log sink clients."""

from __future__ import annotations

_AUTHORIZATION_STATUS_CODES = frozenset({401, 403, 419})


class RelayError(Exception):
    """Base class for every recoverable relay failure."""


class TransportError(RelayError):
    """Network level failure: connection refused, timeout, DNS, undecodable body."""

    def __init__(self, error: Exception) -> None:
        super().__init__(f"transport error: {error}")
        self.error = error


class AuthError(RelayError):
    """Login could not produce a usable session."""


class NoSetCookieHeaderError(AuthError):
    def __init__(self) -> None:
        super().__init__("no set cookie header")


class InvalidSetCookieHeaderError(AuthError):
    def __init__(self, header: str) -> None:
        super().__init__("invalid set cookie header")
        self.header = header


class CsrfTokenNotFoundError(AuthError):
    def __init__(self) -> None:
        super().__init__("unable to find CSRF token")


class AuthCookieNotFoundError(AuthError):
    def __init__(self) -> None:
        super().__init__("unable to find auth cookie")


class NotAuthenticatedError(AuthError):
    def __init__(self, state: str) -> None:
        super().__init__(f"session is not authenticated (state: {state})")
        self.state = state


class UnexpectedStatusCodeError(RelayError):
    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f'unexpected status code {status_code}: "{body}"')
        self.status_code = status_code
        self.body = body

    @property
    def is_authorization_error(self) -> bool:
        return self.status_code in _AUTHORIZATION_STATUS_CODES


class ResponseParsingError(RelayError):
    def __init__(self, payload: str) -> None:
        super().__init__(f'error parsing response: "{payload}"')
        self.payload = payload


class ResponseTimestampError(RelayError):
    def __init__(self, timestamp_millis: int) -> None:
        super().__init__(f'invalid timestamp: "{timestamp_millis}"')
        self.timestamp_millis = timestamp_millis


class UnexpectedResultError(RelayError):
    def __init__(self, result: str) -> None:
        super().__init__(f'unexpected result: "{result}"')
        self.result = result


class NoResultError(RelayError):
    def __init__(self) -> None:
        super().__init__("no result")
