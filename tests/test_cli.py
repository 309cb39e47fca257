from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import pytest
from typer.testing import CliRunner

from cli.app import app
from cli.config import DEFAULT_CONFIG
from clients.errors import UnexpectedStatusCodeError
from models.records import Device, DeviceId
from services.relay import IterationReport

CONFIG_BODY = """\
[device_service.auth]
email = "brewer@example.com"
password = "hunter2"

[log_sink]
logging_id = "log-id-123"
"""


class StubRelay:
    def __init__(self, report: Optional[IterationReport] = None) -> None:
        self.report = report or IterationReport(devices=2, submitted=1, skipped=1)
        self.iterations = 0
        self.forever_calls = 0
        self.closed = False

    def run_iteration(self) -> IterationReport:
        self.iterations += 1
        return self.report

    def run_forever(self, max_iterations: Optional[int] = None) -> None:
        self.forever_calls += 1

    def close(self) -> None:
        self.closed = True


class StubDeviceSession:
    def __init__(self, base_url: str, error: Optional[Exception] = None) -> None:
        self.base_url = base_url
        self.error = error
        self.credentials: List[tuple[str, str]] = []
        self.closed = False

    def login(self, email: str, password: str) -> str:
        self.credentials.append((email, password))
        if self.error is not None:
            raise self.error
        return "remember_web_x=1"

    def list_devices(self) -> List[Device]:
        return [Device(id=DeviceId(7), name="Conical")]

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "ferment-relay.toml"
    path.write_text(CONFIG_BODY)
    return path


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch) -> None:
    monkeypatch.setattr("cli.app.configure_logging", lambda *args, **kwargs: None)


def _install_relay(monkeypatch, relay: StubRelay) -> List[tuple]:
    calls: List[tuple] = []

    def factory(email, password, logging_id, settings=None):
        calls.append((email, password, logging_id))
        return relay

    monkeypatch.setattr("cli.app.build_relay", factory)
    return calls


def test_run_builds_relay_from_config(monkeypatch, runner: CliRunner, config_path: Path) -> None:
    relay = StubRelay()
    calls = _install_relay(monkeypatch, relay)

    result = runner.invoke(app, ["--config", str(config_path), "run"])

    assert result.exit_code == 0
    assert calls == [("brewer@example.com", "hunter2", "log-id-123")]
    assert relay.forever_calls == 1
    assert relay.closed is True


def test_run_creates_default_config_and_exits(monkeypatch, runner: CliRunner, tmp_path: Path) -> None:
    relay = StubRelay()
    calls = _install_relay(monkeypatch, relay)
    path = tmp_path / "nested" / "ferment-relay.toml"

    result = runner.invoke(app, ["--config", str(path), "run"])

    assert result.exit_code == 1
    assert path.read_text() == DEFAULT_CONFIG
    assert calls == []


def test_run_with_invalid_config_fails(monkeypatch, runner: CliRunner, tmp_path: Path) -> None:
    calls = _install_relay(monkeypatch, StubRelay())
    path = tmp_path / "ferment-relay.toml"
    path.write_text("[log_sink]\nlogging_id = 'x'\n")

    result = runner.invoke(app, ["--config", str(path), "run"])

    assert result.exit_code == 1
    assert calls == []


def test_once_prints_summary(monkeypatch, runner: CliRunner, config_path: Path) -> None:
    relay = StubRelay()
    _install_relay(monkeypatch, relay)

    result = runner.invoke(app, ["--config", str(config_path), "once"])

    assert result.exit_code == 0
    assert "Iteration Summary" in result.stdout
    assert "submitted: 1" in result.stdout
    assert relay.iterations == 1
    assert relay.closed is True


def test_once_reports_aborted_iteration(monkeypatch, runner: CliRunner, config_path: Path) -> None:
    relay = StubRelay(IterationReport(aborted=True, error="unable to find CSRF token"))
    _install_relay(monkeypatch, relay)

    result = runner.invoke(app, ["--config", str(config_path), "once"])

    assert result.exit_code == 1


def test_devices_lists_fermenters(monkeypatch, runner: CliRunner, config_path: Path) -> None:
    sessions: List[StubDeviceSession] = []

    def factory(base_url: str) -> StubDeviceSession:
        session = StubDeviceSession(base_url)
        sessions.append(session)
        return session

    monkeypatch.setattr("cli.app.DeviceSession", factory)

    result = runner.invoke(app, ["--config", str(config_path), "devices"])

    assert result.exit_code == 0
    assert "7: Conical" in result.stdout
    (session,) = sessions
    assert session.credentials == [("brewer@example.com", "hunter2")]
    assert session.closed is True


def test_devices_reports_login_error(monkeypatch, runner: CliRunner, config_path: Path) -> None:
    def factory(base_url: str) -> StubDeviceSession:
        return StubDeviceSession(base_url, error=UnexpectedStatusCodeError(422, "invalid"))

    monkeypatch.setattr("cli.app.DeviceSession", factory)

    result = runner.invoke(app, ["--config", str(config_path), "devices"])

    assert result.exit_code == 1


def test_init_config(runner: CliRunner, tmp_path: Path) -> None:
    path = tmp_path / "ferment-relay.toml"

    first = runner.invoke(app, ["--config", str(path), "init-config"])
    second = runner.invoke(app, ["--config", str(path), "init-config"])

    assert first.exit_code == 0
    assert "Wrote default configuration" in first.stdout
    assert second.exit_code == 0
    assert "already exists" in second.stdout
