from __future__ import annotations

from pathlib import Path

from settings import DEFAULT_POLL_INTERVAL, DEFAULT_RETRY_DELAY, get_settings


def test_environment_overrides_apply(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("FERMENT_RELAY_HOME", str(tmp_path))
    monkeypatch.setenv("DEVICE_SERVICE_URL", "http://devices.local/")
    monkeypatch.setenv("LOG_SINK_URL", "http://sink.local")
    monkeypatch.setenv("POLL_INTERVAL_SECONDS", "60")
    monkeypatch.setenv("RETRY_DELAY_SECONDS", "2.5")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.delenv("FERMENT_RELAY_CONFIG_PATH", raising=False)
    monkeypatch.delenv("FERMENT_RELAY_LOG_PATH", raising=False)

    get_settings.cache_clear()
    try:
        settings = get_settings()

        assert settings.home_path == tmp_path
        assert settings.config_path == tmp_path / "ferment-relay.toml"
        assert settings.log_path == tmp_path / "ferment-relay.log"
        assert settings.device_service_url == "http://devices.local"
        assert settings.log_sink_url == "http://sink.local"
        assert settings.poll_interval == 60.0
        assert settings.retry_delay == 2.5
        assert settings.log_level == "DEBUG"
    finally:
        get_settings.cache_clear()


def test_invalid_values_fall_back_to_defaults(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("FERMENT_RELAY_CONFIG_PATH", str(tmp_path / "custom.toml"))
    monkeypatch.setenv("FERMENT_RELAY_LOG_PATH", "   ")
    monkeypatch.setenv("POLL_INTERVAL_SECONDS", "soon")
    monkeypatch.setenv("RETRY_DELAY_SECONDS", "-1")

    get_settings.cache_clear()
    try:
        settings = get_settings()

        assert settings.config_path == Path(tmp_path / "custom.toml")
        assert settings.log_path is None
        assert settings.poll_interval == DEFAULT_POLL_INTERVAL
        assert settings.retry_delay == DEFAULT_RETRY_DELAY
    finally:
        get_settings.cache_clear()
