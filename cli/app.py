from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer

from cli.config import ConfigError, RelayConfig, ensure_config_file, load_config
from cli.render import render_devices, render_report
from clients.device_service import DeviceSession
from clients.errors import RelayError
from logging_config import configure_logging
from services.relay import build_relay
from settings import PROGRAM_NAME, Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass
class CLIState:
    settings: Settings
    config_path: Path
    log_level: Optional[str]


app = typer.Typer(
    help="Relay fermenter temperatures from the device service to the brewing log.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


def _load_relay_config(state: CLIState) -> RelayConfig:
    if ensure_config_file(state.config_path):
        typer.secho(
            f"Created a default configuration file at {state.config_path}. "
            "Edit it with your credentials and run again.",
            fg=typer.colors.YELLOW,
            err=True,
        )
        raise typer.Exit(code=1)
    try:
        return load_config(state.config_path)
    except ConfigError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file (defaults to FERMENT_RELAY_CONFIG_PATH or ~/.ferment-relay/ferment-relay.toml).",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Override LOG_LEVEL for this run.",
    ),
) -> None:
    """Entry point for the CLI."""
    settings = get_settings()
    ctx.obj = CLIState(
        settings=settings,
        config_path=config or settings.config_path,
        log_level=log_level.upper() if log_level else None,
    )


@app.command("run")
def run_command(ctx: typer.Context) -> None:
    """Poll the device service forever and forward fresh readings."""
    state = _get_state(ctx)
    relay_config = _load_relay_config(state)
    configure_logging(state.log_level)

    logger.info("Starting %s.", PROGRAM_NAME)
    relay = build_relay(
        relay_config.email,
        relay_config.password,
        relay_config.logging_id,
        settings=state.settings,
    )
    try:
        relay.run_forever()
    finally:
        relay.close()


@app.command("once")
def once_command(ctx: typer.Context) -> None:
    """Run a single poll iteration and print what happened."""
    state = _get_state(ctx)
    relay_config = _load_relay_config(state)
    configure_logging(state.log_level)

    relay = build_relay(
        relay_config.email,
        relay_config.password,
        relay_config.logging_id,
        settings=state.settings,
    )
    try:
        report = relay.run_iteration()
    finally:
        relay.close()

    render_report(report)
    if report.aborted:
        raise typer.Exit(code=1)


@app.command("devices")
def devices_command(ctx: typer.Context) -> None:
    """Log in and list the fermenters visible to the account."""
    state = _get_state(ctx)
    relay_config = _load_relay_config(state)
    configure_logging(state.log_level)

    session = DeviceSession(base_url=state.settings.device_service_url)
    try:
        session.login(relay_config.email, relay_config.password)
        devices = session.list_devices()
    except RelayError as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    finally:
        session.close()

    render_devices(devices)


@app.command("init-config")
def init_config_command(ctx: typer.Context) -> None:
    """Write the default configuration file if it does not exist."""
    state = _get_state(ctx)
    if ensure_config_file(state.config_path):
        typer.secho(f"Wrote default configuration to {state.config_path}.", fg=typer.colors.GREEN)
    else:
        typer.echo(f"Configuration already exists at {state.config_path}.")
