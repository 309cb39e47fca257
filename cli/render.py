from __future__ import annotations

from typing import Any, Iterable

import typer

from models.records import Device
from services.relay import IterationReport


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_devices(devices: Iterable[Device]) -> None:
    echo_heading("Fermenters")
    devices = list(devices)
    if not devices:
        typer.echo("No fermenters found.")
        return
    for device in devices:
        typer.echo(f"  - {device.id}: {device.name}")


def render_report(report: IterationReport) -> None:
    echo_heading("Iteration Summary")
    echo_key_values(
        [
            ("devices", report.devices),
            ("submitted", report.submitted),
            ("skipped", report.skipped),
            ("without_reading", report.without_reading),
            ("failed", report.failed),
        ]
    )
    if report.aborted:
        typer.secho(f"Iteration aborted: {report.error}", fg=typer.colors.RED, err=True)
