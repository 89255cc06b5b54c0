from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

import typer

from channel.events import (
    ChannelError,
    ChannelEvent,
    Connected,
    Disconnected,
    ReadingReceived,
    Reconnecting,
    ThresholdExceeded,
    ThresholdUpdated,
)


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_reading(reading: Optional[Dict[str, Any]]) -> None:
    if not reading:
        typer.echo("No readings recorded.")
        return
    echo_key_values(
        [
            ("id", reading.get("id")),
            ("temperature", reading.get("temperature")),
            ("threshold_value", reading.get("threshold_value")),
            ("recorded_at", reading.get("recorded_at")),
        ]
    )


def render_threshold(threshold: Optional[Dict[str, Any]]) -> None:
    if not threshold:
        typer.echo("No thresholds configured.")
        return
    echo_key_values(
        [
            ("id", threshold.get("id")),
            ("value", threshold.get("value")),
            ("note", threshold.get("note")),
            ("created_at", threshold.get("created_at")),
        ]
    )


def render_readings(readings: Iterable[Dict[str, Any]]) -> None:
    echo_heading("Readings")
    rows = list(readings)
    if not rows:
        typer.echo("No readings recorded.")
        return
    for row in rows:
        threshold = row.get("threshold_value")
        suffix = f" (threshold {threshold})" if threshold is not None else ""
        typer.echo(f"  - {row.get('recorded_at')}: {row.get('temperature')}{suffix}")


def render_thresholds(thresholds: Iterable[Dict[str, Any]]) -> None:
    echo_heading("Thresholds")
    rows = list(thresholds)
    if not rows:
        typer.echo("No thresholds configured.")
        return
    for row in rows:
        note = row.get("note")
        suffix = f" - {note}" if note else ""
        typer.echo(f"  - {row.get('created_at')}: {row.get('value')}{suffix}")


def render_pagination(pagination: Dict[str, Any]) -> None:
    typer.echo()
    typer.echo(
        f"Page {pagination.get('currentPage')} of {pagination.get('totalPages')} "
        f"({pagination.get('totalItems')} total, {pagination.get('itemsPerPage')} per page)"
    )


def render_event(event: ChannelEvent) -> None:
    if isinstance(event, ReadingReceived):
        typer.echo(f"[reading] {event.temperature} at {event.timestamp.isoformat()}")
    elif isinstance(event, ThresholdExceeded):
        typer.secho(
            f"[alert] temperature {event.temperature} exceeds threshold {event.threshold}",
            fg=typer.colors.RED,
            bold=True,
        )
    elif isinstance(event, ThresholdUpdated):
        detail = f" ({event.error})" if event.error else ""
        typer.echo(f"[threshold] {event.value}{detail}")
    elif isinstance(event, ChannelError):
        typer.secho(f"[error] {event.message}", fg=typer.colors.YELLOW, err=True)
    elif isinstance(event, Connected):
        typer.secho("[status] connected", fg=typer.colors.GREEN)
    elif isinstance(event, Reconnecting):
        typer.echo("[status] reconnecting")
    elif isinstance(event, Disconnected):
        typer.echo("[status] disconnected")
