from __future__ import annotations

import queue
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

import typer

from channel.sensor import SensorChannel
from cli.client import ApiError, BackendUnavailable, RequestContext
from cli.config import ClientConfig, load_config
from cli.render import (
    render_event,
    render_pagination,
    render_reading,
    render_readings,
    render_threshold,
    render_thresholds,
)
from cli.sources import DataSource, build_data_source
from logging_config import configure_logging


@dataclass
class CLIState:
    config: ClientConfig
    source: DataSource
    context: RequestContext


app = typer.Typer(
    help="Utilities for interacting with the temperature monitor service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)
readings_app = typer.Typer(help="List and record temperature readings.")
thresholds_app = typer.Typer(help="List and configure alert thresholds.")
app.add_typer(readings_app, name="readings")
app.add_typer(thresholds_app, name="thresholds")


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.find_root().obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


def _fail(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


@contextmanager
def _request_errors() -> Iterator[None]:
    """Turn client failures into a red message and exit code 1."""
    try:
        yield
    except ApiError as exc:
        _fail(str(exc))
    except BackendUnavailable as exc:
        _fail(f"Service unavailable: {exc}")


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    token: Optional[str] = typer.Option(
        None,
        "--token",
        help="Bearer token attached to threshold requests (defaults to API_TOKEN env).",
    ),
    data_source: Optional[str] = typer.Option(
        None,
        "--source",
        help="Data source to use: live or fixture (defaults to DATA_SOURCE env or live).",
    ),
) -> None:
    """Entry point for the CLI."""
    configure_logging()
    config = load_config(base_url=base_url, token=token, data_source=data_source)
    source = build_data_source(config)
    ctx.obj = CLIState(config=config, source=source, context=RequestContext(token=config.token))
    ctx.call_on_close(source.close)


@readings_app.command("list")
def readings_list(
    ctx: typer.Context,
    page: Optional[int] = typer.Option(None, "--page", min=1, help="Fetch one page instead of the latest 100."),
    limit: int = typer.Option(10, "--limit", min=1, help="Page size used with --page."),
) -> None:
    """Show recorded readings, newest first."""
    state = _get_state(ctx)
    with _request_errors():
        if page is None:
            render_readings(state.source.list_readings(state.context))
            return
        payload = state.source.readings_page(state.context, page=page, limit=limit)
    render_readings(payload.get("data") or [])
    render_pagination(payload.get("pagination") or {})


@readings_app.command("latest")
def readings_latest(ctx: typer.Context) -> None:
    """Show the most recent reading."""
    state = _get_state(ctx)
    with _request_errors():
        reading = state.source.latest_reading(state.context)
    render_reading(reading)


@readings_app.command("add")
def readings_add(
    ctx: typer.Context,
    temperature: float = typer.Argument(..., help="Temperature in degrees Celsius."),
    threshold: Optional[float] = typer.Option(None, "--threshold", help="Threshold active at capture time."),
) -> None:
    """Record a temperature reading."""
    state = _get_state(ctx)
    with _request_errors():
        created = state.source.add_reading(state.context, temperature, threshold)
    typer.secho(f"Reading stored. id={created.get('id')}", fg=typer.colors.GREEN)
    render_reading(created)


@thresholds_app.command("list")
def thresholds_list(
    ctx: typer.Context,
    page: Optional[int] = typer.Option(None, "--page", min=1, help="Fetch one page instead of the latest 100."),
    limit: int = typer.Option(10, "--limit", min=1, help="Page size used with --page."),
) -> None:
    """Show configured thresholds, newest first."""
    state = _get_state(ctx)
    with _request_errors():
        if page is None:
            render_thresholds(state.source.list_thresholds(state.context))
            return
        payload = state.source.thresholds_page(state.context, page=page, limit=limit)
    render_thresholds(payload.get("data") or [])
    render_pagination(payload.get("pagination") or {})


@thresholds_app.command("active")
def thresholds_active(ctx: typer.Context) -> None:
    """Show the value of the active threshold."""
    state = _get_state(ctx)
    with _request_errors():
        value = state.source.active_threshold(state.context)
    if value is None:
        typer.echo(f"No thresholds configured, default is {state.config.default_threshold}.")
        return
    typer.echo(f"Active threshold: {value}")


@thresholds_app.command("set")
def thresholds_set(
    ctx: typer.Context,
    value: float = typer.Argument(..., help="Alert temperature in degrees Celsius."),
    note: Optional[str] = typer.Option(None, "--note", help="Optional note, truncated to 180 characters."),
) -> None:
    """Create a threshold, which becomes the active one."""
    state = _get_state(ctx)
    if state.context.token is None:
        typer.secho("No token configured; submitting as anonymous.", fg=typer.colors.YELLOW, err=True)
    with _request_errors():
        created = state.source.set_threshold(state.context, value, note)
    typer.secho(f"Threshold saved. id={created.get('id')}", fg=typer.colors.GREEN)
    render_threshold(created)


def _drain(channel: SensorChannel, deadline: Optional[float]) -> Iterator[object]:
    while deadline is None or time.monotonic() < deadline:
        try:
            yield channel.events.get(timeout=0.2)
        except queue.Empty:
            continue


@app.command("monitor")
def monitor_command(
    ctx: typer.Context,
    broker_url: Optional[str] = typer.Option(None, "--broker-url", help="Defaults to MQTT_BROKER_URL env."),
    topic: Optional[str] = typer.Option(None, "--topic", help="Defaults to MQTT_TOPIC env."),
    duration: Optional[float] = typer.Option(
        None, "--duration", min=0.0, help="Stop after this many seconds (runs until Ctrl+C by default)."
    ),
) -> None:
    """Subscribe to live readings and print them as they arrive."""
    state = _get_state(ctx)
    config = state.config
    channel = SensorChannel(
        broker_url=broker_url or config.broker_url,
        topic=topic or config.topic,
        fetch_threshold=lambda: state.source.active_threshold(state.context),
        refresh_interval=config.refresh_interval,
        default_threshold=config.default_threshold,
    )
    deadline = time.monotonic() + duration if duration is not None else None
    typer.echo(f"Monitoring {channel.topic or '(no topic)'} ...")
    channel.start()
    try:
        for event in _drain(channel, deadline):
            render_event(event)
    except KeyboardInterrupt:
        typer.echo()
    finally:
        channel.close()
        while not channel.events.empty():
            render_event(channel.events.get_nowait())
