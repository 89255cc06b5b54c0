from __future__ import annotations

import queue
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest
from typer.testing import CliRunner

from channel.events import ReadingReceived, ThresholdExceeded
from cli.app import app
from cli.client import ApiError, BackendUnavailable, RequestContext
from cli.sources import FixtureDataSource


class StubSource(FixtureDataSource):
    def __init__(self) -> None:
        super().__init__()
        self.contexts: List[RequestContext] = []
        self.closed = False
        self.fail_with: Optional[Exception] = None

    def set_threshold(self, context: RequestContext, value: float, note: Optional[str] = None) -> Dict[str, Any]:
        self.contexts.append(context)
        if self.fail_with is not None:
            raise self.fail_with
        return super().set_threshold(context, value, note)

    def list_readings(self, context: RequestContext = RequestContext()) -> List[Dict[str, Any]]:
        if self.fail_with is not None:
            raise self.fail_with
        return super().list_readings(context)

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def stub(monkeypatch) -> StubSource:
    source = StubSource()
    monkeypatch.setattr("cli.app.build_data_source", lambda config: source)
    monkeypatch.setattr("cli.app.configure_logging", lambda: None)
    return source


def test_readings_list(runner: CliRunner, stub: StubSource) -> None:
    result = runner.invoke(app, ["readings", "list"])

    assert result.exit_code == 0
    assert "Readings" in result.stdout
    assert "27.4" in result.stdout
    assert stub.closed is True


def test_readings_list_paginated(runner: CliRunner, stub: StubSource) -> None:
    result = runner.invoke(app, ["readings", "list", "--page", "2", "--limit", "2"])

    assert result.exit_code == 0
    assert "Page 2 of 3 (5 total, 2 per page)" in result.stdout
    assert "30.6" in result.stdout


def test_thresholds_set_passes_token_context(runner: CliRunner, stub: StubSource) -> None:
    result = runner.invoke(app, ["--token", "abc", "thresholds", "set", "29.5", "--note", "night"])

    assert result.exit_code == 0
    assert "Threshold saved" in result.stdout
    assert stub.contexts == [RequestContext(token="abc")]
    assert stub.active_threshold() == 29.5


def test_thresholds_active(runner: CliRunner, stub: StubSource) -> None:
    result = runner.invoke(app, ["thresholds", "active"])

    assert result.exit_code == 0
    assert "Active threshold: 30.0" in result.stdout


def test_api_error_exits_with_message(runner: CliRunner, stub: StubSource) -> None:
    stub.fail_with = ApiError(400, "value must be a number")

    result = runner.invoke(app, ["thresholds", "set", "30"])

    assert result.exit_code == 1
    assert "value must be a number" in result.output


def test_backend_unavailable_exits(runner: CliRunner, stub: StubSource) -> None:
    stub.fail_with = BackendUnavailable("connection refused")

    result = runner.invoke(app, ["readings", "list"])

    assert result.exit_code == 1
    assert "Service unavailable" in result.output


class StubChannel:
    instances: List["StubChannel"] = []

    def __init__(self, broker_url, topic, fetch_threshold, refresh_interval, default_threshold) -> None:
        self.broker_url = broker_url
        self.topic = topic
        self.fetch_threshold = fetch_threshold
        self.events: queue.Queue = queue.Queue()
        self.events.put(ReadingReceived(temperature=31.0, timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc)))
        self.events.put(ThresholdExceeded(temperature=31.0, threshold=30.0))
        self.started = False
        self.closed = False
        StubChannel.instances.append(self)

    def start(self) -> None:
        self.started = True

    def close(self) -> None:
        self.closed = True


def test_monitor_renders_events_and_closes_channel(monkeypatch, runner: CliRunner, stub: StubSource) -> None:
    StubChannel.instances = []
    monkeypatch.setattr("cli.app.SensorChannel", StubChannel)

    result = runner.invoke(
        app,
        ["monitor", "--broker-url", "mqtt://broker.local", "--topic", "home/temp", "--duration", "0.5"],
    )

    assert result.exit_code == 0
    channel = StubChannel.instances[0]
    assert channel.started and channel.closed
    assert channel.topic == "home/temp"
    assert channel.fetch_threshold() == 30.0
    assert "[reading] 31.0" in result.stdout
    assert "exceeds threshold 30.0" in result.stdout
