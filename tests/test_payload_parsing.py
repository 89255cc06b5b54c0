from __future__ import annotations

from datetime import datetime, timezone

import pytest

from channel.parsing import exceeds_threshold, parse_broker_url, parse_sensor_payload
from models.errors import PayloadError

RECEIVED = datetime(2024, 6, 1, 8, 30, tzinfo=timezone.utc)


def test_parse_payload_with_timestamp() -> None:
    payload = parse_sensor_payload(b'{"temperature": 25, "timestamp": "2024-06-01T10:00:00+02:00"}', RECEIVED)

    assert payload.temperature == 25.0
    assert payload.timestamp == datetime(2024, 6, 1, 8, 0, tzinfo=timezone.utc)


def test_parse_payload_defaults_timestamp_to_receipt_time() -> None:
    payload = parse_sensor_payload('{"temperature": -3.5}', RECEIVED)

    assert payload.temperature == -3.5
    assert payload.timestamp == RECEIVED


def test_naive_timestamp_is_treated_as_utc() -> None:
    payload = parse_sensor_payload(b'{"temperature": 1, "timestamp": "2024-06-01T07:00:00"}', RECEIVED)

    assert payload.timestamp.tzinfo is timezone.utc


@pytest.mark.parametrize(
    "raw",
    [
        b"\xff\xfe",
        b"",
        b"null",
        b'"31"',
        b'{"temperature": null}',
        b'{"temperature": true}',
        b'{"temperature": "31"}',
        b'{"temperature": NaN}',
        b'{"temperature": ' + b"9" * 400 + b"}",
        b'{"temperature": ' + b"9" * 5000 + b"}",
        b'{"temperature": 20, "timestamp": "yesterday"}',
        b'{"temperature": 20, "timestamp": 1717228800}',
    ],
)
def test_malformed_payloads_raise(raw: bytes) -> None:
    with pytest.raises(PayloadError):
        parse_sensor_payload(raw, RECEIVED)


@pytest.mark.parametrize(
    ("temperature", "threshold", "expected"),
    [(31.0, 30.0, True), (29.0, 30.0, False), (30.0, 30.0, False), (None, 30.0, False), (35.0, None, False)],
)
def test_exceeds_threshold(temperature, threshold, expected) -> None:
    assert exceeds_threshold(temperature, threshold) is expected


@pytest.mark.parametrize(
    ("url", "host", "port", "transport", "tls"),
    [
        ("mqtt://broker.local", "broker.local", 1883, "tcp", False),
        ("mqtts://broker.local", "broker.local", 8883, "tcp", True),
        ("ws://broker.local:8083/mqtt", "broker.local", 8083, "websockets", False),
        ("wss://broker.hivemq.com:8884/mqtt", "broker.hivemq.com", 8884, "websockets", True),
    ],
)
def test_parse_broker_url(url, host, port, transport, tls) -> None:
    endpoint = parse_broker_url(url)

    assert (endpoint.host, endpoint.port, endpoint.transport, endpoint.tls) == (host, port, transport, tls)


@pytest.mark.parametrize("url", ["http://broker.local", "mqtt://", "broker.local:1883"])
def test_parse_broker_url_rejects_unsupported(url) -> None:
    with pytest.raises(ValueError):
        parse_broker_url(url)
