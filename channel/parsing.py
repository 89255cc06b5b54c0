"""Decoding of message-bus payloads and broker URLs."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union
from urllib.parse import urlsplit

from models.errors import PayloadError
from models.records import SensorPayload

_SCHEMES = {
    "mqtt": ("tcp", False, 1883),
    "tcp": ("tcp", False, 1883),
    "mqtts": ("tcp", True, 8883),
    "ssl": ("tcp", True, 8883),
    "ws": ("websockets", False, 80),
    "wss": ("websockets", True, 443),
}


@dataclass(frozen=True)
class BrokerEndpoint:
    host: str
    port: int
    transport: str
    tls: bool
    path: str = "/mqtt"


def parse_broker_url(url: str) -> BrokerEndpoint:
    """Split ``mqtt://``, ``mqtts://``, ``ws://`` or ``wss://`` URLs into connection parts."""
    parts = urlsplit(url.strip())
    scheme = parts.scheme.lower()
    if scheme not in _SCHEMES:
        raise ValueError(f"Unsupported broker URL scheme {parts.scheme!r}.")
    if not parts.hostname:
        raise ValueError(f"Broker URL {url!r} has no host.")
    transport, tls, default_port = _SCHEMES[scheme]
    return BrokerEndpoint(
        host=parts.hostname,
        port=parts.port or default_port,
        transport=transport,
        tls=tls,
        path=parts.path or "/mqtt",
    )


def parse_timestamp(value: str) -> datetime:
    candidate = value.strip()
    if not candidate:
        raise ValueError("Timestamp is empty.")

    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValueError("Invalid timestamp format") from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return parsed.astimezone(timezone.utc)


def parse_sensor_payload(raw: Union[bytes, str], received_at: datetime) -> SensorPayload:
    """Decode ``{"temperature": number, "timestamp"?: ISO8601}``.

    A missing timestamp defaults to ``received_at``. Anything else that does
    not fit the shape raises :class:`PayloadError`.
    """
    try:
        text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        document = json.loads(text)
    except ValueError as exc:
        raise PayloadError(f"Invalid JSON payload: {exc}") from exc

    if not isinstance(document, dict):
        raise PayloadError("Payload must be a JSON object.")

    temperature = document.get("temperature")
    if isinstance(temperature, bool) or not isinstance(temperature, (int, float)):
        raise PayloadError("temperature must be a number")
    try:
        value = float(temperature)
    except OverflowError as exc:
        raise PayloadError("temperature is out of range") from exc
    if not math.isfinite(value):
        raise PayloadError("temperature must be finite")

    raw_timestamp = document.get("timestamp")
    if raw_timestamp is None:
        timestamp = received_at
    elif isinstance(raw_timestamp, str):
        try:
            timestamp = parse_timestamp(raw_timestamp)
        except ValueError as exc:
            raise PayloadError(f"Invalid timestamp {raw_timestamp!r}") from exc
    else:
        raise PayloadError("timestamp must be an ISO8601 string")

    return SensorPayload(temperature=value, timestamp=timestamp)


def exceeds_threshold(temperature: Optional[float], threshold: Optional[float]) -> bool:
    if temperature is None or threshold is None:
        return False
    return temperature > threshold
