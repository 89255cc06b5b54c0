from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_REFRESH_INTERVAL = 60.0
DEFAULT_THRESHOLD = 30.0
DEFAULT_REQUEST_TIMEOUT = 10.0
DATA_SOURCES = ("live", "fixture")

_BASE_URL_ENV = "API_BASE_URL"
_TOKEN_ENV = "API_TOKEN"
_BROKER_URL_ENV = "MQTT_BROKER_URL"
_TOPIC_ENV = "MQTT_TOPIC"
_REFRESH_ENV = "THRESHOLD_REFRESH_SECONDS"
_DEFAULT_THRESHOLD_ENV = "DEFAULT_THRESHOLD"
_DATA_SOURCE_ENV = "DATA_SOURCE"
_FALLBACK_ENV = "DATA_SOURCE_FALLBACK"


@dataclass(frozen=True)
class ClientConfig:
    base_url: str = DEFAULT_BASE_URL
    token: Optional[str] = None
    broker_url: Optional[str] = None
    topic: Optional[str] = None
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL
    default_threshold: float = DEFAULT_THRESHOLD
    data_source: str = "live"
    fallback_to_fixture: bool = True
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT


def _read_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    candidate = value.strip()
    return candidate or None


def _read_float(value: Optional[str], default: float, positive: bool = True) -> float:
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    if positive and parsed <= 0:
        return default
    return parsed


def _read_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in {"1", "true", "yes", "on"}:
        return True
    if candidate in {"0", "false", "no", "off"}:
        return False
    return default


def _read_data_source(value: Optional[str]) -> str:
    candidate = (value or "").strip().lower()
    return candidate if candidate in DATA_SOURCES else "live"


def load_config(
    base_url: Optional[str] = None,
    token: Optional[str] = None,
    broker_url: Optional[str] = None,
    topic: Optional[str] = None,
    refresh_interval: Optional[float] = None,
    data_source: Optional[str] = None,
) -> ClientConfig:
    url = base_url or os.getenv(_BASE_URL_ENV) or DEFAULT_BASE_URL
    if refresh_interval is None:
        refresh_interval = _read_float(os.getenv(_REFRESH_ENV), DEFAULT_REFRESH_INTERVAL)
    return ClientConfig(
        base_url=url.rstrip("/"),
        token=token or _read_optional(os.getenv(_TOKEN_ENV)),
        broker_url=broker_url or _read_optional(os.getenv(_BROKER_URL_ENV)),
        topic=topic or _read_optional(os.getenv(_TOPIC_ENV)),
        refresh_interval=refresh_interval,
        default_threshold=_read_float(
            os.getenv(_DEFAULT_THRESHOLD_ENV), DEFAULT_THRESHOLD, positive=False
        ),
        data_source=_read_data_source(data_source or os.getenv(_DATA_SOURCE_ENV)),
        fallback_to_fixture=_read_bool(os.getenv(_FALLBACK_ENV), True),
    )
