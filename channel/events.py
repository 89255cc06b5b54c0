"""Typed events and state snapshots published by the sensor channel."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Union


class ConnectionState(str, Enum):
    """Broker connection lifecycle states."""

    disconnected = "disconnected"
    connected = "connected"
    reconnecting = "reconnecting"
    error = "error"


@dataclass(frozen=True)
class ChannelState:
    """Immutable snapshot of everything the UI layer renders."""

    temperature: Optional[float] = None
    timestamp: Optional[datetime] = None
    connection_state: ConnectionState = ConnectionState.disconnected
    error: Optional[str] = None
    threshold: Optional[float] = None
    threshold_error: Optional[str] = None


@dataclass(frozen=True)
class Connected:
    pass


@dataclass(frozen=True)
class Reconnecting:
    pass


@dataclass(frozen=True)
class Disconnected:
    pass


@dataclass(frozen=True)
class ReadingReceived:
    temperature: float
    timestamp: datetime


@dataclass(frozen=True)
class ChannelError:
    message: str


@dataclass(frozen=True)
class ThresholdUpdated:
    value: float
    error: Optional[str] = None


@dataclass(frozen=True)
class ThresholdExceeded:
    temperature: float
    threshold: float


ChannelEvent = Union[
    Connected,
    Reconnecting,
    Disconnected,
    ReadingReceived,
    ChannelError,
    ThresholdUpdated,
    ThresholdExceeded,
]
