"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, List, TypeVar

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class SensorPayload:
    """A single reading decoded from a message-bus payload."""

    temperature: float
    timestamp: datetime


@dataclass(slots=True)
class PageResult(Generic[T]):
    """One slice of a listing plus the size of the unsliced listing."""

    data: List[T] = field(default_factory=list)
    total_count: int = 0
