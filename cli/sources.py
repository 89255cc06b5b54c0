"""Interchangeable data sources for the client: the live backend or a static fixture."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Protocol

from cli.client import ANONYMOUS, ApiClient, BackendUnavailable, RequestContext
from cli.config import ClientConfig
from cli.fixtures import SAMPLE_READINGS, SAMPLE_THRESHOLDS

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


class DataSource(Protocol):
    def list_readings(self, context: RequestContext = ANONYMOUS) -> List[Record]: ...

    def readings_page(self, context: RequestContext = ANONYMOUS, page: int = 1, limit: int = 10) -> Record: ...

    def latest_reading(self, context: RequestContext = ANONYMOUS) -> Optional[Record]: ...

    def add_reading(
        self, context: RequestContext, temperature: float, threshold_value: Optional[float] = None
    ) -> Record: ...

    def list_thresholds(self, context: RequestContext = ANONYMOUS) -> List[Record]: ...

    def thresholds_page(self, context: RequestContext = ANONYMOUS, page: int = 1, limit: int = 10) -> Record: ...

    def active_threshold(self, context: RequestContext = ANONYMOUS) -> Optional[float]: ...

    def set_threshold(self, context: RequestContext, value: float, note: Optional[str] = None) -> Record: ...

    def close(self) -> None: ...


def _page_of(records: List[Record], page: int, limit: int) -> Record:
    start = (page - 1) * limit
    return {
        "data": records[start:start + limit],
        "pagination": {
            "currentPage": page,
            "itemsPerPage": limit,
            "totalItems": len(records),
            "totalPages": math.ceil(len(records) / limit),
        },
    }


class FixtureDataSource:
    """Serves the sample dataset and keeps records created offline in memory."""

    def __init__(
        self,
        readings: Iterable[Record] = SAMPLE_READINGS,
        thresholds: Iterable[Record] = SAMPLE_THRESHOLDS,
    ) -> None:
        self._readings = [dict(row) for row in readings]
        self._thresholds = [dict(row) for row in thresholds]

    def list_readings(self, context: RequestContext = ANONYMOUS) -> List[Record]:
        return [dict(row) for row in self._readings]

    def readings_page(self, context: RequestContext = ANONYMOUS, page: int = 1, limit: int = 10) -> Record:
        return _page_of(self.list_readings(context), page, limit)

    def latest_reading(self, context: RequestContext = ANONYMOUS) -> Optional[Record]:
        return dict(self._readings[0]) if self._readings else None

    def add_reading(
        self, context: RequestContext, temperature: float, threshold_value: Optional[float] = None
    ) -> Record:
        record = {
            "id": self._next_id(self._readings),
            "temperature": float(temperature),
            "threshold_value": None if threshold_value is None else float(threshold_value),
            "recorded_at": datetime.now(timezone.utc).isoformat(),
        }
        self._readings.insert(0, record)
        return dict(record)

    def list_thresholds(self, context: RequestContext = ANONYMOUS) -> List[Record]:
        return [dict(row) for row in self._thresholds]

    def thresholds_page(self, context: RequestContext = ANONYMOUS, page: int = 1, limit: int = 10) -> Record:
        return _page_of(self.list_thresholds(context), page, limit)

    def active_threshold(self, context: RequestContext = ANONYMOUS) -> Optional[float]:
        return float(self._thresholds[0]["value"]) if self._thresholds else None

    def set_threshold(self, context: RequestContext, value: float, note: Optional[str] = None) -> Record:
        record = {
            "id": self._next_id(self._thresholds),
            "value": float(value),
            "note": note[:180] if note is not None else None,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        self._thresholds.insert(0, record)
        return dict(record)

    def close(self) -> None:
        return None

    @staticmethod
    def _next_id(rows: List[Record]) -> int:
        return max((int(row["id"]) for row in rows), default=0) + 1


class LiveDataSource:
    """Talks to the backend. Listings may fall back to a fixture when it is unreachable."""

    def __init__(self, client: ApiClient, fallback: Optional[FixtureDataSource] = None) -> None:
        self.client = client
        self.fallback = fallback

    def list_readings(self, context: RequestContext = ANONYMOUS) -> List[Record]:
        try:
            return self.client.get_readings(context)
        except BackendUnavailable as exc:
            return self._fallback_listing(exc, "readings").list_readings(context)

    def readings_page(self, context: RequestContext = ANONYMOUS, page: int = 1, limit: int = 10) -> Record:
        try:
            return self.client.get_readings_page(context, page=page, limit=limit)
        except BackendUnavailable as exc:
            return self._fallback_listing(exc, "readings").readings_page(context, page, limit)

    def latest_reading(self, context: RequestContext = ANONYMOUS) -> Optional[Record]:
        return self.client.latest_reading(context)

    def add_reading(
        self, context: RequestContext, temperature: float, threshold_value: Optional[float] = None
    ) -> Record:
        return self.client.create_reading(context, temperature, threshold_value)

    def list_thresholds(self, context: RequestContext = ANONYMOUS) -> List[Record]:
        try:
            return self.client.get_thresholds(context)
        except BackendUnavailable as exc:
            return self._fallback_listing(exc, "thresholds").list_thresholds(context)

    def thresholds_page(self, context: RequestContext = ANONYMOUS, page: int = 1, limit: int = 10) -> Record:
        try:
            return self.client.get_thresholds_page(context, page=page, limit=limit)
        except BackendUnavailable as exc:
            return self._fallback_listing(exc, "thresholds").thresholds_page(context, page, limit)

    def active_threshold(self, context: RequestContext = ANONYMOUS) -> Optional[float]:
        thresholds = self.client.get_thresholds(context)
        if not thresholds:
            return None
        return float(thresholds[0]["value"])

    def set_threshold(self, context: RequestContext, value: float, note: Optional[str] = None) -> Record:
        return self.client.create_threshold(context, value, note)

    def close(self) -> None:
        self.client.close()

    def _fallback_listing(self, exc: BackendUnavailable, resource: str) -> FixtureDataSource:
        if self.fallback is None:
            raise exc
        logger.warning(
            "Backend unreachable, serving sample data",
            extra={"resource": resource, "reason": str(exc)},
        )
        return self.fallback


def build_data_source(config: ClientConfig) -> DataSource:
    if config.data_source == "fixture":
        return FixtureDataSource()
    fallback = FixtureDataSource() if config.fallback_to_fixture else None
    return LiveDataSource(ApiClient(config), fallback=fallback)
