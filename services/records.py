"""Read/write orchestration for readings and thresholds over the record tables."""

from __future__ import annotations

import logging
import math
from functools import lru_cache
from typing import Any, Callable, Dict, Generic, Mapping, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from app.schemas import NOTE_MAX_LENGTH, Reading, Threshold
from datastore.tables import (
    MockTable,
    build_default_readings_table,
    build_default_thresholds_table,
)
from models.errors import RecordValidationError, StorageError
from models.records import PageResult

logger = logging.getLogger(__name__)

LIST_LIMIT = 100

RecordT = TypeVar("RecordT", bound=BaseModel)


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def _coerce_numeric(row: Dict[str, Any], fields: Tuple[str, ...]) -> Dict[str, Any]:
    normalized = dict(row)
    for name in fields:
        value = normalized.get(name)
        if value is not None:
            normalized[name] = float(value)
    return normalized


class RecordService(Generic[RecordT]):
    """List, page, fetch-latest and create records of one kind."""

    def __init__(
        self,
        resource: str,
        table: MockTable,
        model: Type[RecordT],
        numeric_fields: Tuple[str, ...],
        build_row: Callable[[Mapping[str, Any]], Dict[str, Any]],
    ) -> None:
        self.resource = resource
        self.table = table
        self.model = model
        self.numeric_fields = numeric_fields
        self._build_row = build_row

    def list(self) -> list[RecordT]:
        rows, _ = self.table.select(limit=LIST_LIMIT)
        return [self._normalize(row) for row in rows]

    def list_paginated(self, page: int = 1, limit: int = 10) -> PageResult[RecordT]:
        offset = (page - 1) * limit
        rows, total = self.table.select(offset=offset, limit=limit)
        return PageResult(data=[self._normalize(row) for row in rows], total_count=total)

    def latest(self) -> Optional[RecordT]:
        rows, _ = self.table.select(limit=1)
        if not rows:
            return None
        return self._normalize(rows[0])

    def create(self, payload: Mapping[str, Any]) -> RecordT:
        if not isinstance(payload, Mapping):
            raise RecordValidationError("body", "request body must be a JSON object")
        row = self._build_row(payload)
        stored = self.table.insert(row)
        record = self._normalize(stored)
        logger.info(
            "Record created",
            extra={"resource": self.resource, "record_id": stored["id"]},
        )
        return record

    def _normalize(self, row: Dict[str, Any]) -> RecordT:
        try:
            return self.model.model_validate(_coerce_numeric(row, self.numeric_fields))
        except (TypeError, ValueError, ValidationError) as exc:
            raise StorageError(f"Stored {self.resource} row {row.get('id')!r} is unreadable: {exc}") from exc


def build_reading_row(payload: Mapping[str, Any]) -> Dict[str, Any]:
    temperature = payload.get("temperature")
    if not _is_number(temperature):
        raise RecordValidationError("temperature")
    threshold_value = payload.get("threshold_value")
    if threshold_value is not None and not _is_number(threshold_value):
        raise RecordValidationError("threshold_value", "threshold_value must be a number or null")
    return {"temperature": temperature, "threshold_value": threshold_value}


def build_threshold_row(payload: Mapping[str, Any]) -> Dict[str, Any]:
    value = payload.get("value")
    if not _is_number(value):
        raise RecordValidationError("value")
    note = payload.get("note")
    if note is not None and not isinstance(note, str):
        raise RecordValidationError("note", "note must be a string or null")
    return {"value": value, "note": note[:NOTE_MAX_LENGTH] if note is not None else None}


ReadingService = RecordService[Reading]
ThresholdService = RecordService[Threshold]


@lru_cache
def build_default_reading_service() -> ReadingService:
    return RecordService(
        resource="readings",
        table=build_default_readings_table(),
        model=Reading,
        numeric_fields=("temperature", "threshold_value"),
        build_row=build_reading_row,
    )


@lru_cache
def build_default_threshold_service() -> ThresholdService:
    return RecordService(
        resource="thresholds",
        table=build_default_thresholds_table(),
        model=Threshold,
        numeric_fields=("value",),
        build_row=build_threshold_row,
    )
