from __future__ import annotations
import json
from datetime import datetime, timezone
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Iterable, List, Optional, Tuple

from models.errors import StorageError
from settings import get_settings


Row = Dict[str, Any]


def _to_decimal_string(value: Any) -> Any:
    if value is None or isinstance(value, str):
        return value
    return str(Decimal(str(value)))


class MockTable:
    """In-process stand-in for a managed relational table.

    Numeric columns are kept as decimal strings, which is how PostgREST hands
    back Postgres ``numeric`` values, so readers must coerce them.
    """

    def __init__(
        self,
        name: str,
        timestamp_column: str,
        numeric_columns: Iterable[str] = (),
        persistence_path: Optional[Path] = None,
    ) -> None:
        self.name = name
        self.timestamp_column = timestamp_column
        self.numeric_columns = tuple(numeric_columns)
        self.persistence_path = persistence_path
        self._rows: List[Row] = []
        self._next_id = 1
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def insert(self, row: Row) -> Row:
        stored = dict(row)
        for column in self.numeric_columns:
            if column in stored:
                stored[column] = _to_decimal_string(stored[column])
        if stored.get(self.timestamp_column) is None:
            stored[self.timestamp_column] = datetime.now(timezone.utc).isoformat()

        with self._lock:
            stored["id"] = self._next_id
            self._rows.append(stored)
            self._next_id += 1
            try:
                self._persist()
            except StorageError:
                self._rows.pop()
                self._next_id -= 1
                raise
            return dict(stored)

    def select(self, offset: int = 0, limit: Optional[int] = None) -> Tuple[List[Row], int]:
        """Return rows newest first, sliced by ``offset``/``limit``, and the total count."""

        with self._lock:
            try:
                ordered = sorted(self._rows, key=self._sort_key, reverse=True)
            except (TypeError, ValueError) as exc:
                raise StorageError(f"Could not order table {self.name!r}: {exc}") from exc
        total = len(ordered)
        start = max(offset, 0)
        end = None if limit is None else start + max(limit, 0)
        return [dict(row) for row in ordered[start:end]], total

    def count(self) -> int:
        with self._lock:
            return len(self._rows)

    def _sort_key(self, row: Row) -> Tuple[datetime, int]:
        raw = row.get(self.timestamp_column)
        if isinstance(raw, datetime):
            moment = raw
        else:
            moment = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return moment, int(row.get("id") or 0)

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {"next_id": self._next_id, "rows": self._rows}
        try:
            self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True, default=str))
        except OSError as exc:
            raise StorageError(f"Could not write table {self.name!r}: {exc}") from exc

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = {}

        rows = data.get("rows") or []
        self._rows = [dict(row) for row in rows if isinstance(row, dict)]
        known_ids = [int(row.get("id") or 0) for row in self._rows]
        self._next_id = max([int(data.get("next_id") or 1), *(i + 1 for i in known_ids)])


def _table_path(name: str) -> Optional[Path]:
    root = get_settings().store_root_path
    return Path(root) / f"{name}.json" if root else None


@lru_cache
def build_default_readings_table() -> MockTable:
    name = get_settings().readings_table_name
    return MockTable(
        name=name,
        timestamp_column="recorded_at",
        numeric_columns=("temperature", "threshold_value"),
        persistence_path=_table_path(name),
    )


@lru_cache
def build_default_thresholds_table() -> MockTable:
    name = get_settings().thresholds_table_name
    return MockTable(
        name=name,
        timestamp_column="created_at",
        numeric_columns=("value",),
        persistence_path=_table_path(name),
    )
