from __future__ import annotations

from typing import Iterator

import pytest

from datastore.tables import build_default_readings_table, build_default_thresholds_table
from services.records import build_default_reading_service, build_default_threshold_service
from settings import get_settings

_CACHES = (
    get_settings,
    build_default_readings_table,
    build_default_thresholds_table,
    build_default_reading_service,
    build_default_threshold_service,
)


def _clear_caches() -> None:
    for cache in _CACHES:
        cache.cache_clear()


@pytest.fixture(autouse=True)
def isolated_store(tmp_path, monkeypatch) -> Iterator[None]:
    monkeypatch.setenv("STORE_ROOT_PATH", str(tmp_path / "store"))
    _clear_caches()
    yield
    _clear_caches()
