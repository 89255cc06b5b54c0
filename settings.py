from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_READINGS_TABLE_ENV = "READINGS_TABLE_NAME"
_THRESHOLDS_TABLE_ENV = "THRESHOLDS_TABLE_NAME"
_STORE_ROOT_ENV = "STORE_ROOT_PATH"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    readings_table_name: str
    thresholds_table_name: str
    store_root_path: Optional[str]
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        readings_table_name=_read_str_env(_READINGS_TABLE_ENV, "sensor_readings"),
        thresholds_table_name=_read_str_env(_THRESHOLDS_TABLE_ENV, "threshold_settings"),
        store_root_path=_read_optional_env(_STORE_ROOT_ENV, "./tmp/store"),
        log_level=_read_log_level("INFO"),
    )
