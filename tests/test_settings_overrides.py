from __future__ import annotations

from pathlib import Path

from cli.config import load_config
from datastore.tables import build_default_readings_table, build_default_thresholds_table
from settings import get_settings


def test_environment_overrides_apply(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("READINGS_TABLE_NAME", "custom_readings")
    monkeypatch.setenv("THRESHOLDS_TABLE_NAME", "custom_thresholds")
    monkeypatch.setenv("STORE_ROOT_PATH", str(tmp_path / "db"))
    monkeypatch.setenv("LOG_LEVEL", " debug ")
    get_settings.cache_clear()
    build_default_readings_table.cache_clear()
    build_default_thresholds_table.cache_clear()

    settings = get_settings()
    readings = build_default_readings_table()
    thresholds = build_default_thresholds_table()

    assert settings.log_level == "DEBUG"
    assert readings.name == "custom_readings"
    assert readings.persistence_path == Path(tmp_path / "db" / "custom_readings.json")
    assert thresholds.name == "custom_thresholds"
    assert thresholds.timestamp_column == "created_at"


def test_blank_store_root_disables_persistence(monkeypatch) -> None:
    monkeypatch.setenv("STORE_ROOT_PATH", "  ")
    get_settings.cache_clear()
    build_default_readings_table.cache_clear()

    assert build_default_readings_table().persistence_path is None


def test_client_config_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("API_BASE_URL", "http://monitor.local:9000/")
    monkeypatch.setenv("API_TOKEN", "tok")
    monkeypatch.setenv("MQTT_BROKER_URL", "wss://broker.local/mqtt")
    monkeypatch.setenv("MQTT_TOPIC", "home/temp")
    monkeypatch.setenv("THRESHOLD_REFRESH_SECONDS", "-1")
    monkeypatch.setenv("DEFAULT_THRESHOLD", "25")
    monkeypatch.setenv("DATA_SOURCE", "Fixture")
    monkeypatch.setenv("DATA_SOURCE_FALLBACK", "off")

    config = load_config()

    assert config.base_url == "http://monitor.local:9000"
    assert config.token == "tok"
    assert config.broker_url == "wss://broker.local/mqtt"
    assert config.topic == "home/temp"
    assert config.refresh_interval == 60.0
    assert config.default_threshold == 25.0
    assert config.data_source == "fixture"
    assert config.fallback_to_fixture is False


def test_client_config_arguments_override_environment(monkeypatch) -> None:
    monkeypatch.setenv("API_TOKEN", "env-token")
    monkeypatch.setenv("DATA_SOURCE", "bogus")

    config = load_config(token="cli-token", refresh_interval=5.0)

    assert config.token == "cli-token"
    assert config.refresh_interval == 5.0
    assert config.data_source == "live"
