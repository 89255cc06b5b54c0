from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from models.errors import StorageError
from services.records import build_default_reading_service, build_default_threshold_service


@pytest.fixture
def api_client() -> Iterator[TestClient]:
    app = create_app()
    with TestClient(app) as client:
        yield client


def test_lifespan_clears_cached_services() -> None:
    app = create_app()

    with TestClient(app):
        during = build_default_reading_service()
        assert during is build_default_reading_service()

    after = build_default_reading_service()
    assert after is not during


def test_create_reading_returns_created(api_client: TestClient) -> None:
    response = api_client.post("/api/readings", json={"temperature": 31, "threshold_value": 30})

    assert response.status_code == 201
    body = response.json()
    assert body["id"] == 1
    assert body["temperature"] == 31.0
    assert body["threshold_value"] == 30.0
    assert body["recorded_at"]


@pytest.mark.parametrize("payload", [{}, {"temperature": "hot"}, {"temperature": None}])
def test_create_reading_validation_error(api_client: TestClient, payload) -> None:
    response = api_client.post("/api/readings", json=payload)

    assert response.status_code == 400
    assert response.json() == {"error": "temperature must be a number"}
    assert api_client.get("/api/readings").json() == []


def test_create_with_malformed_json_returns_bad_request(api_client: TestClient) -> None:
    response = api_client.post(
        "/api/readings",
        content=b"{temperature:",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert "error" in response.json()


def test_create_with_empty_body_returns_bad_request(api_client: TestClient) -> None:
    response = api_client.post("/api/thresholds")

    assert response.status_code == 400
    assert response.json() == {"error": "request body must be a JSON object"}


def test_create_reading_with_oversized_integer_is_rejected(api_client: TestClient) -> None:
    response = api_client.post(
        "/api/readings",
        content=b'{"temperature": ' + b"9" * 400 + b"}",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "temperature must be a number"}


def test_list_readings_newest_first(api_client: TestClient) -> None:
    for value in (20.5, 21.5, 22.5):
        assert api_client.post("/api/readings", json={"temperature": value}).status_code == 201

    body = api_client.get("/api/readings").json()

    assert [item["temperature"] for item in body] == [22.5, 21.5, 20.5]


def test_paginated_query_flag(api_client: TestClient) -> None:
    for value in range(23):
        api_client.post("/api/readings", json={"temperature": value})

    response = api_client.get("/api/readings?paginated&page=3&limit=10")

    assert response.status_code == 200
    body = response.json()
    assert len(body["data"]) == 3
    assert body["pagination"] == {
        "currentPage": 3,
        "itemsPerPage": 10,
        "totalItems": 23,
        "totalPages": 3,
    }


def test_paginated_defaults_for_missing_or_invalid_params(api_client: TestClient) -> None:
    for value in range(12):
        api_client.post("/api/thresholds", json={"value": value})

    for query in ("", "?page=abc&limit=", "?page=0&limit=-5"):
        body = api_client.get(f"/api/thresholds/paginated{query}").json()
        assert body["pagination"]["currentPage"] == 1
        assert body["pagination"]["itemsPerPage"] == 10
        assert body["pagination"]["totalPages"] == 2
        assert len(body["data"]) == 10


def test_paginated_reads_leading_integer_of_params(api_client: TestClient) -> None:
    for value in range(12):
        api_client.post("/api/thresholds", json={"value": value})

    body = api_client.get("/api/thresholds/paginated?page=2.5&limit=5abc").json()

    assert body["pagination"]["currentPage"] == 2
    assert body["pagination"]["itemsPerPage"] == 5
    assert [row["value"] for row in body["data"]] == [6.0, 5.0, 4.0, 3.0, 2.0]


def test_latest_returns_null_when_empty(api_client: TestClient) -> None:
    response = api_client.get("/api/readings/latest")

    assert response.status_code == 200
    assert response.json() is None


def test_threshold_create_truncates_note_and_becomes_latest(api_client: TestClient) -> None:
    api_client.post("/api/thresholds", json={"value": 28})
    response = api_client.post(
        "/api/thresholds",
        json={"value": 30, "note": "n" * 200},
        headers={"Authorization": "Bearer session-token"},
    )

    assert response.status_code == 201
    assert len(response.json()["note"]) == 180

    latest = api_client.get("/api/thresholds/latest").json()
    assert latest["value"] == 30.0
    assert api_client.get("/api/thresholds").json()[0]["id"] == latest["id"]


def test_threshold_validation_error(api_client: TestClient) -> None:
    response = api_client.post("/api/thresholds", json={"value": "30"})

    assert response.status_code == 400
    assert response.json() == {"error": "value must be a number"}


def test_storage_failure_returns_server_error(api_client: TestClient, monkeypatch) -> None:
    service = build_default_threshold_service()

    def broken_select(*_args, **_kwargs):
        raise StorageError("database unavailable")

    monkeypatch.setattr(service.table, "select", broken_select)

    response = api_client.get("/api/thresholds")

    assert response.status_code == 500
    assert response.json() == {"error": "database unavailable"}


@pytest.mark.parametrize(
    "row",
    [
        {"temperature": "abc"},
        {"temperature": "21.5", "recorded_at": "yesterday"},
    ],
)
def test_unreadable_stored_row_returns_server_error(api_client: TestClient, row) -> None:
    build_default_reading_service().table.insert(row)

    for path in ("/api/readings", "/api/readings/paginated", "/api/readings/latest"):
        response = api_client.get(path)

        assert response.status_code == 500
        assert "error" in response.json()


def test_health(api_client: TestClient) -> None:
    assert api_client.get("/health").json() == {"status": "ok"}
