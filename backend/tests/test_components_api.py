"""HTTP scenario: reset, create, list, replace, history, then a schema change."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from scribe.core.config import AppSettings
from scribe.main import create_app

REQUEST = {
    "data": {"something": "somethingstring"},
    "date_created": "2017-06-22T17:57:32Z",
    "date_modified": "2018-06-22T17:57:32Z",
    "created_by": 2,
    "modified_by": 2,
}

INITIAL = {
    "id": 1,
    "data": {"something": "somethingstring"},
    "date_created": "2017-06-22T17:57:32.000Z",
    "date_modified": "2018-06-22T17:57:32.000Z",
    "created_by": 2,
    "modified_by": 2,
}

CHANGED = {**INITIAL, "data": {"something": "we changed this", "data2": "new thing"}}


@pytest.fixture
def client(settings: AppSettings, base_schema):
    with TestClient(create_app(settings, base_schema)) as test_client:
        yield test_client


def test_component_lifecycle(settings: AppSettings, client: TestClient, make_schema) -> None:
    response = client.delete("/testComponent")
    assert response.status_code == 200
    assert response.json() == []

    response = client.post("/testComponent", json=REQUEST)
    assert response.status_code == 200
    assert response.json() == [INITIAL]

    response = client.get("/testComponent/all")
    assert response.status_code == 200
    assert response.json() == [INITIAL]

    response = client.put(
        "/testComponent/1",
        json={**REQUEST, "data": {"something": "we changed this", "data2": "new thing"}},
    )
    assert response.status_code == 200
    assert response.json() == [CHANGED]

    response = client.get("/testComponent/all/history")
    assert response.status_code == 200
    assert response.json() == [{"id": 1, "history": [INITIAL]}]

    # A server restarted with a superset schema evolves the table on its next call.
    evolved = make_schema(new_column={"type": "string"})
    with TestClient(create_app(settings, evolved)) as evolved_client:
        response = evolved_client.put("/testComponent/1", json={**REQUEST, "new_column": "woot"})
        assert response.status_code == 200
        assert response.json() == [{**INITIAL, "new_column": '"woot"'}]

        history = evolved_client.get("/testComponent/1/history").json()
        assert [state["data"] for state in history] == [CHANGED["data"], INITIAL["data"]]


def test_single_record_routes(client: TestClient) -> None:
    client.post("/widgets", json=REQUEST)

    assert client.get("/widgets/1").json() == [INITIAL]
    assert client.delete("/widgets/1").json() == []
    assert client.get("/widgets/1").status_code == 404
    assert client.get("/widgets/1/history").json() == [INITIAL]


def test_missing_record_maps_to_404(client: TestClient) -> None:
    response = client.put("/widgets/7", json=REQUEST)

    assert response.status_code == 404
    assert response.json()["error"] == "NotFoundError"


def test_invalid_component_name_maps_to_400(client: TestClient) -> None:
    response = client.post("/bad-name", json=REQUEST)

    assert response.status_code == 400
    assert response.json()["error"] == "InvalidComponentError"


def test_validation_errors_map_to_422(client: TestClient) -> None:
    response = client.post("/widgets", json={"created_by": 2})
    assert response.status_code == 422
    assert response.json()["error"] == "RecordValidationError"

    response = client.post("/widgets", json={**REQUEST, "date_created": "not a date"})
    assert response.status_code == 422

    response = client.post("/widgets", json={**REQUEST, "date_created": "0001-01-01T00:00:00+01:00"})
    assert response.status_code == 422
    assert response.json()["error"] == "RecordValidationError"


def test_unreachable_storage_maps_to_503(tmp_path, base_schema) -> None:
    missing_dir = tmp_path / "missing"
    settings = AppSettings(database_url=f"sqlite+aiosqlite:///{missing_dir / 'scribe.db'}")

    with TestClient(create_app(settings, base_schema)) as client:
        # startup prepares the directory; removing it makes the file unopenable
        missing_dir.rmdir()
        response = client.post("/widgets", json=REQUEST)

    assert response.status_code == 503
    body = response.json()
    assert body["error"] == "MigrationError"
    assert body["detail"]
