"""End-to-end tests of the HTTP surface against a SQLite database."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from db_explorer.config import AppConfig
from db_explorer.errors import QueryError
from db_explorer.server import build_app

from conftest import make_engine


def test_list_tables(client: TestClient) -> None:
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"response": {"tables": ["items", "users"]}}


def test_list_items_default_pagination(client: TestClient) -> None:
    for i in range(5):
        client.put("/items/", json={"title": f"extra {i}", "description": "filler"})

    records = client.get("/items").json()["response"]["records"]
    assert len(records) == 5
    assert [r["id"] for r in records] == [1, 2, 3, 4, 5]


def test_list_items_limit_and_offset(client: TestClient) -> None:
    response = client.get("/items", params={"limit": 1, "offset": 1})
    assert response.status_code == 200
    assert response.json() == {
        "response": {
            "records": [
                {
                    "id": 2,
                    "title": "memcache",
                    "description": "Рассказать про мемкеш с примером использования",
                    "updated": None,
                }
            ]
        }
    }


@pytest.mark.parametrize("query", ["?limit=abc", "?limit=-3", "?offset=x&limit="])
def test_list_items_invalid_params_fall_back(client: TestClient, query: str) -> None:
    records = client.get(f"/items{query}").json()["response"]["records"]
    assert [r["id"] for r in records] == [1, 2, 3]


def test_get_item(client: TestClient) -> None:
    response = client.get("/items/1")
    assert response.status_code == 200
    assert response.json() == {
        "response": {
            "record": {
                "id": 1,
                "title": "database/sql",
                "description": "Рассказать про базы данных",
                "updated": "rvasily",
            }
        }
    }


@pytest.mark.parametrize("item_id", ["100500", "abc"])
def test_get_missing_item(client: TestClient, item_id: str) -> None:
    response = client.get(f"/items/{item_id}")
    assert response.status_code == 404
    assert response.json() == {"error": "record not found"}


@pytest.mark.parametrize(
    "method, path",
    [
        ("GET", "/unknown_table"),
        ("GET", "/unknown_table/1"),
        ("PUT", "/unknown_table/"),
        ("POST", "/unknown_table/1"),
        ("DELETE", "/unknown_table/1"),
    ],
)
def test_unknown_table(client: TestClient, method: str, path: str) -> None:
    response = client.request(method, path, json={})
    assert response.status_code == 404
    assert response.json() == {"error": "unknown table"}


def test_unmatched_route(client: TestClient) -> None:
    response = client.patch("/items/1", json={})
    assert response.status_code == 404
    assert response.json() == {"error": "not found"}


def test_create_and_fetch_round_trip(client: TestClient) -> None:
    payload = {"title": "db_crud", "description": "", "updated": None}
    response = client.put("/items/", json=payload)
    assert response.status_code == 200
    assert response.json() == {"response": {"id": 4}}

    record = client.get("/items/4").json()["response"]["record"]
    assert record == {"id": 4, **payload}


def test_create_substitutes_defaults_and_ignores_extras(client: TestClient) -> None:
    response = client.put("/items/", json={"id": 42, "title": "only title", "unknown": "x"})
    assert response.json() == {"response": {"id": 4}}

    record = client.get("/items/4").json()["response"]["record"]
    assert record == {"id": 4, "title": "only title", "description": "", "updated": None}
    assert client.get("/items/42").status_code == 404


def test_create_uses_table_primary_key_name(client: TestClient) -> None:
    response = client.put(
        "/users/",
        json={"login": "qwerty'", "password": "love\"", "email": "q@example.com", "info": "x"},
    )
    assert response.status_code == 200
    assert response.json() == {"response": {"user_id": 2}}

    record = client.get("/users/2").json()["response"]["record"]
    assert record["login"] == "qwerty'"
    assert record["password"] == 'love"'
    assert record["updated"] is None


def test_create_rejects_wrong_type(client: TestClient) -> None:
    response = client.put("/items/", json={"title": 42})
    assert response.status_code == 400
    assert response.json() == {"error": "field title have invalid type"}


def test_create_constraint_violation_is_bad_request(client: TestClient) -> None:
    response = client.put(
        "/users/",
        json={"login": "rvasily", "password": "p", "email": "e", "info": "i"},
    )
    assert response.status_code == 400
    assert "UNIQUE" in response.json()["error"]


def test_malformed_json(client: TestClient) -> None:
    response = client.put("/items/", content=b"{not json", headers={"content-type": "application/json"})
    assert response.status_code == 400
    assert response.json()["error"]

    response = client.post("/items/1", content=b"[1, 2]")
    assert response.status_code == 400
    assert response.json() == {"error": "payload must be a JSON object"}


def test_update_item(client: TestClient) -> None:
    response = client.post("/items/3", json={"updated": "autotests", "unknown": 1})
    assert response.status_code == 200
    assert response.json() == {"response": {"updated": 1}}

    record = client.get("/items/3").json()["response"]["record"]
    assert record == {"id": 3, "title": "redis", "description": "Кеш на редисе", "updated": "autotests"}

    response = client.post("/items/3", json={"updated": None})
    assert response.json() == {"response": {"updated": 1}}
    assert client.get("/items/3").json()["response"]["record"]["updated"] is None


@pytest.mark.parametrize(
    "payload, field",
    [
        ({"id": 4}, "id"),
        ({"title": 42}, "title"),
        ({"title": None}, "title"),
        ({"updated": 42}, "updated"),
        ({"description": True}, "description"),
    ],
)
def test_update_rejects_invalid_fields(client: TestClient, payload: dict, field: str) -> None:
    response = client.post("/items/3", json=payload)
    assert response.status_code == 400
    assert response.json() == {"error": f"field {field} have invalid type"}


def test_update_missing_item(client: TestClient) -> None:
    response = client.post("/items/100500", json={"title": "nothing"})
    assert response.status_code == 200
    assert response.json() == {"response": {"updated": 0}}


def test_delete_is_idempotent(client: TestClient) -> None:
    assert client.delete("/items/3").json() == {"response": {"deleted": 1}}
    assert client.delete("/items/3").json() == {"response": {"deleted": 0}}
    assert client.get("/items/3").status_code == 404


def test_driver_failure_is_internal_error(client: TestClient) -> None:
    explorer = client.app.state.explorer
    explorer.executor.list_records = MagicMock(side_effect=QueryError("connection lost"))

    response = client.get("/items")
    assert response.status_code == 500
    assert response.content == b""


def test_unexpected_failure_is_internal_error(client: TestClient) -> None:
    explorer = client.app.state.explorer
    explorer.executor.get_record = MagicMock(side_effect=KeyError("boom"))

    response = client.get("/items/1")
    assert response.status_code == 500
    assert response.content == b""


HUGE_ID = "99999999999999999999999"


@pytest.mark.parametrize("item_id", [HUGE_ID, f"-{HUGE_ID}"])
def test_get_out_of_range_key(client: TestClient, item_id: str) -> None:
    response = client.get(f"/items/{item_id}")
    assert response.status_code == 404
    assert response.json() == {"error": "record not found"}


@pytest.mark.parametrize("item_id", [HUGE_ID, "abc"])
def test_delete_key_that_cannot_match(client: TestClient, item_id: str) -> None:
    response = client.delete(f"/items/{item_id}")
    assert response.status_code == 200
    assert response.json() == {"response": {"deleted": 0}}
    assert client.get("/items/1").status_code == 200


@pytest.mark.parametrize("item_id", [HUGE_ID, "abc"])
def test_update_key_that_cannot_match(client: TestClient, item_id: str) -> None:
    response = client.post(f"/items/{item_id}", json={"title": "nothing"})
    assert response.status_code == 200
    assert response.json() == {"response": {"updated": 0}}


def test_oversized_number_in_body_is_bad_request(tmp_path: Path, config: AppConfig) -> None:
    engine = make_engine(
        tmp_path / "prices.db",
        [
            "CREATE TABLE prices (id INTEGER PRIMARY KEY AUTOINCREMENT, amount INTEGER NOT NULL)",
            "INSERT INTO prices (amount) VALUES (10)",
        ],
    )
    client = TestClient(build_app(config, engine=engine))

    response = client.put("/prices/", json={"amount": 10**30})
    assert response.status_code == 400
    assert response.json()["error"]

    response = client.post("/prices/1", json={"amount": 10**30})
    assert response.status_code == 400
    assert client.get("/prices/1").json() == {"response": {"record": {"id": 1, "amount": 10}}}
    engine.dispose()
