from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlmodel import SQLModel, create_engine

from app import main as app_main
from app.infra import audit, db, events


@pytest.fixture()
def announcement_client(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> Generator[TestClient, None, None]:
    db_path = tmp_path / "announcement_test.db"
    test_engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(test_engine, "connect")
    def _enable_foreign_keys(dbapi_connection: object, _connection_record: object) -> None:
        cursor = dbapi_connection.cursor()  # type: ignore[attr-defined]
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    SQLModel.metadata.create_all(test_engine)
    monkeypatch.setattr(db, "engine", test_engine)
    monkeypatch.setattr(audit, "engine", test_engine)
    monkeypatch.setattr(events, "engine", test_engine)
    client = TestClient(app_main.app)
    yield client
    client.close()


def _auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _login(client: TestClient, email: str, password: str) -> str:
    response = client.post("/api/identity/dev-login", json={"email": email, "password": password})
    assert response.status_code == 200
    return response.json()["access_token"]


def _seed_tokens(client: TestClient) -> dict[str, str]:
    bootstrap = client.post(
        "/api/identity/bootstrap-admin",
        json={"email": "admin@example.com", "password": "admin-pass"},
    )
    assert bootstrap.status_code == 201
    tokens = {"admin": _login(client, "admin@example.com", "admin-pass")}
    for name, role in (("mgr1", "Manager"), ("mgr2", "Manager"), ("emp", "Employee")):
        created = client.post(
            "/api/admin/users",
            json={"email": f"{name}@example.com", "password": "pass", "role": role},
            headers=_auth_header(tokens["admin"]),
        )
        assert created.status_code == 201
        tokens[name] = _login(client, f"{name}@example.com", "pass")
    return tokens


def _post(client: TestClient, token: str, **payload: object) -> dict[str, object]:
    body = {"title": "Notice", "message": "Body", **payload}
    response = client.post("/api/announcements", json=body, headers=_auth_header(token))
    assert response.status_code == 201
    return response.json()


def test_announcement_create_permissions(announcement_client: TestClient) -> None:
    tokens = _seed_tokens(announcement_client)

    created = _post(announcement_client, tokens["mgr1"], title="  Safety  ", priority="high")
    assert created["title"] == "Safety"
    assert created["priority"] == "high"
    assert created["pinned"] is False

    denied = announcement_client.post(
        "/api/announcements",
        json={"title": "Hi", "message": "Body"},
        headers=_auth_header(tokens["emp"]),
    )
    assert denied.status_code == 403

    fetched = announcement_client.get(
        f"/api/announcements/{created['id']}",
        headers=_auth_header(tokens["emp"]),
    )
    assert fetched.status_code == 200
    missing = announcement_client.get("/api/announcements/missing", headers=_auth_header(tokens["emp"]))
    assert missing.status_code == 404


def test_announcement_manage_permissions(announcement_client: TestClient) -> None:
    tokens = _seed_tokens(announcement_client)
    own = _post(announcement_client, tokens["mgr1"])

    other_manager = announcement_client.patch(
        f"/api/announcements/{own['id']}",
        json={"title": "Hijack"},
        headers=_auth_header(tokens["mgr2"]),
    )
    assert other_manager.status_code == 403

    author = announcement_client.patch(
        f"/api/announcements/{own['id']}",
        json={"message": "Updated", "category": "ops"},
        headers=_auth_header(tokens["mgr1"]),
    )
    assert author.status_code == 200
    assert author.json()["message"] == "Updated"
    assert author.json()["title"] == "Notice"
    assert author.json()["category"] == "ops"

    employee_delete = announcement_client.delete(
        f"/api/announcements/{own['id']}",
        headers=_auth_header(tokens["emp"]),
    )
    assert employee_delete.status_code == 403

    admin_delete = announcement_client.delete(
        f"/api/announcements/{own['id']}",
        headers=_auth_header(tokens["admin"]),
    )
    assert admin_delete.status_code == 204
    assert announcement_client.get(
        f"/api/announcements/{own['id']}",
        headers=_auth_header(tokens["admin"]),
    ).status_code == 404


def test_announcement_listing_order_and_limit(announcement_client: TestClient) -> None:
    tokens = _seed_tokens(announcement_client)
    first = _post(announcement_client, tokens["admin"], title="First")
    pinned = _post(announcement_client, tokens["admin"], title="Pinned", pinned=True)
    latest = _post(announcement_client, tokens["mgr1"], title="Latest")

    listed = announcement_client.get("/api/announcements", headers=_auth_header(tokens["emp"]))
    assert listed.status_code == 200
    assert [item["id"] for item in listed.json()] == [pinned["id"], latest["id"], first["id"]]

    limited = announcement_client.get(
        "/api/announcements",
        params={"limit": 1},
        headers=_auth_header(tokens["emp"]),
    )
    assert [item["id"] for item in limited.json()] == [pinned["id"]]
