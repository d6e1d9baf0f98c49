from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlmodel import SQLModel, create_engine

from app import main as app_main
from app.domain.roles import Role
from app.infra import audit, db, events
from app.infra.auth import create_access_token


@pytest.fixture()
def identity_client(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> Generator[TestClient, None, None]:
    db_path = tmp_path / "identity_test.db"
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


def _bootstrap_admin(client: TestClient, email: str, password: str) -> None:
    response = client.post(
        "/api/identity/bootstrap-admin",
        json={"email": email, "password": password, "name": "Admin"},
    )
    assert response.status_code == 201


def _login(client: TestClient, email: str, password: str) -> str:
    response = client.post("/api/identity/dev-login", json={"email": email, "password": password})
    assert response.status_code == 200
    return response.json()["access_token"]


def test_bootstrap_admin_only_once(identity_client: TestClient) -> None:
    _bootstrap_admin(identity_client, "admin@example.com", "admin-pass")

    again = identity_client.post(
        "/api/identity/bootstrap-admin",
        json={"email": "other@example.com", "password": "x"},
    )
    assert again.status_code == 409

    login = identity_client.post(
        "/api/identity/dev-login",
        json={"email": " Admin@Example.com ", "password": "admin-pass"},
    )
    assert login.status_code == 200
    assert login.json()["role"] == "Super Admin"
    assert login.json()["token_type"] == "bearer"


def test_employee_signup_is_approved_immediately(identity_client: TestClient) -> None:
    signup = identity_client.post(
        "/api/identity/signup",
        json={"email": "emp@example.com", "password": "emp-pass", "name": "Emp"},
    )
    assert signup.status_code == 201
    assert signup.json()["role"] == "Employee"
    assert signup.json()["is_approved"] is True

    token = _login(identity_client, "emp@example.com", "emp-pass")
    me = identity_client.get("/api/identity/me", headers=_auth_header(token))
    assert me.status_code == 200
    assert me.json()["email"] == "emp@example.com"
    assert "password_hash" not in me.json()


def test_manager_signup_requires_approval(identity_client: TestClient) -> None:
    _bootstrap_admin(identity_client, "admin@example.com", "admin-pass")
    admin_token = _login(identity_client, "admin@example.com", "admin-pass")

    signup = identity_client.post(
        "/api/identity/signup",
        json={"email": "mgr@example.com", "password": "mgr-pass", "role": "Manager"},
    )
    assert signup.status_code == 201
    manager_id = signup.json()["id"]
    assert signup.json()["is_approved"] is False

    pending_login = identity_client.post(
        "/api/identity/dev-login",
        json={"email": "mgr@example.com", "password": "mgr-pass"},
    )
    assert pending_login.status_code == 401
    assert pending_login.json()["detail"] == "account pending approval"

    pending = identity_client.get("/api/admin/users/pending", headers=_auth_header(admin_token))
    assert pending.status_code == 200
    assert [item["id"] for item in pending.json()] == [manager_id]

    approve = identity_client.post(
        "/api/admin/approve-users",
        json={"user_ids": [manager_id, "missing-id"]},
        headers=_auth_header(admin_token),
    )
    assert approve.status_code == 200
    assert approve.json() == {"approved": 1}

    token = _login(identity_client, "mgr@example.com", "mgr-pass")
    me = identity_client.get("/api/identity/me", headers=_auth_header(token))
    assert me.json()["role"] == "Manager"


def test_signup_rejects_duplicates_and_super_admin(identity_client: TestClient) -> None:
    first = identity_client.post(
        "/api/identity/signup",
        json={"email": "dup@example.com", "password": "p"},
    )
    assert first.status_code == 201

    duplicate = identity_client.post(
        "/api/identity/signup",
        json={"email": "DUP@example.com", "password": "p"},
    )
    assert duplicate.status_code == 409

    escalate = identity_client.post(
        "/api/identity/signup",
        json={"email": "root@example.com", "password": "p", "role": "Super Admin"},
    )
    assert escalate.status_code == 403

    unknown_role = identity_client.post(
        "/api/identity/signup",
        json={"email": "alias@example.com", "password": "p", "role": "SuperAdmin"},
    )
    assert unknown_role.status_code == 422


def test_login_and_token_failures(identity_client: TestClient) -> None:
    identity_client.post("/api/identity/signup", json={"email": "emp@example.com", "password": "right"})

    wrong = identity_client.post(
        "/api/identity/dev-login",
        json={"email": "emp@example.com", "password": "wrong"},
    )
    assert wrong.status_code == 401

    unknown = identity_client.post(
        "/api/identity/dev-login",
        json={"email": "nobody@example.com", "password": "right"},
    )
    assert unknown.status_code == 401

    no_token = identity_client.get("/api/identity/me")
    assert no_token.status_code == 401

    bad_token = identity_client.get("/api/identity/me", headers=_auth_header("not-a-jwt"))
    assert bad_token.status_code == 401

    ghost_token = create_access_token(user_id="ghost", role=Role.EMPLOYEE)
    ghost = identity_client.get("/api/identity/me", headers=_auth_header(ghost_token))
    assert ghost.status_code == 401


def test_role_and_approval_changes_apply_to_existing_tokens(identity_client: TestClient) -> None:
    _bootstrap_admin(identity_client, "admin@example.com", "admin-pass")
    admin_headers = _auth_header(_login(identity_client, "admin@example.com", "admin-pass"))

    created: dict[str, str] = {}
    for name, role in (("owner", "Owner"), ("manager", "Manager")):
        response = identity_client.post(
            "/api/admin/users",
            json={"email": f"{name}@example.com", "password": "pass", "role": role},
            headers=admin_headers,
        )
        assert response.status_code == 201
        created[name] = response.json()["id"]

    owner_headers = _auth_header(_login(identity_client, "owner@example.com", "pass"))
    assert identity_client.get("/api/admin/users", headers=owner_headers).status_code == 200

    demoted = identity_client.patch(
        f"/api/admin/users/{created['owner']}",
        json={"role": "Employee"},
        headers=admin_headers,
    )
    assert demoted.status_code == 200

    assert identity_client.get("/api/admin/users", headers=owner_headers).status_code == 403
    assert identity_client.get("/api/org/employees", headers=owner_headers).status_code == 403
    me = identity_client.get("/api/identity/me", headers=owner_headers)
    assert me.status_code == 200
    assert me.json()["role"] == "Employee"

    manager_headers = _auth_header(_login(identity_client, "manager@example.com", "pass"))
    assert identity_client.get("/api/org/employees", headers=manager_headers).status_code == 200
    revoked = identity_client.patch(
        f"/api/admin/users/{created['manager']}",
        json={"is_approved": False},
        headers=admin_headers,
    )
    assert revoked.status_code == 200
    assert identity_client.get("/api/org/employees", headers=manager_headers).status_code == 401
    assert identity_client.get("/api/identity/me", headers=manager_headers).status_code == 401
