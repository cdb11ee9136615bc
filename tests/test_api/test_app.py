"""
End-to-end tests through the FastAPI app.

The app runs its normal startup (hierarchy load, table creation, demo seed) against
a private in-memory SQLite engine; ids are the ones listed in conftest.py.
"""
from __future__ import annotations

import time

from fastapi.testclient import TestClient
import jwt
import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from saddle_authz.main import create_app
from saddle_authz.settings import Settings

SECRET = "test-secret-" + "x" * 20


def _headers(user_id: int, **claims) -> dict[str, str]:
    payload = {"id": user_id, "exp": int(time.time()) + 300}
    payload.update(claims)
    return {"Authorization": f"Bearer {jwt.encode(payload, SECRET, algorithm='HS256')}"}


@pytest.fixture
def client():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    app = create_app(settings=Settings(jwt_secret=SECRET), engine=engine)
    with TestClient(app) as test_client:
        yield test_client
    engine.dispose()


def test_health_is_public(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_me_requires_token(client):
    response = client.get("/me")
    assert response.status_code == 401
    assert response.json() == {"detail": "Authentication required"}


def test_me_rejects_malformed_header(client):
    response = client.get("/me", headers={"Authorization": "Token abc"})
    assert response.status_code == 401


def test_me_rejects_bad_signature(client):
    token = jwt.encode({"id": 3, "exp": int(time.time()) + 300}, "y" * 32, algorithm="HS256")
    response = client.get("/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_me_returns_resolved_principal(client):
    response = client.get("/me", headers=_headers(3))
    assert response.status_code == 200
    assert response.json() == {"user_id": 3, "role": "fitter", "factory_id": None, "fitter_id": 1}


def test_role_claim_cannot_escalate(client):
    response = client.get("/me", headers=_headers(3, role="supervisor"))
    assert response.json()["role"] == "fitter"


def test_unknown_and_blocked_users_look_the_same(client):
    unknown = client.get("/me", headers=_headers(99))
    blocked = client.get("/me", headers=_headers(8))
    assert unknown.status_code == blocked.status_code == 401
    assert unknown.json() == blocked.json() == {"detail": "Authentication required"}


def test_fitter_lists_only_own_customers(client):
    response = client.get("/customers", headers=_headers(3))
    assert response.status_code == 200
    assert [c["id"] for c in response.json()] == [1]


def test_invisible_customer_is_not_found(client):
    response = client.get("/customers/2", headers=_headers(3))
    assert response.status_code == 404
    assert client.get("/customers/2", headers=_headers(4)).status_code == 200


def test_fitter_creates_customer_in_scope(client):
    response = client.post("/customers", json={"name": "New Yard", "fitter_id": 1}, headers=_headers(3))
    assert response.status_code == 201
    assert response.json()["created_by"] == 3
    assert len(client.get("/customers", headers=_headers(3)).json()) == 2


def test_fitter_cannot_create_customer_for_another_fitter(client):
    response = client.post("/customers", json={"name": "Not Mine", "fitter_id": 2}, headers=_headers(3))
    assert response.status_code == 403
    assert response.json() == {"detail": "Forbidden"}


def test_fitter_cannot_move_customer_away(client):
    response = client.patch("/customers/1", json={"fitter_id": 2}, headers=_headers(3))
    assert response.status_code == 403
    assert client.get("/customers/1", headers=_headers(3)).json()["fitter_id"] == 1


def test_user_updates_and_deletes_own_customer(client):
    renamed = client.patch("/customers/3", json={"name": "Meadow Farm Ltd"}, headers=_headers(6))
    assert renamed.status_code == 200
    assert renamed.json()["name"] == "Meadow Farm Ltd"

    assert client.delete("/customers/3", headers=_headers(6)).status_code == 204
    assert client.get("/customers/3", headers=_headers(2)).status_code == 404


def test_delete_outside_scope_is_not_found(client):
    assert client.delete("/customers/1", headers=_headers(6)).status_code == 404


def test_orders_scoped_for_factory(client):
    response = client.get("/orders", headers=_headers(5))
    assert [o["id"] for o in response.json()] == [1]


def test_admin_sees_all_logs(client):
    response = client.get("/logs", headers=_headers(2))
    assert response.status_code == 200
    assert len(response.json()) == 4


def test_user_sees_own_logs(client):
    response = client.get("/logs", headers=_headers(6))
    assert [e["user_id"] for e in response.json()] == [6]


def test_customsaddler_sees_empty_lists(client):
    headers = _headers(7)
    assert client.get("/customers", headers=headers).json() == []
    assert client.get("/orders", headers=headers).json() == []
    assert client.get("/logs", headers=headers).json() == []
    assert client.post("/customers", json={"name": "Anything"}, headers=headers).status_code == 403


def test_supervisor_sees_everything(client):
    headers = _headers(1)
    assert len(client.get("/customers", headers=headers).json()) == 3
    assert len(client.get("/orders", headers=headers).json()) == 3


def test_admin_diagnostics_are_supervisor_only(client):
    assert client.get("/admin/policy-matrix", headers=_headers(2)).status_code == 403
    assert client.get("/admin/visible-counts/3", headers=_headers(3)).status_code == 403
    assert client.get("/admin/policy-matrix").status_code == 401


def test_policy_matrix_route(client):
    response = client.get("/admin/policy-matrix", headers=_headers(1))
    assert response.status_code == 200
    body = response.json()
    assert body["admin"]["log_entry"] == {"template": "all", "operations": ["read"]}
    assert body["customsaddler"]["customer"]["template"] == "deny_all"


def test_visible_counts_route(client):
    response = client.get("/admin/visible-counts/3", headers=_headers(1))
    assert response.status_code == 200
    body = response.json()
    assert body["principal"] == {"user_id": 3, "role": "fitter", "factory_id": None, "fitter_id": 1}
    assert body["counts"]["customer"] == 1
    assert body["counts"]["order"] == 2
    assert body["counts"]["credential"] == 1


def test_visible_counts_unknown_user(client):
    assert client.get("/admin/visible-counts/99", headers=_headers(1)).status_code == 404
