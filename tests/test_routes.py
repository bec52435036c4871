from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from health_api.app import create_app
from health_api.repositories.kv_store import MemoryKVStore, StoreUnavailable
from health_api.repositories.sql_repository import SQLRepository
from health_api.services.verification_service import CodePurpose


class _DownKV(MemoryKVStore):
    def get(self, key):
        raise StoreUnavailable("down")

    def set(self, key, value, ttl_seconds=None):
        raise StoreUnavailable("down")


class _DownDirectory:
    def lookup_by_id(self, user_id):
        raise StoreUnavailable("down")


@pytest.fixture()
def app(db_env):
    return create_app(kv_store=MemoryKVStore())


@pytest.fixture()
def client(app):
    return TestClient(app)


@pytest.fixture()
def repo(db_env):
    return SQLRepository()


def test_reset_password_flow_and_replay(app, client, repo):
    repo.create_user("u1", "u1@example.com", password_hash="argon2$old")
    app.state.verification_codes.issue("u1", CodePurpose.PASSWORD_RESET, code="482913", ttl_seconds=600)
    body = {"userId": "u1", "code": "482913", "newPassword": "n3w-secret"}

    resp = client.post("/auth/reset-password", json=body)
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Password updated successfully"}

    login = client.post("/auth/login", json={"email": "u1@example.com", "password": "n3w-secret"})
    assert login.status_code == 200

    replay = client.post("/auth/reset-password", json=body)
    assert replay.status_code == 401
    assert replay.json() == {"error": "Invalid or expired verification code"}


@pytest.mark.parametrize(
    "body",
    [{}, {"userId": "u1", "code": "1"}, {"userId": "u1", "newPassword": "x"}, {"code": "1", "newPassword": "x"}],
)
def test_reset_password_missing_fields(client, body):
    resp = client.post("/auth/reset-password", json=body)
    assert resp.status_code == 400
    assert "error" in resp.json()


def test_reset_password_malformed_body_is_client_error(client):
    resp = client.post("/auth/reset-password", content=b"{not json", headers={"content-type": "application/json"})
    assert resp.status_code == 400


def test_reset_password_unknown_user_is_server_error(app, client):
    app.state.verification_codes.issue("ghost", CodePurpose.PASSWORD_RESET, code="482913")
    resp = client.post("/auth/reset-password", json={"userId": "ghost", "code": "482913", "newPassword": "pw"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to update password"}


def test_reset_password_store_failure_is_generic(db_env):
    client = TestClient(create_app(kv_store=_DownKV()))
    resp = client.post("/auth/reset-password", json={"userId": "u1", "code": "482913", "newPassword": "pw"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error"}


def test_verify_user_existence(client, repo):
    repo.create_user("u1", "u1@example.com", password_hash="argon2$x")
    assert client.get("/auth/verify", params={"userId": "u1"}).json() == {"exists": True}

    missing = client.get("/auth/verify", params={"userId": "nobody"})
    assert missing.status_code == 200
    assert missing.json() == {"exists": False}

    assert client.get("/auth/verify").status_code == 400


def test_verify_user_store_failure_degrades_to_false(db_env):
    client = TestClient(create_app(kv_store=MemoryKVStore(), user_directory=_DownDirectory()))
    resp = client.get("/auth/verify", params={"userId": "u1"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error", "exists": False}


def test_forgot_password_then_reset(client):
    signup = client.post("/auth/signup", json={"username": "ana", "email": "ana@example.com", "password": "initial-pw"})
    assert signup.status_code == 200
    user_id = signup.json()["user"]["id"]

    issued = client.post("/auth/forgot-password", json={"method": "email", "email": "ana@example.com"})
    assert issued.status_code == 200
    data = issued.json()
    assert data["userId"] == user_id

    resp = client.post("/auth/reset-password", json={"userId": user_id, "code": data["code"], "newPassword": "fresh-pw"})
    assert resp.status_code == 200


def test_forgot_password_hides_code_in_prod(db_env, monkeypatch):
    from health_api.core import config as core_config

    monkeypatch.setenv("APP_ENV", "prod")
    core_config.get_settings.cache_clear()
    client = TestClient(create_app(kv_store=MemoryKVStore()))
    client.post("/auth/signup", json={"username": "ana", "email": "ana@example.com", "password": "initial-pw"})
    resp = client.post("/auth/forgot-password", json={"method": "email", "email": "ana@example.com"})
    assert resp.status_code == 200
    assert "code" not in resp.json()


def test_forgot_password_errors(client):
    assert client.post("/auth/forgot-password", json={"method": "email"}).status_code == 400
    assert client.post("/auth/forgot-password", json={"method": "carrier-pigeon"}).status_code == 400
    resp = client.post("/auth/forgot-password", json={"method": "email", "email": "nobody@example.com"})
    assert resp.status_code == 404


def test_forgot_password_is_rate_limited(client):
    statuses = [
        client.post("/auth/forgot-password", json={"method": "email", "email": "nobody@example.com"}).status_code
        for _ in range(6)
    ]
    assert statuses[:5] == [404] * 5
    assert statuses[5] == 429


def test_signup_rejects_duplicate_email(client):
    body = {"username": "ana", "email": "ana@example.com", "password": "initial-pw"}
    assert client.post("/auth/signup", json=body).status_code == 200
    assert client.post("/auth/signup", json=body).status_code == 409


def test_change_password_route(client):
    user_id = client.post(
        "/auth/signup", json={"username": "ana", "email": "ana@example.com", "password": "initial-pw"}
    ).json()["user"]["id"]
    wrong = client.post(
        "/auth/change-password", json={"userId": user_id, "currentPassword": "nope", "newPassword": "next-pw"}
    )
    assert wrong.status_code == 401
    ok = client.post(
        "/auth/change-password", json={"userId": user_id, "currentPassword": "initial-pw", "newPassword": "next-pw"}
    )
    assert ok.status_code == 200
    assert ok.json() == {"success": True}
    assert client.post("/auth/login", json={"email": "ana@example.com", "password": "initial-pw"}).status_code == 401


def test_cache_item_round_trip(client):
    assert client.get("/cache/item").json() == {"result": None}
    resp = client.post("/cache/item", json={"key": "item", "value": "hello"})
    assert resp.status_code == 200
    assert resp.json() == {"message": "Data saved successfully"}
    assert client.get("/cache/item").json() == {"result": "hello"}


def test_cache_failures(db_env):
    client = TestClient(create_app(kv_store=_DownKV()))
    get_resp = client.get("/cache/item")
    assert get_resp.status_code == 500
    assert get_resp.json() == {"error": "Failed to fetch data"}
    post_resp = client.post("/cache/item", json={"key": "item", "value": "x"})
    assert post_resp.status_code == 500
    assert post_resp.json() == {"error": "Failed to save data"}


def test_profile_completion_route(client, repo):
    repo.create_user("u1", "u1@example.com", password_hash="argon2$x")
    repo.upsert_profile("u1", {"name": "Ana", "email": "u1@example.com", "age": 30})
    resp = client.get("/profile/completion", params={"userId": "u1"})
    assert resp.status_code == 200
    assert resp.json() == {"userId": "u1", "completion": 25}
    assert client.get("/profile/completion", params={"userId": "zzz"}).status_code == 404
    assert client.get("/profile/completion").status_code == 400


def test_cache_item_keeps_json_values(app, client):
    resp = client.post("/cache/item", json={"key": "item", "value": {"a": 1, "ok": True}})
    assert resp.status_code == 200
    assert app.state.kv_store.get("item") == '{"a": 1, "ok": true}'
    assert client.get("/cache/item").json() == {"result": {"a": 1, "ok": True}}

    client.post("/cache/item", json={"key": "item", "value": [1, 2, 3]})
    assert client.get("/cache/item").json() == {"result": [1, 2, 3]}
