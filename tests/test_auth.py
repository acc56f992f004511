import pytest

import config

API = "/smlekha"


@pytest.fixture
def static_token(monkeypatch):
    monkeypatch.setattr(config, "API_TOKEN", "s3cret")


@pytest.fixture
def jwt_login(monkeypatch):
    monkeypatch.setattr(config, "JWT_SECRET", "test-jwt-secret")
    monkeypatch.setattr(config, "ADMIN_USERNAME", "admin")
    monkeypatch.setattr(config, "ADMIN_PASSWORD", "letmein")


def test_open_when_no_token_configured(client):
    assert client.get(f"{API}/payments").status_code == 200


def test_static_token_required(client, static_token):
    resp = client.get(f"{API}/payments")
    assert resp.status_code == 401
    assert resp.json() == {
        "success": False,
        "error": "unauthorized",
        "message": "Not authorized to access this route",
        "statusCode": 401,
    }

    wrong = client.get(f"{API}/payments", headers={"Authorization": "Bearer nope"})
    assert wrong.status_code == 401

    ok = client.get(f"{API}/payments", headers={"Authorization": "Bearer s3cret"})
    assert ok.status_code == 200


def test_health_stays_public(client, static_token):
    resp = client.get(f"{API}/health")
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "ok"


def test_login_issues_usable_jwt(client, jwt_login):
    assert client.get(f"{API}/students").status_code == 401

    bad = client.post(f"{API}/auth/login", json={"username": "admin", "password": "guess"})
    assert bad.status_code == 401

    resp = client.post(f"{API}/auth/login", json={"username": "admin", "password": "letmein"})
    assert resp.status_code == 200
    token = resp.json()["data"]["accessToken"]
    headers = {"Authorization": f"Bearer {token}"}

    assert client.get(f"{API}/students", headers=headers).status_code == 200
    me = client.get(f"{API}/auth/me", headers=headers).json()["data"]
    assert me == {"username": "admin", "role": "admin"}


def test_tampered_jwt_is_rejected(client, jwt_login):
    token = client.post(f"{API}/auth/login", json={"username": "admin", "password": "letmein"}).json()["data"]["accessToken"]
    resp = client.get(f"{API}/students", headers={"Authorization": f"Bearer {token}x"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Session expired, please login again"


def test_login_disabled_without_password(client):
    resp = client.post(f"{API}/auth/login", json={"username": "admin", "password": "admin"})
    assert resp.status_code == 401


def test_non_ascii_credentials_are_rejected(client, jwt_login):
    resp = client.post(f"{API}/auth/login", json={"username": "admin", "password": "pässwörd"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid username or password"


def test_non_ascii_bearer_token_is_rejected(client, static_token):
    resp = client.get(f"{API}/payments", headers={"Authorization": "Bearer s3crét".encode("utf-8")})
    assert resp.status_code == 401
