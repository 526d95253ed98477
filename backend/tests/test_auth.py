"""
Tests for authentication endpoints (/api/auth).

Tests cover:
- Registration (201, 409 on duplicates, 422 on weak input)
- Login (token claims, 401 on bad credentials)
- Token validation in get_current_user
"""

import logging
from datetime import timedelta

from fastapi.testclient import TestClient
from jose import jwt

import models
from auth.security import ALGORITHM, SECRET_KEY, create_access_token

logger = logging.getLogger(__name__)


# ============== Registration ==============


def test_register(client: TestClient):
    response = client.post(
        "/api/auth/register",
        json={"username": "newbie", "email": "newbie@test.com", "password": "longenough"}
    )

    assert response.status_code == 201, f"Expected 201, got {response.status_code}: {response.json()}"
    data = response.json()
    assert data["username"] == "newbie"
    assert data["roles"] == []
    assert "password_hash" not in data


def test_register_duplicate_username(client: TestClient, regular_user: models.User):
    response = client.post(
        "/api/auth/register",
        json={"username": regular_user.username, "email": "fresh@test.com", "password": "longenough"}
    )

    assert response.status_code == 409


def test_register_duplicate_email(client: TestClient, regular_user: models.User):
    response = client.post(
        "/api/auth/register",
        json={"username": "fresh", "email": regular_user.email, "password": "longenough"}
    )

    assert response.status_code == 409


def test_register_short_password(client: TestClient):
    response = client.post(
        "/api/auth/register",
        json={"username": "shorty", "email": "shorty@test.com", "password": "short"}
    )

    assert response.status_code == 422


# ============== Login ==============


def test_login_returns_token_with_claims(client: TestClient, admin_user: models.User):
    """Test that the issued token carries sub, name, email and roles."""
    response = client.post("/api/auth/login", json={"username": "Admin", "password": "admin12345"})

    assert response.status_code == 200, f"Expected 200, got {response.status_code}: {response.json()}"
    body = response.json()
    assert body["is_success"] is True

    claims = jwt.decode(body["token"], SECRET_KEY, algorithms=[ALGORITHM])
    assert claims["sub"] == admin_user.id
    assert claims["name"] == "Admin"
    assert claims["roles"] == [models.ADMIN_ROLE]
    assert claims["type"] == "access"
    logger.info("✓ Login token carries expected claims")


def test_login_wrong_password(client: TestClient, regular_user: models.User):
    response = client.post("/api/auth/login", json={"username": "Regular", "password": "wrong-password"})

    assert response.status_code == 401


def test_login_unknown_user(client: TestClient):
    response = client.post("/api/auth/login", json={"username": "nobody", "password": "whatever1"})

    assert response.status_code == 401


def test_registered_user_can_login_and_fetch_me(client: TestClient):
    client.post(
        "/api/auth/register",
        json={"username": "roundtrip", "email": "roundtrip@test.com", "password": "longenough"}
    )
    token = client.post("/api/auth/login", json={"username": "roundtrip", "password": "longenough"}).json()["token"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert me.status_code == 200
    assert me.json()["username"] == "roundtrip"


# ============== Token Validation ==============


def test_expired_token_rejected(client: TestClient, regular_user: models.User):
    token = create_access_token({"sub": regular_user.id}, expires_delta=timedelta(minutes=-5))

    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_token_for_deleted_user_rejected(client: TestClient, regular_user: models.User):
    token = create_access_token({"sub": "00000000-dead-beef-0000-000000000000"})

    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["detail"] == "User not found"


def test_wrong_token_type_rejected(client: TestClient, regular_user: models.User):
    token = jwt.encode({"sub": regular_user.id, "type": "refresh"}, SECRET_KEY, algorithm=ALGORITHM)

    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_health(client: TestClient):
    assert client.get("/health").json() == {"status": "healthy"}
