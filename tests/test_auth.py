"""Registration, login and the bearer-token access guard."""
from datetime import datetime, timedelta, timezone

from jose import jwt
from sqlalchemy import false, select

from milkway.config import settings
from milkway.routers import auth
from tests.conftest import auth_headers, register


async def test_register_returns_token_and_user(client):
    resp = await client.post(
        "/api/auth/register",
        json={"name": "  Ravi  ", "email": "Ravi@Example.com", "password": "secret123", "role": "farmer"},
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "User registered successfully"
    assert body["token"]
    assert body["user"]["email"] == "ravi@example.com"
    assert body["user"]["name"] == "Ravi"
    assert body["user"]["role"] == "farmer"
    assert body["user"]["isActive"] is True
    assert "hashedPassword" not in body["user"]


async def test_register_duplicate_email_is_400(client, farmer):
    resp = await client.post(
        "/api/auth/register",
        json={"name": "Other", "email": "farmer@example.com", "password": "secret123", "role": "buyer"},
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "User already exists with this email"


async def test_register_race_on_same_email_is_400(client, farmer, monkeypatch):
    # the pre-check misses the existing row, as it would for two concurrent requests
    monkeypatch.setattr(auth, "select", lambda *cols: select(*cols).where(false()))
    resp = await client.post(
        "/api/auth/register",
        json={"name": "Other", "email": "farmer@example.com", "password": "secret123", "role": "buyer"},
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "User already exists with this email"


async def test_register_validation_errors(client):
    resp = await client.post(
        "/api/auth/register",
        json={"name": "A", "email": "not-an-email", "password": "123", "role": "admin"},
    )
    assert resp.status_code == 400
    body = resp.json()
    assert body["message"] == "Validation failed"
    fields = {error["field"] for error in body["errors"]}
    assert {"name", "email", "password", "role"} <= fields


async def test_login_updates_last_login(client, buyer):
    resp = await client.post(
        "/api/auth/login", json={"email": "buyer@example.com", "password": "secret123"}
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Login successful"
    assert body["user"]["lastLogin"] is not None


async def test_login_wrong_password(client, buyer):
    resp = await client.post(
        "/api/auth/login", json={"email": "buyer@example.com", "password": "wrong-password"}
    )
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid email or password"


async def test_login_unknown_email(client):
    resp = await client.post(
        "/api/auth/login", json={"email": "nobody@example.com", "password": "secret123"}
    )
    assert resp.status_code == 401


async def test_me_requires_token(client):
    resp = await client.get("/api/auth/me")
    assert resp.status_code == 401
    assert resp.json()["message"] == "Access denied. No token provided."


async def test_me_with_garbage_token(client):
    resp = await client.get("/api/auth/me", headers=auth_headers("not-a-jwt"))
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid token."


async def test_me_with_expired_token(client, buyer):
    expired = jwt.encode(
        {
            "sub": buyer["user"]["id"],
            "role": "buyer",
            "exp": datetime.now(tz=timezone.utc) - timedelta(minutes=1),
        },
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )
    resp = await client.get("/api/auth/me", headers=auth_headers(expired))
    assert resp.status_code == 401
    assert resp.json()["message"] == "Token expired."


async def test_me_with_token_for_missing_user(client):
    token = jwt.encode(
        {
            "sub": "00000000-0000-0000-0000-000000000000",
            "role": "buyer",
            "exp": datetime.now(tz=timezone.utc) + timedelta(minutes=5),
        },
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )
    resp = await client.get("/api/auth/me", headers=auth_headers(token))
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid token. User not found."


async def test_me_returns_profile(client, farmer):
    resp = await client.get("/api/auth/me", headers=farmer["headers"])
    assert resp.status_code == 200
    assert resp.json()["id"] == farmer["user"]["id"]


async def test_refresh_issues_new_token(client, buyer):
    resp = await client.post("/api/auth/refresh", headers=buyer["headers"])
    assert resp.status_code == 200
    token = resp.json()["token"]
    assert (await client.get("/api/auth/me", headers=auth_headers(token))).status_code == 200


async def test_logout(client, buyer):
    resp = await client.post("/api/auth/logout", headers=buyer["headers"])
    assert resp.status_code == 200
    assert resp.json()["message"] == "Logged out successfully"


async def test_wrong_role_is_403_not_401(client, buyer):
    resp = await client.get("/api/farms/my-farms", headers=buyer["headers"])
    assert resp.status_code == 403
    assert resp.json()["message"] == "Access denied. Required role: farmer"


async def test_deactivated_user_is_locked_out(client):
    account = await register(client, "buyer", "leaving@example.com")
    resp = await client.post(
        "/api/users/deactivate", json={"reason": "moving away"}, headers=account["headers"]
    )
    assert resp.status_code == 200

    resp = await client.get("/api/auth/me", headers=account["headers"])
    assert resp.status_code == 401
    assert resp.json()["message"] == "Account is deactivated."

    resp = await client.post(
        "/api/auth/login", json={"email": "leaving@example.com", "password": "secret123"}
    )
    assert resp.status_code == 401
