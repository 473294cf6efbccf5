"""Registration, login, profile and password-change tests."""

import pytest


@pytest.mark.asyncio
async def test_register_creates_regular_user(test_client, db_session):
    resp = await test_client.post(
        "/api/v1/iam/users/register",
        json={
            "email": "New.Analyst@Example.com",
            "password": "correct-horse",
            "full_name": "New Analyst",
        },
    )
    assert resp.status_code == 201, resp.text
    data = resp.json()["data"]
    assert data["email"] == "new.analyst@example.com"
    assert data["role"] == "user"
    assert data["is_suspended"] is False
    assert "hashed_password" not in data


@pytest.mark.asyncio
async def test_register_duplicate_email_conflicts(test_client, seed_user):
    resp = await test_client.post(
        "/api/v1/iam/users/register",
        json={"email": seed_user.email, "password": "another-password"},
    )
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "CONFLICT"


@pytest.mark.asyncio
async def test_register_rejects_short_password(test_client, db_session):
    resp = await test_client.post(
        "/api/v1/iam/users/register",
        json={"email": "short@example.com", "password": "abc"},
    )
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"]["code"] == "VALIDATION_ERROR"
    assert any("password" in d for d in body["error"]["details"])


@pytest.mark.asyncio
async def test_login_returns_token_and_profile(test_client, seed_user):
    resp = await test_client.post(
        "/api/v1/iam/users/login",
        json={"email": seed_user.email, "password": "password123"},
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["token_type"] == "bearer"
    assert data["access_token"]
    assert data["user"]["email"] == seed_user.email
    assert data["user"]["last_login"] is not None


@pytest.mark.asyncio
async def test_login_wrong_password_returns_401(test_client, seed_user):
    resp = await test_client.post(
        "/api/v1/iam/users/login",
        json={"email": seed_user.email, "password": "nope-nope"},
    )
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_login_suspended_returns_403(test_client, user_factory):
    user = await user_factory(is_suspended=True)
    resp = await test_client.post(
        "/api/v1/iam/users/login",
        json={"email": user.email, "password": "password123"},
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_me_returns_current_profile(test_client, seed_user, auth_headers):
    resp = await test_client.get("/api/v1/iam/users/me", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["user_id"] == str(seed_user.user_id)


@pytest.mark.asyncio
async def test_change_password(test_client, seed_user, auth_headers, login):
    resp = await test_client.put(
        "/api/v1/iam/users/me/password",
        headers=auth_headers,
        json={"current_password": "password123", "new_password": "brand-new-pass"},
    )
    assert resp.status_code == 200

    await login(seed_user.email, "brand-new-pass")
    resp = await test_client.post(
        "/api/v1/iam/users/login",
        json={"email": seed_user.email, "password": "password123"},
    )
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_change_password_wrong_current(test_client, auth_headers):
    resp = await test_client.put(
        "/api/v1/iam/users/me/password",
        headers=auth_headers,
        json={"current_password": "not-it", "new_password": "brand-new-pass"},
    )
    assert resp.status_code == 400
