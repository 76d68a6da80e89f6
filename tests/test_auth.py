from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from app.models.profile import CollaboratorProfile, ProjectOwnerProfile
from app.models.user import User


async def _register(client, email, role="collaborator", password="securepass123"):
    return await client.post(
        "/api/v1/auth/register",
        json={
            "email": email,
            "password": password,
            "confirm_password": password,
            "full_name": "New User",
            "role": role,
        },
    )


async def _get_user(db_session, email):
    result = await db_session.execute(select(User).where(User.email == email))
    return result.scalar_one()


async def _register_and_verify(client, db_session, email, role="collaborator"):
    await _register(client, email, role)
    user = await _get_user(db_session, email)
    res = await client.post("/api/v1/auth/verify-otp", json={"email": email, "otp": user.otp_code})
    assert res.status_code == 200
    return user


@pytest.mark.asyncio
async def test_register(client, db_session):
    res = await _register(client, "new@example.com")
    assert res.status_code == 201
    data = res.json()
    assert data["status"] == "ok"
    assert "user_id" in data

    user = await _get_user(db_session, "new@example.com")
    assert user.is_verified is False
    assert len(user.otp_code) == 6

    profile = await db_session.scalar(
        select(CollaboratorProfile).where(CollaboratorProfile.user_id == user.id)
    )
    assert profile is not None
    assert profile.email == "new@example.com"


@pytest.mark.asyncio
async def test_register_owner_creates_owner_profile(client, db_session):
    res = await _register(client, "founder@example.com", role="project_owner")
    assert res.status_code == 201

    user = await _get_user(db_session, "founder@example.com")
    assert user.role == "project_owner"
    profile = await db_session.scalar(
        select(ProjectOwnerProfile).where(ProjectOwnerProfile.user_id == user.id)
    )
    assert profile is not None


@pytest.mark.asyncio
async def test_register_lowercases_email(client, db_session):
    res = await _register(client, "Mixed.Case@Example.com")
    assert res.status_code == 201
    user = await _get_user(db_session, "mixed.case@example.com")
    assert user is not None


@pytest.mark.asyncio
async def test_register_password_mismatch(client):
    res = await client.post(
        "/api/v1/auth/register",
        json={
            "email": "mismatch@example.com",
            "password": "securepass123",
            "confirm_password": "otherpass123",
            "full_name": "Mismatch",
        },
    )
    assert res.status_code == 400
    assert res.json()["detail"] == "Passwords do not match"


@pytest.mark.asyncio
async def test_register_invalid_role(client):
    res = await _register(client, "admin@example.com", role="admin")
    assert res.status_code == 422


@pytest.mark.asyncio
async def test_register_duplicate_email(client):
    res1 = await _register(client, "dup@example.com")
    assert res1.status_code == 201

    res2 = await _register(client, "dup@example.com")
    assert res2.status_code == 400
    assert res2.json()["detail"] == "Email already registered"


@pytest.mark.asyncio
async def test_login_requires_verification(client):
    await _register(client, "unverified@example.com")

    res = await client.post(
        "/api/v1/auth/login",
        json={"email": "unverified@example.com", "password": "securepass123"},
    )
    assert res.status_code == 403
    assert "not verified" in res.json()["detail"]


@pytest.mark.asyncio
async def test_verify_otp_and_login(client, db_session):
    await _register_and_verify(client, db_session, "login@example.com")

    res = await client.post(
        "/api/v1/auth/login",
        json={"email": "login@example.com", "password": "securepass123"},
    )
    assert res.status_code == 200
    data = res.json()
    assert "access_token" in data
    assert "refresh_token" in data
    assert data["token_type"] == "bearer"
    assert data["user"]["email"] == "login@example.com"
    assert data["user"]["is_verified"] is True


@pytest.mark.asyncio
async def test_verify_otp_wrong_code(client, db_session):
    await _register(client, "wrong@example.com")
    user = await _get_user(db_session, "wrong@example.com")
    bad = "123456" if user.otp_code != "123456" else "654321"

    res = await client.post("/api/v1/auth/verify-otp", json={"email": "wrong@example.com", "otp": bad})
    assert res.status_code == 400
    assert res.json()["detail"] == "Invalid OTP"


@pytest.mark.asyncio
async def test_verify_otp_expired(client, db_session):
    await _register(client, "late@example.com")
    user = await _get_user(db_session, "late@example.com")
    user.otp_expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
    await db_session.commit()

    res = await client.post(
        "/api/v1/auth/verify-otp", json={"email": "late@example.com", "otp": user.otp_code}
    )
    assert res.status_code == 400
    assert res.json()["detail"] == "OTP has expired"


@pytest.mark.asyncio
async def test_verify_otp_twice(client, db_session):
    await _register_and_verify(client, db_session, "twice@example.com")

    res = await client.post(
        "/api/v1/auth/verify-otp", json={"email": "twice@example.com", "otp": "123456"}
    )
    assert res.status_code == 400
    assert res.json()["detail"] == "Account already verified"


@pytest.mark.asyncio
async def test_verify_otp_unknown_user(client):
    res = await client.post(
        "/api/v1/auth/verify-otp", json={"email": "ghost@example.com", "otp": "123456"}
    )
    assert res.status_code == 404


@pytest.mark.asyncio
async def test_resend_otp_replaces_code(client, db_session):
    await _register(client, "resend@example.com")
    user = await _get_user(db_session, "resend@example.com")
    first_expiry = user.otp_expires_at

    res = await client.post("/api/v1/auth/resend-otp", json={"email": "resend@example.com"})
    assert res.status_code == 200

    await db_session.refresh(user)
    assert user.otp_code is not None
    assert user.otp_expires_at > first_expiry

    res = await client.post(
        "/api/v1/auth/verify-otp", json={"email": "resend@example.com", "otp": user.otp_code}
    )
    assert res.status_code == 200


@pytest.mark.asyncio
async def test_resend_otp_already_verified(client, db_session):
    await _register_and_verify(client, db_session, "done@example.com")
    res = await client.post("/api/v1/auth/resend-otp", json={"email": "done@example.com"})
    assert res.status_code == 400


@pytest.mark.asyncio
async def test_login_bad_password(client, db_session):
    await _register_and_verify(client, db_session, "bad@example.com")

    res = await client.post(
        "/api/v1/auth/login",
        json={"email": "bad@example.com", "password": "wrongpass"},
    )
    assert res.status_code == 401
    assert res.json()["detail"] == "Invalid email or password"


@pytest.mark.asyncio
async def test_login_unknown_user(client):
    res = await client.post(
        "/api/v1/auth/login",
        json={"email": "nobody@example.com", "password": "whatever"},
    )
    assert res.status_code == 401


@pytest.mark.asyncio
async def test_me(client, owner_headers):
    res = await client.get("/api/v1/auth/me", headers=owner_headers)
    assert res.status_code == 200
    data = res.json()
    assert data["email"] == "owner@example.com"
    assert data["role"] == "project_owner"


@pytest.mark.asyncio
async def test_me_no_auth(client):
    res = await client.get("/api/v1/auth/me")
    assert res.status_code == 401


@pytest.mark.asyncio
async def test_me_with_refresh_token_rejected(client, db_session):
    await _register_and_verify(client, db_session, "swap@example.com")
    login = await client.post(
        "/api/v1/auth/login",
        json={"email": "swap@example.com", "password": "securepass123"},
    )
    refresh_token = login.json()["refresh_token"]

    res = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {refresh_token}"})
    assert res.status_code == 401


@pytest.mark.asyncio
async def test_update_me(client, collaborator_headers):
    res = await client.put(
        "/api/v1/auth/me", headers=collaborator_headers, json={"full_name": "  Carla Collab  "}
    )
    assert res.status_code == 200
    assert res.json()["full_name"] == "Carla Collab"


@pytest.mark.asyncio
async def test_refresh_token(client, db_session):
    await _register_and_verify(client, db_session, "refresh@example.com")
    login = await client.post(
        "/api/v1/auth/login",
        json={"email": "refresh@example.com", "password": "securepass123"},
    )
    refresh_token = login.json()["refresh_token"]

    res = await client.post("/api/v1/auth/refresh", json={"refresh_token": refresh_token})
    assert res.status_code == 200
    assert "access_token" in res.json()


@pytest.mark.asyncio
async def test_refresh_with_access_token_rejected(client, owner_headers):
    access_token = owner_headers["Authorization"].split(" ", 1)[1]
    res = await client.post("/api/v1/auth/refresh", json={"refresh_token": access_token})
    assert res.status_code == 401


@pytest.mark.asyncio
async def test_refresh_invalid_token(client):
    res = await client.post("/api/v1/auth/refresh", json={"refresh_token": "garbage"})
    assert res.status_code == 401
