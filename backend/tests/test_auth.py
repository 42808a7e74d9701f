"""Tests for authentication endpoints."""
import pytest
from sqlalchemy import select

from podslice.models.organization import Organization, PAYOUT_NOT_CONFIGURED
from podslice.models.user import User
from podslice.auth.security import create_refresh_token, decode_token


REGISTRATION = {
    "name": "Test User",
    "email": "newuser@example.com",
    "password": "Test1234a",
    "organization_name": "Night Owl Media",
}


@pytest.mark.asyncio
async def test_register_creates_organization_and_admin(client, test_db):
    """Registration creates the organization with its first admin."""
    response = await client.post("/api/auth/register", json=REGISTRATION)

    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"

    result = await test_db.execute(select(User).where(User.email == "newuser@example.com"))
    user = result.scalar_one()
    assert user.user_role == "admin"

    organization = await test_db.get(Organization, user.organization_id)
    assert organization.name == "Night Owl Media"
    assert organization.slug.startswith("night-owl-media-")
    assert organization.payout_status == PAYOUT_NOT_CONFIGURED

    claims = decode_token(data["access_token"])
    assert claims["sub"] == user.uuid
    assert claims["org"] == organization.uuid
    assert claims["type"] == "access"


@pytest.mark.asyncio
async def test_register_duplicate_email(client, admin_user):
    response = await client.post("/api/auth/register", json={**REGISTRATION, "email": admin_user.email})

    assert response.status_code == 400
    assert "already registered" in response.json()["detail"]


@pytest.mark.asyncio
async def test_register_weak_password(client):
    response = await client.post("/api/auth/register", json={**REGISTRATION, "password": "alllowercase1"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_login(client, admin_user):
    response = await client.post("/api/auth/login", json={"email": admin_user.email, "password": "TestPass123"})
    assert response.status_code == 200
    assert "access_token" in response.json()

    response = await client.post("/api/auth/login", json={"email": admin_user.email, "password": "WrongPass123"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_refresh_token_cannot_authorize_requests(client, admin_user):
    token = create_refresh_token(data={"sub": admin_user.uuid})

    response = await client.get("/api/royalties", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_user_without_organization_is_forbidden(client, test_db, auth_headers):
    user = User(name="Loner", email="loner@example.com", password_hash="x", status="active", user_role="admin")
    test_db.add(user)
    await test_db.commit()

    response = await client.get("/api/royalties", headers=auth_headers(user))

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.headers["X-Content-Type-Options"] == "nosniff"
