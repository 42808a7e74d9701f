"""Pytest configuration and fixtures."""
import json
from datetime import datetime

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker

from podslice.database import Base, get_db
from podslice import models  # noqa: F401
from podslice.models.content import Episode, Podcast, Summary
from podslice.models.organization import Organization
from podslice.models.user import User
from podslice.auth.security import create_access_token, hash_password
from podslice.rate_limit import limiter
from podslice.services.payoneer import PayoneerClient, get_payoneer_client
from main import app


@pytest.fixture
async def test_db():
    """Create test database."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    AsyncSessionLocal = sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with AsyncSessionLocal() as session:
        yield session

    await engine.dispose()


class FakePayoneer:
    """Payoneer API stand-in served through ``httpx.MockTransport``.

    Records every request so tests can assert on what was sent.
    """

    def __init__(self):
        self.requests = []
        self.payee_status = "active"
        self.payout_error = None  # (status_code, body) to answer /api/payouts with instead
        self.client = PayoneerClient(
            base_url="https://payoneer.test",
            client_id="client-id",
            client_secret="client-secret",
            program_id="program-1",
            transport=httpx.MockTransport(self.handler),
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        path = request.url.path
        self.requests.append((request.method, path, body))

        if path == "/oauth/token":
            return httpx.Response(200, json={"access_token": f"token-{len(self.requests)}", "expires_in": 3600})
        if path == "/api/payees" and request.method == "POST":
            return httpx.Response(200, json={"payee_id": "payee_123"})
        if path.startswith("/api/payees/"):
            return httpx.Response(200, json={
                "payee_id": path.rsplit("/", 1)[-1],
                "status": self.payee_status,
                "verification_status": "verified",
                "created_at": "2025-06-01T00:00:00Z",
            })
        if path == "/api/payouts":
            if self.payout_error:
                status_code, error_body = self.payout_error
                return httpx.Response(status_code, json=error_body)
            return httpx.Response(200, json={
                "transaction_id": "txn_abc123",
                "status": "completed",
                "amount": body["amount"],
                "currency": body["currency"],
                "created_at": "2025-07-01T00:00:00Z",
            })
        return httpx.Response(404, json={"message": "Not found"})

    def calls_to(self, path: str):
        return [r for r in self.requests if r[1] == path]


@pytest.fixture
def payoneer():
    return FakePayoneer()


@pytest.fixture
async def client(test_db, payoneer):
    """Create async test client sharing the test session and fake Payoneer."""
    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payoneer_client] = lambda: payoneer.client
    limiter.reset()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def organization(test_db):
    org = Organization(name="Acme Audio", slug="acme-audio")
    test_db.add(org)
    await test_db.commit()
    await test_db.refresh(org)
    return org


@pytest.fixture
async def other_organization(test_db):
    org = Organization(name="Other Pod Co", slug="other-pod-co")
    test_db.add(org)
    await test_db.commit()
    await test_db.refresh(org)
    return org


async def _create_user(db, email, role, organization_id):
    user = User(
        name=email.split("@")[0].title(),
        email=email,
        password_hash=hash_password("TestPass123"),
        status="active",
        user_role=role,
        organization_id=organization_id,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture
async def admin_user(test_db, organization):
    return await _create_user(test_db, "admin@acme.example.com", "admin", organization.uuid)


@pytest.fixture
async def member_user(test_db, organization):
    return await _create_user(test_db, "member@acme.example.com", "member", organization.uuid)


@pytest.fixture
async def other_admin(test_db, other_organization):
    return await _create_user(test_db, "admin@other.example.com", "admin", other_organization.uuid)


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        token = create_access_token(data={
            "sub": user.uuid,
            "email": user.email,
            "role": user.user_role,
            "org": user.organization_id,
        })
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def make_summary(test_db):
    """Create a summary (with its podcast and episode) owned by an organization."""
    async def _make(organization, created_at=datetime(2025, 6, 10, 12, 0), view_count=0, share_count=0):
        podcast = Podcast(title="Deep Dives", organization_id=organization.uuid)
        test_db.add(podcast)
        await test_db.flush()
        episode = Episode(title="Episode 1", podcast_id=podcast.uuid)
        test_db.add(episode)
        await test_db.flush()
        summary = Summary(
            episode_id=episode.uuid,
            content="A short summary.",
            view_count=view_count,
            share_count=share_count,
            created_at=created_at,
        )
        test_db.add(summary)
        await test_db.commit()
        await test_db.refresh(summary)
        return summary
    return _make
