"""
Test fixtures for the Airtime Ledger API test suite.

This module provides shared fixtures used across all test files:

  - db_engine / db_session: Fresh in-memory SQLite database for each test
  - collection / disbursement: In-memory PayNecta and Statum fakes
  - client: Async HTTP test client (unauthenticated) wired to both
  - authenticated_client: Test client with a pre-registered MEMBER user and JWT
  - admin_client: Test client with a pre-registered ADMIN user and JWT
  - member_headers / admin_headers: Auth headers for tests that act as both
  - fund: Helper that completes an STK push deposit end to end

Key design decisions:
  - In-memory SQLite (sqlite+aiosqlite://) is used for speed and isolation.
    Each test gets a completely fresh database — no state leaks between tests.
  - We override FastAPI's get_db dependency to inject our test session,
    so the application code works exactly as it does in production.
  - Providers are overridden the same way. No test ever talks to PayNecta
    or Statum; the fakes record every call and return scripted results.
  - The admin fixtures create an admin by signing up normally and then
    directly updating user_type in the DB — admins are provisioned by a
    system operator, not self-service.
"""

import os

# Settings are read at import time; SECRET_KEY has no default
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import uuid

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import update
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from airtime_api.database import Base, get_db
from airtime_api.dependencies import get_collection_provider, get_disbursement_provider
from airtime_api.exceptions import LedgerAPIError
from airtime_api.main import app
from airtime_api.models.user import User, UserType
from airtime_api.providers import (
    CollectionProvider,
    DisbursementProvider,
    ProviderResult,
    ProviderState,
)


# In-memory SQLite for fast, isolated tests
TEST_DATABASE_URL = "sqlite+aiosqlite://"

MEMBER_PHONE = "0712345678"


class FakeCollectionProvider(CollectionProvider):
    """
    Stands in for PayNecta.

    initiate() accepts every STK push unless `initiate_result` is set;
    query() returns `query_result`.
    """

    name = "paynecta"

    def __init__(self):
        self.initiated: list[dict] = []
        self.queried: list[str] = []
        self.initiate_result: ProviderResult | None = None
        self.query_result = ProviderResult(state=ProviderState.PENDING)

    async def initiate(self, phone, amount_cents, reference, callback_url):
        self.initiated.append({
            "phone": phone,
            "amount_cents": amount_cents,
            "reference": reference,
            "callback_url": callback_url,
        })
        if self.initiate_result is not None:
            return self.initiate_result
        return ProviderResult(
            state=ProviderState.PENDING,
            correlation_id=f"ws_CO_{uuid.uuid4().hex[:12]}",
            raw={"success": True},
        )

    async def query(self, reference):
        self.queried.append(reference)
        return self.query_result


class FakeDisbursementProvider(DisbursementProvider):
    """
    Stands in for Statum.

    Delivers every top-up unless results are queued in `results`, which are
    consumed one per call.
    """

    name = "statum"

    def __init__(self):
        self.sent: list[tuple[str, int]] = []
        self.results: list[ProviderResult] = []

    async def send_airtime(self, phone, amount_cents):
        self.sent.append((phone, amount_cents))
        if self.results:
            return self.results.pop(0)
        return ProviderResult(
            state=ProviderState.SUCCESS,
            correlation_id=f"STM{len(self.sent):06d}",
            raw={"status_code": 200},
        )


@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Provide an async session bound to the test engine."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with async_session() as session:
        yield session


@pytest.fixture
def collection():
    return FakeCollectionProvider()


@pytest.fixture
def disbursement():
    return FakeDisbursementProvider()


@pytest_asyncio.fixture
async def client(db_engine, collection, disbursement):
    """
    Async HTTP test client with the test database and fake providers injected.

    The get_db override mirrors the real one: domain errors still commit,
    so rows written before the error (e.g. a queued purchase) persist.
    """
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_db():
        async with async_session() as session:
            try:
                yield session
                await session.commit()
            except LedgerAPIError:
                await session.commit()
                raise
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_collection_provider] = lambda: collection
    app.dependency_overrides[get_disbursement_provider] = lambda: disbursement

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


async def _signup(client, email, username, password="SecurePass123!", phone=MEMBER_PHONE):
    response = await client.post(
        "/auth/signup",
        json={
            "email": email,
            "password": password,
            "username": username,
            "phone": phone,
        },
    )
    assert response.status_code == 201, f"Signup failed: {response.text}"
    return response.json()


@pytest_asyncio.fixture
async def member_headers(client):
    """Authorization header for a freshly registered member."""
    body = await _signup(client, "testuser@example.com", "testuser")
    return {"Authorization": f"Bearer {body['token']}"}


@pytest_asyncio.fixture
async def admin_headers(client, db_engine):
    """
    Authorization header for an ADMIN user.

    Signs up normally, then promotes the user directly in the database.
    """
    body = await _signup(client, "admin@example.com", "admin", password="AdminPass123!")
    user_id = uuid.UUID(body["user_id"])

    async_session = async_sessionmaker(
        db_engine, class_=AsyncSession, expire_on_commit=False,
    )
    async with async_session() as session:
        await session.execute(
            update(User)
            .where(User.id == user_id)
            .values(user_type=UserType.ADMIN)
        )
        await session.commit()

    # Log in again so the token carries the admin role claim
    login_response = await client.post(
        "/auth/login",
        json={"email": "admin@example.com", "password": "AdminPass123!"},
    )
    return {"Authorization": f"Bearer {login_response.json()['token']}"}


@pytest_asyncio.fixture
async def authenticated_client(client, member_headers):
    """Test client whose default headers authenticate as the member."""
    client.headers.update(member_headers)
    return client


@pytest_asyncio.fixture
async def admin_client(client, admin_headers):
    """Test client whose default headers authenticate as the admin."""
    client.headers.update(admin_headers)
    return client


@pytest_asyncio.fixture
async def second_member_headers(client):
    """A second MEMBER for cross-user authorization tests."""
    body = await _signup(
        client, "seconduser@example.com", "seconduser",
        password="SecurePass456!", phone="0722000111",
    )
    return {"Authorization": f"Bearer {body['token']}"}


@pytest.fixture
def fund(client):
    """
    Complete an STK push deposit: initiate it, then deliver the success callback.

    Returns the initiate response body (transaction_id, reference, ...).
    """

    async def _fund(amount_cents, headers=None, mpesa_code=None):
        response = await client.post(
            "/payments/deposits",
            json={"amount_cents": amount_cents, "phone": MEMBER_PHONE},
            headers=headers,
        )
        assert response.status_code == 202, response.text
        body = response.json()

        callback = await client.post(
            "/callback/paynecta",
            json={
                "reference": body["reference"],
                "status": "success",
                "mpesa_code": mpesa_code or f"QK{body['reference'][-8:].upper()}",
                "amount": amount_cents / 100,
            },
        )
        assert callback.json() == {"success": True}
        return body

    return _fund
