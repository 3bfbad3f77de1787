"""
Test fixtures for the Account Record Service test suite.

This module provides shared fixtures used across all test files:

  - db_engine / session_factory / db_session: Fresh in-memory SQLite
    database for each test
  - client: Async HTTP test client (unauthenticated)
  - authenticated_client: Test client with a registered ROLE_USER user and JWT
  - admin_client: Test client logged in as the seeded ROLE_ADMIN user
  - seed_accounts: Inserts account records directly through the ORM

Key design decisions:
  - In-memory SQLite (sqlite+aiosqlite://) is used for speed and isolation.
    Each test gets a completely fresh database — no state leaks between tests.
  - We override FastAPI's get_db dependency to inject our test session,
    so the application code works exactly as it does in production.
  - The authenticated_client fixture goes through the real register and
    login endpoints (not just DB inserts).
  - The admin_client fixture uses the same seed_admin() the application
    runs at startup, then logs in like any other user.
  - httpx's ASGITransport does not run the lifespan, so nothing is
    imported at startup here; startup behaviour is tested by calling
    app.services.startup directly.
"""

import os
from datetime import datetime
from decimal import Decimal

# Settings refuse to load without a signing key
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("IMPORT_ON_STARTUP", "false")

import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from app.database import Base, create_engine, create_session_factory, get_db, init_schema
from app.main import app
from app.models.account import AccountRecord
from app.services import startup


# In-memory SQLite for fast, isolated tests
TEST_DATABASE_URL = "sqlite+aiosqlite://"

TEST_USER = {
    "username": "testuser",
    "password": "SecurePass123!",
    "email": "testuser@example.com",
}
TEST_ADMIN = {
    "username": "admin",
    "password": "AdminPass123!",
    "email": "admin@example.com",
}


def make_account(
    account_number: str,
    customer_id: str = "222",
    amount: str = "123.00",
    description: str | None = "FUND TRANSFER",
    version: int = 0,
) -> AccountRecord:
    """Build an unsaved AccountRecord the way the import pipeline would."""
    when = datetime(2019, 9, 12, 11, 11, 11)
    return AccountRecord(
        account_number=account_number,
        customer_id=customer_id,
        transaction_amount=Decimal(amount),
        balance=Decimal(amount),
        description=description,
        transaction_date=when,
        transaction_time=when,
        version=version,
    )


@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh async engine with all tables for each test."""
    engine = create_engine(TEST_DATABASE_URL)
    await init_schema(engine)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    """Session factory bound to the test engine (same options as production)."""
    return create_session_factory(db_engine)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Provide an async session bound to the test engine."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    """
    Async HTTP test client with the test database injected.

    This overrides the get_db dependency so all requests hit the
    in-memory test database instead of the real one.
    """

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def authenticated_client(client):
    """
    Test client with a registered ROLE_USER user and JWT token.

    Registers via the real endpoint, logs in, then sets the Authorization
    header on the client for all subsequent requests.
    """
    response = await client.post("/auth/register", json=TEST_USER)
    assert response.status_code == 201, f"Register failed: {response.text}"

    response = await client.post(
        "/auth/login",
        json={"username": TEST_USER["username"], "password": TEST_USER["password"]},
    )
    assert response.status_code == 200, f"Login failed: {response.text}"
    client.headers["Authorization"] = f"Bearer {response.json()['token']}"
    return client


@pytest_asyncio.fixture
async def admin_client(client, session_factory):
    """
    Test client logged in as an admin.

    The admin is created by the startup seed, exactly as in production;
    there is no self-service way to become an admin.
    """
    async with session_factory() as session:
        created = await startup.seed_admin(session, **TEST_ADMIN)
    assert created

    response = await client.post(
        "/auth/login",
        json={"username": TEST_ADMIN["username"], "password": TEST_ADMIN["password"]},
    )
    assert response.status_code == 200, f"Admin login failed: {response.text}"
    client.headers["Authorization"] = f"Bearer {response.json()['token']}"
    return client


@pytest_asyncio.fixture
async def seed_accounts(session_factory):
    """
    Returns an async function that stores the given AccountRecords.

    Usage:
        await seed_accounts(make_account("1001"), make_account("1002"))
    """

    async def _seed(*records: AccountRecord) -> list[AccountRecord]:
        async with session_factory() as session:
            session.add_all(records)
            await session.commit()
        return list(records)

    return _seed
