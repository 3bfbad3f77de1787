"""
Tests for description updates under optimistic locking.

Covers:
  - A successful update changes the description and bumps version by 1
  - Description length limit (1000) and that a rejected update stores nothing
  - Unknown account → 404
  - Stale version → 409 and the first writer's change survives
  - Compare-and-swap semantics at the record store level
"""

import asyncio

import pytest
import pytest_asyncio

from app.database import create_engine, create_session_factory, init_schema
from app.exceptions import (
    AccountNotFoundError,
    InvalidAccountDataError,
    VersionConflictError,
)
from app.services import account_service, record_store
from conftest import make_account


# ---------------------------------------------------------------------------
# HTTP: PUT /accounts/{account_number}
# ---------------------------------------------------------------------------

class TestUpdateDescription:
    """Tests for PUT /accounts/{account_number}."""

    async def test_update_success(self, authenticated_client, seed_accounts):
        await seed_accounts(make_account("8872838283", description="FUND TRANSFER"))

        response = await authenticated_client.put(
            "/accounts/8872838283",
            json={"description": "Rent for September"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["description"] == "Rent for September"
        assert data["version"] == 1
        assert data["links"]["update"] == "/accounts/8872838283"

        # The change is visible to later reads
        fetched = (await authenticated_client.get("/accounts/8872838283")).json()
        assert fetched["description"] == "Rent for September"
        assert fetched["version"] == 1

    async def test_update_with_current_version(self, authenticated_client, seed_accounts):
        await seed_accounts(make_account("1001", version=4))

        response = await authenticated_client.put(
            "/accounts/1001",
            json={"description": "checked", "version": 4},
        )
        assert response.status_code == 200
        assert response.json()["version"] == 5

    async def test_each_update_bumps_version_once(self, authenticated_client, seed_accounts):
        await seed_accounts(make_account("1001"))

        for expected in (1, 2, 3):
            response = await authenticated_client.put(
                "/accounts/1001", json={"description": f"edit {expected}"},
            )
            assert response.json()["version"] == expected

    async def test_clear_description(self, authenticated_client, seed_accounts):
        await seed_accounts(make_account("1001", description="FUND TRANSFER"))

        response = await authenticated_client.put("/accounts/1001", json={"description": None})
        assert response.status_code == 200
        assert response.json()["description"] is None

    async def test_description_at_limit(self, authenticated_client, seed_accounts):
        await seed_accounts(make_account("1001"))

        response = await authenticated_client.put(
            "/accounts/1001", json={"description": "x" * 1000},
        )
        assert response.status_code == 200
        assert len(response.json()["description"]) == 1000

    async def test_description_too_long(self, authenticated_client, seed_accounts):
        """1001 characters is rejected with 400 and the record is untouched."""
        await seed_accounts(make_account("1001", description="FUND TRANSFER"))

        response = await authenticated_client.put(
            "/accounts/1001", json={"description": "x" * 1001},
        )
        assert response.status_code == 400
        assert response.json()["error_type"] == "validation_error"

        fetched = (await authenticated_client.get("/accounts/1001")).json()
        assert fetched["description"] == "FUND TRANSFER"
        assert fetched["version"] == 0

    async def test_update_unknown_account(self, authenticated_client):
        response = await authenticated_client.put(
            "/accounts/0000000000", json={"description": "nothing here"},
        )
        assert response.status_code == 404
        assert response.json()["error_type"] == "account_not_found"

    async def test_negative_version_returns_400(self, authenticated_client, seed_accounts):
        await seed_accounts(make_account("1001"))

        response = await authenticated_client.put(
            "/accounts/1001", json={"description": "x", "version": -1},
        )
        assert response.status_code == 400

    async def test_update_requires_authentication(self, client, seed_accounts):
        await seed_accounts(make_account("1001"))

        response = await client.put("/accounts/1001", json={"description": "anonymous"})
        assert response.status_code == 401


class TestVersionConflict:
    """Two clients editing from the same version: exactly one wins."""

    async def test_stale_version_returns_409(self, authenticated_client, seed_accounts):
        await seed_accounts(make_account("1001", description="original"))

        first = await authenticated_client.put(
            "/accounts/1001", json={"description": "first writer", "version": 0},
        )
        assert first.status_code == 200
        assert first.json()["version"] == 1

        second = await authenticated_client.put(
            "/accounts/1001", json={"description": "second writer", "version": 0},
        )
        assert second.status_code == 409
        data = second.json()
        assert data["error_type"] == "version_conflict"
        assert data["expected_version"] == 0
        assert data["correlation_id"] == second.headers["X-Correlation-ID"]

        # Exactly one change happened, and it is the first writer's
        fetched = (await authenticated_client.get("/accounts/1001")).json()
        assert fetched["description"] == "first writer"
        assert fetched["version"] == 1

    async def test_retry_after_refetch_succeeds(self, authenticated_client, seed_accounts):
        await seed_accounts(make_account("1001"))

        await authenticated_client.put("/accounts/1001", json={"description": "a", "version": 0})
        conflict = await authenticated_client.put(
            "/accounts/1001", json={"description": "b", "version": 0},
        )
        assert conflict.status_code == 409

        current = (await authenticated_client.get("/accounts/1001")).json()
        retry = await authenticated_client.put(
            "/accounts/1001", json={"description": "b", "version": current["version"]},
        )
        assert retry.status_code == 200
        assert retry.json()["version"] == 2


# ---------------------------------------------------------------------------
# Service and record store
# ---------------------------------------------------------------------------

class TestConditionalUpdate:
    """Compare-and-swap on version, called directly."""

    async def test_only_one_of_two_same_version_writers_succeeds(self, db_session):
        db_session.add(make_account("1001", description="original"))
        await db_session.commit()

        updated = await account_service.update_description(
            db_session, "1001", "writer A", expected_version=0,
        )
        await db_session.commit()
        assert updated.version == 1

        with pytest.raises(VersionConflictError) as exc_info:
            await account_service.update_description(
                db_session, "1001", "writer B", expected_version=0,
            )
        await db_session.rollback()
        assert exc_info.value.expected_version == 0

        record = await record_store.get_by_account_number(db_session, "1001")
        assert record.description == "writer A"
        assert record.version == 1

    async def test_conditional_update_unknown_account(self, db_session):
        with pytest.raises(AccountNotFoundError):
            await record_store.conditional_update(db_session, "missing", 0, description="x")

    async def test_conditional_update_rejects_other_fields(self, db_session):
        db_session.add(make_account("1001"))
        await db_session.commit()

        with pytest.raises(ValueError):
            await record_store.conditional_update(db_session, "1001", 0, balance=0)

    async def test_update_leaves_other_fields_alone(self, db_session):
        db_session.add(make_account("1001", customer_id="333", amount="99.99"))
        await db_session.commit()

        updated = await account_service.update_description(db_session, "1001", "new")
        await db_session.commit()

        assert updated.customer_id == "333"
        assert str(updated.balance) == "99.99"
        assert updated.transaction_date == updated.transaction_time

    async def test_too_long_description_is_checked_before_writing(self, db_session):
        db_session.add(make_account("1001", description="keep"))
        await db_session.commit()

        with pytest.raises(InvalidAccountDataError):
            await account_service.update_description(db_session, "1001", "y" * 1001)

        record = await record_store.get_by_account_number(db_session, "1001")
        assert record.description == "keep"
        assert record.version == 0


class TestConcurrentWriters:
    """Two requests updating the same record at the same moment, each on its own connection."""

    @pytest_asyncio.fixture
    async def file_session_factory(self, tmp_path):
        # In-memory SQLite shares one connection; a file gives each session its own
        engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'accounts.db'}")
        await init_schema(engine)
        factory = create_session_factory(engine)
        async with factory() as session:
            session.add(make_account("1001", description="original"))
            await session.commit()
        yield factory
        await engine.dispose()

    async def test_exactly_one_writer_wins(self, file_session_factory):
        async def writer(description: str) -> str:
            async with file_session_factory() as session:
                try:
                    await account_service.update_description(session, "1001", description)
                    await session.commit()
                    return "ok"
                except VersionConflictError:
                    await session.rollback()
                    return "conflict"

        outcomes = await asyncio.gather(writer("writer A"), writer("writer B"))

        assert sorted(outcomes) == ["conflict", "ok"]
        async with file_session_factory() as session:
            record = await record_store.get_by_account_number(session, "1001")
        assert record.version == 1
        assert record.description == ("writer A" if outcomes[0] == "ok" else "writer B")
