"""
Tests for the startup tasks: the admin seed and the guarded one-time import.

Covers:
  - Each reason to skip the import (file missing, data already loaded,
    header-only or blank-only file)
  - A clean import into an empty store, and that a second start does not
    import again
  - A broken file is logged and swallowed, with the run marked failed
  - seed_admin is idempotent and the seeded admin can log in
"""

import logging

import pytest
from sqlalchemy import delete, select

from app.models.account import AccountRecord
from app.models.import_run import ImportRun, ImportRunStatus
from app.models.user import User
from app.services import record_store, startup
from conftest import make_account

HEADER = "accountNumber|transactionAmount|description|transactionDate|transactionTime|customerId"

THREE_RECORDS = "\n".join([
    HEADER,
    "8872838283|123.00|FUND TRANSFER|2019-09-12|11:11:11|222",
    "8872838299|1500.50|ATM WITHDRAWL|2019-09-12|12:00:00|333",
    "8872838300|75.25||2019-09-13|09:30:00|222",
]) + "\n"


@pytest.fixture
def accounts_file(tmp_path):
    """Returns a function that writes `content` to a temp accounts file and returns its path."""

    def _write(content: str):
        path = tmp_path / "accounts.txt"
        path.write_text(content, encoding="utf-8")
        return path

    return _write


async def import_runs(session_factory) -> list[ImportRun]:
    async with session_factory() as session:
        result = await session.execute(select(ImportRun).order_by(ImportRun.id))
        return list(result.scalars().all())


class TestShouldImport:

    async def test_missing_file(self, db_session, tmp_path, caplog):
        with caplog.at_level(logging.WARNING):
            assert await startup.should_import(db_session, tmp_path / "nope.txt") is False
        assert "not found" in caplog.text

    async def test_store_not_empty(self, db_session, accounts_file):
        db_session.add(make_account("1001"))
        await db_session.commit()

        assert await startup.should_import(db_session, accounts_file(THREE_RECORDS)) is False

    async def test_header_only(self, db_session, accounts_file):
        assert await startup.should_import(db_session, accounts_file(HEADER + "\n")) is False

    async def test_empty_file(self, db_session, accounts_file):
        assert await startup.should_import(db_session, accounts_file("")) is False

    async def test_header_followed_by_blank_lines(self, db_session, accounts_file):
        assert await startup.should_import(db_session, accounts_file(HEADER + "\n\n   \n")) is False

    async def test_data_after_blank_lines(self, db_session, accounts_file):
        content = HEADER + "\n\n8872838283|123.00|FUND TRANSFER|2019-09-12|11:11:11|222\n"
        assert await startup.should_import(db_session, accounts_file(content)) is True

    async def test_file_with_data_and_empty_store(self, db_session, accounts_file):
        assert await startup.should_import(db_session, accounts_file(THREE_RECORDS)) is True


class TestRunStartupImport:

    async def test_imports_into_empty_store(self, session_factory, accounts_file, monkeypatch):
        batch_sizes = []
        original = record_store.insert_batch

        async def recording_insert_batch(db, records):
            batch_sizes.append(len(records))
            return await original(db, records)

        monkeypatch.setattr(record_store, "insert_batch", recording_insert_batch)

        run = await startup.run_startup_import(session_factory, accounts_file(THREE_RECORDS))

        assert run is not None
        assert run.status == ImportRunStatus.COMPLETED
        assert run.records_written == 3
        assert run.finished_at is not None
        assert batch_sizes == [3]

        async with session_factory() as session:
            assert await record_store.count_accounts(session) == 3
            record = await record_store.get_by_account_number(session, "8872838300")
            assert record.description is None

    async def test_second_start_does_not_import_again(self, session_factory, accounts_file):
        path = accounts_file(THREE_RECORDS)

        first = await startup.run_startup_import(session_factory, path)
        second = await startup.run_startup_import(session_factory, path)

        assert first is not None
        assert second is None
        async with session_factory() as session:
            assert await record_store.count_accounts(session) == 3
        assert len(await import_runs(session_factory)) == 1

    async def test_skipped_import_leaves_no_run(self, session_factory, accounts_file):
        assert await startup.run_startup_import(session_factory, accounts_file(HEADER)) is None
        assert await import_runs(session_factory) == []

    async def test_blank_lines_only_leave_no_run(self, session_factory, accounts_file):
        assert await startup.run_startup_import(session_factory, accounts_file(HEADER + "\n\n")) is None
        assert await import_runs(session_factory) == []

    async def test_bad_file_is_swallowed(self, session_factory, accounts_file, caplog):
        content = "\n".join([
            HEADER,
            "1001|1.00|ok|2019-09-12|11:11:11|222",
            "1002|oops|bad|2019-09-12|11:11:11|222",
        ])

        with caplog.at_level(logging.ERROR):
            result = await startup.run_startup_import(session_factory, accounts_file(content))

        assert result is None
        assert "Error initializing account data" in caplog.text

        runs = await import_runs(session_factory)
        assert len(runs) == 1
        assert runs[0].status == ImportRunStatus.FAILED
        assert runs[0].error.startswith("Line 3:")
        assert runs[0].finished_at is not None

    async def test_run_ids_are_unique(self, session_factory, accounts_file, db_session):
        first = await startup.run_startup_import(session_factory, accounts_file(THREE_RECORDS))
        # Empty the store so the guard lets a second run through
        await db_session.execute(delete(AccountRecord))
        await db_session.commit()

        second = await startup.run_startup_import(session_factory, accounts_file(THREE_RECORDS))
        assert first.run_id != second.run_id
        assert first.run_id.startswith("import-")


class TestSeedAdmin:

    async def test_creates_admin_once(self, db_session):
        created = await startup.seed_admin(
            db_session, username="admin", email="admin@admin.com", password="password",
        )
        again = await startup.seed_admin(
            db_session, username="admin", email="admin@admin.com", password="changed",
        )

        assert created is True
        assert again is False
        result = await db_session.execute(select(User).where(User.username == "admin"))
        admins = list(result.scalars().all())
        assert len(admins) == 1
        assert admins[0].roles == ["ROLE_ADMIN"]

    async def test_seeded_admin_can_log_in(self, client, session_factory):
        async with session_factory() as session:
            await startup.seed_admin(
                session, username="admin", email="admin@admin.com", password="password",
            )

        response = await client.post(
            "/auth/login", json={"username": "admin", "password": "password"},
        )
        assert response.status_code == 200
        assert response.json()["username"] == "admin"
