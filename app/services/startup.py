"""
Startup tasks — run once per process, before the API serves traffic.

1. seed_admin: makes sure an admin identity exists. Idempotent; it only
   creates the user when no user with ADMIN_USERNAME is found, so restarts
   never reset a changed admin password.

2. run_startup_import: the guarded, one-time account import.
   should_import() decides, in this order (first "no" wins):
     a. accounts file missing               -> skip
     b. accounts table already has rows     -> skip (already loaded)
     c. file has a header but no data lines -> skip
     d. otherwise                           -> import
   Each import gets a fresh, timestamp-derived run ID and an ImportRun row.

   Any exception during the check or the import is logged and swallowed.
   A broken accounts file must not stop the service from starting. It
   comes up and serves whatever the database already holds (possibly
   nothing).
"""

import logging
import os
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.import_run import ImportRun, ImportRunStatus
from app.models.user import Role, User
from app.security import hash_password
from app.services import import_pipeline, record_store

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Admin seed
# ---------------------------------------------------------------------------

async def seed_admin(
    db: AsyncSession,
    username: str,
    email: str,
    password: str,
) -> bool:
    """
    Create the admin user if it doesn't exist yet.

    Returns:
        True if the user was created, False if it already existed.
    """
    result = await db.execute(select(User).where(User.username == username))
    if result.scalar_one_or_none() is not None:
        logger.info("Admin user already exists")
        return False

    db.add(
        User(
            username=username,
            email=email,
            hashed_password=hash_password(password),
            roles=[Role.ADMIN.value],
        )
    )
    await db.commit()
    logger.info("Default admin user created")
    return True


# ---------------------------------------------------------------------------
# Account import
# ---------------------------------------------------------------------------

def _has_data_rows(source_path: Path) -> bool:
    """True if there is at least one non-blank line after the header."""
    with open(source_path, encoding="utf-8") as source:
        source.readline()  # header
        return any(line.strip() for line in source)


async def should_import(db: AsyncSession, source_path: str | os.PathLike) -> bool:
    path = Path(source_path)

    if not path.is_file():
        logger.warning("Accounts file %s not found; skipping import", path)
        return False

    if await record_store.count_accounts(db) > 0:
        logger.info("Account records already exist in the database; skipping import")
        return False

    if not _has_data_rows(path):
        logger.warning("Accounts file %s is empty or contains only a header; skipping import", path)
        return False

    return True


def new_run_id() -> str:
    """Timestamp-derived run ID, unique per run (microsecond resolution)."""
    return datetime.now(timezone.utc).strftime("import-%Y%m%dT%H%M%S%f")


async def run_import(
    db: AsyncSession,
    source_path: str | os.PathLike,
    batch_size: int = import_pipeline.DEFAULT_BATCH_SIZE,
) -> ImportRun:
    """
    Import the file once, recording the run in import_runs.

    Exceptions from the pipeline propagate after the run has been marked
    failed.
    """
    run = ImportRun(run_id=new_run_id(), source=str(source_path))
    db.add(run)
    await db.commit()
    run_pk = run.id
    logger.info("Starting account import %s from %s", run.run_id, source_path)

    try:
        with open(source_path, encoding="utf-8") as source:
            result = await import_pipeline.import_accounts(db, source, batch_size=batch_size)
    except Exception as exc:
        # Rollback expires every instance in the session; reload the run row
        await db.rollback()
        run = await db.get(ImportRun, run_pk)
        run.status = ImportRunStatus.FAILED
        run.error = str(exc)
        run.finished_at = datetime.now(timezone.utc)
        db.add(run)
        await db.commit()
        raise

    run.status = ImportRunStatus.COMPLETED
    run.records_written = result.records_written
    run.records_skipped = result.records_skipped
    run.finished_at = datetime.now(timezone.utc)
    db.add(run)
    await db.commit()
    logger.info(
        "Account import %s completed: %d written, %d skipped",
        run.run_id, result.records_written, result.records_skipped,
    )
    return run


async def run_startup_import(
    session_factory: async_sessionmaker,
    source_path: str | os.PathLike,
    batch_size: int = import_pipeline.DEFAULT_BATCH_SIZE,
) -> ImportRun | None:
    """
    Check and, if warranted, run the account import. Never raises.

    Returns:
        The ImportRun if an import was attempted, otherwise None.
    """
    try:
        async with session_factory() as db:
            if not await should_import(db, source_path):
                return None
            return await run_import(db, source_path, batch_size=batch_size)
    except Exception:
        logger.exception("Error initializing account data from %s", source_path)
        return None
