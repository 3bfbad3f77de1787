"""
Record store — every read and write of the `accounts` table goes through here.

Reads:
  - count_accounts / get_by_account_number
  - page_all / page_by_customer / page_by_account_numbers / page_by_description

Writes (the ONLY two write paths for account records):
  - insert_batch: bulk insert used by the import pipeline. All-or-nothing per
    batch — a failure rolls the batch back and surfaces as one BatchWriteError.
  - conditional_update: compare-and-swap on `version`. The statement only
    matches when the stored version equals the caller's expected version,
    and bumps the version in the same statement, so two writers that read
    the same version can never both succeed.

Reads take no locks; they never block or get blocked by writers.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select, func, literal, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import AccountNotFoundError, BatchWriteError, VersionConflictError
from app.models.account import AccountRecord
from app.pagination import Page, PageSpec, SORT_DESC

logger = logging.getLogger(__name__)

# Fields clients may sort on, mapped to their columns
SORTABLE_COLUMNS = {
    "id": AccountRecord.id,
    "account_number": AccountRecord.account_number,
    "customer_id": AccountRecord.customer_id,
    "balance": AccountRecord.balance,
    "transaction_amount": AccountRecord.transaction_amount,
    "transaction_date": AccountRecord.transaction_date,
    "description": AccountRecord.description,
    "created_at": AccountRecord.created_at,
    "updated_at": AccountRecord.updated_at,
}
SORTABLE_FIELDS = frozenset(SORTABLE_COLUMNS)

# Columns conditional_update is allowed to change
_UPDATABLE_FIELDS = frozenset({"description"})


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def count_accounts(db: AsyncSession) -> int:
    result = await db.execute(select(func.count()).select_from(AccountRecord))
    return result.scalar_one()


async def get_by_account_number(
    db: AsyncSession,
    account_number: str,
) -> AccountRecord | None:
    """
    Look up a record by its account number.

    populate_existing refreshes an instance already in the session's
    identity map, so callers always see the committed version number
    rather than a stale copy from earlier in the same session.
    """
    result = await db.execute(
        select(AccountRecord)
        .where(AccountRecord.account_number == account_number)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _page(db: AsyncSession, page_spec: PageSpec, *criteria) -> Page[AccountRecord]:
    """Run a filtered, sorted, offset/limit query plus its matching count."""
    count_result = await db.execute(
        select(func.count()).select_from(AccountRecord).where(*criteria)
    )
    total_items = count_result.scalar_one()

    order_by = []
    for key in page_spec.sort:
        column = SORTABLE_COLUMNS[key.field]
        order_by.append(column.desc() if key.direction == SORT_DESC else column.asc())
    # Tie-breaker so equal sort values don't shuffle between pages
    order_by.append(AccountRecord.id.asc())

    result = await db.execute(
        select(AccountRecord)
        .where(*criteria)
        .order_by(*order_by)
        .offset(page_spec.offset)
        .limit(page_spec.size)
    )
    return Page(
        items=list(result.scalars().all()),
        page=page_spec.page,
        size=page_spec.size,
        total_items=total_items,
        sort=page_spec.sort,
    )


async def page_all(db: AsyncSession, page_spec: PageSpec) -> Page[AccountRecord]:
    return await _page(db, page_spec)


async def page_by_customer(
    db: AsyncSession,
    customer_id: str,
    page_spec: PageSpec,
) -> Page[AccountRecord]:
    return await _page(db, page_spec, AccountRecord.customer_id == customer_id)


async def page_by_account_numbers(
    db: AsyncSession,
    account_numbers: set[str] | list[str],
    page_spec: PageSpec,
) -> Page[AccountRecord]:
    return await _page(db, page_spec, AccountRecord.account_number.in_(set(account_numbers)))


async def page_by_description(
    db: AsyncSession,
    text: str,
    page_spec: PageSpec,
) -> Page[AccountRecord]:
    """
    Case-insensitive substring match on description. NULL descriptions never match.

    Both the column and the search text are folded by the database's own
    lower(), so they always fold the same way. On SQLite that folding is
    ASCII-only: "transfer" finds "TRANSFER", but "é" does not find "É".
    """
    # Escape LIKE wildcards so "50%" matches the literal text
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = func.lower(literal(f"%{escaped}%"))
    return await _page(
        db,
        page_spec,
        func.lower(AccountRecord.description).like(pattern, escape="\\"),
    )


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

async def insert_batch(db: AsyncSession, records: list[AccountRecord]) -> int:
    """
    Insert a batch of new records and commit it.

    Either every record in the batch is committed or none is: on any
    database error the session is rolled back and a single BatchWriteError
    is raised.

    Returns:
        The number of records inserted.
    """
    if not records:
        return 0

    try:
        db.add_all(records)
        await db.flush()
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Batch insert of %d records failed: %s", len(records), exc)
        raise BatchWriteError(len(records), str(exc)) from exc

    logger.info("Wrote %d account records", len(records))
    return len(records)


async def conditional_update(
    db: AsyncSession,
    account_number: str,
    expected_version: int,
    **fields,
) -> AccountRecord:
    """
    Apply `fields` to a record only if its stored version is still `expected_version`.

    The version check, the field change, and the version increment happen
    in ONE UPDATE statement, so the database does the compare-and-swap.
    The change joins the session's transaction; the caller commits.

    Args:
        db: Database session.
        account_number: Record to update.
        expected_version: The version the caller read before deciding on the change.
        **fields: Column values to set (currently only description).

    Returns:
        The refreshed record, with version == expected_version + 1.

    Raises:
        AccountNotFoundError: No record with that account number.
        VersionConflictError: The record exists but its version has moved on.
    """
    unknown = set(fields) - _UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Fields not updatable: {', '.join(sorted(unknown))}")

    result = await db.execute(
        update(AccountRecord)
        .where(AccountRecord.account_number == account_number)
        .where(AccountRecord.version == expected_version)
        .values(
            **fields,
            version=AccountRecord.version + 1,
            updated_at=datetime.now(timezone.utc),
        )
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        # Tell "gone" apart from "someone else wrote first"
        exists = await db.execute(
            select(AccountRecord.id).where(AccountRecord.account_number == account_number)
        )
        if exists.scalar_one_or_none() is None:
            raise AccountNotFoundError(account_number)
        logger.info(
            "Version conflict on account %s (expected version %d)",
            account_number, expected_version,
        )
        raise VersionConflictError(account_number, expected_version)

    record = await get_by_account_number(db, account_number)
    return record
