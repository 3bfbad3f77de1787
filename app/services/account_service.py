"""
Account service — business logic for reading and updating account records.

This module handles:
  - Paged listing (all, by customer, by a set of account numbers, by
    description substring)
  - Lookup by account number
  - Description updates under optimistic locking

Every operation requires an authenticated caller; that is enforced by the
router's dependencies, not here, so these functions can be called directly
from tests and scripts.

Optimistic locking (update_description):
  1. Read the record and note its version
  2. Validate the new description
  3. Write with record_store.conditional_update(expected_version=...)
  If another request committed in between, the write matches zero rows
  and VersionConflictError (HTTP 409) is raised. We never retry on the
  caller's behalf — they must re-fetch, look at the new state, and decide.

  Clients that want end-to-end protection against lost updates send the
  version they originally read; that version is used instead of the one
  read in step 1.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import AccountNotFoundError, InvalidAccountDataError
from app.models.account import AccountRecord, DESCRIPTION_MAX_LENGTH
from app.pagination import Page, PageSpec
from app.services import record_store

logger = logging.getLogger(__name__)


async def list_accounts(db: AsyncSession, page_spec: PageSpec) -> Page[AccountRecord]:
    return await record_store.page_all(db, page_spec)


async def get_account(db: AsyncSession, account_number: str) -> AccountRecord:
    """
    Get a single record by account number.

    Raises:
        AccountNotFoundError: If no record has that account number.
    """
    account = await record_store.get_by_account_number(db, account_number)
    if account is None:
        raise AccountNotFoundError(account_number)
    return account


async def list_by_customer(
    db: AsyncSession,
    customer_id: str,
    page_spec: PageSpec,
) -> Page[AccountRecord]:
    return await record_store.page_by_customer(db, customer_id, page_spec)


async def list_by_account_numbers(
    db: AsyncSession,
    account_numbers: list[str],
    page_spec: PageSpec,
) -> Page[AccountRecord]:
    """List the records whose account number is in `account_numbers` (duplicates ignored)."""
    wanted = {number.strip() for number in account_numbers if number.strip()}
    return await record_store.page_by_account_numbers(db, wanted, page_spec)


async def list_by_description(
    db: AsyncSession,
    text: str,
    page_spec: PageSpec,
) -> Page[AccountRecord]:
    """List records whose description contains `text`, ignoring case."""
    return await record_store.page_by_description(db, text, page_spec)


def validate_description(description: str | None) -> None:
    if description is not None and len(description) > DESCRIPTION_MAX_LENGTH:
        raise InvalidAccountDataError(
            "description",
            f"cannot exceed {DESCRIPTION_MAX_LENGTH} characters",
        )


async def update_description(
    db: AsyncSession,
    account_number: str,
    description: str | None,
    expected_version: int | None = None,
) -> AccountRecord:
    """
    Replace a record's description, bumping its version by exactly 1.

    Args:
        db: Database session. The caller (get_db) commits on success.
        account_number: Record to update.
        description: New description (None clears it).
        expected_version: Version the client based its edit on. Defaults to
            the version read at the start of this call.

    Returns:
        The updated record, including its new version.

    Raises:
        AccountNotFoundError: No record with that account number.
        InvalidAccountDataError: Description longer than 1000 characters.
        VersionConflictError: Another write committed first.
    """
    account = await get_account(db, account_number)
    validate_description(description)

    version = account.version if expected_version is None else expected_version
    updated = await record_store.conditional_update(
        db,
        account_number,
        version,
        description=description,
    )

    logger.info(
        "Updated description of account %s (version %d -> %d)",
        account_number, version, updated.version,
    )
    return updated
