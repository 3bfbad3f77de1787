"""
Accounts router — account record lookup and description updates.

All endpoints require a valid JWT ("Authorization: Bearer <token>").

    GET  /accounts                                 — List all records (paged)
    GET  /accounts/by-customer/{customer_id}       — Records for one customer
    GET  /accounts/by-account-numbers?accountNumbers=a,b,c — Records for a set of numbers
    GET  /accounts/by-description?description=txt — Case-insensitive substring search
    GET  /accounts/{account_number}                — One record, or 404
    PUT  /accounts/{account_number}                — Update description (409 on version conflict)

List endpoints accept ?page=0&size=20&sort=field,direction (sort repeatable).

Route order matters: the fixed "/by-..." paths are declared before the
"/{account_number}" catch-all so they aren't swallowed by it.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db
from app.dependencies import get_current_user
from app.models.user import User
from app.pagination import PageSpec, parse_sort
from app.schemas.account import AccountPageResponse, AccountResponse, AccountUpdateRequest
from app.services import account_service
from app.services.record_store import SORTABLE_FIELDS

router = APIRouter()


def get_page_spec(
    page: int = Query(0, ge=0, description="Zero-based page index"),
    size: int = Query(
        settings.DEFAULT_PAGE_SIZE,
        gt=0,
        le=settings.MAX_PAGE_SIZE,
        description="Records per page",
    ),
    sort: list[str] | None = Query(
        None,
        description="Sort key as 'field' or 'field,asc|desc'; repeat for multiple keys",
    ),
) -> PageSpec:
    """Build a PageSpec from the standard paging query parameters."""
    return PageSpec(page=page, size=size, sort=parse_sort(sort, SORTABLE_FIELDS))


@router.get(
    "",
    response_model=AccountPageResponse,
    summary="List account records",
)
async def list_accounts(
    page_spec: PageSpec = Depends(get_page_spec),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    page = await account_service.list_accounts(db, page_spec)
    return AccountPageResponse.from_page(page)


@router.get(
    "/by-customer/{customer_id}",
    response_model=AccountPageResponse,
    summary="List account records for a customer",
)
async def list_by_customer(
    customer_id: str,
    page_spec: PageSpec = Depends(get_page_spec),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    page = await account_service.list_by_customer(db, customer_id, page_spec)
    return AccountPageResponse.from_page(page)


@router.get(
    "/by-account-numbers",
    response_model=AccountPageResponse,
    summary="List account records for a set of account numbers",
)
async def list_by_account_numbers(
    account_numbers: list[str] = Query(
        ...,
        alias="accountNumbers",
        description="Comma-separated and/or repeated account numbers",
    ),
    page_spec: PageSpec = Depends(get_page_spec),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Accepts both `?accountNumbers=a,b,c` and `?accountNumbers=a&accountNumbers=b`.
    Unknown account numbers are simply absent from the result.
    """
    numbers = [number for value in account_numbers for number in value.split(",")]
    page = await account_service.list_by_account_numbers(db, numbers, page_spec)
    return AccountPageResponse.from_page(page)


@router.get(
    "/by-description",
    response_model=AccountPageResponse,
    summary="Search account records by description",
)
async def list_by_description(
    description: str = Query(..., min_length=1, description="Text to look for (case-insensitive)"),
    page_spec: PageSpec = Depends(get_page_spec),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    page = await account_service.list_by_description(db, description, page_spec)
    return AccountPageResponse.from_page(page)


@router.get(
    "/{account_number}",
    response_model=AccountResponse,
    summary="Get an account record",
)
async def get_account(
    account_number: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Returns 404 if no record has this account number."""
    return await account_service.get_account(db, account_number)


@router.put(
    "/{account_number}",
    response_model=AccountResponse,
    summary="Update an account record's description",
)
async def update_account_description(
    account_number: str,
    request: AccountUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Replace the description of an account record.

    - **description**: up to 1000 characters (400 if longer)
    - **version**: optional; the version you last read. If the record has
      changed since, the update is rejected with **409** and nothing is
      written. Re-fetch the record and try again.

    The response contains the record's new version.
    """
    return await account_service.update_description(
        db,
        account_number,
        request.description,
        expected_version=request.version,
    )
