"""
Pydantic schemas for Account endpoints.

The read view exposes only id, account number, customer, balance,
description and version, plus links to related endpoints. The raw
transaction amount and timestamps stay internal.

Amounts are Decimals and serialize as JSON strings (e.g. "125.50"), so
clients never receive a float-rounded balance.
"""

from decimal import Decimal

from pydantic import BaseModel, Field, computed_field

from app.models.account import DESCRIPTION_MAX_LENGTH
from app.pagination import Page


class AccountResponse(BaseModel):
    """Public representation of an account record."""
    id: int
    account_number: str
    customer_id: str
    balance: Decimal
    description: str | None
    version: int

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def links(self) -> dict[str, str]:
        """Where to read this record, update it, and list its customer's records."""
        href = f"/accounts/{self.account_number}"
        return {
            "self": href,
            "update": href,
            "customer-accounts": f"/accounts/by-customer/{self.customer_id}",
        }


class AccountUpdateRequest(BaseModel):
    """
    Request body for PUT /accounts/{account_number}.

    `version` is optional. When sent, the update only succeeds if the record
    is still at that version (409 otherwise). When omitted, the version read
    at the start of the request is used.
    """
    description: str | None = Field(
        default=None,
        max_length=DESCRIPTION_MAX_LENGTH,
        description="New description (max 1000 characters)",
    )
    version: int | None = Field(
        default=None,
        ge=0,
        description="Version the client last read, for optimistic locking",
    )


class AccountPageResponse(BaseModel):
    """One page of account records plus paging metadata."""
    items: list[AccountResponse]
    page: int
    size: int
    total_items: int
    total_pages: int
    sort: list[str]

    @classmethod
    def from_page(cls, page: Page) -> "AccountPageResponse":
        return cls(
            items=[AccountResponse.model_validate(item) for item in page.items],
            page=page.page,
            size=page.size,
            total_items=page.total_items,
            total_pages=page.total_pages,
            sort=[f"{key.field},{key.direction}" for key in page.sort],
        )
