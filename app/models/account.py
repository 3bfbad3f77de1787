"""
AccountRecord model — one imported account transaction/snapshot row.

Each record has:
  - A unique account number (the lookup key used by every endpoint)
  - The owning customer ID
  - The transaction amount and a balance (initialized to the amount on import)
  - An optional free-text description (the only field that can be updated)
  - The transaction timestamp
  - A version counter used for optimistic locking

Optimistic locking:
  `version` starts at 0 and goes up by exactly 1 on every successful write.
  Writers don't take row locks; instead every update is a single
  compare-and-swap statement:

      UPDATE accounts
         SET description = :new, version = version + 1
       WHERE account_number = :n AND version = :expected

  If another writer got there first, zero rows match and the update is
  rejected (see record_store.conditional_update). Nothing is overwritten.

Why Decimal / Numeric?
  Amounts are parsed from text into Decimal and stored as Numeric(19, 2),
  so "125.10" stays exactly 125.10. Floats would turn it into
  125.09999999999999.

transaction_time:
  The import combines the date and time columns into one datetime and
  stores it in BOTH transaction_date and transaction_time. That duplication
  is kept as-is because downstream consumers may rely on it.
"""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Integer, Numeric, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base

# Maximum description length, enforced at the request schema and in the service
DESCRIPTION_MAX_LENGTH = 1000


class AccountRecord(Base):
    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    # Lookup key for reads and the conditional update
    account_number: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True,
    )

    customer_id: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
    )

    transaction_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 2),
        nullable=False,
    )

    # Equal to transaction_amount immediately after import
    balance: Mapped[Decimal] = mapped_column(
        Numeric(19, 2),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        String(DESCRIPTION_MAX_LENGTH),
        nullable=True,
    )

    transaction_date: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
    )

    # Same combined date+time as transaction_date (see module docstring)
    transaction_time: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
    )

    # Optimistic lock token; only conditional_update changes it
    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    # Audit timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"AccountRecord(account_number={self.account_number!r}, "
            f"customer_id={self.customer_id!r}, version={self.version})"
        )
