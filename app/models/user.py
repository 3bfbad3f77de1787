"""
User model — the authentication identity.

Each User represents a login credential (username + hashed password) with a
set of roles. Users are created in two ways only:

  - Self-service registration (POST /auth/register) — role ROLE_USER
  - The one-time admin seed at startup — role ROLE_ADMIN

Roles:
  - ROLE_USER: Can read account records and update descriptions
  - ROLE_ADMIN: Everything ROLE_USER can do, plus the /admin/* endpoints

The password is stored as an Argon2id hash — never in plaintext. Argon2id
is the recommended password hashing algorithm (winner of the Password
Hashing Competition 2015) because it is resistant to both GPU-based
brute-force and side-channel attacks.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Role(str, enum.Enum):
    """
    Roles a user can hold.

    Inherits from str so the enum value serializes naturally to JSON
    and can be stored as a simple string in the database.
    """
    ADMIN = "ROLE_ADMIN"    # Operator: adds access to /admin/* endpoints
    USER = "ROLE_USER"      # Regular API user, the default for registration


class User(Base):
    __tablename__ = "users"

    # Primary key: UUID provides globally unique IDs without sequential guessing
    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # Username is the login identifier: unique and indexed
    username: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    # Argon2id hash of the password (never store plaintext!)
    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Role names, e.g. ["ROLE_USER"]. Stored as a JSON array.
    roles: Mapped[list[str]] = mapped_column(
        JSON,
        default=lambda: [Role.USER.value],
        nullable=False,
    )

    # Disabled users can't log in, and their existing tokens stop working
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
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

    def has_role(self, role: Role) -> bool:
        return role.value in (self.roles or [])
