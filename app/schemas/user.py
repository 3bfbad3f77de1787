"""
Pydantic schemas for User-related responses.

These schemas control what user data is exposed through the API.
Notice that hashed_password is NEVER included in any response schema —
this is a critical security boundary.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel


class UserResponse(BaseModel):
    """Public representation of a User (never includes password hash)."""
    id: uuid.UUID
    username: str
    email: str
    roles: list[str]
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}
