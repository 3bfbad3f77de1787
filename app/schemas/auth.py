"""
Pydantic schemas for authentication endpoints (register and login).

These schemas define the request/response contracts for the auth API.
Pydantic validates incoming data automatically — if a required field is
missing or the wrong type, the request is rejected with 400 before our
code even runs.
"""

import uuid

from pydantic import BaseModel, EmailStr, Field


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register."""
    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=6, max_length=100)
    email: EmailStr                                # Validates email format


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class TokenResponse(BaseModel):
    """Response body for successful login — the JWT plus who it belongs to."""
    token: str
    token_type: str = "Bearer"
    id: uuid.UUID
    username: str
    email: str
