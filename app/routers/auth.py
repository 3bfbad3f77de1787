"""
Authentication router — registration and login endpoints.

These are the only public (unauthenticated) endpoints in the API besides
/health. Everything else requires a valid JWT token.

Endpoints:
  POST /auth/register  — Create a new user (ROLE_USER)
  POST /auth/login     — Authenticate and get a token

Security audit notes:
  - Plaintext passwords exist only in memory during request processing;
    they are hashed before any database operation and never logged.
  - JWT tokens appear only in response bodies. The request-logging
    middleware records method, path, status and duration only.
  - SQLAlchemy's echo mode (DEBUG=True) logs SQL statements, but only
    the Argon2 hash is included in INSERT statements — never the plaintext.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.schemas.auth import LoginRequest, RegisterRequest, TokenResponse
from app.schemas.user import UserResponse
from app.services import auth_service

router = APIRouter()


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def register(
    request: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Register a new API user.

    - **username**: 3-50 characters, must not be taken (400 otherwise)
    - **password**: 6-100 characters
    - **email**: valid email format, must not be in use (400 otherwise)
    """
    return await auth_service.register(
        db=db,
        username=request.username,
        password=request.password,
        email=request.email,
    )


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Authenticate and get a token",
)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Authenticate with username and password.

    Returns a JWT bearer token that must be included in the Authorization
    header for all subsequent requests:

        Authorization: Bearer <token>

    The token expires after ACCESS_TOKEN_EXPIRE_MINUTES (default: 30).
    """
    user, token = await auth_service.login(
        db=db,
        username=request.username,
        password=request.password,
    )

    return TokenResponse(
        token=token,
        id=user.id,
        username=user.username,
        email=user.email,
    )
