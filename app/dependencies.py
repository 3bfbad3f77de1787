"""
FastAPI dependencies for authentication and authorization.

Dependencies are reusable functions that FastAPI injects into route handlers.
They form a small chain:

  get_current_user (JWT -> User)
      └── require_admin (User -> User)   [ROLE_ADMIN]

Every account endpoint depends on get_current_user, so a request without
a valid "Authorization: Bearer <token>" header is rejected with 401 before
the route handler runs. The /admin/* endpoints add require_admin, which
rejects authenticated non-admins with 403.
"""

import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.exceptions import AccessDeniedError
from app.models.user import Role, User
from app.security import decode_access_token

logger = logging.getLogger(__name__)

# OAuth2PasswordBearer tells FastAPI where to look for the token:
# the "Authorization: Bearer <token>" header. The tokenUrl points to
# the login endpoint (used by Swagger UI's "Authorize" button).
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Extract and validate the JWT token, then return the corresponding User.

    Raises:
        HTTPException 401: If the token is invalid, the user doesn't exist,
            or the user has been disabled since the token was issued.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        claims = decode_access_token(token)
    except JWTError:
        logger.info("Rejected invalid bearer token")
        raise credentials_exception

    # Roles are read from the stored user, not from the token
    result = await db.execute(select(User).where(User.username == claims.username))
    user = result.scalar_one_or_none()

    if user is None or not user.is_active:
        raise credentials_exception

    return user


async def require_admin(
    user: User = Depends(get_current_user),
) -> User:
    """
    Require the authenticated user to hold ROLE_ADMIN.

    Raises:
        AccessDeniedError (403): If the user is not an admin.
    """
    if not user.has_role(Role.ADMIN):
        raise AccessDeniedError("Admin access required")
    return user
