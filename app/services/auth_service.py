"""
Authentication service — registration and login business logic.

This module contains the core auth logic, separated from HTTP concerns.
The router calls these functions and translates the results into HTTP
responses. This separation means the business logic can be tested
without spinning up a web server.

Registration flow:
  1. Reject a username or email that's already registered
  2. Hash the password with Argon2id
  3. Create the User with role ROLE_USER

Login flow:
  1. Look up user by username
  2. Verify password against stored hash
  3. Reject disabled users
  4. Return a JWT token

Security notes:
  - Passwords are hashed before storage (never stored in plaintext)
  - Login returns the same error for "wrong password" and "unknown user"
    to prevent user enumeration attacks
  - JWT tokens are stateless — no server-side session storage needed
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import AuthenticationFailedError, DuplicateUserError
from app.models.user import Role, User
from app.security import hash_password, verify_password, create_access_token

logger = logging.getLogger(__name__)


async def register(
    db: AsyncSession,
    username: str,
    password: str,
    email: str,
) -> User:
    """
    Register a new API user.

    Raises:
        DuplicateUserError: If the username or email is already registered.
    """
    result = await db.execute(select(User).where(User.username == username))
    if result.scalar_one_or_none() is not None:
        raise DuplicateUserError("username", username)

    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none() is not None:
        raise DuplicateUserError("email", email)

    user = User(
        username=username,
        email=email,
        hashed_password=hash_password(password),
        roles=[Role.USER.value],
    )
    db.add(user)
    await db.flush()

    logger.info("Registered user %s", username)
    return user


async def login(
    db: AsyncSession,
    username: str,
    password: str,
) -> tuple[User, str]:
    """
    Authenticate a user and return a JWT token.

    Returns:
        Tuple of (User instance, JWT token string).

    Raises:
        AuthenticationFailedError: Unknown user, wrong password, or disabled user.
    """
    result = await db.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()

    # Same error for both cases: no user enumeration
    if user is None or not verify_password(password, user.hashed_password):
        logger.info("Failed login for username %s", username)
        raise AuthenticationFailedError()

    if not user.is_active:
        raise AuthenticationFailedError("User is disabled")

    token = create_access_token(user.username, user.roles)
    return user, token
