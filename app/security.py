"""
Password hashing and bearer tokens for API users.

Tokens are HS256 JWTs signed with SECRET_KEY and carry:

    sub    the username (the login identifier)
    roles  the user's role names at the time of login, e.g. ["ROLE_USER"]
    iat    issued-at
    exp    expiry, ACCESS_TOKEN_EXPIRE_MINUTES after issue

The roles claim is informational. get_current_user reloads the user on
every request, so a disabled user or a revoked role takes effect before
the token expires.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.config import settings

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


@dataclass(frozen=True)
class TokenClaims:
    username: str
    roles: tuple[str, ...]
    expires_at: datetime


def create_access_token(
    username: str,
    roles: list[str],
    expires_delta: timedelta | None = None,
) -> str:
    """Issue a signed token for `username` holding `roles`."""
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": username,
        "roles": list(roles),
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> TokenClaims:
    """
    Verify a token's signature and expiry and return its claims.

    Raises:
        JWTError: Bad signature, expired, or missing the subject or expiry.
    """
    payload = jwt.decode(
        token,
        settings.SECRET_KEY,
        algorithms=[settings.ALGORITHM],
        options={"require_exp": True},
    )

    username = payload.get("sub")
    if not username:
        raise JWTError("Token has no subject")

    return TokenClaims(
        username=username,
        roles=tuple(payload.get("roles") or ()),
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )
