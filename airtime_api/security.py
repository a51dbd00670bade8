"""
Password hashing and wallet session tokens.

Passwords are stored as Argon2id hashes via passlib. A successful signup or
login returns a signed HS256 JWT whose "sub" is the user ID and whose "role"
mirrors UserType, so the web client can show the admin console without an
extra round trip. Authorization never trusts the "role" claim: dependencies
reload the User row on every request.

PayNecta and Statum credentials live in config.Settings and are sent only
to the providers, never placed in tokens.
"""

import uuid
from datetime import datetime, timedelta, timezone

from jose import jwt
from passlib.context import CryptContext

from airtime_api.config import settings


# deprecated="auto" lets a future scheme take over while old hashes still verify.
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Constant-time check of a login attempt against the stored hash."""
    return pwd_context.verify(plain_password, hashed_password)


def issue_session_token(
    user_id: uuid.UUID,
    role: str,
    expires_in: timedelta | None = None,
) -> str:
    """
    Sign a session token for a member or admin.

    Args:
        user_id: The User the token authenticates.
        role: The user's UserType value ("member" or "admin").
        expires_in: Lifetime override; defaults to ACCESS_TOKEN_EXPIRE_MINUTES.
    """
    now = datetime.now(timezone.utc)
    lifetime = expires_in or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {
        "sub": str(user_id),
        "role": role,
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def read_session_token(token: str) -> uuid.UUID:
    """
    Verify a session token and return the user ID it was issued for.

    Raises:
        jose.JWTError: If the signature is bad or the token has expired.
        ValueError: If "sub" is missing or not a UUID.
    """
    claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    subject = claims.get("sub")
    if subject is None:
        raise ValueError("token has no subject")
    return uuid.UUID(subject)
