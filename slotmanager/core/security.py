"""Password hashing and JWT token management."""

from datetime import datetime, timedelta, UTC
from typing import Any, Optional

from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError
from jose import JWTError, jwt

from slotmanager.config import settings

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"

# Argon2id with library defaults
ph = PasswordHasher()


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plain password against a stored Argon2 hash."""
    try:
        return ph.verify(hashed_password, plain_password)
    except (VerificationError, InvalidHashError):
        return False


def get_password_hash(password: str) -> str:
    """Hash a password with Argon2id."""
    return ph.hash(password)


def _encode_token(subject: Any, token_type: str, lifetime: timedelta) -> str:
    claims = {
        "exp": datetime.now(UTC) + lifetime,
        "sub": str(subject),
        "type": token_type,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(
    subject: str | Any,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a short-lived access token for ``subject`` (the user id)."""
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _encode_token(subject, ACCESS_TOKEN, lifetime)


def create_refresh_token(
    subject: str | Any,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a refresh token for ``subject``."""
    lifetime = expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    return _encode_token(subject, REFRESH_TOKEN, lifetime)


def verify_token(token: str, token_type: str = ACCESS_TOKEN) -> Optional[str]:
    """
    Decode a token and return its subject.

    Returns ``None`` when the token is malformed, expired, signed with another
    key, or of a different type than ``token_type``.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None

    subject = payload.get("sub")
    if subject is None or payload.get("type") != token_type:
        return None
    return subject
