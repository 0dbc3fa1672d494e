"""Security utilities for password hashing and JWT encoding."""

from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional
from jose import ExpiredSignatureError, JWTError, jwt
import bcrypt

from freelancehub.core.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (SQLite drops the offset) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"), hashed_password.encode("utf-8")
        )
    except ValueError:
        # Malformed hash
        return False


def get_password_hash(password: str, rounds: Optional[int] = None) -> str:
    """Hash a password using bcrypt."""
    salt = bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


@lru_cache(maxsize=4)
def dummy_password_hash(rounds: int) -> str:
    """Hash compared against when no account matches, so lookups cost the same."""
    return get_password_hash("not-a-real-password", rounds=rounds)


def check_login_password(password: str, hashed_password: Optional[str], rounds: int) -> bool:
    """Verify ``password``, paying for a bcrypt check even without a stored hash."""
    if hashed_password is None:
        verify_password(password, dummy_password_hash(rounds))
        return False
    return verify_password(password, hashed_password)


def create_token(
    claims: dict,
    secret: str,
    expires_delta: timedelta,
    now: Optional[datetime] = None,
) -> str:
    """Create a signed JWT carrying ``claims`` plus ``iat``/``exp``."""
    issued_at = now or utcnow()
    to_encode = claims.copy()
    to_encode.update(
        {
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + expires_delta).timestamp()),
        }
    )
    return jwt.encode(to_encode, secret, algorithm=settings.ALGORITHM)


def decode_token(token: str, secret: str, now: Optional[datetime] = None) -> dict:
    """Decode and verify a JWT.

    Expiry is checked against ``now`` rather than the wall clock so callers
    can evaluate a token at any instant. Raises ``ExpiredSignatureError`` or
    ``JWTError``.
    """
    payload = jwt.decode(
        token,
        secret,
        algorithms=[settings.ALGORITHM],
        options={"verify_exp": False},
    )
    exp = payload.get("exp")
    if not isinstance(exp, (int, float)):
        raise JWTError("Token has no expiry")
    if (now or utcnow()).timestamp() >= exp:
        raise ExpiredSignatureError("Signature has expired.")
    return payload
