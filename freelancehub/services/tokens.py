"""Access, refresh and email-verification token lifecycle."""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from jose import ExpiredSignatureError, JWTError
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from freelancehub.core.config import Settings, settings as default_settings
from freelancehub.core.database import transaction, translate_storage_errors
from freelancehub.core.exceptions import (
    RefreshTokenExpired,
    RefreshTokenInvalid,
    TokenExpired,
    TokenInvalid,
)
from freelancehub.core.security import as_utc, create_token, decode_token, utcnow
from freelancehub.models.token import EmailVerificationToken, RefreshToken
from freelancehub.models.user import UserType

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"


@dataclass(frozen=True)
class AccessClaims:
    """Identity carried by a verified access token."""

    user_id: uuid.UUID
    email: str
    user_type: UserType


class TokenService:
    """Mints and checks tokens.

    Access tokens are self-contained and never touch the database. Refresh
    tokens are JWTs that must also exist as a ``refresh_tokens`` row, so a
    single session can be revoked by deleting its row.
    """

    def __init__(self, db: Optional[AsyncSession] = None, settings: Settings = default_settings):
        self.db = db
        self.settings = settings

    # Access tokens

    def issue_access_token(
        self,
        user_id: uuid.UUID,
        email: str,
        user_type: UserType,
        now: Optional[datetime] = None,
    ) -> str:
        claims = {
            "sub": str(user_id),
            "email": email,
            "user_type": UserType(user_type).value,
            "type": ACCESS,
        }
        return create_token(
            claims,
            self.settings.SECRET_KEY,
            timedelta(minutes=self.settings.ACCESS_TOKEN_EXPIRE_MINUTES),
            now=now,
        )

    def verify_access_token(self, token: str, now: Optional[datetime] = None) -> AccessClaims:
        try:
            payload = decode_token(token, self.settings.SECRET_KEY, now=now)
        except ExpiredSignatureError as e:
            raise TokenExpired() from e
        except JWTError as e:
            raise TokenInvalid() from e

        if payload.get("type") != ACCESS:
            raise TokenInvalid()
        try:
            return AccessClaims(
                user_id=uuid.UUID(payload["sub"]),
                email=payload["email"],
                user_type=UserType(payload["user_type"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise TokenInvalid() from e

    # Refresh tokens

    def issue_refresh_token(
        self, user_id: uuid.UUID, now: Optional[datetime] = None
    ) -> tuple[str, datetime]:
        """Return a signed refresh token and the expiry to persist with it."""
        issued_at = now or utcnow()
        lifetime = timedelta(days=self.settings.REFRESH_TOKEN_EXPIRE_DAYS)
        claims = {"sub": str(user_id), "type": REFRESH, "jti": uuid.uuid4().hex}
        token = create_token(claims, self.settings.REFRESH_SECRET_KEY, lifetime, now=issued_at)
        return token, issued_at + lifetime

    async def create_refresh_session(
        self, user_id: uuid.UUID, now: Optional[datetime] = None
    ) -> str:
        """Mint a refresh token and persist its row in its own transaction."""
        token, expires_at = self.issue_refresh_token(user_id, now=now)
        async with transaction(self.db, "store refresh token"):
            self.db.add(RefreshToken(user_id=user_id, token=token, expires_at=expires_at))
        return token

    async def verify_refresh_token(
        self, token: str, now: Optional[datetime] = None
    ) -> uuid.UUID:
        """Return the subject of a live, persisted refresh token."""
        now = now or utcnow()
        try:
            payload = decode_token(token, self.settings.REFRESH_SECRET_KEY, now=now)
        except ExpiredSignatureError as e:
            raise RefreshTokenExpired() from e
        except JWTError as e:
            raise RefreshTokenInvalid() from e

        if payload.get("type") != REFRESH:
            raise RefreshTokenInvalid()
        try:
            user_id = uuid.UUID(payload["sub"])
        except (KeyError, TypeError, ValueError) as e:
            raise RefreshTokenInvalid() from e

        with translate_storage_errors("verify refresh token"):
            record = await self.db.scalar(
                select(RefreshToken).where(
                    RefreshToken.token == token, RefreshToken.user_id == user_id
                )
            )
        if record is None:
            raise RefreshTokenInvalid()
        if as_utc(record.expires_at) <= now:
            raise RefreshTokenExpired()
        return user_id

    async def revoke_refresh_token(self, token: str) -> bool:
        """Delete the row for ``token``. Returns whether one existed."""
        async with transaction(self.db, "revoke refresh token"):
            result = await self.db.execute(
                delete(RefreshToken).where(RefreshToken.token == token)
            )
        return result.rowcount > 0

    # Email verification tokens

    def issue_verification_token(
        self, user_id: uuid.UUID, now: Optional[datetime] = None
    ) -> EmailVerificationToken:
        """Add a new verification token to the caller's open transaction."""
        lifetime = timedelta(hours=self.settings.VERIFICATION_TOKEN_EXPIRE_HOURS)
        record = EmailVerificationToken(
            user_id=user_id,
            token=str(uuid.uuid4()),
            expires_at=(now or utcnow()) + lifetime,
        )
        self.db.add(record)
        return record
