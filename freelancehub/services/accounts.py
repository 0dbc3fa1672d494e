"""Account lifecycle: signup, login, email verification, refresh, logout."""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from freelancehub.core.config import Settings, settings as default_settings
from freelancehub.core.database import transaction, translate_storage_errors
from freelancehub.core.exceptions import (
    DuplicateEmail,
    InvalidCredentials,
    RefreshTokenInvalid,
    TokenNotFound,
    UserNotFound,
    VerificationTokenExpired,
)
from freelancehub.core.security import (
    as_utc,
    check_login_password,
    get_password_hash,
    utcnow,
)
from freelancehub.models.profile import Profile
from freelancehub.models.token import EmailVerificationToken
from freelancehub.models.user import User
from freelancehub.schemas.user import SignupRequest
from freelancehub.services.tokens import TokenService

logger = logging.getLogger(__name__)


@dataclass
class AuthSession:
    """Token pair handed out by signup and login."""

    access_token: str
    refresh_token: str
    user: User


class AccountService:
    """Orchestrates the credential lifecycle against one database session."""

    def __init__(self, db: AsyncSession, settings: Settings = default_settings):
        self.db = db
        self.settings = settings
        self.tokens = TokenService(db, settings)

    async def signup(self, data: SignupRequest) -> AuthSession:
        """Create a user, its verification token and optional seed profile atomically."""
        email = data.email.lower()

        try:
            async with transaction(self.db, "signup"):
                # Fast path only; the unique index on users.email decides races
                if await self._email_taken(email):
                    raise DuplicateEmail()

                password_hash = await asyncio.to_thread(
                    get_password_hash, data.password, self.settings.BCRYPT_ROUNDS
                )
                user = User(
                    email=email,
                    hashed_password=password_hash,
                    user_type=data.user_type,
                    is_verified=False,
                )
                self.db.add(user)
                await self.db.flush()

                verification = self.tokens.issue_verification_token(user.id)
                if data.full_name:
                    self.db.add(Profile(user_id=user.id, full_name=data.full_name))
                await self.db.flush()
        except IntegrityError as e:
            logger.warning(f"Signup lost a race on a unique constraint for {email}: {e.orig}")
            raise DuplicateEmail() from e

        with translate_storage_errors("signup"):
            await self.db.refresh(user)
        logger.info(f"User {user.id} signed up as {user.user_type.value}")
        self._announce_verification(user, verification.token)

        return await self._start_session(user)

    async def login(self, email: str, password: str) -> AuthSession:
        with translate_storage_errors("login"):
            user = await self.db.scalar(select(User).where(User.email == email.lower()))

        # Always pay for one bcrypt check so a missing account is not faster
        hashed = user.hashed_password if user is not None else None
        password_ok = await asyncio.to_thread(
            check_login_password, password, hashed, self.settings.BCRYPT_ROUNDS
        )
        if user is None or not password_ok:
            raise InvalidCredentials()

        logger.info(f"User {user.id} logged in")
        return await self._start_session(user)

    async def verify_email(self, token: str, now: Optional[datetime] = None) -> uuid.UUID:
        """Consume a verification token and mark its owner verified."""
        now = now or utcnow()
        async with transaction(self.db, "verify email"):
            record = await self.db.scalar(
                select(EmailVerificationToken).where(EmailVerificationToken.token == token)
            )
            if record is None:
                raise TokenNotFound()
            if as_utc(record.expires_at) < now:
                raise VerificationTokenExpired()

            user_id = record.user_id
            # Conditional delete: a concurrent request may have consumed it already
            result = await self.db.execute(
                delete(EmailVerificationToken).where(EmailVerificationToken.token == token)
            )
            if result.rowcount == 0:
                raise TokenNotFound()
            await self.db.execute(
                update(User).where(User.id == user_id).values(is_verified=True)
            )

        logger.info(f"User {user_id} verified their email")
        return user_id

    async def refresh_access_token(
        self, refresh_token: str, now: Optional[datetime] = None
    ) -> str:
        """Mint a new access token; the refresh token itself is not rotated."""
        user_id = await self.tokens.verify_refresh_token(refresh_token, now=now)
        with translate_storage_errors("refresh access token"):
            user = await self.db.get(User, user_id)
        if user is None:
            raise RefreshTokenInvalid()
        return self.tokens.issue_access_token(user.id, user.email, user.user_type, now=now)

    async def logout(self, refresh_token: Optional[str]) -> None:
        """Revoke a refresh token. Unknown or missing tokens are not an error."""
        if not refresh_token:
            return
        revoked = await self.tokens.revoke_refresh_token(refresh_token)
        if revoked:
            logger.info("Refresh token revoked")

    async def get_me(self, user_id: uuid.UUID) -> tuple[User, Optional[Profile]]:
        with translate_storage_errors("get current user"):
            user = await self.db.get(User, user_id)
            if user is None:
                raise UserNotFound()
            profile = await self.db.scalar(select(Profile).where(Profile.user_id == user_id))
        return user, profile

    async def _email_taken(self, email: str) -> bool:
        return await self.db.scalar(select(User.id).where(User.email == email)) is not None

    async def _start_session(self, user: User) -> AuthSession:
        access_token = self.tokens.issue_access_token(user.id, user.email, user.user_type)
        refresh_token = await self.tokens.create_refresh_session(user.id)
        return AuthSession(access_token=access_token, refresh_token=refresh_token, user=user)

    def _announce_verification(self, user: User, token: str) -> None:
        # No mailer yet; surface the link where developers can reach it
        if self.settings.is_development:
            logger.info(
                f"Verification link for {user.email}: "
                f"{self.settings.FRONTEND_URL}/verify-email?token={token}"
            )
