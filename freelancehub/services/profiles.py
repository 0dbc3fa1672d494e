"""Profile lifecycle: create once, partial update, public lookup."""

import logging
import uuid
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from freelancehub.core.database import transaction, translate_storage_errors
from freelancehub.core.exceptions import (
    InternalError,
    NoFieldsToUpdate,
    ProfileAlreadyExists,
    ProfileNotFound,
)
from freelancehub.core.security import utcnow
from freelancehub.models.profile import Profile
from freelancehub.models.user import User
from freelancehub.schemas.profile import ProfileCreate, ProfileResponse, ProfileUpdate

logger = logging.getLogger(__name__)


def _conflict(profile: Profile) -> ProfileAlreadyExists:
    # Serialized now: the instance is expired once the transaction rolls back
    data = ProfileResponse.model_validate(profile).model_dump(mode="json", by_alias=True)
    return ProfileAlreadyExists(data=data)


class ProfileService:
    """Enforces at most one profile per user.

    The existence checks here only produce a friendlier early answer. The
    unique constraint on ``profiles.user_id`` is what actually holds under
    concurrent requests, and every insert path handles its violation.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_profile(self, user_id: uuid.UUID, data: ProfileCreate) -> Profile:
        try:
            async with transaction(self.db, "create profile"):
                existing = await self._find_by_user(user_id)
                if existing is not None:
                    raise _conflict(existing)

                profile = Profile(user_id=user_id, completed_at=utcnow(), **data.to_columns())
                self.db.add(profile)
                await self.db.flush()
        except IntegrityError as e:
            logger.warning(f"Duplicate profile creation attempted for user {user_id}: {e.orig}")
            with translate_storage_errors("create profile"):
                winner = await self._find_by_user(user_id)
            if winner is None:
                # Not the user_id constraint (e.g. the owning user is gone)
                raise InternalError() from e
            raise _conflict(winner) from e

        with translate_storage_errors("create profile"):
            await self.db.refresh(profile)
        logger.info(f"Profile created for user {user_id}")
        return profile

    async def update_profile(self, user_id: uuid.UUID, data: ProfileUpdate) -> Profile:
        """Apply only the fields present in ``data``."""
        changes = data.changes()
        async with transaction(self.db, "update profile"):
            profile = await self._find_by_user(user_id, for_update=True)
            if profile is None:
                raise ProfileNotFound("Profile not found. Please create a profile first.")
            if not changes:
                raise NoFieldsToUpdate()

            for field, value in changes.items():
                setattr(profile, field, value)
            if profile.completed_at is None:
                profile.completed_at = utcnow()
            # Touch updated_at even when every value is unchanged
            profile.updated_at = utcnow()

        with translate_storage_errors("update profile"):
            await self.db.refresh(profile)
        return profile

    async def get_profile_by_id(self, key: str) -> tuple[Profile, User]:
        """Look a profile up by its own id or by its owner's id."""
        try:
            lookup = uuid.UUID(key)
        except ValueError:
            raise ProfileNotFound()

        with translate_storage_errors("get profile"):
            result = await self.db.execute(
                select(Profile, User)
                .join(User, Profile.user_id == User.id)
                .where(or_(Profile.id == lookup, Profile.user_id == lookup))
                .limit(1)
            )
            row = result.first()
        if row is None:
            raise ProfileNotFound()
        return row.Profile, row.User

    async def _find_by_user(self, user_id: uuid.UUID, for_update: bool = False) -> Optional[Profile]:
        query = select(Profile).where(Profile.user_id == user_id)
        if for_update:
            query = query.with_for_update()
        query = query.execution_options(populate_existing=True)
        return await self.db.scalar(query)
