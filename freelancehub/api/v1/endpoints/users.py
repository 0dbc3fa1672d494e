"""Current user and profile endpoints."""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from freelancehub.api.v1.dependencies import get_current_user, get_optional_user
from freelancehub.api.v1.endpoints.auth import user_to_response
from freelancehub.core.database import get_db
from freelancehub.schemas.common import ApiResponse
from freelancehub.schemas.profile import (
    ProfileCreate,
    ProfileResponse,
    ProfileUpdate,
    PublicProfileResponse,
)
from freelancehub.schemas.user import MeResponse
from freelancehub.services.accounts import AccountService
from freelancehub.services.profiles import ProfileService
from freelancehub.services.tokens import AccessClaims

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/me", response_model=ApiResponse[MeResponse])
async def get_me(
    claims: AccessClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get the current user together with their profile, if any."""
    user, profile = await AccountService(db).get_me(claims.user_id)
    me = MeResponse(
        **user_to_response(user).model_dump(),
        profile=ProfileResponse.model_validate(profile) if profile else None,
    )
    return ApiResponse(data=me)


@router.post("/profile", response_model=ApiResponse[ProfileResponse], status_code=status.HTTP_201_CREATED)
async def create_profile(
    data: ProfileCreate,
    claims: AccessClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create the caller's profile. Only ever succeeds once per user."""
    profile = await ProfileService(db).create_profile(claims.user_id, data)
    return ApiResponse(
        message="Profile created successfully",
        data=ProfileResponse.model_validate(profile),
    )


@router.patch("/profile", response_model=ApiResponse[ProfileResponse])
async def update_profile(
    data: ProfileUpdate,
    claims: AccessClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    profile = await ProfileService(db).update_profile(claims.user_id, data)
    return ApiResponse(
        message="Profile updated successfully",
        data=ProfileResponse.model_validate(profile),
    )


@router.get("/profile/{profile_id}", response_model=ApiResponse[PublicProfileResponse])
async def get_profile(
    profile_id: str,
    viewer: Optional[AccessClaims] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """Public profile lookup by profile id or owning user id."""
    profile, owner = await ProfileService(db).get_profile_by_id(profile_id)
    logger.debug(f"Profile {profile.id} viewed by {viewer.user_id if viewer else 'anonymous'}")
    public = PublicProfileResponse(
        **ProfileResponse.model_validate(profile).model_dump(exclude={"completed"}),
        email=owner.email,
        user_type=owner.user_type,
        user_created_at=owner.created_at,
    )
    return ApiResponse(data=public)
