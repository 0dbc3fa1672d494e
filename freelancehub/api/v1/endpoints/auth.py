"""Authentication endpoints."""

import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from freelancehub.core.database import get_db
from freelancehub.models.user import User
from freelancehub.schemas.common import ApiResponse
from freelancehub.schemas.user import (
    AccessTokenData,
    AuthData,
    LoginRequest,
    LogoutRequest,
    RefreshRequest,
    SignupRequest,
    UserResponse,
    VerifyEmailRequest,
)
from freelancehub.services.accounts import AccountService, AuthSession

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/signup", response_model=ApiResponse[AuthData], status_code=status.HTTP_201_CREATED)
async def signup(data: SignupRequest, db: AsyncSession = Depends(get_db)):
    """Register a new account and start a session."""
    session = await AccountService(db).signup(data)
    return ApiResponse(
        message="Account created successfully. Please check your email to verify your account.",
        data=_auth_data(session),
    )


@router.post("/login", response_model=ApiResponse[AuthData])
async def login(data: LoginRequest, db: AsyncSession = Depends(get_db)):
    session = await AccountService(db).login(data.email, data.password)
    return ApiResponse(message="Login successful", data=_auth_data(session))


@router.post("/verify-email", response_model=ApiResponse[None])
async def verify_email(data: VerifyEmailRequest, db: AsyncSession = Depends(get_db)):
    await AccountService(db).verify_email(data.token)
    return ApiResponse(message="Email verified successfully")


@router.post("/refresh", response_model=ApiResponse[AccessTokenData])
async def refresh(data: RefreshRequest, db: AsyncSession = Depends(get_db)):
    """Exchange a refresh token for a new access token."""
    token = await AccountService(db).refresh_access_token(data.refresh_token)
    return ApiResponse(data=AccessTokenData(token=token))


@router.post("/logout", response_model=ApiResponse[None])
async def logout(data: LogoutRequest | None = None, db: AsyncSession = Depends(get_db)):
    await AccountService(db).logout(data.refresh_token if data else None)
    return ApiResponse(message="Logged out successfully")


def user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        user_type=user.user_type,
        email_verified=user.is_verified,
        created_at=user.created_at,
    )


def _auth_data(session: AuthSession) -> AuthData:
    return AuthData(
        token=session.access_token,
        refresh_token=session.refresh_token,
        user=user_to_response(session.user),
    )
