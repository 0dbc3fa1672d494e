"""Pydantic schemas for request/response validation."""

from freelancehub.schemas.common import ApiResponse, FieldError
from freelancehub.schemas.profile import (
    PortfolioLinks,
    ProfileCreate,
    ProfileResponse,
    ProfileUpdate,
    PublicProfileResponse,
)
from freelancehub.schemas.user import (
    AccessTokenData,
    AuthData,
    LoginRequest,
    LogoutRequest,
    MeResponse,
    RefreshRequest,
    SignupRequest,
    UserResponse,
    VerifyEmailRequest,
)

__all__ = [
    "ApiResponse",
    "FieldError",
    "PortfolioLinks",
    "ProfileCreate",
    "ProfileResponse",
    "ProfileUpdate",
    "PublicProfileResponse",
    "AccessTokenData",
    "AuthData",
    "LoginRequest",
    "LogoutRequest",
    "MeResponse",
    "RefreshRequest",
    "SignupRequest",
    "UserResponse",
    "VerifyEmailRequest",
]
