"""User-related Pydantic schemas."""

import re
import uuid
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from freelancehub.models.user import UserType
from freelancehub.schemas.common import CamelModel
from freelancehub.schemas.profile import ProfileResponse


class SignupRequest(CamelModel):
    """Schema for user registration."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=100)
    full_name: Optional[str] = Field(None, min_length=2, max_length=255)
    user_type: UserType = UserType.FREELANCER

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        if not re.search(r"[A-Z]", value):
            raise ValueError("Password must contain at least one uppercase letter")
        if not re.search(r"[a-z]", value):
            raise ValueError("Password must contain at least one lowercase letter")
        if not re.search(r"[0-9]", value):
            raise ValueError("Password must contain at least one number")
        return value


class LoginRequest(CamelModel):
    """Schema for user login."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class VerifyEmailRequest(CamelModel):
    token: str = Field(..., min_length=1)


class RefreshRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1)


class LogoutRequest(CamelModel):
    refresh_token: Optional[str] = None

    @field_validator("refresh_token", mode="before")
    @classmethod
    def ignore_non_string(cls, v):
        # Malformed tokens are treated as absent
        return v if isinstance(v, str) else None


class UserResponse(CamelModel):
    """Public account fields. Never includes the password hash."""

    id: uuid.UUID
    email: str
    user_type: UserType
    email_verified: bool
    created_at: datetime


class AuthData(CamelModel):
    """Tokens returned by signup and login."""

    token: str
    refresh_token: str
    user: UserResponse


class AccessTokenData(CamelModel):
    token: str


class MeResponse(UserResponse):
    profile: Optional[ProfileResponse] = None
