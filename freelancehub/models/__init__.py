"""Database models."""

from freelancehub.models.user import User, UserType
from freelancehub.models.profile import Profile
from freelancehub.models.token import EmailVerificationToken, RefreshToken

__all__ = ["User", "UserType", "Profile", "EmailVerificationToken", "RefreshToken"]
