"""Domain services."""

from freelancehub.services.accounts import AccountService, AuthSession
from freelancehub.services.profiles import ProfileService
from freelancehub.services.tokens import AccessClaims, TokenService

__all__ = ["AccountService", "AuthSession", "ProfileService", "AccessClaims", "TokenService"]
