"""Authentication dependencies."""

import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from freelancehub.core.exceptions import ServiceError, Unauthorized
from freelancehub.services.tokens import AccessClaims, TokenService

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_token_service() -> TokenService:
    return TokenService()


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    tokens: TokenService = Depends(get_token_service),
) -> AccessClaims:
    """Resolve ``Authorization: Bearer <token>`` to the caller's identity."""
    if credentials is None or not credentials.credentials:
        raise Unauthorized()
    return tokens.verify_access_token(credentials.credentials)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    tokens: TokenService = Depends(get_token_service),
) -> Optional[AccessClaims]:
    """Like ``get_current_user`` but anonymous callers (or bad tokens) get None."""
    if credentials is None or not credentials.credentials:
        return None
    try:
        return tokens.verify_access_token(credentials.credentials)
    except ServiceError as e:
        logger.debug(f"Ignoring unusable bearer token on public route: {e.code}")
        return None
