"""Service error taxonomy.

Every service operation either returns a value or raises one of the errors
below. The API layer renders them into the response envelope; nothing
raised from a service carries a raw database error.
"""

from typing import Any, Optional

from fastapi import status


class ServiceError(Exception):
    """Base class for errors that map to a client-visible response."""

    code: str = "InternalError"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, data: Any = None):
        self.message = message or self.message
        self.data = data
        super().__init__(self.message)


class ValidationFailed(ServiceError):
    code = "ValidationFailed"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Validation failed"


class DuplicateEmail(ServiceError):
    code = "DuplicateEmail"
    status_code = status.HTTP_409_CONFLICT
    message = "User with this email already exists"


class InvalidCredentials(ServiceError):
    code = "InvalidCredentials"
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid email or password"


class Unauthorized(ServiceError):
    code = "Unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "No token provided. Access denied."


class TokenInvalid(ServiceError):
    code = "TokenInvalid"
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid token. Access denied."


class TokenExpired(ServiceError):
    code = "TokenExpired"
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Token expired. Please login again."


class TokenNotFound(ServiceError):
    code = "TokenNotFound"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid verification token"


class VerificationTokenExpired(TokenExpired):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Verification token has expired"


class RefreshTokenInvalid(ServiceError):
    code = "RefreshTokenInvalid"
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid refresh token"


class RefreshTokenExpired(ServiceError):
    code = "RefreshTokenExpired"
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Refresh token has expired"


class UserNotFound(ServiceError):
    code = "UserNotFound"
    status_code = status.HTTP_404_NOT_FOUND
    message = "User not found"


class ProfileAlreadyExists(ServiceError):
    code = "ProfileAlreadyExists"
    status_code = status.HTTP_409_CONFLICT
    message = "Profile already exists for this user. Use PATCH /api/profile to update."


class ProfileNotFound(ServiceError):
    code = "ProfileNotFound"
    status_code = status.HTTP_404_NOT_FOUND
    message = "Profile not found"


class NoFieldsToUpdate(ServiceError):
    code = "NoFieldsToUpdate"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "No fields to update"


class StorageUnavailable(ServiceError):
    code = "StorageUnavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    message = "Database temporarily unavailable. Please retry."


class InternalError(ServiceError):
    pass
