"""
Authentication-specific exceptions.
"""
from fastapi import status

from ..exceptions import AppException


class AuthException(AppException):
    """Base class for authentication exceptions."""
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Authentication failed"


class InvalidCredentialsException(AuthException):
    """
    Raised when credentials are invalid.

    The same message is used for an unknown email and a wrong password.
    """
    default_detail = "Invalid credentials"


class EmailAlreadyExistsException(AuthException):
    """Exception raised when email already exists."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "User already exists"


class PasswordMismatchException(AuthException):
    """Exception raised when password and confirmation differ."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Passwords do not match"


class AccountLockedException(AuthException):
    """Exception raised when account is locked."""
    status_code = status.HTTP_423_LOCKED
    default_detail = "Account temporarily locked due to too many failed login attempts"


class InvalidTokenException(AuthException):
    """Exception raised when token is invalid or expired."""
    default_detail = "Invalid token"

    def __init__(self, detail: str = None, expired: bool = False):
        self.expired = expired
        super().__init__(detail)


class SessionExpiredException(AuthException):
    """Exception raised when no live session backs a valid token."""
    default_detail = "Session expired. Please login to access this resource"


class UnauthenticatedException(AuthException):
    """Exception raised when a protected resource is requested anonymously."""
    default_detail = "Please login to access this resource"

    def __init__(self, detail: str = None):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenException(AuthException):
    """Exception raised when user doesn't have required role."""
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Access forbidden"


class RoleDeniedException(ForbiddenException):
    """Exception raised when user doesn't have required role."""
    def __init__(self, user_role: str):
        super().__init__(f"Role: {user_role} is not allowed to access this resource")


class TokenConfigurationError(AuthException):
    """Signing secret is missing or too weak; a deployment problem, not a client error."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Token signing is not configured"
