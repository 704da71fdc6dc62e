"""
Auth Schemas - Pydantic models for request validation and user serialization.
"""
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, field_validator
from datetime import datetime
from .models import UserRole


def _normalize_email(value: str) -> str:
    return value.strip().lower()


class AvatarIn(BaseModel):
    """
    Avatar reference supplied by the client (already uploaded elsewhere)

    Fields:
    - public_id: Media store identifier
    - url: Public URL of the picture
    """
    public_id: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)


class UserRegistration(BaseModel):
    """
    Registration Schema - Used for self-registration

    Fields:
    - email: User's email address (trimmed and lower-cased)
    - password: Plain text password, hashed before storage
    - confirm_password: Must equal password (accepts "confirmPassword")
    - avatar: Optional pre-uploaded avatar
    """
    email: EmailStr
    password: str = Field(..., min_length=1)
    confirm_password: str = Field(..., alias="confirmPassword")
    avatar: Optional[AvatarIn] = None

    class Config:
        populate_by_name = True

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return _normalize_email(value)


class UserLogin(BaseModel):
    """
    User Login Schema - Used for authentication

    Fields:
    - email: User's email address
    - password: User's plain text password
    """
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return _normalize_email(value)


class SocialAuthRequest(BaseModel):
    """Identity asserted by an upstream social provider."""
    email: EmailStr
    avatar: Optional[AvatarIn] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return _normalize_email(value)


class AvatarOut(BaseModel):
    public_id: Optional[str] = None
    url: Optional[str] = None


class UserResponse(BaseModel):
    """
    User Response Schema - Client-facing view of a user

    The password hash and lockout counters are never part of it.
    """
    id: str
    email: str
    role: UserRole
    is_verified: bool
    avatar: AvatarOut
    display_name: str
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        """Configuration for Pydantic model to enable ORM mode"""
        from_attributes = True
