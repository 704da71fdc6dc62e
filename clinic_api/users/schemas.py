"""
User management schemas.
"""
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, field_validator

from ..auth.models import UserRole


class UpdateUserInfo(BaseModel):
    email: Optional[EmailStr] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value):
        return value.strip().lower() if value else value


class UpdatePassword(BaseModel):
    """
    Password change for the logged-in user

    Fields:
    - old_password: Current password (accepts "oldPassword")
    - new_password: Replacement password (accepts "newPassword")
    """
    old_password: str = Field(..., alias="oldPassword", min_length=1)
    new_password: str = Field(..., alias="newPassword", min_length=1)

    class Config:
        populate_by_name = True


class UpdateAvatar(BaseModel):
    """Avatar as a URL or data URI accepted by the media store."""
    avatar: str = Field(..., min_length=1)


class UpdateUserRole(BaseModel):
    email: EmailStr
    role: UserRole

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value):
        return value.strip().lower()
