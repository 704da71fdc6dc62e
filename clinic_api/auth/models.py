"""
User Model - the credential record behind every login.

A user is created at registration (the very first account becomes an admin),
mutated on login outcomes, password and role changes, and deleted by an admin.
"""
import enum
import re
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, String, Boolean, Integer, Enum
from sqlalchemy.sql import func

from ..database import Base, UTCDateTime, utcnow


class UserRole(str, enum.Enum):
    """
    Enumeration for user roles.

    Roles:
    - USER: Clinic staff member managing patient records
    - ADMIN: Administrator who can also manage other users
    """
    USER = "user"
    ADMIN = "admin"


def display_name_from_email(email: Optional[str]) -> str:
    """Turn the local part of an email into a readable name (john.doe -> John Doe)."""
    if not email:
        return "User"
    username = email.split("@")[0]
    spaced = re.sub(r"[._-]", " ", username)
    return " ".join(word[:1].upper() + word[1:] for word in spaced.split()) or "User"


class User(Base):
    """
    User Model - Stores the authentication identity of a clinic user

    Fields:
    - id: Opaque, stable identifier (UUID string)
    - email: Unique email address, stored lower-cased
    - password_hash: bcrypt hash; empty for accounts created through social auth
    - role: user or admin
    - is_verified: Whether the identity has been verified
    - avatar_public_id / avatar_url: Media store reference for the profile picture
    - login_attempts: Consecutive failed logins
    - lock_until: While in the future the account is locked
    - last_login: Timestamp of the last successful login
    - password_changed_at: Timestamp of the last password change
    """
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=True)
    role = Column(Enum(UserRole, values_callable=lambda roles: [r.value for r in roles]),
                  default=UserRole.USER, nullable=False, index=True)
    is_verified = Column(Boolean, default=False, nullable=False)
    avatar_public_id = Column(String(255), nullable=True)
    avatar_url = Column(String(1024), nullable=True)
    login_attempts = Column(Integer, default=0, nullable=False)
    lock_until = Column(UTCDateTime, nullable=True)
    last_login = Column(UTCDateTime, nullable=True)
    password_changed_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, onupdate=utcnow)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role={self.role})>"

    @property
    def display_name(self) -> str:
        return display_name_from_email(self.email)

    @property
    def avatar(self) -> dict:
        return {"public_id": self.avatar_public_id, "url": self.avatar_url}

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def is_locked(self, now: Optional[datetime] = None) -> bool:
        """True while lock_until lies in the future, whatever the attempt counter says."""
        return bool(self.lock_until and self.lock_until > (now or utcnow()))
