"""
Identity resolved for a request, and the session snapshot it is built from.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from .models import User, UserRole


@dataclass(frozen=True)
class Anonymous:
    """No valid credentials were presented."""
    is_authenticated: bool = field(default=False, init=False)


@dataclass(frozen=True)
class Authenticated:
    """A user whose token verified and whose session is live."""
    user_id: str
    email: str
    role: UserRole
    is_verified: bool = False
    avatar: Dict[str, Optional[str]] = field(default_factory=dict)
    display_name: Optional[str] = None
    is_authenticated: bool = field(default=True, init=False)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


Identity = Union[Anonymous, Authenticated]


def snapshot_from_user(user: User) -> Dict[str, Any]:
    """Serializable view of a user stored as the session record. Never carries the hash."""
    return {
        "id": user.id,
        "email": user.email,
        "role": user.role.value if isinstance(user.role, UserRole) else user.role,
        "is_verified": bool(user.is_verified),
        "avatar": user.avatar,
        "display_name": user.display_name,
        "last_login": user.last_login.isoformat() if user.last_login else None,
    }


def identity_from_snapshot(snapshot: Dict[str, Any]) -> Authenticated:
    return Authenticated(
        user_id=str(snapshot["id"]),
        email=snapshot.get("email", ""),
        role=UserRole(snapshot.get("role", UserRole.USER.value)),
        is_verified=bool(snapshot.get("is_verified")),
        avatar=snapshot.get("avatar") or {},
        display_name=snapshot.get("display_name"),
    )
