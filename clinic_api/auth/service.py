"""
Authentication service layer for business logic.

Registration, login with lockout, logout, token renewal and social login.
Store, cache, hashing and token concerns are passed in so the same service
runs against Redis in production and in-memory fakes in tests.
"""
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import Settings
from ..core.cloudinary import (
    MediaStore,
    MediaStoreError,
    UploadedMedia,
    default_avatar_url,
    external_media,
)
from ..core.security import PasswordHasher, TokenIssuer, REFRESH_TOKEN
from ..core.session_cache import SessionStore
from ..database import utcnow
from ..exceptions import ValidationError
from .exceptions import (
    AccountLockedException,
    EmailAlreadyExistsException,
    InvalidCredentialsException,
    PasswordMismatchException,
    SessionExpiredException,
)
from .identity import snapshot_from_user
from .lockout import LockoutPolicy
from .models import User, UserRole

# Set up logging
logger = logging.getLogger(__name__)

STRONG_PASSWORD = re.compile(
    r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&#+\-_=])[A-Za-z\d@$!%*?&#+\-_=]{8,}$"
)


@dataclass
class LoginResult:
    access_token: str
    refresh_token: str
    user: User


@dataclass
class RefreshResult:
    access_token: str
    snapshot: Dict[str, Any]


def normalize_email(email: str) -> str:
    return email.strip().lower()


def password_policy_errors(password: str, production: bool) -> Optional[str]:
    """
    Check a new password against the policy of the current environment.

    Production requires 8+ characters with upper and lower case letters, a
    digit and a special character; other environments only a minimum length.
    """
    if production:
        if len(password) < 8:
            return "Password must be at least 8 characters long"
        if not STRONG_PASSWORD.match(password):
            return (
                "Password must contain at least one uppercase letter, one lowercase letter, "
                "one number, and one special character (@$!%*?&#+-_=)"
            )
        return None
    if len(password) < 6:
        return "Password must be at least 6 characters long"
    return None


class AuthService:
    """
    Authentication orchestrator.

    Args:
        db: Database session (credential store)
        sessions: Session snapshot store
        hasher: Password hasher
        tokens: Token issuer
        lockout: Failed-login lockout policy
        media: Avatar media store
        settings: Application settings
    """
    def __init__(
        self,
        db: Session,
        sessions: SessionStore,
        hasher: PasswordHasher,
        tokens: TokenIssuer,
        lockout: LockoutPolicy,
        media: MediaStore,
        settings: Settings,
    ):
        self.db = db
        self.sessions = sessions
        self.hasher = hasher
        self.tokens = tokens
        self.lockout = lockout
        self.media = media
        self.settings = settings

    # ------------------------------------------------------------------
    # credential store helpers
    # ------------------------------------------------------------------

    def find_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == normalize_email(email)).first()

    def find_by_id(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def check_password_policy(self, password: str) -> None:
        error = password_policy_errors(password, self.settings.is_production)
        if error:
            raise ValidationError("Validation error", errors=[error])

    async def set_password(self, user: User, password: str) -> None:
        """Hash a new password onto the user; only called when the password changes."""
        user.password_hash = await run_in_threadpool(self.hasher.hash, password)
        user.password_changed_at = utcnow()

    async def provision_default_avatar(
        self, email: str, folder: str = "avatars/defaults", kind: str = "default",
        background: str = "random",
    ) -> UploadedMedia:
        """
        Copy a generated avatar into the media store.

        When the upload fails the generated URL is referenced directly, so
        avatar problems never fail a registration.
        """
        url = default_avatar_url(email, background)
        local_part = email.split("@")[0]
        public_id = f"{kind}_{local_part}_{int(time.time() * 1000)}"
        try:
            return await run_in_threadpool(self.media.upload, url, folder, public_id)
        except MediaStoreError as e:
            logger.warning(f"Default avatar upload failed for {email}, using external URL: {str(e)}")
            return external_media(url, kind)

    def _persist_new_user(self, user: User) -> User:
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.warning(f"Registration failed: Email already registered {user.email}")
            raise EmailAlreadyExistsException()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(user)
        return user

    # ------------------------------------------------------------------
    # operations
    # ------------------------------------------------------------------

    async def register(
        self,
        email: str,
        password: str,
        confirm_password: str,
        avatar: Optional[Dict[str, str]] = None,
    ) -> User:
        """
        Register a new user.

        The first account ever created becomes an admin; every later one is
        a regular user.

        Raises:
            PasswordMismatchException: password and confirmation differ
            EmailAlreadyExistsException: email is already registered
            ValidationError: password violates the policy
        """
        if password != confirm_password:
            raise PasswordMismatchException()
        self.check_password_policy(password)

        email = normalize_email(email)
        if self.find_by_email(email):
            logger.warning(f"Registration failed: Email already registered {email}")
            raise EmailAlreadyExistsException()

        is_first_user = self.db.query(User).count() == 0

        if avatar:
            media = UploadedMedia(public_id=avatar["public_id"], url=avatar["url"])
        else:
            media = await self.provision_default_avatar(email)

        user = User(
            email=email,
            role=UserRole.ADMIN if is_first_user else UserRole.USER,
            is_verified=True,
            avatar_public_id=media.public_id,
            avatar_url=media.url,
            login_attempts=0,
        )
        await self.set_password(user, password)
        user = self._persist_new_user(user)

        if is_first_user:
            logger.info(f"First account registered, promoted to admin: {user.id} ({email})")
        else:
            logger.info(f"User registered: {user.id} ({email})")
        return user

    async def create_admin(self, email: str, password: str, confirm_password: str) -> User:
        """Create another admin account on behalf of an existing admin."""
        if password != confirm_password:
            raise PasswordMismatchException()
        self.check_password_policy(password)

        email = normalize_email(email)
        if self.find_by_email(email):
            raise EmailAlreadyExistsException()

        media = await self.provision_default_avatar(
            email, folder="avatars/admins", kind="admin", background="dc2626"
        )
        user = User(
            email=email,
            role=UserRole.ADMIN,
            is_verified=True,
            avatar_public_id=media.public_id,
            avatar_url=media.url,
            login_attempts=0,
        )
        await self.set_password(user, password)
        user = self._persist_new_user(user)
        logger.info(f"Admin account created: {user.id} ({email})")
        return user

    async def start_session(self, user: User) -> LoginResult:
        """Issue both tokens and (over)write the user's session snapshot."""
        access_token = self.tokens.issue_access_token(user.id)
        refresh_token = self.tokens.issue_refresh_token(user.id)
        await self.sessions.write(user.id, snapshot_from_user(user))
        return LoginResult(access_token=access_token, refresh_token=refresh_token, user=user)

    async def login(self, email: str, password: str) -> LoginResult:
        """
        Authenticate a user and open a session.

        Raises:
            InvalidCredentialsException: unknown email or wrong password
            AccountLockedException: too many failed attempts, lock still running
        """
        email = normalize_email(email)
        user = self.find_by_email(email)
        if not user:
            logger.warning(f"Login failed: Invalid credentials for {email}")
            raise InvalidCredentialsException()

        if self.lockout.is_locked(user):
            logger.warning(f"Login refused: Account locked for {email}")
            raise AccountLockedException()

        password_ok = await run_in_threadpool(self.hasher.verify, password, user.password_hash)
        if not password_ok:
            self.lockout.register_failure(self.db, user)
            logger.warning(f"Login failed: Invalid credentials for {email}")
            raise InvalidCredentialsException()

        self.lockout.register_success(self.db, user)
        result = await self.start_session(user)
        logger.info(f"Login successful: User {user.id} ({email})")
        return result

    async def logout(self, user_id: Optional[str]) -> None:
        """Drop the session snapshot. Logging out twice is not an error."""
        if user_id:
            await self.sessions.revoke(user_id)
            logger.info(f"Logout: session revoked for user {user_id}")

    async def refresh(self, refresh_token: str) -> RefreshResult:
        """
        Mint a new access token from a refresh token.

        The session snapshot is re-written so its time-to-live starts over.

        Raises:
            InvalidTokenException: signature, type or expiry check failed
            SessionExpiredException: no live session for the claimed user
        """
        claims = self.tokens.verify(refresh_token, REFRESH_TOKEN)
        snapshot = await self.sessions.read(claims.user_id)
        if snapshot is None:
            logger.info(f"Refresh refused: no live session for user {claims.user_id}")
            raise SessionExpiredException()

        await self.sessions.write(claims.user_id, snapshot)
        access_token = self.tokens.issue_access_token(claims.user_id)
        logger.info(f"Token refreshed for user {claims.user_id}")
        return RefreshResult(access_token=access_token, snapshot=snapshot)

    async def social_auth(self, email: str, avatar: Optional[Dict[str, str]] = None) -> LoginResult:
        """
        Login-or-register for an identity asserted by a social provider.

        The provider's proof is checked upstream; no password is involved.
        """
        email = normalize_email(email)
        user = self.find_by_email(email)
        if not user:
            if avatar:
                media = UploadedMedia(public_id=avatar["public_id"], url=avatar["url"])
            else:
                media = await self.provision_default_avatar(email)
            user = self._persist_new_user(User(
                email=email,
                role=UserRole.USER,
                is_verified=True,
                avatar_public_id=media.public_id,
                avatar_url=media.url,
                login_attempts=0,
            ))
            logger.info(f"Social auth registered new user {user.id} ({email})")
        elif self.lockout.is_locked(user):
            logger.warning(f"Social auth refused: Account locked for {email}")
            raise AccountLockedException()

        self.lockout.register_success(self.db, user)
        return await self.start_session(user)

    async def refresh_session_snapshot(self, user: User) -> None:
        """Re-write a live session after a profile change; never resurrects a closed one."""
        if await self.sessions.read(user.id) is not None:
            await self.sessions.write(user.id, snapshot_from_user(user))
