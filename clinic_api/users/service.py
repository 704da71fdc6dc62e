"""
User management service.

Every mutation of a user that is logged in re-writes the session snapshot,
so the next request sees the new role, email or avatar. Deleting a user
revokes the session.
"""
import logging

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import IntegrityError

from ..auth.exceptions import EmailAlreadyExistsException
from ..auth.models import User, UserRole
from ..auth.service import AuthService
from ..core.cloudinary import MediaStoreError, is_external
from ..core.pagination import PageParams, paginate
from ..exceptions import NotFoundException, ValidationError
from ..auth.schemas import UserResponse

# Set up logging
logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, auth: AuthService):
        self.auth = auth
        self.db = auth.db

    def get_user(self, user_id: str) -> User:
        user = self.auth.find_by_id(user_id)
        if not user:
            raise NotFoundException("User not found")
        return user

    async def update_info(self, user_id: str, email: str = None) -> User:
        user = self.get_user(user_id)
        if email and email != user.email:
            existing = self.auth.find_by_email(email)
            if existing and existing.id != user_id:
                raise EmailAlreadyExistsException("Email already exists")
            user.email = email
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                raise EmailAlreadyExistsException("Email already exists")
            self.db.refresh(user)
            logger.info(f"User {user_id} changed email")
        await self.auth.refresh_session_snapshot(user)
        return user

    async def update_password(self, user_id: str, old_password: str, new_password: str) -> User:
        user = self.get_user(user_id)
        if not user.password_hash:
            raise ValidationError("Invalid user")

        matches = await run_in_threadpool(self.auth.hasher.verify, old_password, user.password_hash)
        if not matches:
            logger.warning(f"Password change refused for {user_id}: wrong old password")
            raise ValidationError("Invalid old password")

        self.auth.check_password_policy(new_password)
        await self.auth.set_password(user, new_password)
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"Password changed for user {user_id}")
        await self.auth.refresh_session_snapshot(user)
        return user

    async def update_avatar(self, user_id: str, avatar: str) -> User:
        user = self.get_user(user_id)
        media = self.auth.media

        if user.avatar_public_id and not is_external(user.avatar_public_id):
            try:
                await run_in_threadpool(media.destroy, user.avatar_public_id)
            except MediaStoreError:
                logger.warning(f"Could not delete old avatar {user.avatar_public_id}; continuing")

        try:
            uploaded = await run_in_threadpool(media.upload, avatar, "avatars")
        except MediaStoreError:
            raise ValidationError("Avatar upload failed")

        user.avatar_public_id = uploaded.public_id
        user.avatar_url = uploaded.url
        self.db.commit()
        self.db.refresh(user)
        await self.auth.refresh_session_snapshot(user)
        return user

    def list_users(self, page_params: PageParams):
        query = self.db.query(User).order_by(User.created_at.desc(), User.email)
        return paginate(query, page_params, UserResponse, items_key="users")

    async def update_role(self, email: str, role: UserRole) -> User:
        user = self.auth.find_by_email(email)
        if not user:
            raise NotFoundException("User not found")
        user.role = role
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"Role of user {user.id} set to {role.value}")
        await self.auth.refresh_session_snapshot(user)
        return user

    async def delete_user(self, user_id: str) -> None:
        user = self.get_user(user_id)
        public_id = user.avatar_public_id

        self.db.delete(user)
        self.db.commit()
        await self.auth.sessions.revoke(user_id)
        logger.info(f"User {user_id} deleted and session revoked")

        if public_id and not is_external(public_id):
            try:
                await run_in_threadpool(self.auth.media.destroy, public_id)
            except MediaStoreError:
                logger.warning(f"Could not delete avatar {public_id} of removed user {user_id}")
