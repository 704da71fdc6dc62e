"""
User profile and user management routes.
"""
from fastapi import APIRouter, Depends
import logging

from ..auth.dependencies import authenticate, get_auth_service, require_admin
from ..auth.identity import Authenticated
from ..auth.schemas import UserResponse
from ..auth.service import AuthService
from ..core.pagination import PageParams
from ..core.responses import success_body
from .schemas import UpdateAvatar, UpdatePassword, UpdateUserInfo, UpdateUserRole
from .service import UserService

# Set up logging
logger = logging.getLogger(__name__)

router = APIRouter()


def get_user_service(auth: AuthService = Depends(get_auth_service)) -> UserService:
    return UserService(auth)


# ============================================================================
# PROFILE ROUTES (every authenticated user)
# ============================================================================

@router.get("/me", summary="Current User")
async def me_route(
    identity: Authenticated = Depends(authenticate),
    users: UserService = Depends(get_user_service),
):
    user = users.get_user(identity.user_id)
    return success_body("User retrieved successfully", UserResponse.model_validate(user), key="user")


@router.put("/update-info", summary="Update Profile")
async def update_info_route(
    payload: UpdateUserInfo,
    identity: Authenticated = Depends(authenticate),
    users: UserService = Depends(get_user_service),
):
    user = await users.update_info(identity.user_id, email=payload.email)
    return success_body("User updated successfully", UserResponse.model_validate(user), key="user")


@router.put("/update-password", summary="Change Password")
async def update_password_route(
    payload: UpdatePassword,
    identity: Authenticated = Depends(authenticate),
    users: UserService = Depends(get_user_service),
):
    user = await users.update_password(identity.user_id, payload.old_password, payload.new_password)
    return success_body("Password updated successfully", UserResponse.model_validate(user), key="user")


@router.put("/update-avatar", summary="Change Profile Picture")
async def update_avatar_route(
    payload: UpdateAvatar,
    identity: Authenticated = Depends(authenticate),
    users: UserService = Depends(get_user_service),
):
    user = await users.update_avatar(identity.user_id, payload.avatar)
    return success_body("Avatar updated successfully", UserResponse.model_validate(user), key="user")


# ============================================================================
# ADMIN ROUTES
# ============================================================================

@router.get("/all-users", summary="List Users (admin only)")
async def all_users_route(
    page_params: PageParams = Depends(),
    admin: Authenticated = Depends(require_admin),
    users: UserService = Depends(get_user_service),
):
    page = users.list_users(page_params)
    return success_body("Users retrieved successfully", page)


@router.put("/update-role", summary="Change User Role (admin only)")
async def update_role_route(
    payload: UpdateUserRole,
    admin: Authenticated = Depends(require_admin),
    users: UserService = Depends(get_user_service),
):
    user = await users.update_role(payload.email, payload.role)
    logger.info(f"Admin {admin.user_id} changed role of {user.id}")
    return success_body("User role updated successfully", UserResponse.model_validate(user), key="user")


@router.delete("/delete/{user_id}", summary="Delete User (admin only)")
async def delete_user_route(
    user_id: str,
    admin: Authenticated = Depends(require_admin),
    users: UserService = Depends(get_user_service),
):
    await users.delete_user(user_id)
    logger.info(f"Admin {admin.user_id} deleted user {user_id}")
    return success_body("User deleted successfully")


@router.get("/{user_id}", summary="User Profile")
async def user_profile_route(
    user_id: str,
    identity: Authenticated = Depends(authenticate),
    users: UserService = Depends(get_user_service),
):
    user = users.get_user(user_id)
    return success_body("User retrieved successfully", UserResponse.model_validate(user), key="user")
