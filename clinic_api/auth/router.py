"""
Authentication routes for the clinic API.
"""
from fastapi import APIRouter, Depends, Request, Response, status
import logging

from ..config import Settings
from ..core.responses import success_body
from .cookies import clear_auth_cookies, set_access_cookie, set_auth_cookies
from .dependencies import (
    extract_refresh_token,
    get_auth_service,
    get_settings,
    optional_identity,
    require_admin,
)
from .exceptions import InvalidTokenException
from .identity import Authenticated, Identity
from .schemas import SocialAuthRequest, UserLogin, UserRegistration, UserResponse
from .service import AuthService, LoginResult

# Set up logging
logger = logging.getLogger(__name__)

# Create API router
router = APIRouter()


def _login_body(result: LoginResult, settings: Settings, message: str) -> dict:
    extra = {}
    # Tokens are echoed in the body only outside production
    if not settings.is_production:
        extra = {"accessToken": result.access_token, "refreshToken": result.refresh_token}
    return success_body(message, UserResponse.model_validate(result.user), key="user", **extra)


@router.post("/registration", status_code=status.HTTP_201_CREATED, summary="User Registration")
async def registration_route(
    registration: UserRegistration,
    service: AuthService = Depends(get_auth_service),
):
    """
    Self-registration endpoint.

    The first account ever registered becomes an admin, later ones are users.

    Raises:
        PasswordMismatchException / EmailAlreadyExistsException (400)
    """
    user = await service.register(
        email=registration.email,
        password=registration.password,
        confirm_password=registration.confirm_password,
        avatar=registration.avatar.model_dump() if registration.avatar else None,
    )
    message = "Admin account created successfully!" if user.is_admin else "User registered successfully!"
    return success_body(message, UserResponse.model_validate(user), key="user")


@router.post("/login", summary="User Login")
async def login_route(
    login_data: UserLogin,
    response: Response,
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    """
    Login endpoint. Sets the access and refresh cookies.

    Raises:
        InvalidCredentialsException (401), AccountLockedException (423)
    """
    result = await service.login(login_data.email, login_data.password)
    set_auth_cookies(response, result.access_token, result.refresh_token, settings)
    return _login_body(result, settings, "Login successful")


@router.get("/logout", summary="User Logout")
async def logout_route(
    response: Response,
    identity: Identity = Depends(optional_identity),
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    """
    Clear both cookies and revoke the session snapshot.

    Logging out without a live session still succeeds.
    """
    await service.logout(getattr(identity, "user_id", None))
    clear_auth_cookies(response, settings)
    return success_body("Logged out successfully")


@router.post("/refresh", summary="Refresh Access Token")
async def refresh_route(
    request: Request,
    response: Response,
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    """
    Mint a new access token from the refresh token (header or cookie).

    Raises:
        InvalidTokenException (401), SessionExpiredException (401)
    """
    refresh_token = extract_refresh_token(request)
    if not refresh_token:
        raise InvalidTokenException("Refresh token is missing")
    result = await service.refresh(refresh_token)
    set_access_cookie(response, result.access_token, settings)
    return success_body("Token refreshed successfully", {"token": result.access_token})


@router.post("/social-auth", summary="Social Login")
async def social_auth_route(
    payload: SocialAuthRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    """Login-or-register for an identity already asserted by a social provider."""
    result = await service.social_auth(
        payload.email,
        avatar=payload.avatar.model_dump() if payload.avatar else None,
    )
    set_auth_cookies(response, result.access_token, result.refresh_token, settings)
    return _login_body(result, settings, "Login successful")


@router.post("/create-admin", status_code=status.HTTP_201_CREATED, summary="Create Admin (admin only)")
async def create_admin_route(
    registration: UserRegistration,
    admin: Authenticated = Depends(require_admin),
    service: AuthService = Depends(get_auth_service),
):
    """Existing admins can create further admin accounts."""
    user = await service.create_admin(
        email=registration.email,
        password=registration.password,
        confirm_password=registration.confirm_password,
    )
    logger.info(f"Admin {admin.user_id} created admin account {user.id}")
    return success_body("Admin user created successfully!", UserResponse.model_validate(user), key="user")
