"""
FastAPI dependencies for authentication and authorization.

`authenticate` is the per-request gate: it verifies the access token,
silently renews an expired one from the refresh token, and requires a live
session snapshot before attaching the identity to `request.state.identity`.
`require_role` runs after it and only inspects the attached role.
"""
import logging
from datetime import timedelta
from typing import Optional

from fastapi import Depends, Request, Response
from sqlalchemy.orm import Session

from ..config import Settings
from ..core.cloudinary import MediaStore
from ..core.security import ACCESS_TOKEN, PasswordHasher, TokenIssuer
from ..core.session_cache import SessionStore
from ..database import get_db
from .cookies import ACCESS_COOKIE, REFRESH_COOKIE, set_access_cookie
from .exceptions import (
    InvalidTokenException,
    RoleDeniedException,
    SessionExpiredException,
    UnauthenticatedException,
)
from .identity import Anonymous, Authenticated, Identity, identity_from_snapshot
from .lockout import LockoutPolicy
from .models import UserRole
from .service import AuthService

# Set up logging
logger = logging.getLogger(__name__)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def get_media_store(request: Request) -> MediaStore:
    return request.app.state.media_store


def get_session_store(request: Request) -> SessionStore:
    settings = get_settings(request)
    return SessionStore(request.app.state.session_cache, settings.session_lifetime_seconds)


def get_lockout_policy(request: Request) -> LockoutPolicy:
    settings = get_settings(request)
    return LockoutPolicy(
        max_attempts=settings.max_login_attempts,
        lock_duration=timedelta(minutes=settings.lock_duration_minutes),
        clock=request.app.state.clock,
    )


def get_auth_service(
    request: Request,
    db: Session = Depends(get_db),
    sessions: SessionStore = Depends(get_session_store),
    lockout: LockoutPolicy = Depends(get_lockout_policy),
) -> AuthService:
    return AuthService(
        db=db,
        sessions=sessions,
        hasher=get_password_hasher(request),
        tokens=get_token_issuer(request),
        lockout=lockout,
        media=get_media_store(request),
        settings=get_settings(request),
    )


def _bearer(value: Optional[str]) -> Optional[str]:
    if value and value.lower().startswith("bearer "):
        return value[7:].strip() or None
    return None


def extract_access_token(request: Request) -> Optional[str]:
    """Access token from the access-token header, a Bearer header or the cookie."""
    return (
        request.headers.get("access-token")
        or _bearer(request.headers.get("authorization"))
        or request.cookies.get(ACCESS_COOKIE)
    )


def extract_refresh_token(request: Request) -> Optional[str]:
    return request.headers.get("refresh-token") or request.cookies.get(REFRESH_COOKIE)


async def authenticate(
    request: Request,
    response: Response,
    service: AuthService = Depends(get_auth_service),
) -> Authenticated:
    """
    Resolve the identity of the caller or fail with 401.

    Returns:
        Authenticated: identity rebuilt from the live session snapshot

    Raises:
        UnauthenticatedException: no token, bad token, failed renewal or no session
    """
    token = extract_access_token(request)
    if not token:
        raise UnauthenticatedException()

    try:
        claims = service.tokens.verify(token, ACCESS_TOKEN)
    except InvalidTokenException as exc:
        if not exc.expired:
            unverified = TokenIssuer.decode_unverified(token) or {}
            logger.warning(f"Rejected access token (claimed user {unverified.get('id')}): {exc.detail}")
            raise UnauthenticatedException("Access token is not valid")

        refresh_token = extract_refresh_token(request)
        if not refresh_token:
            raise UnauthenticatedException()
        try:
            renewed = await service.refresh(refresh_token)
        except (InvalidTokenException, SessionExpiredException) as renew_exc:
            logger.info(f"Silent token renewal failed: {renew_exc.detail}")
            raise UnauthenticatedException()

        set_access_cookie(response, renewed.access_token, service.settings)
        identity = identity_from_snapshot(renewed.snapshot)
    else:
        snapshot = await service.sessions.read(claims.user_id)
        if snapshot is None:
            logger.info(f"Access token for user {claims.user_id} has no live session")
            raise UnauthenticatedException()
        identity = identity_from_snapshot(snapshot)

    request.state.identity = identity
    return identity


async def optional_identity(
    request: Request,
    response: Response,
    service: AuthService = Depends(get_auth_service),
) -> Identity:
    """Like authenticate, but anonymous callers get Anonymous instead of a 401."""
    try:
        return await authenticate(request, response, service)
    except UnauthenticatedException:
        identity = Anonymous()
        request.state.identity = identity
        return identity


def require_role(*allowed_roles: UserRole):
    """
    Dependency factory to require specific roles.

    Args:
        allowed_roles: Roles that are allowed access

    Returns:
        Dependency returning the authenticated identity
    """
    async def role_checker(identity: Authenticated = Depends(authenticate)) -> Authenticated:
        if identity.role not in allowed_roles:
            logger.warning(f"Role {identity.role.value} denied for user {identity.user_id}")
            raise RoleDeniedException(identity.role.value)
        return identity
    return role_checker


# Convenience dependencies for specific roles
require_admin = require_role(UserRole.ADMIN)
require_user_or_admin = require_role(UserRole.USER, UserRole.ADMIN)
