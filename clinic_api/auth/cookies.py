"""
Token cookies.

Both cookies are http-only. Production adds Secure and SameSite=strict;
other environments use SameSite=lax over plain HTTP.
"""
from fastapi import Response

from ..config import Settings

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"


def _cookie_options(settings: Settings) -> dict:
    return {
        "httponly": True,
        "secure": settings.is_production,
        "samesite": "strict" if settings.is_production else "lax",
        "path": "/",
    }


def set_access_cookie(response: Response, access_token: str, settings: Settings) -> None:
    max_age = settings.access_token_lifetime_minutes * 60
    response.set_cookie(ACCESS_COOKIE, access_token, max_age=max_age, expires=max_age,
                        **_cookie_options(settings))


def set_refresh_cookie(response: Response, refresh_token: str, settings: Settings) -> None:
    max_age = settings.refresh_token_lifetime_days * 24 * 60 * 60
    response.set_cookie(REFRESH_COOKIE, refresh_token, max_age=max_age, expires=max_age,
                        **_cookie_options(settings))


def set_auth_cookies(response: Response, access_token: str, refresh_token: str, settings: Settings) -> None:
    set_access_cookie(response, access_token, settings)
    set_refresh_cookie(response, refresh_token, settings)


def clear_auth_cookies(response: Response, settings: Settings) -> None:
    """Overwrite both cookies with an empty value that expires immediately."""
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.set_cookie(name, "", max_age=0, expires=0, **_cookie_options(settings))
