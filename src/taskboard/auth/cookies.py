"""Auth cookie handling.

All Set-Cookie operations for auth go through this module so that the
attributes used to set a cookie and to clear it can never drift apart:
a browser only overwrites a cookie whose name, path and domain match.
"""

from typing import Optional

from starlette.requests import Request
from starlette.responses import Response

from taskboard.auth.tokens import TokenIssuer
from taskboard.config import settings


def _cookie_attrs() -> dict:
    return {
        "path": settings.cookie_path,
        "secure": settings.cookie_secure,
        "httponly": True,
        "samesite": "strict",
    }


def set_auth_cookies(
    response: Response,
    access_token: str,
    refresh_token: str,
    issuer: TokenIssuer,
) -> None:
    """Attach access + refresh cookies, each living as long as its token."""
    response.set_cookie(
        settings.access_cookie_name,
        access_token,
        max_age=int(issuer.access_ttl.total_seconds()),
        **_cookie_attrs(),
    )
    response.set_cookie(
        settings.refresh_cookie_name,
        refresh_token,
        max_age=int(issuer.refresh_ttl.total_seconds()),
        **_cookie_attrs(),
    )


def clear_auth_cookies(response: Response) -> None:
    """Expire both auth cookies using the exact attributes they were set with."""
    for name in (settings.access_cookie_name, settings.refresh_cookie_name):
        response.delete_cookie(name, **_cookie_attrs())


def read_access_token(request: Request) -> Optional[str]:
    return request.cookies.get(settings.access_cookie_name) or None


def read_refresh_token(request: Request) -> Optional[str]:
    return request.cookies.get(settings.refresh_cookie_name) or None
