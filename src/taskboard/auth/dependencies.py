"""FastAPI auth dependencies — the request gate.

Learn: These are used as Depends() in route handlers to extract and
validate the current identity from the request. The gate is stateless:
it verifies the access token's signature and expiry and never talks to
the database, so a logged-out access token keeps working until it
expires on its own (15 minutes by default).

Token sources, in order:
1. The access-token cookie (browsers)
2. Authorization: Bearer <token> header (API clients, CLI)
"""

from typing import Optional

import structlog
from fastapi import Depends, Header, Request

from taskboard.auth.cookies import read_access_token
from taskboard.auth.tokens import (
    TokenExpiredError,
    TokenError,
    TokenIssuer,
    get_token_issuer,
)
from taskboard.errors import (
    NO_TOKEN,
    TOKEN_EXPIRED,
    AuthenticationError,
    AuthorizationError,
)

logger = structlog.get_logger()


class CurrentIdentity:
    """The authenticated user making the request.

    Learn: Populated once by the gate and passed to handlers as a
    parameter. Handlers use identity.user_id instead of trusting any
    user id supplied by the client.
    """

    def __init__(self, user_id: int, email: str = "", username: str = ""):
        self.user_id = user_id
        self.email = email
        self.username = username

    def __repr__(self) -> str:
        return f"CurrentIdentity(user_id={self.user_id!r}, email={self.email!r})"


def _extract_token(request: Request, authorization: Optional[str]) -> Optional[str]:
    token = read_access_token(request)
    if token:
        return token
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:].strip() or None
    return None


async def get_current_user_optional(
    request: Request,
    authorization: Optional[str] = Header(None),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> Optional[CurrentIdentity]:
    """Extract current identity (optional — returns None if no token).

    A token that is present but invalid is still rejected.
    """
    token = _extract_token(request, authorization)
    if not token:
        return None
    return _authenticate_jwt(token, issuer)


async def get_current_user(
    identity: Optional[CurrentIdentity] = Depends(get_current_user_optional),
) -> CurrentIdentity:
    """Extract current identity (required — 401 NO_TOKEN if absent)."""
    if not identity:
        raise AuthenticationError("Authentication required", code=NO_TOKEN)
    return identity


def require_path_user(
    user_id: int,
    identity: CurrentIdentity = Depends(get_current_user),
) -> CurrentIdentity:
    """Path-scoped routes: the {user_id} in the URL must be the caller."""
    if user_id != identity.user_id:
        logger.info(
            "auth.path_user_mismatch",
            path_user_id=user_id,
            user_id=identity.user_id,
        )
        raise AuthorizationError(
            "Forbidden: You do not have permission to access this resource"
        )
    return identity


def _authenticate_jwt(token: str, issuer: TokenIssuer) -> CurrentIdentity:
    """Verify the access token, mapping failures to 401 reason codes."""
    try:
        claims = issuer.verify_access_token(token)
    except TokenExpiredError as e:
        logger.info("auth.gate_rejected", reason=TOKEN_EXPIRED)
        # Tell the client to go through /auth/refresh; the gate never mints tokens
        raise AuthenticationError(
            str(e), code=TOKEN_EXPIRED, headers={"X-Token-Expired": "true"}
        )
    except TokenError as e:
        logger.info("auth.gate_rejected", reason=e.reason)
        raise AuthenticationError(str(e), code=e.reason)

    return CurrentIdentity(
        user_id=claims.user_id,
        email=claims.email,
        username=claims.username,
    )
