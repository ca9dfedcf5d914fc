"""Auth API — registration, login, refresh, logout, current user.

Learn: Routes for the session lifecycle:
- POST /auth/register → create a user, start a session (201)
- POST /auth/login → email/password → new session
- POST /auth/refresh → refresh cookie → rotated session
- POST /auth/logout → forget refresh token, clear cookies
- GET /auth/me → current user profile (requires access token)

Every successful register/login/refresh sets both auth cookies.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.auth.cookies import (
    clear_auth_cookies,
    read_refresh_token,
    set_auth_cookies,
)
from taskboard.auth.dependencies import CurrentIdentity, get_current_user
from taskboard.auth.tokens import TokenIssuer, get_token_issuer
from taskboard.config import settings
from taskboard.db.engine import get_db
from taskboard.schemas.auth import (
    AuthResponse,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    UserRead,
)
from taskboard.services.auth_service import AuthResult, AuthService

logger = structlog.get_logger()

router = APIRouter(prefix="/auth")


def _auth_svc(
    db: AsyncSession = Depends(get_db),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> AuthService:
    return AuthService(db, issuer)


def _session_response(
    response: Response,
    result: AuthResult,
    issuer: TokenIssuer,
    message: str,
) -> AuthResponse:
    set_auth_cookies(response, result.access_token, result.refresh_token, issuer)
    body = AuthResponse(message=message, user=UserRead.model_validate(result.user))
    if settings.tokens_in_body:
        body.access_token = result.access_token
        body.refresh_token = result.refresh_token
    return body


# ─── Register ────────────────────────────────────────────


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    body: RegisterRequest,
    response: Response,
    svc: AuthService = Depends(_auth_svc),
):
    """Create a new user account and sign it in."""
    result = await svc.register(body.username, body.email, body.password)
    return _session_response(
        response, result, svc.issuer, "User registered successfully"
    )


# ─── Login ───────────────────────────────────────────────


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    response: Response,
    svc: AuthService = Depends(_auth_svc),
):
    """Login with email and password."""
    result = await svc.login(body.email, body.password)
    return _session_response(response, result, svc.issuer, "Login successful")


# ─── Refresh ─────────────────────────────────────────────


@router.post("/refresh", response_model=AuthResponse)
async def refresh(
    request: Request,
    response: Response,
    body: Optional[RefreshRequest] = None,
    svc: AuthService = Depends(_auth_svc),
):
    """Exchange the refresh cookie for a new access + refresh token pair.

    Learn: The cookie wins; a JSON body is accepted only for clients
    that cannot hold cookies. The presented token stops working as soon
    as this call succeeds.
    """
    token = read_refresh_token(request) or (body.refresh_token if body else None)
    result = await svc.refresh(token)
    return _session_response(
        response, result, svc.issuer, "Token refreshed successfully"
    )


# ─── Logout ──────────────────────────────────────────────


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    svc: AuthService = Depends(_auth_svc),
):
    """Clear the stored refresh token and both cookies.

    Learn: Access tokens are verified without the database, so one that
    was issued before logout stays valid until it expires.
    """
    try:
        await svc.logout(read_refresh_token(request))
    except SQLAlchemyError as e:
        logger.warning("auth.logout_db_error", error=type(e).__name__)
    clear_auth_cookies(response)
    return {"message": "Logged out successfully"}


# ─── Current user ────────────────────────────────────────


@router.get("/me", response_model=UserRead)
async def get_me(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: AuthService = Depends(_auth_svc),
):
    """Get the current authenticated user's profile."""
    return await svc.get_profile(identity.user_id)
