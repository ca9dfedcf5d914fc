"""Auth service — registration, login, refresh rotation and logout.

Learn: The service owns the credential state machine; routes only move
cookies and translate results to HTTP.

  register/login → mint access + refresh, store refresh on the user
  refresh        → look up user BY refresh token, mint both again,
                   overwrite the stored value (the old one dies)
  logout         → clear the stored refresh token (best effort)

Exactly one refresh token is valid per user at any time. A rotated-out
token and a token that never existed fail the same way, so callers
cannot probe which tokens were once valid.
"""

from dataclasses import dataclass
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.auth.password import hash_password, needs_rehash, verify_password
from taskboard.auth.tokens import TokenIssuer
from taskboard.db.models import User
from taskboard.errors import (
    INVALID_CREDENTIALS,
    INVALID_REFRESH_TOKEN,
    NO_TOKEN,
    AuthenticationError,
    ConflictError,
    NotFoundError,
)

logger = structlog.get_logger()

_DUMMY_HASH: Optional[str] = None


def _dummy_hash() -> str:
    global _DUMMY_HASH
    if _DUMMY_HASH is None:
        _DUMMY_HASH = hash_password("not-a-real-password")
    return _DUMMY_HASH


@dataclass
class AuthResult:
    """A freshly authenticated session."""
    user: User
    access_token: str
    refresh_token: str


class AuthService:
    """Business logic for credentials and sessions."""

    def __init__(self, db: AsyncSession, issuer: TokenIssuer):
        self.db = db
        self.issuer = issuer

    # ─── Lookups ─────────────────────────────────────────

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalars().first()

    async def get_by_refresh_token(self, token: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.refresh_token == token)
        )
        return result.scalars().first()

    # ─── Register ────────────────────────────────────────

    async def register(self, username: str, email: str, password: str) -> AuthResult:
        """Create a user and start its first session."""
        email = email.lower()
        if await self.get_by_email(email):
            raise ConflictError("User already exists with this email")

        user = User(username=username, email=email, password=password)
        self.db.add(user)
        try:
            await self.db.flush()  # get the id; also surfaces a racing duplicate
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("User already exists with this email")

        result = self._start_session(user)
        await self.db.commit()
        logger.info("auth.registered", user_id=user.id)
        return result

    # ─── Login ───────────────────────────────────────────

    async def login(self, email: str, password: str) -> AuthResult:
        """Check credentials; unknown email and wrong password look identical."""
        user = await self.get_by_email(email.lower())
        # Hash even for unknown emails so both failures take the same time
        stored = user.password_hash if user else _dummy_hash()
        if not verify_password(password, stored) or not user:
            logger.info("auth.login_failed", reason=INVALID_CREDENTIALS)
            raise AuthenticationError(
                "Invalid email or password", code=INVALID_CREDENTIALS
            )

        # Re-hash with the current work factor when it has changed
        if needs_rehash(user.password_hash):
            user.password_hash = hash_password(password)

        result = self._start_session(user)
        await self.db.commit()
        logger.info("auth.login", user_id=user.id)
        return result

    # ─── Refresh ─────────────────────────────────────────

    async def refresh(self, refresh_token: Optional[str]) -> AuthResult:
        """Rotate: the presented token is consumed and replaced."""
        if not refresh_token:
            raise AuthenticationError("Refresh token not provided", code=NO_TOKEN)

        user = await self.get_by_refresh_token(refresh_token)
        if not user:
            logger.info("auth.refresh_rejected")
            raise AuthenticationError(
                "Invalid refresh token", code=INVALID_REFRESH_TOKEN
            )

        result = self._start_session(user)
        await self.db.commit()
        logger.info("auth.refreshed", user_id=user.id)
        return result

    # ─── Logout ──────────────────────────────────────────

    async def logout(self, refresh_token: Optional[str]) -> None:
        """Forget the stored refresh token if it is still the active one."""
        if not refresh_token:
            return
        user = await self.get_by_refresh_token(refresh_token)
        if user:
            user.refresh_token = None
            await self.db.commit()
            logger.info("auth.logout", user_id=user.id)

    # ─── Profile ─────────────────────────────────────────

    async def get_profile(self, user_id: int) -> User:
        user = await self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    # ─── Internals ───────────────────────────────────────

    def _start_session(self, user: User) -> AuthResult:
        access = self.issuer.issue_access_token(user.id, user.email, user.username)
        refresh = self.issuer.issue_refresh_token()
        user.refresh_token = refresh
        return AuthResult(user=user, access_token=access, refresh_token=refresh)
