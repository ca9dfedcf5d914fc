"""Access and refresh token issuance.

Learn: Two very different credentials:
- Access token: short-lived (15min) JWT, verified statelessly by signature
  and expiry. Carries the user id, email and username.
- Refresh token: long-lived (7 days) opaque random string. It proves
  nothing on its own — it is valid only while it equals the value stored
  on a user row, and is replaced on every use.

The issuer is built once from Settings and passed around explicitly,
so tests can construct one with a short lifetime or a fake clock.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt

from taskboard.config import Settings, settings
from taskboard.errors import INVALID_TOKEN, TOKEN_EXPIRED

REFRESH_TOKEN_BYTES = 40


class TokenError(Exception):
    """Raised when token verification fails."""

    reason = INVALID_TOKEN


class TokenExpiredError(TokenError):
    """Signature is fine but the token is past its exp claim — try refresh."""

    reason = TOKEN_EXPIRED


class InvalidTokenError(TokenError):
    """Malformed token, bad signature, or not an access token — re-login."""

    reason = INVALID_TOKEN


@dataclass(frozen=True)
class AccessClaims:
    user_id: int
    email: str
    username: str
    issued_at: datetime
    expires_at: datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenIssuer:
    """Mints and verifies tokens using a fixed secret and lifetimes."""

    def __init__(
        self,
        config: Settings,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if not config.jwt_secret:
            raise ValueError("JWT secret is not configured")
        self._secret = config.jwt_secret
        self._algorithm = config.jwt_algorithm
        self.access_ttl = timedelta(minutes=config.access_token_expire_minutes)
        self.refresh_ttl = timedelta(days=config.refresh_token_expire_days)
        self._clock = clock or _utcnow

    def issue_access_token(
        self,
        user_id: int,
        email: str,
        username: str,
        expires_in: Optional[timedelta] = None,
    ) -> str:
        """Create a signed JWT access token."""
        now = self._clock()
        payload = {
            "sub": str(user_id),
            "email": email,
            "username": username,
            "type": "access",
            "iat": now,
            "exp": now + (expires_in if expires_in is not None else self.access_ttl),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def issue_refresh_token(self) -> str:
        """Create an opaque refresh token (40 random bytes, hex encoded)."""
        return secrets.token_hex(REFRESH_TOKEN_BYTES)

    def verify_access_token(self, token: str) -> AccessClaims:
        """Verify signature and expiry, returning the decoded claims.

        Expiry is judged by the issuer's clock, the same one that stamped
        iat and exp. Raises TokenExpiredError or InvalidTokenError.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={
                    "require": ["exp", "iat", "sub"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(f"Invalid token: {e}")

        try:
            exp = int(payload["exp"])
            iat = int(payload["iat"])
        except (TypeError, ValueError):
            raise InvalidTokenError("Invalid exp or iat claim")
        if exp <= self._clock().timestamp():
            raise TokenExpiredError("Token has expired")

        if payload.get("type") != "access":
            raise InvalidTokenError("Not an access token")
        try:
            user_id = int(payload["sub"])
        except (TypeError, ValueError):
            raise InvalidTokenError("Invalid subject claim")

        return AccessClaims(
            user_id=user_id,
            email=payload.get("email", ""),
            username=payload.get("username", ""),
            issued_at=datetime.fromtimestamp(iat, tz=timezone.utc),
            expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
        )


_issuer: Optional[TokenIssuer] = None


def get_token_issuer() -> TokenIssuer:
    """FastAPI dependency — the process-wide issuer, built on first use."""
    global _issuer
    if _issuer is None:
        _issuer = TokenIssuer(settings)
    return _issuer
