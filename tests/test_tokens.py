"""Token issuer tests — access token claims, expiry, refresh token shape."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from taskboard.auth.tokens import (
    InvalidTokenError,
    TokenExpiredError,
    TokenIssuer,
)
from taskboard.config import Settings
from taskboard.errors import INVALID_TOKEN, TOKEN_EXPIRED


@pytest.fixture
def config():
    return Settings(
        environment="test",
        jwt_secret="unit-test-secret-that-is-long-enough",
        access_token_expire_minutes=15,
        refresh_token_expire_days=7,
    )


@pytest.fixture
def issuer(config):
    return TokenIssuer(config)


def test_access_token_round_trip(issuer):
    token = issuer.issue_access_token(42, "a@example.com", "alice")
    claims = issuer.verify_access_token(token)
    assert claims.user_id == 42
    assert claims.email == "a@example.com"
    assert claims.username == "alice"
    assert claims.expires_at - claims.issued_at == timedelta(minutes=15)


def test_default_lifetimes(issuer):
    assert issuer.access_ttl == timedelta(minutes=15)
    assert issuer.refresh_ttl == timedelta(days=7)


def test_one_second_token_accepted_then_expired(config):
    """Issued with a 1s lifetime: valid at t=0, TOKEN_EXPIRED at t=2s."""
    now = [datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)]
    issuer = TokenIssuer(config, clock=lambda: now[0])
    token = issuer.issue_access_token(1, "a@example.com", "a", expires_in=timedelta(seconds=1))

    assert issuer.verify_access_token(token).user_id == 1

    now[0] += timedelta(seconds=2)
    with pytest.raises(TokenExpiredError) as exc:
        issuer.verify_access_token(token)
    assert exc.value.reason == TOKEN_EXPIRED


def test_expiry_follows_issuer_clock_not_wall_clock(config):
    """A token minted far in the past is still fresh for an issuer living then."""
    then = datetime(2020, 6, 1, 8, 0, tzinfo=timezone.utc)
    issuer = TokenIssuer(config, clock=lambda: then)
    token = issuer.issue_access_token(7, "b@example.com", "b")

    claims = issuer.verify_access_token(token)
    assert claims.issued_at == then

    with pytest.raises(TokenExpiredError):
        TokenIssuer(config).verify_access_token(token)


def test_wrong_signature_is_invalid(issuer, config):
    other = TokenIssuer(config.model_copy(update={"jwt_secret": "a-different-secret-entirely"}))
    token = other.issue_access_token(1, "a@example.com", "a")
    with pytest.raises(InvalidTokenError) as exc:
        issuer.verify_access_token(token)
    assert exc.value.reason == INVALID_TOKEN


def test_malformed_token_is_invalid(issuer):
    with pytest.raises(InvalidTokenError):
        issuer.verify_access_token("not.a.jwt")


def test_non_access_token_rejected(issuer, config):
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"sub": "1", "type": "refresh", "iat": now, "exp": now + timedelta(minutes=5)},
        config.jwt_secret,
        algorithm=config.jwt_algorithm,
    )
    with pytest.raises(InvalidTokenError):
        issuer.verify_access_token(token)


def test_expired_is_distinct_from_invalid(issuer):
    assert not issubclass(TokenExpiredError, InvalidTokenError)
    assert not issubclass(InvalidTokenError, TokenExpiredError)


def test_refresh_tokens_are_opaque_and_unique(issuer):
    a = issuer.issue_refresh_token()
    b = issuer.issue_refresh_token()
    assert a != b
    assert len(a) == 80  # 40 bytes, hex encoded
    int(a, 16)
    with pytest.raises(InvalidTokenError):
        issuer.verify_access_token(a)


def test_missing_secret_fails_construction(config):
    with pytest.raises(ValueError):
        TokenIssuer(config.model_copy(update={"jwt_secret": ""}))
