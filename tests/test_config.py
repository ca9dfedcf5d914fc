"""Settings validation tests."""

import pytest
from pydantic import ValidationError

from taskboard.config import DEFAULT_JWT_SECRET, Settings


def test_production_requires_real_secret():
    with pytest.raises(ValidationError):
        Settings(environment="production", jwt_secret=DEFAULT_JWT_SECRET)
    with pytest.raises(ValidationError):
        Settings(environment="production", jwt_secret="")


def test_production_enables_secure_cookies():
    s = Settings(environment="production", jwt_secret="a-real-production-secret")
    assert s.is_production
    assert s.cookie_secure


def test_development_allows_default_secret():
    s = Settings(environment="development", jwt_secret=DEFAULT_JWT_SECRET)
    assert not s.cookie_secure
    assert s.access_token_expire_minutes == 15
    assert s.refresh_token_expire_days == 7
    assert s.cookie_path == "/"
