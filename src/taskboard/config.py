"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with TASKBOARD_ prefix.
Loaded once at import time; the resulting object is treated as immutable
and handed explicitly to the pieces that need it (token issuer, cookies).
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings

DEFAULT_JWT_SECRET = "change-me-in-production"


class Settings(BaseSettings):
    """All app configuration. Set via TASKBOARD_* env vars."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./taskboard.db"

    # Redis (rate limiting only; optional)
    redis_url: str = "redis://localhost:6379/0"

    # Auth
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 7
    bcrypt_rounds: int = 10

    # Cookies: the same path is used when setting and clearing
    cookie_path: str = "/"
    access_cookie_name: str = "access_token"
    refresh_cookie_name: str = "refresh_token"
    tokens_in_body: bool = True

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    # Rate limiting
    rate_limit_rpm: int = 100  # requests per minute per IP
    rate_limit_auth_rpm: int = 10  # stricter limit for login/register

    model_config = {"env_prefix": "TASKBOARD_", "frozen": True}

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def cookie_secure(self) -> bool:
        """Secure cookies need HTTPS, so only production sets the flag."""
        return self.is_production

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Refuse to start outside development/test with the default secret."""
        if self.environment not in ("development", "test") and (
            not self.jwt_secret or self.jwt_secret == DEFAULT_JWT_SECRET
        ):
            raise ValueError(
                "TASKBOARD_JWT_SECRET must be set to a secure value in "
                "non-development environments. Generate one with: "
                'python -c "import secrets; print(secrets.token_urlsafe(32))"'
            )
        return self


# Singleton, import this everywhere
settings = Settings()
