"""Per-IP request throttling backed by Redis counters.

Learn: One counter per (client IP, bucket, minute), expiring after two
minutes. Login and register share a small "auth" budget so password
guessing is slow; everything else draws from the general budget.

Redis is optional: when it is not initialized or a command fails, the
request is let through and nothing is counted.
"""

import time
from typing import Callable, Optional

import structlog
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from taskboard.redis_client import get_redis

logger = structlog.get_logger()

AUTH_PATHS = frozenset({"/api/auth/login", "/api/auth/register"})
WINDOW_SECONDS = 60


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Fixed one-minute window limiter with a stricter auth bucket."""

    def __init__(
        self,
        app,
        default_rpm: int = 100,
        auth_rpm: int = 10,
        redis_getter: Callable = get_redis,
    ):
        super().__init__(app)
        self.default_rpm = default_rpm
        self.auth_rpm = auth_rpm
        self._redis_getter = redis_getter

    def _bucket(self, path: str) -> tuple[str, int]:
        if path in AUTH_PATHS:
            return "auth", self.auth_rpm
        return "api", self.default_rpm

    async def _hit(self, key: str) -> Optional[int]:
        """Count one request; None when Redis cannot be used."""
        try:
            redis = self._redis_getter()
        except RuntimeError:
            return None
        try:
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, WINDOW_SECONDS * 2)
            return count
        except RedisError as e:
            logger.warning("ratelimit.redis_error", error=type(e).__name__)
            return None

    async def dispatch(self, request: Request, call_next) -> Response:
        bucket, limit = self._bucket(request.url.path)
        client_ip = request.client.host if request.client else "unknown"
        window = int(time.time() // WINDOW_SECONDS)

        count = await self._hit(f"taskboard:rl:{client_ip}:{bucket}:{window}")
        if count is None:
            return await call_next(request)

        if count > limit:
            logger.info("ratelimit.exceeded", bucket=bucket, client_ip=client_ip)
            return JSONResponse(
                status_code=429,
                content={
                    "detail": "Rate limit exceeded. Try again later.",
                    "code": "RATE_LIMITED",
                },
                headers={"Retry-After": str(WINDOW_SECONDS)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, limit - count))
        return response
