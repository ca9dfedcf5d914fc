"""Tests for middleware — security headers, request IDs, rate limiting.

Learn: No Redis runs in tests, so the app's rate limiter lets everything
through; the limiter itself is exercised with a tiny in-memory stand-in
for the two Redis commands it uses.
"""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from taskboard.middleware.rate_limit import RateLimitMiddleware


@pytest.mark.asyncio
async def test_security_headers_on_health(client):
    r = await client.get("/api/health")
    assert r.status_code == 200
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"
    assert r.headers["Referrer-Policy"] == "no-referrer"
    assert "Cache-Control" not in r.headers


@pytest.mark.asyncio
async def test_auth_responses_not_cacheable(client):
    r = await client.post("/api/auth/logout")
    assert r.headers["Cache-Control"] == "no-store"


@pytest.mark.asyncio
async def test_request_id_generated(client):
    r1 = await client.get("/api/health")
    r2 = await client.get("/api/health")
    assert "X-Request-ID" in r1.headers
    assert r1.headers["X-Request-ID"] != r2.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_request_id_propagated(client):
    custom_id = "test-trace-12345"
    r = await client.get("/api/health", headers={"X-Request-ID": custom_id})
    assert r.headers["X-Request-ID"] == custom_id


@pytest.mark.asyncio
async def test_no_hsts_on_http(client):
    r = await client.get("/api/health")
    assert "Strict-Transport-Security" not in r.headers


@pytest.mark.asyncio
async def test_error_responses_still_get_headers(client):
    r = await client.get("/api/auth/me")
    assert r.status_code == 401
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert "X-Request-ID" in r.headers


class FakeRedis:
    def __init__(self):
        self.counts: dict[str, int] = {}

    async def incr(self, key):
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]

    async def expire(self, key, seconds):
        return True


def _limited_app(redis_getter) -> FastAPI:
    app = FastAPI()

    @app.post("/api/auth/login")
    async def login():
        return {"ok": True}

    @app.get("/api/tasks")
    async def tasks():
        return {"ok": True}

    app.add_middleware(
        RateLimitMiddleware, default_rpm=5, auth_rpm=2, redis_getter=redis_getter
    )
    return app


@pytest.mark.asyncio
async def test_rate_limit_auth_bucket_is_stricter():
    redis = FakeRedis()
    app = _limited_app(lambda: redis)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        codes = [(await ac.post("/api/auth/login")).status_code for _ in range(3)]
        assert codes == [200, 200, 429]

        r = await ac.get("/api/tasks")
        assert r.status_code == 200
        assert r.headers["X-RateLimit-Limit"] == "5"
        assert r.headers["X-RateLimit-Remaining"] == "4"


@pytest.mark.asyncio
async def test_rate_limit_returns_error_envelope():
    redis = FakeRedis()
    app = _limited_app(lambda: redis)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        for _ in range(2):
            await ac.post("/api/auth/login")
        r = await ac.post("/api/auth/login")
    assert r.status_code == 429
    assert r.json()["code"] == "RATE_LIMITED"
    assert r.headers["Retry-After"] == "60"


@pytest.mark.asyncio
async def test_rate_limit_skipped_without_redis():
    def unavailable():
        raise RuntimeError("Redis not initialized")

    app = _limited_app(unavailable)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        codes = [(await ac.post("/api/auth/login")).status_code for _ in range(5)]
    assert codes == [200] * 5
