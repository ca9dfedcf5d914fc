"""Security headers middleware.

Learn: Adds standard security headers to every response. The API only
serves JSON, so framing and MIME sniffing are always off, and responses
carrying credentials are marked uncacheable:
- X-Content-Type-Options / X-Frame-Options: no sniffing, no framing
- Referrer-Policy: limits referrer info leakage
- Cache-Control: no-store on /api/auth/* (tokens in bodies and cookies)
- Strict-Transport-Security: only over HTTPS
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

AUTH_PREFIX = "/api/auth/"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    def __init__(self, app, hsts_max_age: int = 31536000):
        super().__init__(app)
        self.hsts_max_age = hsts_max_age

    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)
        headers = response.headers
        headers["X-Content-Type-Options"] = "nosniff"
        headers["X-Frame-Options"] = "DENY"
        headers["Referrer-Policy"] = "no-referrer"
        if request.url.path.startswith(AUTH_PREFIX):
            headers["Cache-Control"] = "no-store"
        if request.url.scheme == "https":
            headers["Strict-Transport-Security"] = (
                f"max-age={self.hsts_max_age}; includeSubDomains"
            )
        return response
