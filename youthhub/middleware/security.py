"""
Security Middleware
Security headers and per-client request rate limiting
"""

from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse
import structlog

from youthhub.core.config import settings
from youthhub.core.rate_limit import FixedWindowLimiter, request_limiter
from youthhub.core.security import token_validator

logger = structlog.get_logger()

UNLIMITED_PATHS = {"/health", "/", "/docs", "/redoc", "/openapi.json"}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add security headers to all responses
    """

    async def dispatch(self, request: Request, call_next):
        # Skip security headers for preflight CORS requests
        if request.method == "OPTIONS":
            return await call_next(request)

        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"

        # HSTS only in production with HTTPS
        if settings.ENVIRONMENT == "production":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        response.headers["Content-Security-Policy"] = "default-src 'self'; frame-ancestors 'none';"
        response.headers["API-Version"] = "v1"

        if "server" in response.headers:
            del response.headers["server"]

        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Fixed-window rate limit keyed by user when a valid token is present,
    by client IP otherwise
    """

    def __init__(self, app, limiter: Optional[FixedWindowLimiter] = None):
        super().__init__(app)
        self.limiter = limiter or request_limiter

    def _get_client_id(self, request: Request) -> str:
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            result = token_validator.validate(auth_header[7:])
            if result is not None:
                return f"user:{result.subject}"

        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return f"ip:{forwarded_for.split(',')[0].strip()}"

        client_host = getattr(request.client, "host", "unknown")
        return f"ip:{client_host}"

    async def dispatch(self, request: Request, call_next):
        # Skip rate limiting for preflight CORS requests and health checks
        if request.method == "OPTIONS" or request.url.path in UNLIMITED_PATHS:
            return await call_next(request)

        client_id = self._get_client_id(request)
        result = await self.limiter.hit(client_id)

        if not result.allowed:
            logger.warning("Request rate limit exceeded", client_id=client_id, path=request.url.path)
            return JSONResponse(
                status_code=429,
                content={
                    "error": "Rate limit exceeded",
                    "message": f"Maximum {result.limit} requests per minute allowed",
                    "retry_after": result.retry_after,
                },
                headers={"Retry-After": str(result.retry_after)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(result.limit)
        response.headers["X-RateLimit-Remaining"] = str(result.remaining)
        return response
