"""
Request Logging Middleware
One structured log line per request, tagged with a request id
"""

import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
import structlog

logger = structlog.get_logger()

EXCLUDED_PATHS = ("/health", "/docs", "/redoc", "/openapi.json", "/favicon.ico")


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs method, path, status and duration of every request.

    The request id is bound into structlog's context variables so every log
    line emitted while handling the request carries it, and is echoed back in
    the ``X-Request-ID`` response header.
    """

    async def dispatch(self, request: Request, call_next):
        if request.url.path.startswith(EXCLUDED_PATHS):
            return await call_next(request)

        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                method=request.method,
                path=request.url.path,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                error=str(e),
            )
            raise

        logger.info(
            "Request completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            client_ip=request.client.host if request.client else None,
        )
        response.headers["X-Request-ID"] = request_id
        return response
