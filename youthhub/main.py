"""
FastAPI Main Application
YouthHub API Service
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
import structlog

from youthhub import __version__
from youthhub.api.v1.endpoints import health
from youthhub.api.v1.router import api_router
from youthhub.core.audit import audit_recorder
from youthhub.core.config import settings
from youthhub.core.database import close_database
from youthhub.core.logging import setup_logging
from youthhub.core.permissions import permission_manager
from youthhub.core.rate_limit import RedisCounterStore, counter_store
from youthhub.middleware.logging import LoggingMiddleware
from youthhub.middleware.security import RateLimitMiddleware, SecurityHeadersMiddleware

# Setup structured logging
setup_logging()
logger = structlog.get_logger()

# Every authorize() decision goes to the audit trail
permission_manager.recorder = audit_recorder


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info(
        "Starting YouthHub API Service",
        version=__version__,
        environment=settings.ENVIRONMENT,
        audit_backend=settings.AUDIT_BACKEND,
        rate_limit_backend=settings.RATE_LIMIT_BACKEND,
    )

    yield

    logger.info("Shutting down YouthHub API Service", pending_audit_writes=audit_recorder.pending)
    await audit_recorder.flush()
    if isinstance(counter_store, RedisCounterStore):
        await counter_store.close()
    await close_database()


# Create FastAPI application
app = FastAPI(
    title="YouthHub API",
    description="Church youth group board, calendar and member administration API",
    version=__version__,
    docs_url="/docs" if settings.ENVIRONMENT == "development" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT == "development" else None,
    lifespan=lifespan,
)

# ==========================================
# CORS Middleware
# ==========================================

if settings.ENVIRONMENT == "development":
    cors_origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
    for origin in settings.CORS_ORIGINS:
        if origin not in cors_origins:
            cors_origins.append(origin)
else:
    cors_origins = list(settings.CORS_ORIGINS)

logger.info("Configuring CORS", environment=settings.ENVIRONMENT, origins=cors_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Requested-With", "X-Request-ID", "Origin"],
    expose_headers=["X-Request-ID", "Retry-After"],
    max_age=600,
)

# ==========================================
# Security Middlewares (after CORS)
# ==========================================
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(LoggingMiddleware)

if settings.ENVIRONMENT == "production":
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)

app.include_router(health.router)
app.include_router(api_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "YouthHub API Service",
        "version": __version__,
        "docs": "/docs" if settings.ENVIRONMENT == "development" else "disabled",
        "health": "/health",
    }


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.error(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "message": "An unexpected error occurred"},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "youthhub.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_level=settings.LOG_LEVEL.lower(),
    )
