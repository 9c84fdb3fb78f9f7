"""Main FastAPI application for Smells Phishy."""

import asyncio
import contextlib
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from smells_phishy.api.v1 import v1_router
from smells_phishy.api.v1.scan import rate_limit_headers
from smells_phishy.config.logging import configure_logging, get_logger
from smells_phishy.config.settings import settings
from smells_phishy.core.metrics import setup_metrics
from smells_phishy.core.rate_limiter import (
    RateLimiter,
    RateLimitExceeded,
    get_rate_limiter,
    set_rate_limiter,
)
from smells_phishy.core.redis_client import connect_redis, redis_healthy
from smells_phishy.integrations.gemini import get_gemini_client
from smells_phishy.integrations.threat_intel import get_threat_intel_service

configure_logging()
logger = get_logger(__name__)


async def _cleanup_rate_limits(interval: int) -> None:
    """Periodically drop expired in-memory rate limit windows."""
    while True:
        await asyncio.sleep(interval)
        get_rate_limiter().cleanup()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info("Starting Smells Phishy", version=settings.APP_VERSION,
                environment=settings.ENVIRONMENT.value)

    redis_client = await connect_redis()
    app.state.redis = redis_client
    set_rate_limiter(RateLimiter.from_settings(redis_client=redis_client))

    missing = [name for name, ok in settings.configured_providers().items() if not ok]
    if missing:
        logger.warning("Services without credentials", services=missing)

    cleanup_task = asyncio.create_task(_cleanup_rate_limits(settings.RATE_LIMIT_CLEANUP_INTERVAL))

    yield

    # Shutdown
    logger.info("Shutting down Smells Phishy")
    cleanup_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await cleanup_task

    await get_threat_intel_service().close()
    await get_gemini_client().close()
    if app.state.redis is not None:
        await app.state.redis.aclose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Phishing detection for email content: threat intelligence plus AI analysis",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
    expose_headers=["X-RateLimit-Remaining", "X-RateLimit-Reset", "Retry-After"],
)

if settings.ENABLE_METRICS:
    setup_metrics(app)

app.include_router(v1_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Welcome to Smells Phishy",
        "version": settings.APP_VERSION,
        "status": "running"
    }


@app.get("/health")
async def health_check(request: Request):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "rate_limit_backend": get_rate_limiter().backend,
        "redis": await redis_healthy(getattr(request.app.state, "redis", None)),
    }


@app.exception_handler(RateLimitExceeded)
async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded):
    """Too many scans from one caller."""
    headers = rate_limit_headers(exc.result)
    headers["Retry-After"] = str(exc.result.retry_after())
    return JSONResponse(
        status_code=429,
        content={
            "detail": "Too many scans. Please try again later.",
            "type": "rate_limited",
            "reset": exc.result.reset,
        },
        headers=headers,
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(
        "Unhandled exception",
        exc_info=exc,
        path=request.url.path,
        method=request.method
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "type": "internal_error"
        }
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "smells_phishy.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
