"""
Admissions Portal API - Main Application Entry Point

This module initializes and configures the FastAPI application including:
- Logging
- Redis connection and the rate governor
- Database connection
- Background job scheduler
- Exception handlers (error envelope)
- CORS middleware
- API routing and health check endpoints
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from app.api import api_router
from app.core.config import settings
from app.core.database import async_session_maker, close_db, init_db
from app.core.error_handlers import register_exception_handlers
from app.core.rate_limit import init_rate_governor
from app.core.redis import close_redis, init_redis
from app.core.scheduler import start_scheduler, stop_scheduler
from app.modules.auth.jobs import register_auth_jobs

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events including:
    - Redis connection (only with the redis rate-limit backend)
    - Rate governor
    - Database connection
    - Background job scheduler
    """
    # Startup
    print(f"Starting Admissions Portal API in {settings.python_env} mode...")

    # Initialize Redis and the rate governor
    redis = None
    if settings.rate_limit_backend == "redis":
        try:
            redis = await init_redis()
            print("[OK] Redis connected")
        except Exception as e:
            print(f"[FAIL] Redis connection failed: {e}")
            if settings.is_production:
                raise
    init_rate_governor(redis)
    print(f"[OK] Rate governor ready ({'redis' if redis else 'memory'} windows)")

    # Initialize Database
    try:
        await init_db()
        print("[OK] Database connected")
    except Exception as e:
        print(f"[FAIL] Database connection failed: {e}")
        if settings.is_production:
            raise

    # Initialize Background Job Scheduler
    try:
        # Register jobs before starting the scheduler
        register_auth_jobs()

        await start_scheduler()
        print("[OK] Background scheduler started")
    except Exception as e:
        print(f"[FAIL] Background scheduler failed to start: {e}")
        if settings.is_production:
            raise

    yield  # Application runs here

    # Shutdown
    print("Shutting down Admissions Portal API...")

    # Stop the scheduler first (wait for running jobs)
    await stop_scheduler()
    print("[OK] Background scheduler stopped")

    await close_redis()
    await close_db()
    print("[OK] Cleanup complete")


app = FastAPI(
    title="Admissions Portal API",
    description="College admissions portal: accounts, courses and applications",
    version="0.1.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

app.include_router(api_router, prefix="/api")

register_exception_handlers(app)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Root endpoint - API welcome message."""
    return {
        "message": "Welcome to the Admissions Portal API",
        "status": "running",
        "environment": settings.python_env,
    }


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint for container orchestration."""
    return {"status": "healthy"}


@app.get("/ready", tags=["Health"])
async def readiness_check() -> dict[str, str]:
    """
    Readiness check endpoint.

    Runs a trivial query; a database failure is classified as 503.
    """
    async with async_session_maker() as session:
        await session.execute(text("SELECT 1"))
    return {"status": "ready"}
