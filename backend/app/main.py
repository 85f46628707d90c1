"""
FastAPI Application Entry Point.

This is the main application file for the FleetLink Backend.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from backend.app.core.config import settings
from backend.app.api.v1.router import router as api_v1_router
from backend.app.db.session import engine, Base
from backend.app.domain.booking.locks import create_booking_locks
from backend.app.core.observability import ObservabilityMiddleware, configure_logging
from backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from backend.app.models.vehicle import Vehicle
from backend.app.models.booking import Booking
from backend.app.models.audit_log import AuditLog

configure_logging(settings.log_level)
logger = logging.getLogger("fleetlink")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Creates database tables on startup.
    2. Releases the booking lock backend and database pool on shutdown.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("%s started (booking locks: %s)", settings.app_name, settings.booking_lock_backend)
    yield
    await app.state.booking_locks.close()
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Vehicle availability search and conflict-free booking",
    lifespan=lifespan,
)

# One lock manager per process, shared by every request
app.state.booking_locks = create_booking_locks(settings)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status and application information
    """
    payload = {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "booking_lock_backend": settings.booking_lock_backend,
    }

    if settings.booking_lock_backend == "redis":
        from backend.app.core.redis_client import ping_redis
        redis_ok = await ping_redis()
        payload["redis"] = "up" if redis_ok else "down"
        if not redis_ok:
            payload["status"] = "degraded"

    return payload


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to FleetLink Backend API",
        "docs": "/docs",
        "health": "/health",
    }
