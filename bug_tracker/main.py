"""
FastAPI Main Application
Bug Tracker API Service
"""

import time
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bug_tracker.api.error_handlers import register_error_handlers
from bug_tracker.api.v1.router import api_router
from bug_tracker.core.config import settings
from bug_tracker.core.database import AsyncSessionLocal, check_database_health, close_database, init_database
from bug_tracker.core.logging import setup_logging
from bug_tracker.middleware.logging import LoggingMiddleware
from bug_tracker.middleware.security import SecurityHeadersMiddleware
from bug_tracker.services.bootstrap_admin import ensure_bootstrap_admin_exists

SERVICE_NAME = "bug-tracker-api"
VERSION = "1.0.0"

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    setup_logging()
    logger.info("Starting Bug Tracker API", version=VERSION, environment=settings.ENVIRONMENT)

    await init_database()

    # Idempotent
    async with AsyncSessionLocal() as session:
        await ensure_bootstrap_admin_exists(session)

    yield

    logger.info("Shutting down Bug Tracker API")
    await close_database()


app = FastAPI(
    title="Bug Tracker API",
    description="Multi-tenant bug tracking backend",
    version=VERSION,
    docs_url="/docs" if settings.ENVIRONMENT == "development" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT == "development" else None,
    lifespan=lifespan
)

# CORS must wrap the security middleware so preflight requests get answered
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
    max_age=600,
)
app.add_middleware(LoggingMiddleware)

app.include_router(api_router, prefix=settings.API_PREFIX)

register_error_handlers(app)


@app.get("/health")
async def health_check():
    """Health check endpoint for Docker and load balancers"""
    healthy = await check_database_health()
    body = {
        "status": "healthy" if healthy else "unhealthy",
        "service": SERVICE_NAME,
        "version": VERSION,
        "timestamp": time.time(),
        "database": "connected" if healthy else "unavailable",
    }
    return JSONResponse(status_code=200 if healthy else 503, content=body)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Bug Tracker API is running",
        "version": VERSION,
        "docs": "/docs" if settings.ENVIRONMENT == "development" else "disabled",
        "health": "/health"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "bug_tracker.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_level=settings.LOG_LEVEL.lower()
    )
