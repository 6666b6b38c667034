"""
SpotterHub Backend Application.

FastAPI application serving the community forum and its
moderation tools.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from loguru import logger

from spotterhub.api.v1 import router as api_v1_router
from spotterhub.core.config import settings
from spotterhub.core.database import close_db, init_db
from spotterhub.core.exceptions import ForumError
from spotterhub.core.logging import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    setup_logging()
    logger.info("Starting SpotterHub Backend...")

    # Initialize database
    await init_db()
    logger.info("Database initialized")

    logger.info("SpotterHub Backend started successfully")

    yield

    # Shutdown
    logger.info("Shutting down SpotterHub Backend...")

    # Close database
    await close_db()

    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    SpotterHub Community Platform

    ## Features

    - **Forum**: Discussion threads with threaded comments
    - **Moderation**: Pin, lock and delete content with an audit trail
    - **Reports**: Member reports reviewed by moderators

    ## Documentation

    - [API Docs](/docs) - Interactive Swagger UI
    - [ReDoc](/redoc) - Alternative documentation
    """,
    openapi_url=f"{settings.api_v1_prefix}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ForumError)
async def forum_error_handler(request: Request, exc: ForumError) -> ORJSONResponse:
    """Render domain errors as JSON with their status code."""
    return ORJSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


# Include API router
app.include_router(api_v1_router, prefix=settings.api_v1_prefix)


@app.get("/health", tags=["System"])
async def health_check() -> dict:
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "version": settings.app_version,
    }


@app.get("/", tags=["System"])
async def root() -> dict:
    """Root endpoint with API information."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "api": settings.api_v1_prefix,
    }
