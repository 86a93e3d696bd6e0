"""
Learnhub Backend - FastAPI Application

Main entry point for the application.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.core.config import settings
from app.core.database import close_db, get_session_maker, init_db
from app.core.events import ChangeFeed
from app.core.http_client import close_http_client
from app.api.v1 import router as api_v1_router


logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Creates the change feed used by live subscriptions and releases shared
    clients on shutdown.
    """
    # Startup
    logger.info("Starting Learnhub Backend (%s)", settings.ENVIRONMENT)
    if settings.is_development:
        # Local runs without migrations
        await init_db()
    app.state.change_feed = ChangeFeed(get_session_maker())
    yield
    # Shutdown
    logger.info("Shutting down Learnhub Backend")
    app.state.change_feed.close()
    await close_http_client()
    await close_db()


# Create FastAPI application
app = FastAPI(
    title="Learnhub Backend",
    description="Learning platform backend with courses, enrollments, progress, ratings and notifications.",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Serve uploaded files at the URLs the blob store hands out
os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
app.mount(
    f"{settings.STATIC_URL_PREFIX.rstrip('/')}/uploads",
    StaticFiles(directory=settings.UPLOAD_DIR),
    name="uploads",
)

# Include API routers
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/health", tags=["Health"])
async def health_check() -> dict:
    """
    Health check endpoint.

    Returns:
        dict: Health status and environment info.
    """
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "version": "0.1.0",
    }


@app.get("/", tags=["Root"])
async def root() -> dict:
    return {
        "message": "Welcome to Learnhub Backend API",
        "docs": "/docs",
        "health": "/health",
    }
