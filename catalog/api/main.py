"""
Catalog Revisions Service - FastAPI Application

Provides:
- Lookup and browse of publishers, authors, works, editions and edition groups
- Versioned create / edit / delete through the revision engine
- Revision history per entity
"""

import logging
import structlog
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from catalog import __version__
from catalog.api.middleware import RequestIDMiddleware, get_cors_origins
from catalog.api.routes import entities, health
from catalog.config import get_settings
from catalog.db.client import close_db, init_db
from catalog.kernel.http.errors import register_exception_handlers

# Map log level string to logging constant
_LOG_LEVEL_MAP = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def _get_log_level() -> int:
    """Get numeric log level from settings."""
    level_str = get_settings().log_level.lower()
    return _LOG_LEVEL_MAP.get(level_str, logging.INFO)


# Configure structured logging
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer()
        if get_settings().log_format == "json"
        else structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(_get_log_level()),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan - startup and shutdown."""
    settings = get_settings()

    logger.info(
        "Starting Catalog Revisions Service",
        version=__version__,
        environment=settings.environment,
        isolation_level=settings.revision_isolation_level,
    )

    await init_db()
    logger.info("PostgreSQL connection initialized")

    yield

    logger.info("Shutting down Catalog Revisions Service")
    await close_db()


# Create FastAPI application
app = FastAPI(
    title="Catalog Revisions API",
    description="Versioned creative-work entities with revision history",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

settings = get_settings()

# Request ID tracking
app.add_middleware(RequestIDMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)

register_exception_handlers(app)

# Prometheus metrics endpoint
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# Include routers
app.include_router(health.router, tags=["Health"])
for entity_router in entities.routers:
    app.include_router(entity_router, prefix=settings.api_prefix)


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Catalog Revisions API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "metrics": "/metrics",
    }
