"""
FastAPI Main Application - Unified API entry point.

Run with: uvicorn academiq.interfaces.api.main:app --reload
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from academiq import __version__
from academiq.config import configure_logging, get_settings

from .deps import cleanup_services, init_services
from .middleware import RequestContextMiddleware, register_error_handlers
from .routes import extraction, health, researchers

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    logger.info("Starting AcademiQ API...")
    logger.info("  Database: %s", settings.db_path)
    logger.info("  Default model: %s", settings.llm_model)
    if not settings.openai_api_key:
        logger.warning("  OPENAI_API_KEY is not set; extraction requests will fail")

    await init_services()
    logger.info("  Services initialized")

    yield

    logger.info("Shutting down AcademiQ API...")
    await cleanup_services()


def create_app() -> FastAPI:
    """Create FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="AcademiQ API",
        description="Academic CV extraction and researcher records",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    register_error_handlers(app)
    app.add_middleware(RequestContextMiddleware)

    # CORS (outermost)
    allowed_origins = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:8000",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:8000",
    ]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_origin_regex=r"http://localhost:\d+" if settings.api_debug else None,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )

    # Include routers
    app.include_router(health.router, tags=["Health"])
    app.include_router(extraction.router, prefix="/api/extraction", tags=["Extraction"])
    app.include_router(researchers.router, prefix="/api/researchers", tags=["Researchers"])

    return app


# Create app instance
app = create_app()
