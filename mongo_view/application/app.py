#!/usr/bin/env python3
"""
FastAPI Application Entry Point

Inspection surface for the query guard and the resilient cache. It
configures logging, the cache lifecycle, middleware, routes and exception
handlers.

Author: Senior Solution Architect
Date: 2025-12-05
"""

import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mongo_view.application.api.dependencies import SettingsDep
from mongo_view.application.api.routes.cache import router as cache_router
from mongo_view.application.api.routes.query import router as query_router
from mongo_view.application.validators.query_validator import QuerySafetyValidator
from mongo_view.core.config.constants import HEADER_REQUEST_ID
from mongo_view.core.config.settings import get_settings
from mongo_view.core.exceptions import MongoViewError, ValidationError
from mongo_view.core.logging.logger import (
    clear_request_id,
    get_logger,
    get_request_id,
    set_request_id,
    setup_logging,
)
from mongo_view.infrastructure.cache.cache_manager import ResilientCache

logger = get_logger(__name__)


# ============================================================================
# Application Lifespan
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle (startup and shutdown).

    One ResilientCache per process: created and probed here, stored on
    app.state, closed on shutdown. A cache handed in beforehand (tests) is
    reused as is.
    """
    settings = get_settings()

    setup_logging(log_level=settings.logging.LOG_LEVEL, log_format=settings.logging.LOG_FORMAT)

    logger.info(
        "Starting Mongo View query guard",
        environment=settings.app.ENVIRONMENT,
        version=settings.app.APP_VERSION,
    )

    if not hasattr(app.state, "cache"):
        app.state.cache = ResilientCache(settings)
    if not hasattr(app.state, "validator"):
        app.state.validator = QuerySafetyValidator()

    cache: ResilientCache = app.state.cache
    try:
        await cache.initialize()
        logger.info("Cache initialized", backend=cache.backend_name, state=cache.state.value)

        logger.info("Application startup complete")

        yield

    finally:
        logger.info("Shutting down application")
        await cache.close()
        logger.info("Application shutdown complete")


# ============================================================================
# Exception Handlers
# ============================================================================


async def validation_exception_handler(request: Request, exc: ValidationError):
    """Rejected queries and malformed input: 400 with the full error details."""
    exc.request_id = exc.request_id or get_request_id()
    logger.info(
        f"Request rejected: {exc.message}", error_type=type(exc).__name__, details=exc.details
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=exc.to_dict(),
        headers={HEADER_REQUEST_ID: exc.request_id or ""},
    )


async def mongo_view_exception_handler(request: Request, exc: MongoViewError):
    """Any other application exception."""
    exc.request_id = exc.request_id or get_request_id()
    logger.error(f"Unhandled application error: {exc.message}", error_type=type(exc).__name__)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=exc.to_dict(),
        headers={HEADER_REQUEST_ID: exc.request_id or ""},
    )


# ============================================================================
# Middleware
# ============================================================================


async def request_id_middleware(request: Request, call_next):
    """
    Inject a request ID into every request for log correlation.
    """
    request_id = request.headers.get(HEADER_REQUEST_ID) or str(uuid.uuid4())
    set_request_id(request_id)

    try:
        response = await call_next(request)
        response.headers[HEADER_REQUEST_ID] = request_id
        return response

    finally:
        clear_request_id()


# ============================================================================
# Application Factory
# ============================================================================


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app.APP_NAME,
        version=settings.app.APP_VERSION,
        description="Safety checks for generated MongoDB queries and a resilient response cache",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.app.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[HEADER_REQUEST_ID],
    )
    app.middleware("http")(request_id_middleware)

    # Starlette resolves handlers along the exception's MRO, so the
    # ValidationError handler wins for QueryRejectedError/InvalidInputError.
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(MongoViewError, mongo_view_exception_handler)

    base_path = settings.app.API_BASE_PATH
    app.include_router(cache_router, prefix=base_path)
    app.include_router(query_router, prefix=base_path)

    @app.get("/", tags=["Root"])
    async def root(settings: SettingsDep):
        """Root endpoint with API information from the current settings."""
        return {
            "name": settings.app.APP_NAME,
            "version": settings.app.APP_VERSION,
            "environment": settings.app.ENVIRONMENT,
            "docs": "/docs",
            "cache_health": f"{base_path}/cache/health",
        }

    return app


# Create application instance
app = create_app()


# ============================================================================
# Main Entry Point
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "mongo_view.application.app:app",
        host=settings.app.API_HOST,
        port=settings.app.API_PORT,
        reload=settings.app.ENVIRONMENT == "development",
        log_level=settings.logging.LOG_LEVEL.lower(),
    )
