"""
FastAPI Dependency Injection Module
===================================

Reusable dependencies for the application-level objects created during
startup (the resilient cache and the query validator).

WHY app.state?
--------------
The cache is one long-lived object per process with its own lifecycle
(initialize() at startup, close() at shutdown). Keeping it on app.state
ties it to the app instance instead of a module-level global, so every
test can build its own app with its own cache.

Example:
    @router.get("/stats")
    async def stats(cache: CacheDep):
        return cache.get_stats()
"""

from typing import Annotated

from fastapi import Depends, Request

from mongo_view.application.validators.query_validator import QuerySafetyValidator
from mongo_view.core.config.settings import Settings, get_settings
from mongo_view.infrastructure.cache.cache_manager import ResilientCache


def get_cache(request: Request) -> ResilientCache:
    """
    Retrieve the ResilientCache from application state.

    When the lifespan didn't run (TestClient used without a context
    manager), a cache is built from the current settings and kept on
    app.state. It initializes lazily on first use.
    """
    if not hasattr(request.app.state, "cache"):
        request.app.state.cache = ResilientCache(get_settings())
    return request.app.state.cache


def get_validator(request: Request) -> QuerySafetyValidator:
    """Retrieve the shared QuerySafetyValidator (stateless, safe to share)."""
    if not hasattr(request.app.state, "validator"):
        request.app.state.validator = QuerySafetyValidator()
    return request.app.state.validator


# ============================================================================
# TYPE ALIASES FOR CLEANER ROUTE SIGNATURES
# ============================================================================

CacheDep = Annotated[ResilientCache, Depends(get_cache)]
ValidatorDep = Annotated[QuerySafetyValidator, Depends(get_validator)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
