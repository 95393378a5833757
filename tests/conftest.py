"""
Pytest Configuration and Shared Test Fixtures

This module provides pytest configuration and reusable fixtures for all tests.
All fixtures defined here are automatically available to all test files.
"""

import os
import sys

import pytest

# Add project root to sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from tests.test_fixtures import CacheTestFactory, FakeClock, QueryFactory  # noqa: E402


# ============================================================================
# Pytest Configuration
# ============================================================================

# pytest-asyncio runs in auto mode via pyproject.toml


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def test_settings():
    """
    Real Settings for testing, without a remote store.

    Built explicitly rather than mocked: every cache code path reads the
    nested views (settings.cache, settings.redis), so a real instance keeps
    the tests honest about field names.
    """
    return CacheTestFactory.settings(REDIS_URL="")


@pytest.fixture
def clock():
    """Manually advanced clock shared by the backend doubles."""
    return FakeClock()


# ============================================================================
# Redis Client Doubles
# ============================================================================


@pytest.fixture
def redis_client(clock):
    """In-memory Redis double driven by the fake clock."""
    return CacheTestFactory.redis_client(clock)


@pytest.fixture
def failing_redis_client():
    """Redis double whose every command raises ConnectionError."""
    return CacheTestFactory.failing_redis_client()


# ============================================================================
# Cache Fixtures
# ============================================================================


@pytest.fixture
async def remote_cache(redis_client, clock):
    """ResilientCache on the Redis double, probed and ready."""
    cache = CacheTestFactory.remote_cache(redis_client, clock=clock)
    await cache.initialize()
    yield cache
    await cache.close()


@pytest.fixture
async def local_cache(clock):
    """ResilientCache with no remote store configured."""
    cache = CacheTestFactory.local_cache(clock=clock)
    await cache.initialize()
    yield cache
    await cache.close()


@pytest.fixture
def disabled_cache():
    """ResilientCache with ENABLE_CACHING off."""
    return CacheTestFactory.local_cache(ENABLE_CACHING=False)


# ============================================================================
# Query Guard Fixtures
# ============================================================================


@pytest.fixture
def validator():
    from mongo_view.application.validators import QuerySafetyValidator

    return QuerySafetyValidator()


@pytest.fixture
def queries():
    return QueryFactory


# ============================================================================
# API Fixtures
# ============================================================================


@pytest.fixture
def app(test_settings):
    """
    FastAPI app with an in-process cache preset on app.state.

    The lifespan is not run (TestClient without a context manager), so no
    connection to a real Redis is attempted.
    """
    from mongo_view.application.app import create_app
    from mongo_view.infrastructure.cache.cache_manager import ResilientCache

    application = create_app()
    application.state.cache = ResilientCache(test_settings)
    return application


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient

    return TestClient(app)
