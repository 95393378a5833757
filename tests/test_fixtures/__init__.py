"""
Test Fixtures Package

Shared test utilities and helpers for consistent testing across all modules.
"""

from .cache_factory import CacheTestFactory, FakeClock, InMemoryRedis
from .query_factory import QueryFactory

__all__ = ["CacheTestFactory", "FakeClock", "InMemoryRedis", "QueryFactory"]
