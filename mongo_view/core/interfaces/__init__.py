"""
Core Interfaces Module

Protocols for core components, enabling dependency injection and
interchangeable implementations.

Components:
-----------
- **cache.py**: CacheBackend protocol for the remote and fallback stores

Author: System Architect
Date: 2025-12-08
"""

from mongo_view.core.interfaces.cache import CacheBackend

__all__ = ["CacheBackend"]
