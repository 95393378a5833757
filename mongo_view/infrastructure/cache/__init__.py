"""
Cache Infrastructure

- **cache_manager.py**: ResilientCache (failover, tags, compression, stats)
- **redis_backend.py**: Redis remote backend
- **memory_backend.py**: process-local fallback backend
"""

from mongo_view.infrastructure.cache.cache_manager import ResilientCache, format_bytes
from mongo_view.infrastructure.cache.memory_backend import MemoryBackend
from mongo_view.infrastructure.cache.redis_backend import RedisBackend

__all__ = ["ResilientCache", "MemoryBackend", "RedisBackend", "format_bytes"]
