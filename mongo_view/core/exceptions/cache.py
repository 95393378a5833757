"""
Cache-Related Exceptions

Raised by cache backends. ResilientCache catches all of them at its boundary,
so they never reach the request handlers.

Author: System Architect
Date: 2025-12-08
"""

from mongo_view.core.exceptions.base import MongoViewError


class CacheError(MongoViewError):
    """Base exception for cache-related errors."""
    pass


class CacheConnectionError(CacheError):
    """
    Raised when the remote store cannot be reached.

    Common causes:
    - Redis server is down
    - Network partition or command timeout
    - Incorrect connection string

    Triggers the permanent switch to the local fallback backend.
    """
    pass


class CacheKeyError(CacheError):
    """
    Raised when a cache command fails for a reason other than connectivity.

    Common causes:
    - Wrong type stored under the key
    - Command rejected by the server (e.g. MEMORY USAGE disabled)
    """
    pass


class CacheSerializationError(CacheError):
    """Raised when a value cannot be encoded to, or decoded from, JSON."""
    pass
