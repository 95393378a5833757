"""
Cache Backend Protocol

This module defines the protocol both cache backends implement, so the
resilient cache can hold either one behind a single reference and switch
between them without null-checks.

Architectural Decision: Protocol-based abstraction
- Two variants: RedisBackend (durable, remote) and MemoryBackend (process-local)
- Facilitates testing with in-memory doubles
- Type-safe interface with runtime checking

Keys passed to a backend are already namespaced; values are already
serialized strings. Backends raise CacheError subclasses and never swallow
failures: catching and counting them is the resilient cache's job.

Author: System Architect
Date: 2025-12-08
"""

from collections.abc import Set as AbstractSet
from typing import Protocol, runtime_checkable


@runtime_checkable
class CacheBackend(Protocol):
    """
    Protocol defining the interface for cache backend implementations.

    Implementations:
    - RedisBackend: remote store, native expiry, tag sets
    - MemoryBackend: fallback store, lazy expiry, no tag index

    Usage:
        async def lookup(backend: CacheBackend, key: str) -> str | None:
            return await backend.get(key)
    """

    name: str

    async def connect(self) -> None:
        """
        Establish connection to the backend.

        Raises:
            CacheConnectionError: If connection fails
        """
        ...

    async def close(self) -> None:
        """Release the backend's resources."""
        ...

    async def ping(self) -> bool:
        """
        Liveness probe.

        Raises:
            CacheConnectionError: If the backend is unreachable
        """
        ...

    async def get(self, key: str) -> str | None:
        """Return the stored payload or None when absent/expired."""
        ...

    async def set(self, key: str, value: str, ttl: int) -> bool:
        """Store a payload with a TTL in seconds."""
        ...

    async def delete(self, *keys: str) -> int:
        """
        Delete keys.

        Returns:
            int: Number of keys that existed and were removed
        """
        ...

    async def exists(self, key: str) -> bool:
        ...

    async def ttl(self, key: str) -> int:
        """
        Remaining lifetime of a key.

        Returns:
            int: Seconds left, -2 if the key doesn't exist,
                 NO_EXPIRY_TTL if it never expires
        """
        ...

    async def expire(self, key: str, ttl: int) -> bool:
        """Reset the expiry horizon. False when the key doesn't exist."""
        ...

    async def add_tag_member(self, tag_key: str, member: str) -> None:
        """Record member (an unprefixed key) in the tag set tag_key."""
        ...

    async def tag_members(self, tag_key: str) -> AbstractSet[str]:
        ...

    async def keys(self, prefix: str) -> list[str]:
        """All keys under the namespace prefix."""
        ...

    async def clear(self, prefix: str) -> int:
        """
        Delete every key under the namespace prefix.

        Returns:
            int: Number of keys removed
        """
        ...

    async def memory_estimate(self, keys: list[str]) -> int:
        """Approximate bytes used by keys."""
        ...
