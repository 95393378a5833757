"""
In-Process Cache Backend

Fallback store used when Redis is not configured or becomes unreachable.

- One coarse threading.Lock around the map (operations are O(1) and brief)
- Monotonic clock for expiry, evicted lazily on read
- No tag index: tagging is a remote-only feature, so tag_members() is empty

Author: System Architect
Date: 2025-12-13
"""

import threading
import time
from collections.abc import Set as AbstractSet
from dataclasses import dataclass

from mongo_view.core.config.constants import CACHE_LOCAL_BYTES_PER_KEY, NO_EXPIRY_TTL


@dataclass(slots=True)
class CacheEntry:
    """A stored payload and its absolute expiry on the monotonic clock."""

    value: str
    expires_at: float | None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class MemoryBackend:
    """
    CacheBackend implementation over a process-local dict.

    Not distributed: each process has its own copy.
    """

    name = "memory"

    def __init__(self, clock=time.monotonic):
        self._store: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def _live_entry(self, key: str) -> CacheEntry | None:
        """Return the entry if present and fresh, evicting it if expired. Caller holds the lock."""
        entry = self._store.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._store[key]
            return None
        return entry

    async def connect(self) -> None:
        pass

    async def close(self) -> None:
        with self._lock:
            self._store.clear()

    async def ping(self) -> bool:
        return True

    async def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._live_entry(key)
            return entry.value if entry else None

    async def set(self, key: str, value: str, ttl: int) -> bool:
        expires_at = self._clock() + ttl if ttl and ttl > 0 else None
        with self._lock:
            self._store[key] = CacheEntry(value=value, expires_at=expires_at)
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        with self._lock:
            for key in keys:
                if self._live_entry(key) is not None:
                    del self._store[key]
                    removed += 1
        return removed

    async def exists(self, key: str) -> bool:
        with self._lock:
            return self._live_entry(key) is not None

    async def ttl(self, key: str) -> int:
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                return -2
            if entry.expires_at is None:
                return NO_EXPIRY_TTL
            return max(0, round(entry.expires_at - self._clock()))

    async def expire(self, key: str, ttl: int) -> bool:
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                return False
            entry.expires_at = self._clock() + ttl
            return True

    async def add_tag_member(self, tag_key: str, member: str) -> None:
        pass

    async def tag_members(self, tag_key: str) -> AbstractSet[str]:
        return set()

    async def keys(self, prefix: str) -> list[str]:
        with self._lock:
            now = self._clock()
            return [
                key for key, entry in self._store.items()
                if key.startswith(prefix) and not entry.is_expired(now)
            ]

    async def clear(self, prefix: str) -> int:
        """Empty the whole map; the process owns every key in it."""
        with self._lock:
            removed = len(self._store)
            self._store.clear()
        return removed

    async def memory_estimate(self, keys: list[str]) -> int:
        return len(keys) * CACHE_LOCAL_BYTES_PER_KEY
