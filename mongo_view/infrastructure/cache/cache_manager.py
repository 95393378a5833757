#!/usr/bin/env python3
"""
Resilient Cache Manager

Architecture:
    ResilientCache (Public API)
        ├── BackendSelector (probe + fail-static failover)
        │   ├── RedisBackend (remote, durable)
        │   └── MemoryBackend (process-local fallback)
        ├── PayloadCodec (JSON + compressed envelope)
        └── CacheStats (thread-safe counters)

Backend selection:
    UNINITIALIZED → PROBING → {REMOTE_ACTIVE | LOCAL_FALLBACK}
    REMOTE_ACTIVE → LOCAL_FALLBACK on the first connection error or timeout,
    permanently for the life of the instance.

Every backend fault is caught at this boundary, counted, logged, and turned
into the operation's empty result. Nothing is retried.

Author: System Architect
Date: 2025-12-13
"""

import asyncio
import base64
import binascii
import hashlib
import inspect
import threading
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, TypeVar

import orjson

from mongo_view.core.config.constants import (
    CACHE_HEALTHY_MAX_ERRORS,
    CACHE_HEALTHY_MIN_HIT_RATE,
    CACHE_HIGH_TRAFFIC,
    CACHE_LOW_HIT_RATE,
    CACHE_MANY_ERRORS,
    CACHE_TAG_SEGMENT,
    CACHE_VERSION_SEGMENT,
    COMPRESSED_MARKER,
    BackendState,
    Stage,
)
from mongo_view.core.config.settings import Settings, get_settings
from mongo_view.core.exceptions import CacheConnectionError, CacheSerializationError
from mongo_view.core.interfaces.cache import CacheBackend
from mongo_view.core.logging.logger import get_logger, log_stage
from mongo_view.infrastructure.cache.memory_backend import MemoryBackend
from mongo_view.infrastructure.cache.redis_backend import RedisBackend

logger = get_logger(__name__)

T = TypeVar("T")

_SIZE_UNITS = ("B", "KB", "MB", "GB")
_EMPTY_SIZE = {"keys": 0, "memory": "0B"}


def format_bytes(size: int) -> str:
    """
    Human-readable byte count with 1024 steps and at most two decimals.

    >>> format_bytes(0), format_bytes(1536), format_bytes(3 * 1024 ** 2)
    ('0B', '1.5KB', '3MB')
    """
    if size <= 0:
        return "0B"
    exponent = 0
    while size >= 1024 ** (exponent + 1) and exponent < len(_SIZE_UNITS) - 1:
        exponent += 1
    text = f"{size / 1024 ** exponent:.2f}".rstrip("0").rstrip(".")
    return f"{text}{_SIZE_UNITS[exponent]}"


# =============================================================================
# LAYER 1: STATISTICS
# =============================================================================


class CacheStats:
    """
    Process-wide cache counters.

    One lock guards all counters so a snapshot is always internally
    consistent. Values are best-effort telemetry and reset only by flush().
    """

    _FIELDS = ("hits", "misses", "sets", "deletes", "errors")

    def __init__(self):
        self._lock = threading.Lock()
        self._counters = dict.fromkeys(self._FIELDS, 0)

    def record(self, field: str, amount: int = 1) -> None:
        with self._lock:
            self._counters[field] += amount

    def reset(self) -> None:
        with self._lock:
            self._counters = dict.fromkeys(self._FIELDS, 0)

    def snapshot(self) -> dict[str, Any]:
        """
        Copy of the counters plus the derived hit rate (percent, 0 when idle).
        """
        with self._lock:
            counters = dict(self._counters)
        accesses = counters["hits"] + counters["misses"]
        counters["hit_rate"] = counters["hits"] / accesses * 100 if accesses else 0.0
        return counters


# =============================================================================
# LAYER 2: PAYLOAD CODEC
# =============================================================================


class PayloadCodec:
    """
    Serializes values to the string stored by a backend.

    Every value is JSON-encoded (strings included) so any JSON-serializable
    value reads back deep-equal. Large values stored with compress=True are
    wrapped as {"_compressed": true, "data": base64(json)}.
    """

    def __init__(self, compression_threshold: int):
        self._threshold = compression_threshold

    def encode(self, value: Any, compress: bool = False) -> str:
        try:
            payload = orjson.dumps(value)
        except TypeError as e:
            raise CacheSerializationError.from_exception(
                e, message=f"Value is not JSON-serializable: {e}"
            ) from e
        if compress and len(payload) > self._threshold:
            envelope = {COMPRESSED_MARKER: True, "data": base64.b64encode(payload).decode("ascii")}
            payload = orjson.dumps(envelope)
        return payload.decode("utf-8")

    def decode(self, payload: str) -> Any:
        """
        Inverse of encode().

        Payloads that aren't JSON (written by another client) come back as the
        raw string. A compressed envelope that fails to decode raises
        CacheSerializationError so the caller can treat it as a miss.
        """
        try:
            parsed = orjson.loads(payload)
        except orjson.JSONDecodeError:
            return payload
        if isinstance(parsed, dict) and parsed.get(COMPRESSED_MARKER) is True:
            try:
                return orjson.loads(base64.b64decode(parsed["data"], validate=True))
            except (KeyError, TypeError, binascii.Error, orjson.JSONDecodeError) as e:
                raise CacheSerializationError.from_exception(
                    e, message="Compressed cache payload could not be decoded"
                ) from e
        return parsed


# =============================================================================
# LAYER 3: BACKEND SELECTION
# =============================================================================


class BackendSelector:
    """
    Holds the active backend and the selection state machine.

    The remote backend is probed once. After it is abandoned there is no way
    back: recovery means constructing a new cache.
    """

    def __init__(self, remote: CacheBackend | None, local: CacheBackend, probe_timeout: float):
        self._remote = remote
        self._local = local
        self._probe_timeout = probe_timeout
        self._state = BackendState.UNINITIALIZED
        self._active: CacheBackend = local
        self._probe_lock = asyncio.Lock()

    @property
    def state(self) -> BackendState:
        return self._state

    @property
    def settled(self) -> bool:
        """True once a backend has been chosen. False while a probe is pending or in flight."""
        return self._state in (BackendState.REMOTE_ACTIVE, BackendState.LOCAL_FALLBACK)

    @property
    def active(self) -> CacheBackend:
        return self._active

    @property
    def remote(self) -> CacheBackend | None:
        return self._remote

    @property
    def local(self) -> CacheBackend:
        return self._local

    async def probe(self) -> bool:
        """
        Select the backend. Returns False when the remote probe failed.

        STAGE-C.0: Backend probe
        """
        async with self._probe_lock:
            if self._state is not BackendState.UNINITIALIZED:
                return True

            if self._remote is None:
                self._state = BackendState.LOCAL_FALLBACK
                self._active = self._local
                log_stage(logger, Stage.CACHE_PROBE, "No remote cache configured, using local backend")
                return True

            self._state = BackendState.PROBING
            try:
                await asyncio.wait_for(self._remote.ping(), timeout=self._probe_timeout)
            except Exception as e:
                self._state = BackendState.LOCAL_FALLBACK
                self._active = self._local
                log_stage(
                    logger,
                    Stage.CACHE_PROBE,
                    "Remote cache unreachable at startup, using local backend",
                    level="warning",
                    error=str(e) or e.__class__.__name__,
                    error_type=e.__class__.__name__,
                )
                return False

            self._state = BackendState.REMOTE_ACTIVE
            self._active = self._remote
            log_stage(logger, Stage.CACHE_PROBE, "Remote cache reachable", backend=self._remote.name)
            return True

    def fail_over(self, failed: CacheBackend, error: Exception) -> None:
        """
        Abandon the remote backend after a connection error or timeout.

        STAGE-C.4: Backend failover
        """
        if failed is not self._remote or self._state is not BackendState.REMOTE_ACTIVE:
            return
        self._state = BackendState.LOCAL_FALLBACK
        self._active = self._local
        log_stage(
            logger,
            Stage.CACHE_FAILOVER,
            "Remote cache failed, switching to local backend for the rest of the process",
            level="warning",
            error=str(error),
        )


# =============================================================================
# LAYER 4: PUBLIC API
# =============================================================================


class ResilientCache:
    """
    Cache that never fails its caller.

    Usage:
        cache = ResilientCache()
        await cache.initialize()

        await cache.set("ai:answer:abc", {"rows": [...]}, ttl=600, tags=["orders"])
        value = await cache.get("ai:answer:abc")
        await cache.delete_by_tag("orders")

        stats = cache.get_stats()
        await cache.close()

    One instance per process, created at startup and passed to whatever owns
    request handling (the FastAPI app keeps it on app.state).

    Limitation: delete() does not remove the key from its tag sets, so a tag
    set may reference keys that are already gone. delete_by_tag() tolerates
    that.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        remote: CacheBackend | None = None,
        local: CacheBackend | None = None,
    ):
        """
        Build the cache from settings.

        STAGE-C: Cache initialization (no I/O; the probe runs in initialize())

        Args:
            settings: Configuration (defaults to the process settings)
            remote: Remote backend override; built from REDIS_URL when omitted
            local: Fallback backend override
        """
        settings = settings or get_settings()
        cache_settings = settings.cache
        redis_settings = settings.redis

        self._enabled = cache_settings.ENABLE_CACHING
        self._prefix = cache_settings.CACHE_KEY_PREFIX
        self._default_ttl = cache_settings.CACHE_DEFAULT_TTL

        if remote is None and redis_settings.REDIS_URL:
            remote = RedisBackend(
                redis_settings.REDIS_URL,
                operation_timeout=redis_settings.REDIS_OPERATION_TIMEOUT,
                socket_connect_timeout=redis_settings.REDIS_SOCKET_CONNECT_TIMEOUT,
                socket_timeout=redis_settings.REDIS_SOCKET_TIMEOUT,
            )

        self._selector = BackendSelector(
            remote, local or MemoryBackend(), cache_settings.CACHE_PROBE_TIMEOUT
        )
        self._codec = PayloadCodec(cache_settings.CACHE_COMPRESSION_THRESHOLD)
        self._stats = CacheStats()

        logger.info(
            "Resilient cache created",
            stage=Stage.CACHE_PROBE.value,
            caching_enabled=self._enabled,
            remote_configured=remote is not None,
            key_prefix=self._prefix,
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def state(self) -> BackendState:
        return self._selector.state

    @property
    def backend_name(self) -> str:
        return self._selector.active.name

    async def initialize(self) -> None:
        """
        Probe the remote store once; a failed probe counts as one error.

        Callers arriving while another probe is in flight wait for its outcome.
        """
        if not self._enabled or self._selector.settled:
            return
        if not await self._selector.probe():
            self._stats.record("errors")

    async def close(self) -> None:
        """
        Close backend connections.

        STAGE-C.5: Cache shutdown
        """
        for backend in (self._selector.remote, self._selector.local):
            if backend is None:
                continue
            try:
                await backend.close()
            except Exception as e:
                logger.warning(
                    "Cache backend close failed",
                    stage=Stage.CACHE_SHUTDOWN.value,
                    backend=backend.name,
                    error=str(e),
                )
        log_stage(logger, Stage.CACHE_SHUTDOWN, "Resilient cache closed")

    # -------------------------------------------------------------------------
    # Key layout
    # -------------------------------------------------------------------------

    def _full_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _tag_key(self, tag: str) -> str:
        return f"{self._prefix}{CACHE_TAG_SEGMENT}{tag}"

    def _version_key(self, key: str) -> str:
        return f"{self._prefix}{CACHE_VERSION_SEGMENT}{key}"

    # -------------------------------------------------------------------------
    # Fault boundary
    # -------------------------------------------------------------------------

    async def _guarded(
        self,
        operation: str,
        call: Callable[[CacheBackend], Awaitable[T]],
        empty: T,
        **context,
    ) -> T:
        """
        Run call against the active backend, converting any fault to empty.

        Connection errors and timeouts from the remote backend also switch
        the cache to the local backend.
        """
        if not self._selector.settled:
            await self.initialize()

        backend = self._selector.active
        try:
            return await call(backend)
        except CacheConnectionError as e:
            self._stats.record("errors")
            logger.error(
                f"Cache {operation} failed: backend unreachable",
                stage=Stage.CACHE_FAILOVER.value,
                backend=backend.name,
                error=e.message,
                **context,
            )
            self._selector.fail_over(backend, e)
            return empty
        except Exception as e:
            self._stats.record("errors")
            logger.error(
                f"Cache {operation} failed",
                stage=Stage.CACHE_LOOKUP.value,
                backend=backend.name,
                error=str(e),
                error_type=e.__class__.__name__,
                **context,
            )
            return empty

    # -------------------------------------------------------------------------
    # Core Cache Operations
    # -------------------------------------------------------------------------

    async def get(self, key: str) -> Any | None:
        """
        Read a value; None on miss, expiry, fault or undecodable payload.

        STAGE-C.1: Cache lookup
        """
        if not self._enabled:
            return None

        async def _get(backend: CacheBackend) -> Any | None:
            payload = await backend.get(self._full_key(key))
            if payload is None:
                self._stats.record("misses")
                log_stage(logger, Stage.CACHE_LOOKUP, "Cache miss", level="debug", cache_key=key)
                return None
            try:
                value = self._codec.decode(payload)
            except CacheSerializationError:
                self._stats.record("misses")
                raise
            self._stats.record("hits")
            log_stage(logger, Stage.CACHE_LOOKUP, "Cache hit", level="debug", cache_key=key)
            return value

        return await self._guarded("get", _get, None, cache_key=key)

    async def set(
        self,
        key: str,
        value: Any,
        ttl: int | None = None,
        tags: Iterable[str] | None = None,
        compress: bool = False,
        version: str | None = None,
    ) -> bool:
        """
        Store a value.

        STAGE-C.2: Cache population

        Args:
            key: Unprefixed key
            value: Any JSON-serializable value
            ttl: Seconds to live (default from settings; non-positive means default)
            tags: Tags for delete_by_tag (indexed on the remote backend only)
            compress: Wrap payloads above the compression threshold
            version: Version label stored alongside the entry

        Returns:
            bool: True on success, False when disabled or on any fault
        """
        if not self._enabled:
            return False

        ttl = ttl if ttl and ttl > 0 else self._default_ttl
        tags = list(tags or ())

        async def _set(backend: CacheBackend) -> bool:
            payload = self._codec.encode(value, compress=compress)
            await backend.set(self._full_key(key), payload, ttl)
            for tag in tags:
                await backend.add_tag_member(self._tag_key(tag), key)
            if version is not None:
                await backend.set(self._version_key(key), self._codec.encode(version), ttl)
            self._stats.record("sets")
            log_stage(
                logger, Stage.CACHE_POPULATE, "Cache set", level="debug",
                cache_key=key, ttl=ttl, tags=tags, payload_size=len(payload),
            )
            return True

        return await self._guarded("set", _set, False, cache_key=key)

    async def delete(self, key: str) -> bool:
        """
        Remove an entry and its version record. True iff the entry existed.

        STAGE-C.3: Cache invalidation
        """
        if not self._enabled:
            return False

        async def _delete(backend: CacheBackend) -> bool:
            removed = await backend.delete(self._full_key(key))
            await backend.delete(self._version_key(key))
            self._stats.record("deletes")
            log_stage(logger, Stage.CACHE_INVALIDATE, "Cache delete", level="debug", cache_key=key)
            return removed > 0

        return await self._guarded("delete", _delete, False, cache_key=key)

    async def delete_by_tag(self, tag: str) -> int:
        """
        Delete every key recorded under tag, then the tag set itself.

        Returns:
            int: Number of entries removed (0 on the local backend)
        """
        if not self._enabled:
            return 0

        async def _delete_by_tag(backend: CacheBackend) -> int:
            tag_key = self._tag_key(tag)
            members = await backend.tag_members(tag_key)
            if not members:
                return 0
            removed = await backend.delete(*(self._full_key(member) for member in sorted(members)))
            await backend.delete(tag_key)
            self._stats.record("deletes", removed)
            log_stage(
                logger, Stage.CACHE_INVALIDATE, "Cache entries deleted by tag",
                tag=tag, members=len(members), removed=removed,
            )
            return removed

        return await self._guarded("delete_by_tag", _delete_by_tag, 0, tag=tag)

    async def exists(self, key: str) -> bool:
        if not self._enabled:
            return False

        async def _exists(backend: CacheBackend) -> bool:
            return await backend.exists(self._full_key(key))

        return await self._guarded("exists", _exists, False, cache_key=key)

    async def get_ttl(self, key: str) -> int:
        """
        Remaining seconds for key.

        Returns:
            int: -1 when caching is disabled, -2 when the key is absent or the
                 backend failed, NO_EXPIRY_TTL when the entry never expires
        """
        if not self._enabled:
            return -1

        async def _ttl(backend: CacheBackend) -> int:
            return await backend.ttl(self._full_key(key))

        return await self._guarded("get_ttl", _ttl, -2, cache_key=key)

    async def extend(self, key: str, ttl: int) -> bool:
        """Reset the expiry of an existing entry without rereading it."""
        if not self._enabled or ttl <= 0:
            return False

        async def _extend(backend: CacheBackend) -> bool:
            return await backend.expire(self._full_key(key), ttl)

        return await self._guarded("extend", _extend, False, cache_key=key, ttl=ttl)

    async def flush(self) -> bool:
        """Remove every namespaced key and reset the statistics."""
        if not self._enabled:
            return False

        async def _flush(backend: CacheBackend) -> bool:
            removed = await backend.clear(self._prefix)
            self._stats.reset()
            log_stage(logger, Stage.CACHE_INVALIDATE, "Cache flushed", backend=backend.name, removed=removed)
            return True

        return await self._guarded("flush", _flush, False)

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    def get_stats(self) -> dict[str, Any]:
        """Snapshot of {hits, misses, sets, deletes, errors, hit_rate}."""
        return self._stats.snapshot()

    async def get_size(self) -> dict[str, Any]:
        """Approximate {keys, memory} for the namespace."""
        if not self._enabled:
            return dict(_EMPTY_SIZE)

        async def _size(backend: CacheBackend) -> dict[str, Any]:
            keys = await backend.keys(self._prefix)
            memory = await backend.memory_estimate(keys)
            return {"keys": len(keys), "memory": format_bytes(memory)}

        return await self._guarded("get_size", _size, dict(_EMPTY_SIZE))

    async def get_version(self, key: str) -> str | None:
        if not self._enabled:
            return None

        async def _version(backend: CacheBackend) -> str | None:
            payload = await backend.get(self._version_key(key))
            return None if payload is None else self._codec.decode(payload)

        return await self._guarded("get_version", _version, None, cache_key=key)

    async def health_check(self) -> dict[str, Any]:
        """
        Health verdict from the counters.

        Healthy iff errors < 10 and hit rate > 10%.
        """
        stats = self.get_stats()
        size = await self.get_size()
        healthy = (
            stats["errors"] < CACHE_HEALTHY_MAX_ERRORS
            and stats["hit_rate"] > CACHE_HEALTHY_MIN_HIT_RATE
        )
        return {
            "status": "healthy" if healthy else "unhealthy",
            "backend": self.backend_name,
            "state": self.state.value,
            "caching_enabled": self._enabled,
            "stats": stats,
            "size": size,
            "recommendations": health_recommendations(stats),
        }

    # -------------------------------------------------------------------------
    # Advanced Patterns
    # -------------------------------------------------------------------------

    async def get_or_set(
        self,
        key: str,
        factory: Callable[[], Any],
        ttl: int | None = None,
        tags: Iterable[str] | None = None,
        compress: bool = False,
    ) -> Any:
        """
        Cache-aside: return the cached value or compute, store and return it.

        factory may be sync or async. Its exceptions propagate; cache faults
        never do.
        """
        cached = await self.get(key)
        if cached is not None:
            return cached

        value = factory()
        if inspect.isawaitable(value):
            value = await value

        if value is not None:
            await self.set(key, value, ttl=ttl, tags=tags, compress=compress)
        return value

    @staticmethod
    def generate_cache_key(namespace: str, *parts: Any) -> str:
        """
        Stable key from a namespace and arbitrary parts.

        MD5 is fine here: collisions only cost a wrong miss/hit pairing on
        identical digests, and the key never leaves the cache.

        >>> ResilientCache.generate_cache_key("query", "orders", {"status": "open"})  # doctest: +SKIP
        'query:5f1c...'
        """
        data = ":".join(
            orjson.dumps(part, option=orjson.OPT_SORT_KEYS, default=str).decode("utf-8")
            if not isinstance(part, str) else part
            for part in parts
        )
        return f"{namespace}:{hashlib.md5(data.encode()).hexdigest()}"

    format_bytes = staticmethod(format_bytes)


def health_recommendations(stats: dict[str, Any]) -> list[str]:
    """Operator advice derived from the counters."""
    recommendations = []
    if stats["hit_rate"] < CACHE_LOW_HIT_RATE:
        recommendations.append("Cache hit rate is low, consider revisiting what gets cached")
    if stats["errors"] > CACHE_MANY_ERRORS:
        recommendations.append("Cache errors are frequent, check the Redis connection and configuration")
    if stats["hits"] + stats["misses"] > CACHE_HIGH_TRAFFIC:
        recommendations.append("Cache traffic is high, consider increasing cache capacity")
    if not recommendations:
        recommendations.append("Cache operating normally")
    return recommendations
