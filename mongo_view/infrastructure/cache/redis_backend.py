"""
Redis Cache Backend

Durable remote store for the resilient cache.

Architecture:
    RedisBackend (Public API, implements CacheBackend)
        ├── ConnectionManager (client lifecycle)
        └── OperationExecutor (bounded command execution with error mapping)

Every command is bounded by the configured operation timeout so a slow or
partitioned Redis cannot stall request handling. Failures are mapped to two
exception types the resilient cache reacts to differently:

    - CacheConnectionError: connection refused/reset, socket or command timeout.
      The cache switches permanently to the local fallback.
    - CacheKeyError: any other Redis error. Counted, backend kept.

Author: System Architect
Date: 2025-12-13
"""

import asyncio
import re
from collections.abc import Awaitable, Set as AbstractSet
from typing import Any

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from mongo_view.core.config.constants import CACHE_SCAN_BATCH_SIZE, NO_EXPIRY_TTL
from mongo_view.core.exceptions import CacheConnectionError, CacheKeyError
from mongo_view.core.logging.logger import get_logger, redact_value

logger = get_logger(__name__)

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def escape_glob(prefix: str) -> str:
    """Escape Redis MATCH glob characters so the prefix is matched literally."""
    return _GLOB_SPECIAL.sub(r"\\\1", prefix)


# =============================================================================
# LAYER 1: CONNECTION MANAGEMENT
# =============================================================================


class ConnectionManager:
    """
    Manages the redis.asyncio client lifecycle.

    The client is built lazily from the connection string. An already
    constructed client can be injected instead (tests use an in-memory double).
    """

    def __init__(
        self,
        url: str,
        socket_connect_timeout: float,
        socket_timeout: float,
        client: Any | None = None,
    ):
        self._url = url
        self._socket_connect_timeout = socket_connect_timeout
        self._socket_timeout = socket_timeout
        self._client = client

    def get_client(self) -> Any:
        """
        Return the client, creating it on first use.

        STAGE-REDIS.1: Client construction (no network I/O yet)
        """
        if self._client is None:
            self._client = redis.from_url(
                self._url,
                socket_connect_timeout=self._socket_connect_timeout,
                socket_timeout=self._socket_timeout,
                decode_responses=True,  # Return strings instead of bytes
            )
            logger.debug("Redis client created", stage="REDIS.1", url=redact_value(self._url))
        return self._client

    async def disconnect(self) -> None:
        """
        Close the client and its connection pool.

        STAGE-REDIS.3: Connection cleanup
        """
        if self._client is None:
            return
        client, self._client = self._client, None
        await client.aclose()
        logger.info("Redis disconnected", stage="REDIS.3")


# =============================================================================
# LAYER 2: OPERATION EXECUTOR
# =============================================================================


class OperationExecutor:
    """
    Executes Redis commands with a per-call timeout and consistent error mapping.

    Error Handling Strategy:
    - Connection errors and timeouts → CacheConnectionError
    - Any other RedisError → CacheKeyError
    - Both carry the command name and key in details
    """

    def __init__(self, connection_manager: ConnectionManager, operation_timeout: float):
        self._conn_mgr = connection_manager
        self._timeout = operation_timeout

    async def run(self, command: str, awaitable: Awaitable[Any], **context) -> Any:
        """
        Await a Redis call bounded by the operation timeout.

        Args:
            command: Command name for logs and error details (e.g. "GET")
            awaitable: The pending client call
            **context: Extra fields for error details (key, pattern, ...)
        """
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except (RedisConnectionError, RedisTimeoutError, asyncio.TimeoutError, OSError) as e:
            logger.warning(
                f"Redis {command} failed: backend unreachable",
                stage=f"REDIS.{command}",
                error=str(e) or e.__class__.__name__,
                **context,
            )
            raise CacheConnectionError.from_exception(
                e, message=f"Redis {command} failed: {str(e) or 'timeout'}", command=command, **context
            ) from e
        except RedisError as e:
            logger.error(f"Redis {command} failed", stage=f"REDIS.{command}", error=str(e), **context)
            raise CacheKeyError.from_exception(
                e, message=f"Redis {command} failed: {e}", command=command, **context
            ) from e

    @property
    def client(self) -> Any:
        return self._conn_mgr.get_client()


# =============================================================================
# LAYER 3: PUBLIC API
# =============================================================================


class RedisBackend:
    """
    CacheBackend implementation over redis.asyncio.

    Usage:
        backend = RedisBackend("redis://localhost:6379/0", operation_timeout=2.0)
        await backend.connect()
        await backend.set("mongo_view:ai:k", '"v"', ttl=60)
        await backend.close()

    Tag sets are Redis sets (SADD/SMEMBERS). Namespace scans use SCAN with a
    MATCH pattern, never KEYS, so a large keyspace doesn't block the server.
    """

    name = "redis"

    def __init__(
        self,
        url: str,
        operation_timeout: float = 2.0,
        socket_connect_timeout: float = 2.0,
        socket_timeout: float = 2.0,
        client: Any | None = None,
    ):
        self._conn_mgr = ConnectionManager(url, socket_connect_timeout, socket_timeout, client)
        self._executor = OperationExecutor(self._conn_mgr, operation_timeout)

    async def connect(self) -> None:
        """
        Verify the store is reachable.

        STAGE-REDIS.2: Connection establishment

        Raises:
            CacheConnectionError: If the ping fails or times out
        """
        await self.ping()
        logger.info("Redis connected successfully", stage="REDIS.2")

    async def close(self) -> None:
        await self._conn_mgr.disconnect()

    async def ping(self) -> bool:
        return bool(await self._executor.run("PING", self._executor.client.ping()))

    async def get(self, key: str) -> str | None:
        return await self._executor.run("GET", self._executor.client.get(key), key=key)

    async def set(self, key: str, value: str, ttl: int) -> bool:
        result = await self._executor.run(
            "SET", self._executor.client.set(key, value, ex=ttl), key=key
        )
        return bool(result)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(await self._executor.run("DEL", self._executor.client.delete(*keys), keys=list(keys)))

    async def exists(self, key: str) -> bool:
        return bool(await self._executor.run("EXISTS", self._executor.client.exists(key), key=key))

    async def ttl(self, key: str) -> int:
        """
        Remaining lifetime in seconds.

        Redis reports -1 for keys without expiry; that becomes NO_EXPIRY_TTL.
        """
        remaining = int(await self._executor.run("TTL", self._executor.client.ttl(key), key=key))
        if remaining == -1:
            return NO_EXPIRY_TTL
        return remaining

    async def expire(self, key: str, ttl: int) -> bool:
        return bool(
            await self._executor.run("EXPIRE", self._executor.client.expire(key, ttl), key=key)
        )

    async def add_tag_member(self, tag_key: str, member: str) -> None:
        await self._executor.run("SADD", self._executor.client.sadd(tag_key, member), key=tag_key)

    async def tag_members(self, tag_key: str) -> AbstractSet[str]:
        members = await self._executor.run(
            "SMEMBERS", self._executor.client.smembers(tag_key), key=tag_key
        )
        return set(members or ())

    async def keys(self, prefix: str) -> list[str]:
        """All keys whose name starts with prefix (SCAN MATCH prefix*)."""
        client = self._executor.client
        pattern = f"{escape_glob(prefix)}*"

        async def _scan() -> list[str]:
            return [key async for key in client.scan_iter(match=pattern, count=CACHE_SCAN_BATCH_SIZE)]

        return await self._executor.run("SCAN", _scan(), pattern=pattern)

    async def clear(self, prefix: str) -> int:
        """Delete every key under prefix, in batches."""
        keys = await self.keys(prefix)
        removed = 0
        for start in range(0, len(keys), CACHE_SCAN_BATCH_SIZE):
            removed += await self.delete(*keys[start:start + CACHE_SCAN_BATCH_SIZE])
        return removed

    async def memory_estimate(self, keys: list[str]) -> int:
        """
        MEMORY USAGE of the first key.

        Managed Redis offerings often disable MEMORY; that is reported as 0
        rather than as a fault.
        """
        if not keys:
            return 0
        try:
            usage = await self._executor.run(
                "MEMORY_USAGE", self._executor.client.memory_usage(keys[0]), key=keys[0]
            )
        except CacheKeyError:
            return 0
        return int(usage or 0)
