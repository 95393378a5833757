"""
Cache Inspection Routes
=======================

Operational endpoints over the resilient cache: statistics, single-key
inspection, writes, invalidation and health.

SECURITY CONSIDERATIONS:
------------------------
These endpoints can read and flush cached model responses. In production
they belong behind the deployment's own authentication layer.
"""

import orjson
from fastapi import APIRouter, HTTPException, status
from fastapi.responses import JSONResponse

from mongo_view.application.api.dependencies import CacheDep
from mongo_view.application.api.models.cache import (
    CacheDeleteByTagResponse,
    CacheEntryResponse,
    CacheExistsResponse,
    CacheExtendRequest,
    CacheHealthResponse,
    CacheMessageResponse,
    CacheSetRequest,
    CacheStatsResponse,
)
from mongo_view.core.config.constants import NO_EXPIRY_TTL
from mongo_view.core.exceptions import InvalidInputError
from mongo_view.core.logging.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/cache", tags=["Cache"])


def json_type(value) -> str:
    """JSON type name of a decoded value."""
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if value is None:
        return "null"
    return "object"


# ============================================================================
# READ ENDPOINTS
# ============================================================================


@router.get("/stats", response_model=CacheStatsResponse)
async def get_cache_stats(cache: CacheDep):
    """Counters, namespace size and the formatted hit rate."""
    stats = cache.get_stats()
    size = await cache.get_size()
    return CacheStatsResponse(
        **stats,
        **size,
        hit_rate_formatted=f"{stats['hit_rate']:.2f}%",
        backend=cache.backend_name,
        state=cache.state.value,
    )


@router.get("/exists/{key}", response_model=CacheExistsResponse)
async def cache_key_exists(key: str, cache: CacheDep):
    """Whether key is cached, and its remaining TTL."""
    exists = await cache.exists(key)
    ttl = await cache.get_ttl(key) if exists else -2
    return CacheExistsResponse(key=key, exists=exists, ttl=ttl, never_expires=ttl == NO_EXPIRY_TTL)


@router.get("/get/{key}", response_model=CacheEntryResponse)
async def get_cache_entry(key: str, cache: CacheDep):
    """
    Cached value for key.

    Raises:
        HTTPException: 404 when the key is absent
    """
    value = await cache.get(key)
    if value is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cache entry not found")
    return CacheEntryResponse(key=key, value=value, type=json_type(value), size=len(orjson.dumps(value)))


@router.get("/health", response_model=CacheHealthResponse)
async def cache_health(cache: CacheDep):
    """
    Health verdict derived from the counters.

    Returns 503 when unhealthy so load balancers and probes can act on it.
    """
    health = await cache.health_check()
    code = status.HTTP_200_OK if health["status"] == "healthy" else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(status_code=code, content=CacheHealthResponse(**health).model_dump())


# ============================================================================
# WRITE ENDPOINTS
# ============================================================================


@router.post("/set", response_model=CacheMessageResponse)
async def set_cache_entry(body: CacheSetRequest, cache: CacheDep):
    """Store a value. 500 when the cache refused or failed the write."""
    stored = await cache.set(
        body.key,
        body.value,
        ttl=body.ttl,
        tags=body.tags,
        compress=body.compress,
        version=body.version,
    )
    if not stored:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Cache set failed")
    return CacheMessageResponse(message="Cache entry stored")


@router.delete("/delete/{key}", response_model=CacheMessageResponse)
async def delete_cache_entry(key: str, cache: CacheDep):
    if not await cache.delete(key):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Cache entry not found or delete failed"
        )
    return CacheMessageResponse(message="Cache entry deleted")


@router.delete("/delete-by-tag/{tag}", response_model=CacheDeleteByTagResponse)
async def delete_cache_entries_by_tag(tag: str, cache: CacheDep):
    deleted = await cache.delete_by_tag(tag)
    return CacheDeleteByTagResponse(message=f"Deleted {deleted} cache entries", deleted_count=deleted)


@router.put("/extend/{key}", response_model=CacheMessageResponse)
async def extend_cache_entry(key: str, body: CacheExtendRequest, cache: CacheDep):
    """
    Reset the expiry of an existing entry.

    Raises:
        InvalidInputError: 400 when ttl is not positive
        HTTPException: 404 when the key is absent
    """
    if body.ttl <= 0:
        raise InvalidInputError("TTL must be a positive number of seconds", details={"ttl": body.ttl})
    if not await cache.extend(key, body.ttl):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Cache entry not found or extend failed"
        )
    return CacheMessageResponse(message="Cache expiry extended")


@router.delete("/flush", response_model=CacheMessageResponse)
async def flush_cache(cache: CacheDep):
    """Remove every namespaced entry and reset the counters."""
    if not await cache.flush():
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Cache flush failed")
    logger.info("Cache flushed via API")
    return CacheMessageResponse(message="Cache flushed")
