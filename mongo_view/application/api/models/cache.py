"""
Cache API Models

Request and response bodies for the cache inspection endpoints.
"""

from typing import Any

from pydantic import BaseModel, Field


class CacheSetRequest(BaseModel):
    """Body of POST /cache/set."""

    key: str = Field(..., min_length=1, description="Unprefixed cache key")
    value: Any = Field(..., description="Any JSON value")
    ttl: int | None = Field(default=None, description="Seconds to live; default TTL when omitted")
    tags: list[str] | None = Field(default=None, description="Tags for bulk invalidation")
    compress: bool = Field(default=False, description="Compress payloads above the threshold")
    version: str | None = Field(default=None, description="Version label stored with the entry")


class CacheExtendRequest(BaseModel):
    """Body of PUT /cache/extend/{key}."""

    ttl: int = Field(..., description="New lifetime in seconds (must be positive)")


class CacheStatsResponse(BaseModel):
    """Counters, namespace size and formatted hit rate."""

    hits: int = Field(..., ge=0, description="Successful lookups")
    misses: int = Field(..., ge=0, description="Lookups of absent or expired keys")
    sets: int = Field(..., ge=0, description="Successful writes")
    deletes: int = Field(..., ge=0, description="Delete calls plus entries removed by tag")
    errors: int = Field(..., ge=0, description="Backend faults absorbed by the cache")
    hit_rate: float = Field(..., ge=0, le=100, description="hits / (hits + misses) * 100")
    hit_rate_formatted: str = Field(..., description="Hit rate with two decimals, e.g. '66.67%'")
    keys: int = Field(..., ge=0, description="Keys under the namespace")
    memory: str = Field(..., description="Approximate memory use, e.g. '1.5KB'")
    backend: str = Field(..., description="Active backend name")
    state: str = Field(..., description="Backend selection state")


class CacheExistsResponse(BaseModel):
    key: str
    exists: bool
    ttl: int = Field(..., description="Remaining seconds; -2 when absent")
    never_expires: bool = Field(default=False, description="Entry has no expiry")


class CacheEntryResponse(BaseModel):
    """A cached value with its JSON type and serialized size."""

    key: str
    value: Any
    type: str = Field(..., description="JSON type of the value")
    size: int = Field(..., ge=0, description="Serialized size in bytes")


class CacheMessageResponse(BaseModel):
    success: bool = True
    message: str


class CacheDeleteByTagResponse(CacheMessageResponse):
    deleted_count: int = Field(..., ge=0, description="Entries removed")


class CacheHealthResponse(BaseModel):
    """Health verdict with operator recommendations."""

    status: str = Field(..., description="'healthy' or 'unhealthy'")
    backend: str
    state: str
    caching_enabled: bool
    stats: dict[str, Any]
    size: dict[str, Any]
    recommendations: list[str]
