"""
Unit Tests for MemoryBackend

Tests the in-process fallback store: expiry on the injected clock, key
listing, tag no-ops and bulk clear.
"""

import typing
from collections.abc import Set as AbstractSet

import pytest

from mongo_view.core.config.constants import NO_EXPIRY_TTL
from mongo_view.core.interfaces import CacheBackend
from mongo_view.infrastructure.cache.memory_backend import MemoryBackend
from mongo_view.infrastructure.cache.redis_backend import RedisBackend


@pytest.fixture
def backend(clock):
    return MemoryBackend(clock=clock)


@pytest.mark.unit
class TestMemoryBackendBasics:
    """Get/set/delete behaviour."""

    def test_implements_cache_backend_protocol(self, backend):
        """Test that the backend satisfies the CacheBackend protocol."""
        assert isinstance(backend, CacheBackend)
        assert backend.name == "memory"

    @pytest.mark.asyncio
    async def test_set_then_get_returns_payload(self, backend):
        """Test that a stored payload reads back unchanged."""
        assert await backend.set("k", '{"a":1}', 60) is True

        assert await backend.get("k") == '{"a":1}'

    @pytest.mark.asyncio
    async def test_get_missing_key_returns_none(self, backend):
        assert await backend.get("missing") is None

    @pytest.mark.asyncio
    async def test_delete_counts_only_existing_keys(self, backend):
        """Test that delete returns the number of keys actually removed."""
        await backend.set("a", "1", 60)
        await backend.set("b", "2", 60)

        removed = await backend.delete("a", "b", "c")

        assert removed == 2
        assert await backend.exists("a") is False

    @pytest.mark.asyncio
    async def test_ping_is_always_true(self, backend):
        assert await backend.ping() is True


@pytest.mark.unit
class TestMemoryBackendExpiry:
    """TTL handling on the monotonic clock."""

    @pytest.mark.asyncio
    async def test_entry_expires_after_ttl(self, backend, clock):
        """Test that an entry is gone once its TTL elapsed."""
        await backend.set("k", "v", 1)

        clock.advance(1.2)

        assert await backend.get("k") is None
        assert await backend.exists("k") is False

    @pytest.mark.asyncio
    async def test_ttl_reports_remaining_seconds(self, backend, clock):
        await backend.set("k", "v", 60)
        clock.advance(15)

        assert await backend.ttl("k") == 45

    @pytest.mark.asyncio
    async def test_ttl_missing_key_is_minus_two(self, backend):
        assert await backend.ttl("missing") == -2

    @pytest.mark.asyncio
    async def test_non_positive_ttl_means_no_expiry(self, backend, clock):
        """Test that ttl <= 0 stores the entry without expiry."""
        await backend.set("k", "v", 0)
        clock.advance(10 ** 6)

        assert await backend.get("k") == "v"
        assert await backend.ttl("k") == NO_EXPIRY_TTL

    @pytest.mark.asyncio
    async def test_expire_resets_lifetime(self, backend, clock):
        """Test that expire() pushes the deadline out from now."""
        await backend.set("k", "v", 10)
        clock.advance(8)

        assert await backend.expire("k", 100) is True
        clock.advance(50)

        assert await backend.get("k") == "v"
        assert await backend.ttl("k") == 50

    @pytest.mark.asyncio
    async def test_expire_missing_key_returns_false(self, backend):
        assert await backend.expire("missing", 100) is False


@pytest.mark.unit
class TestMemoryBackendBulk:
    """Namespace listing, clear and size estimate."""

    @pytest.mark.asyncio
    async def test_keys_filters_prefix_and_expired(self, backend, clock):
        """Test that keys() lists only live keys under the prefix."""
        await backend.set("ns:a", "1", 60)
        await backend.set("ns:b", "2", 1)
        await backend.set("other:c", "3", 60)
        clock.advance(2)

        assert await backend.keys("ns:") == ["ns:a"]

    @pytest.mark.asyncio
    async def test_clear_empties_the_map(self, backend):
        await backend.set("ns:a", "1", 60)
        await backend.set("other:b", "2", 60)

        assert await backend.clear("ns:") == 2
        assert await backend.keys("") == []

    @pytest.mark.asyncio
    async def test_memory_estimate_is_per_key(self, backend):
        assert await backend.memory_estimate(["a", "b", "c"]) == 300
        assert await backend.memory_estimate([]) == 0

    @pytest.mark.asyncio
    async def test_tags_are_not_indexed(self, backend):
        """Test that tag membership is a no-op on the local store."""
        await backend.add_tag_member("ns:tags:t", "a")

        assert await backend.tag_members("ns:tags:t") == set()

    @pytest.mark.asyncio
    async def test_close_drops_entries(self, backend):
        await backend.set("k", "v", 60)

        await backend.close()

        assert await backend.get("k") is None


@pytest.mark.unit
class TestBackendAnnotations:
    """Annotations on classes that also define a set() method."""

    @pytest.mark.parametrize("owner", [CacheBackend, MemoryBackend, RedisBackend])
    def test_tag_members_return_annotation_resolves(self, owner):
        """Test that tag_members is annotated with the abstract set type, not the set() method."""
        hints = typing.get_type_hints(owner.tag_members)

        assert hints["return"] == AbstractSet[str]
