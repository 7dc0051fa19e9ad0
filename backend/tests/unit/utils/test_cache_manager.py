#!/usr/bin/env python3
# backend/tests/unit/utils/test_cache_manager.py
"""
Test suite for cache_manager.py: TTL storage, the tag index and key
derivation.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from listing_media.utils.cache_manager import (
    CacheEntry,
    build_filter_cache_key,
    canonicalize_filters,
    path_tag,
    property_tag,
)


@pytest.mark.unit
@pytest.mark.cache
class TestCacheEntry:
    """Test the CacheEntry class functionality."""

    def test_cache_entry_creation(self):
        entry = CacheEntry({"test": "value"}, 60, tags=["property:1"])

        assert entry.data == {"test": "value"}
        assert entry.tags == {"property:1"}
        assert entry.is_expired() is False
        assert entry.get_age_seconds() >= 0

    def test_cache_entry_expiration(self):
        entry = CacheEntry("test_data", ttl_seconds=-1)

        assert entry.is_expired() is True


@pytest.mark.unit
@pytest.mark.cache
class TestMemoryCache:
    """Test the MemoryCache class functionality."""

    async def test_basic_set_and_get(self, fresh_cache):
        await fresh_cache.set("test_key", "test_value")

        assert await fresh_cache.get("test_key") == "test_value"
        assert await fresh_cache.get("missing") is None

    async def test_none_is_never_stored(self, fresh_cache):
        await fresh_cache.set("key", None)

        stats = await fresh_cache.get_stats()
        assert stats["total_entries"] == 0

    async def test_expired_entry_is_a_miss(self, fresh_cache):
        await fresh_cache.set("short", "value", ttl_seconds=-1)

        assert await fresh_cache.get("short") is None

    async def test_get_or_compute_caches_result(self, fresh_cache):
        compute = AsyncMock(return_value={"images": []})

        first = await fresh_cache.get_or_compute("listing", 60, compute)
        second = await fresh_cache.get_or_compute("listing", 60, compute)

        assert first == second == {"images": []}
        compute.assert_awaited_once()

    async def test_get_or_compute_does_not_cache_none(self, fresh_cache):
        compute = AsyncMock(return_value=None)

        assert await fresh_cache.get_or_compute("info", 60, compute) is None
        assert await fresh_cache.get_or_compute("info", 60, compute) is None
        assert compute.await_count == 2

    async def test_invalidate_tag_only_removes_tagged_entries(self, fresh_cache):
        await fresh_cache.set("listing:1", "a", tags=[property_tag(1)])
        await fresh_cache.set("info:1", "b", tags=[property_tag(1), path_tag("p/1/a.webp")])
        await fresh_cache.set("listing:2", "c", tags=[property_tag(2)])

        removed = await fresh_cache.invalidate_tag(property_tag(1))

        assert removed == 2
        assert await fresh_cache.get("listing:1") is None
        assert await fresh_cache.get("info:1") is None
        assert await fresh_cache.get("listing:2") == "c"
        assert await fresh_cache.keys_for_tag(path_tag("p/1/a.webp")) == set()

    async def test_compute_overlapping_invalidation_is_not_cached(self, fresh_cache):
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_listing():
            started.set()
            await release.wait()
            return {"images": []}

        reader = asyncio.create_task(
            fresh_cache.get_or_compute("listing:1", 60, slow_listing, tags=[property_tag(1)])
        )
        await started.wait()
        await fresh_cache.invalidate_tag(property_tag(1))
        release.set()

        assert await reader == {"images": []}
        assert await fresh_cache.get("listing:1") is None

    async def test_compute_overlapping_clear_is_not_cached(self, fresh_cache):
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_info():
            started.set()
            await release.wait()
            return {"size": 1}

        reader = asyncio.create_task(fresh_cache.get_or_compute("info:a", 60, slow_info))
        await started.wait()
        await fresh_cache.clear()
        release.set()

        await reader
        assert await fresh_cache.get("info:a") is None

    async def test_other_tags_do_not_discard_compute(self, fresh_cache):
        generations = await fresh_cache.snapshot_generations([property_tag(1)])
        await fresh_cache.invalidate_tag(property_tag(2))

        stored = await fresh_cache.set(
            "listing:1", "a", tags=[property_tag(1)], generations=generations
        )

        assert stored is True
        assert await fresh_cache.get("listing:1") == "a"

    async def test_overwrite_retags_entry(self, fresh_cache):
        await fresh_cache.set("key", "old", tags=["property:1"])
        await fresh_cache.set("key", "new", tags=["property:2"])

        assert await fresh_cache.invalidate_tag("property:1") == 0
        assert await fresh_cache.get("key") == "new"
        assert await fresh_cache.keys_for_tag("property:2") == {"key"}

    async def test_delete_and_clear(self, fresh_cache):
        await fresh_cache.set("a", 1, tags=["t"])
        await fresh_cache.set("b", 2)

        assert await fresh_cache.delete("a") is True
        assert await fresh_cache.delete("a") is False
        assert await fresh_cache.keys_for_tag("t") == set()
        assert await fresh_cache.clear() == 1

    async def test_cleanup_expired(self, fresh_cache):
        await fresh_cache.set("old", 1, ttl_seconds=-1)
        await fresh_cache.set("fresh", 2, ttl_seconds=60)

        assert await fresh_cache.cleanup_expired() == 1
        assert await fresh_cache.get("fresh") == 2

    async def test_stats(self, fresh_cache):
        await fresh_cache.set("file_info:1", 1, tags=["path:a"])
        await fresh_cache.get("file_info:1")
        await fresh_cache.get("missing")

        stats = await fresh_cache.get_stats()

        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_ratio"] == 0.5
        assert stats["tracked_tags"] == 1
        assert stats["cache_type_breakdown"] == {"file_info": 1}

    async def test_concurrent_access(self, fresh_cache):
        await asyncio.gather(
            *(fresh_cache.set(f"k{i}", i, tags=[f"t{i % 3}"]) for i in range(30))
        )

        removed = await fresh_cache.invalidate_tag("t0")

        assert removed == 10
        assert (await fresh_cache.get_stats())["total_entries"] == 20


@pytest.mark.unit
@pytest.mark.cache
class TestCacheKeys:
    """Test filter canonicalization."""

    def test_key_ignores_order_and_empty_values(self):
        first = build_filter_cache_key("search", {"city": "Oslo", "page": 2, "type": None})
        second = build_filter_cache_key("search", {"page": 2, "city": "Oslo", "tags": []})

        assert first == second
        assert first.startswith("search:")

    def test_key_changes_with_values(self):
        assert build_filter_cache_key("s", {"page": 1}) != build_filter_cache_key("s", {"page": 2})

    def test_canonicalize_nested(self):
        assert canonicalize_filters({"b": {"y": None, "x": 1}, "a": {"z": ""}}) == {
            "b": {"x": 1}
        }

    def test_tags(self):
        assert property_tag(12) == "property:12"
        assert path_tag("/properties/12/a.webp") == "path:properties/12/a.webp"
