# backend/listing_media/utils/cache_manager.py

"""
Cache Manager - In-memory TTL cache for expensive media reads.

Entries can be tagged with the entities they were derived from (for example
'property:12' or 'path:properties/12/images/a.webp'). A tag index maps every
tag to its keys, so a write to one entity invalidates exactly the entries
that depend on it instead of flushing the whole cache.

Every tag also carries a generation number that invalidation bumps. A
computed value is only stored when none of its tags changed generation
while it was being computed, so a read that overlaps a write cannot put
the pre-write value back.

Related Files:
- cache_invalidation.py: Which tags to invalidate after media writes
"""

import asyncio
import hashlib
import json
import time
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    Mapping,
    Optional,
    Set,
    Tuple,
    TypeVar,
)

from ..enums import LogEmoji, LoggerName, LogSource
from ..services.logger import get_service_logger

T = TypeVar("T")

# (clear epoch, generation per tag) captured before a compute
GenerationSnapshot = Tuple[int, Dict[str, int]]

MAX_TRACKED_GENERATIONS = 10_000

logger = get_service_logger(LoggerName.CACHE_SERVICE, LogSource.CACHE)


class CacheEntry:
    """Individual cache entry with TTL and entity tags."""

    def __init__(self, data: Any, ttl_seconds: int, tags: Optional[Iterable[str]] = None):
        self.data = data
        self.created_at = time.time()
        self.expires_at = self.created_at + ttl_seconds
        self.tags: Set[str] = set(tags or [])

    def is_expired(self) -> bool:
        """Check if cache entry has expired."""
        return time.time() > self.expires_at

    def get_age_seconds(self) -> int:
        """Get age of cache entry in seconds."""
        return int(time.time() - self.created_at)


class MemoryCache:
    """
    Async-safe in-memory cache with TTL support and a tag index.

    None is never stored; a None result from a compute function is returned
    to the caller without being cached.
    """

    def __init__(self):
        self._cache: Dict[str, CacheEntry] = {}
        self._tag_index: Dict[str, Set[str]] = {}
        self._tag_generations: Dict[str, int] = {}
        self._epoch = 0
        self._lock = asyncio.Lock()
        self._hits = 0
        self._misses = 0

    # Callers must hold the lock
    def _remove_key(self, key: str) -> bool:
        entry = self._cache.pop(key, None)
        if entry is None:
            return False
        for tag in entry.tags:
            keys = self._tag_index.get(tag)
            if keys is not None:
                keys.discard(key)
                if not keys:
                    del self._tag_index[tag]
        return True

    async def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache if it exists and hasn't expired.

        Returns:
            Cached value or None if not found/expired
        """
        async with self._lock:
            entry = self._cache.get(key)
            if entry is not None:
                if entry.is_expired():
                    self._remove_key(key)
                    logger.debug(f"Cache expired and removed: {key}", emoji=LogEmoji.CACHE)
                else:
                    self._hits += 1
                    logger.debug(f"Cache hit: {key} (age: {entry.get_age_seconds()}s)")
                    return entry.data

            self._misses += 1

        logger.debug(f"Cache miss: {key}")
        return None

    async def set(
        self,
        key: str,
        value: Any,
        ttl_seconds: int = 60,
        tags: Optional[Iterable[str]] = None,
        generations: Optional[GenerationSnapshot] = None,
    ) -> bool:
        """
        Set value in cache with TTL and optional entity tags.

        Args:
            key: Cache key
            value: JSON-serializable value to cache
            ttl_seconds: Time to live in seconds (default 60)
            tags: Entities the value was derived from
            generations: Snapshot from snapshot_generations(); the value is
                dropped when any of its tags was invalidated since

        Returns:
            True if the value was stored
        """
        if value is None:
            return False

        async with self._lock:
            if generations is not None and not self._is_current(generations):
                logger.debug(f"Discarded stale value for {key}", emoji=LogEmoji.CACHE)
                return False
            self._remove_key(key)
            entry = CacheEntry(value, ttl_seconds, tags)
            self._cache[key] = entry
            for tag in entry.tags:
                self._tag_index.setdefault(tag, set()).add(key)

        logger.debug(f"Cached: {key} (TTL: {ttl_seconds}s)", emoji=LogEmoji.CACHE)
        return True

    async def get_or_compute(
        self,
        key: str,
        ttl_seconds: int,
        compute: Callable[[], Awaitable[T]],
        tags: Optional[Iterable[str]] = None,
    ) -> T:
        """
        Return the cached value for key, computing and storing it on a miss.

        The compute function runs outside the lock so slow reads do not
        block other cache users. Its result is still returned but not
        cached when one of the tags is invalidated while it runs.
        """
        cached = await self.get(key)
        if cached is not None:
            return cached

        tag_list = list(tags or [])
        generations = await self.snapshot_generations(tag_list)
        value = await compute()
        await self.set(key, value, ttl_seconds, tag_list, generations=generations)
        return value

    async def snapshot_generations(self, tags: Iterable[str]) -> GenerationSnapshot:
        async with self._lock:
            return (
                self._epoch,
                {tag: self._tag_generations.get(tag, 0) for tag in tags},
            )

    # Callers must hold the lock
    def _bump_generation(self, tag: str) -> None:
        if len(self._tag_generations) >= MAX_TRACKED_GENERATIONS:
            # Starting a new epoch also invalidates every in-flight snapshot
            self._tag_generations.clear()
            self._epoch += 1
        self._tag_generations[tag] = self._tag_generations.get(tag, 0) + 1

    # Callers must hold the lock
    def _is_current(self, generations: GenerationSnapshot) -> bool:
        epoch, tag_generations = generations
        if epoch != self._epoch:
            return False
        return all(
            self._tag_generations.get(tag, 0) == generation
            for tag, generation in tag_generations.items()
        )

    async def delete(self, key: str) -> bool:
        """
        Delete specific cache entry.

        Returns:
            True if key was found and deleted, False otherwise
        """
        async with self._lock:
            removed = self._remove_key(key)
        if removed:
            logger.debug(f"Cache deleted: {key}", emoji=LogEmoji.DELETE)
        return removed

    async def invalidate_tag(self, tag: str) -> int:
        """
        Delete every entry tagged with tag.

        Returns:
            Number of entries removed
        """
        async with self._lock:
            keys = list(self._tag_index.get(tag, ()))
            for key in keys:
                self._remove_key(key)
            self._tag_index.pop(tag, None)
            self._bump_generation(tag)

        if keys:
            logger.debug(
                f"Invalidated {len(keys)} cache entries tagged '{tag}'",
                emoji=LogEmoji.CACHE,
            )
        return len(keys)

    async def keys_for_tag(self, tag: str) -> Set[str]:
        async with self._lock:
            return set(self._tag_index.get(tag, ()))

    async def clear(self) -> int:
        """Clear all cache entries."""
        async with self._lock:
            count = len(self._cache)
            self._cache.clear()
            self._tag_index.clear()
            self._tag_generations.clear()
            self._epoch += 1
        logger.info(f"Cache cleared: {count} entries removed", emoji=LogEmoji.CLEANUP)
        return count

    async def cleanup_expired(self) -> int:
        """
        Remove all expired cache entries.

        Returns:
            Number of entries removed
        """
        async with self._lock:
            expired_keys = [key for key, entry in self._cache.items() if entry.is_expired()]
            for key in expired_keys:
                self._remove_key(key)

        if expired_keys:
            logger.debug(f"Removed {len(expired_keys)} expired cache entries")
        return len(expired_keys)

    async def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics with breakdown by key prefix."""
        async with self._lock:
            total_entries = len(self._cache)
            expired_count = sum(1 for entry in self._cache.values() if entry.is_expired())

            cache_types: Dict[str, int] = {}
            for key in self._cache:
                cache_type = key.split(":")[0] if ":" in key else "general"
                cache_types[cache_type] = cache_types.get(cache_type, 0) + 1

            lookups = self._hits + self._misses
            return {
                "total_entries": total_entries,
                "active_entries": total_entries - expired_count,
                "expired_entries": expired_count,
                "tracked_tags": len(self._tag_index),
                "cache_type_breakdown": cache_types,
                "hits": self._hits,
                "misses": self._misses,
                "hit_ratio": round(self._hits / lookups, 4) if lookups else None,
            }


# Global cache instance
cache = MemoryCache()


# ════════════════════════════════════════════════════════════════════════════════
# Key derivation
# ════════════════════════════════════════════════════════════════════════════════


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def canonicalize_filters(filters: Mapping[str, Any]) -> Dict[str, Any]:
    """Drop None/empty values and sort keys (nested mappings too)."""
    canonical: Dict[str, Any] = {}
    for key in sorted(filters):
        value = filters[key]
        if isinstance(value, Mapping):
            value = canonicalize_filters(value)
        if _is_empty(value):
            continue
        canonical[str(key)] = value
    return canonical


def build_filter_cache_key(prefix: str, filters: Mapping[str, Any]) -> str:
    """
    Stable cache key for a set of filter parameters.

    Parameter order and None/empty values do not affect the key.

    Example:
        build_filter_cache_key("search", {"city": "Oslo", "page": None})
        -> 'search:<md5 of {"city":"Oslo"}>'
    """
    payload = json.dumps(
        canonicalize_filters(filters),
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )
    digest = hashlib.md5(payload.encode("utf-8")).hexdigest()
    return f"{prefix}:{digest}"


def property_tag(property_id: int) -> str:
    return f"property:{property_id}"


def path_tag(path: str) -> str:
    return f"path:{path.strip('/')}"
