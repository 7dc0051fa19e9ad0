# backend/listing_media/utils/cache_invalidation.py

"""
Cache Invalidation Service - Decides which cache entries a media write
makes stale.

Related Files:
- cache_manager.py: Core caching infrastructure (TTL storage, tag index)
"""

from typing import Iterable, Optional

from ..enums import LogEmoji, LoggerName, LogSource
from ..services.logger import get_service_logger
from .cache_manager import MemoryCache, cache, path_tag, property_tag

logger = get_service_logger(LoggerName.CACHE_SERVICE, LogSource.CACHE)


class CacheInvalidationService:
    """
    Invalidates cached media reads after writes.

    Only the entries tagged with the written entities are dropped; an
    upload for one property never evicts another property's listing.
    """

    def __init__(self, cache_instance: Optional[MemoryCache] = None):
        self.cache = cache_instance or cache

    async def invalidate_property_media(self, property_id: int) -> int:
        """
        Invalidate every cached read derived from one property's media.

        Args:
            property_id: ID of the property whose media changed

        Returns:
            Number of entries removed
        """
        removed = await self.cache.invalidate_tag(property_tag(property_id))
        if removed:
            logger.debug(
                f"Invalidated {removed} cache entries for property {property_id}",
                emoji=LogEmoji.CACHE,
            )
        return removed

    async def invalidate_paths(self, paths: Iterable[str]) -> int:
        removed = 0
        for path in paths:
            removed += await self.cache.invalidate_tag(path_tag(path))
        return removed

    async def invalidate_after_write(
        self, property_id: Optional[int], paths: Iterable[str]
    ) -> int:
        """Invalidate the property (when known) and every written path."""
        removed = await self.invalidate_paths(paths)
        if property_id is not None:
            removed += await self.invalidate_property_media(property_id)
        return removed

    async def flush_all(self) -> int:
        """Administrative full flush."""
        count = await self.cache.clear()
        logger.warning(
            f"Media cache flushed ({count} entries)", emoji=LogEmoji.CLEANUP
        )
        return count
