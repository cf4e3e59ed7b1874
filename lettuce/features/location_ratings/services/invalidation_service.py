"""
Drops cached views of a location after its ratings change.
"""

from __future__ import annotations

import asyncio

from lettuce.infrastructure.observability.logging import get_logger
from lettuce.services.cache import CacheKeys, LocationCache

logger = get_logger(__name__)


class InvalidationCoordinator:
    """
    Stateless and idempotent; cache failures are logged no-ops.

    Nearby results are left to expire on their own TTL.
    """

    def __init__(self, cache: LocationCache):
        self.cache = cache

    async def on_rating_created(self, location_id: str) -> None:
        # Bump first so populates already in flight see the change
        await self.cache.bump_generation(location_id)
        await asyncio.gather(
            self.cache.invalidate(CacheKeys.detail(location_id)),
            self.cache.invalidate(CacheKeys.score(location_id)),
            self.cache.invalidate(CacheKeys.summary(location_id)),
            self.cache.invalidate(CacheKeys.time_analysis(location_id)),
        )
        logger.info("Location cache invalidated", location_id=location_id, reason="rating_created")

    async def evict_location(self, location_id: str) -> int:
        """Drop every key under ``location:{id}:``."""
        await self.cache.bump_generation(location_id)
        removed = await self.cache.invalidate_prefix(CacheKeys.location_prefix(location_id))
        logger.info("Location evicted from cache", location_id=location_id, keys_removed=removed)
        return removed
