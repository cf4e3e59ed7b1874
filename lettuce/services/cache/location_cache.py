"""
Read-through cache adapter for location read models.

Every call into the underlying store goes through a result-or-miss guard so
that callers never branch on cache failures: a broken store behaves like an
empty one.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Protocol, TypeVar

from pydantic import BaseModel, ValidationError

from lettuce.infrastructure.observability.logging import get_logger

from .keys import CacheKeys, CacheTTL

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class CacheStore(Protocol):
    """Key/value store with per-key TTL and atomic single-key set/delete."""

    async def ping(self) -> bool: ...

    async def get(self, key: str) -> str | None: ...

    async def set_with_ttl(self, key: str, value: str, ttl_s: int | None = None) -> bool: ...

    async def delete(self, key: str) -> bool: ...

    async def delete_prefix(self, prefix: str) -> int: ...

    async def incr_with_ttl(self, key: str, ttl_s: int | None = None) -> int | None: ...


class LocationCache:
    """Soft-failing cache facade used by the query orchestrators."""

    def __init__(self, store: CacheStore, ttl: CacheTTL | None = None):
        self.store = store
        self.ttl = ttl or CacheTTL()

    async def get(self, key: str) -> str | None:
        try:
            return await self.store.get(key)
        except Exception as e:
            logger.warning("Cache get failed, treating as miss", key=key, error=str(e))
            return None

    async def set(self, key: str, value: str, ttl_s: int) -> bool:
        try:
            return bool(await self.store.set_with_ttl(key, value, ttl_s))
        except Exception as e:
            logger.warning("Cache set failed, skipping populate", key=key, error=str(e))
            return False

    async def invalidate(self, key: str) -> bool:
        try:
            return bool(await self.store.delete(key))
        except Exception as e:
            logger.warning("Cache invalidate failed", key=key, error=str(e))
            return False

    async def invalidate_prefix(self, prefix: str) -> int:
        try:
            return int(await self.store.delete_prefix(prefix) or 0)
        except Exception as e:
            logger.warning("Cache prefix invalidate failed", prefix=prefix, error=str(e))
            return 0

    async def get_model(self, key: str, model_cls: type[ModelT]) -> ModelT | None:
        raw = await self.get(key)
        if raw is None:
            return None
        try:
            return model_cls.model_validate_json(raw)
        except ValidationError as e:
            # Entries written by an older model shape are dropped and recomputed
            logger.warning("Discarding undecodable cache entry", key=key, error=str(e))
            await self.invalidate(key)
            return None

    async def set_model(self, key: str, model: BaseModel, ttl_s: int) -> bool:
        return await self.set(key, model.model_dump_json(), ttl_s)

    async def generation(self, location_id: str) -> str | None:
        return await self.get(CacheKeys.generation(location_id))

    async def bump_generation(self, location_id: str) -> int | None:
        key = CacheKeys.generation(location_id)
        try:
            return await self.store.incr_with_ttl(key, self.ttl.longest)
        except Exception as e:
            logger.warning("Cache generation bump failed", key=key, error=str(e))
            return None

    async def read_through(
        self,
        key: str,
        model_cls: type[ModelT],
        ttl_s: int,
        compute: Callable[[], Awaitable[ModelT | None]],
        *,
        location_id: str | None = None,
    ) -> ModelT | None:
        """
        Return the cached model or compute, populate and return it.

        A ``None`` result (e.g. unknown location) is returned but never cached.
        When ``location_id`` is given, the populate is skipped if the location
        was invalidated while ``compute`` ran, so a snapshot taken before a
        write can't outlive that write's invalidation.
        """
        cached = await self.get_model(key, model_cls)
        if cached is not None:
            logger.debug("Cache hit", key=key)
            return cached

        generation_before = await self.generation(location_id) if location_id else None

        value = await compute()
        if value is None:
            return None

        if location_id and await self.generation(location_id) != generation_before:
            logger.info(
                "Location invalidated during fetch, not caching result",
                key=key,
                location_id=location_id,
            )
            return value

        await self.set_model(key, value, ttl_s)
        logger.debug("Cache populated", key=key, ttl_s=ttl_s)
        return value
