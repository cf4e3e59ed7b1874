"""
Engine wiring and resource lifecycle.

``lifespan()`` opens the database pool and Redis, yields a ready
``LettuceEngine`` and closes both on exit. Tests build ``LettuceEngine``
directly with in-memory collaborators.
"""

import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

from lettuce.config import settings
from lettuce.db.pool import db_health_check, db_pool
from lettuce.features.location_ratings.domain import (
    GeoIndex,
    LocationDetail,
    LocationStore,
    NearbyResult,
    RatingStore,
    RatingSubmission,
    RatingSummary,
    TimeAnalysis,
)
from lettuce.features.location_ratings.repository import (
    PostgresLocationRepository,
    PostgresRatingRepository,
)
from lettuce.features.location_ratings.services import (
    InvalidationCoordinator,
    LocationDetailService,
    NearbyQueryService,
    RatingAnalysisService,
    RatingService,
    ScoreService,
)
from lettuce.infrastructure.observability.logging import (
    get_logger,
    log_health_check,
    setup_logging,
)
from lettuce.services.cache import CacheStore, CacheTTL, InMemoryCacheStore, LocationCache
from lettuce.services.redis_client import fast_redis

logger = get_logger(__name__)


class LettuceEngine:
    """Wires collaborators, cache and services behind one facade."""

    def __init__(
        self,
        geo_index: GeoIndex,
        locations: LocationStore,
        ratings: RatingStore,
        cache_store: CacheStore,
        ttl: CacheTTL | None = None,
        database_health: Callable[[], Awaitable[dict[str, Any]]] | None = None,
    ):
        self.cache_store = cache_store
        self.cache = LocationCache(cache_store, ttl or CacheTTL.from_settings())
        self.database_health = database_health

        self.scores = ScoreService(ratings, self.cache)
        self.invalidation = InvalidationCoordinator(self.cache)
        self.nearby = NearbyQueryService(geo_index, self.scores, self.cache)
        self.details = LocationDetailService(locations, ratings, self.cache)
        self.analysis = RatingAnalysisService(locations, ratings, self.scores, self.cache)
        self.ratings = RatingService(locations, ratings, self.scores, self.invalidation)

    async def find_nearby(
        self,
        lat: float,
        lng: float,
        radius_meters: int = settings.NEARBY_DEFAULT_RADIUS_M,
        limit: int = settings.NEARBY_DEFAULT_LIMIT,
        *,
        timeout: float | None = None,
    ) -> NearbyResult:
        return await self.nearby.find_nearby(lat, lng, radius_meters, limit, timeout=timeout)

    async def get_detail(self, location_id: str) -> LocationDetail | None:
        return await self.details.get_detail(location_id)

    async def get_time_analysis(self, location_id: str) -> TimeAnalysis | None:
        return await self.analysis.get_time_analysis(location_id)

    async def get_rating_summary(self, location_id: str) -> RatingSummary | None:
        return await self.analysis.get_rating_summary(location_id)

    async def submit_rating(
        self, location_id: str, score: int, user_id: str | None = None
    ) -> RatingSubmission:
        return await self.ratings.submit_rating(location_id, score, user_id)

    async def delete_rating(self, rating_id: str) -> bool:
        return await self.ratings.delete_rating(rating_id)

    async def health_check(self) -> dict[str, Any]:
        """Cache ping plus database pool status, when a database is wired."""
        checks: dict[str, Any] = {}

        t0 = time.time()
        try:
            cache_ok = bool(await self.cache_store.ping())
            checks["cache"] = {"ok": cache_ok}
        except Exception as e:
            cache_ok = False
            checks["cache"] = {"ok": False, "error": f"{type(e).__name__}: {e}"}
        checks["cache"]["latency_ms"] = round((time.time() - t0) * 1000, 1)
        log_health_check("cache", cache_ok, checks["cache"]["latency_ms"])

        database_ok = True
        if self.database_health is not None:
            t0 = time.time()
            db_health = await self.database_health()
            database_ok = bool(db_health.get("healthy", False))
            checks["database"] = {
                "ok": database_ok,
                "latency_ms": round((time.time() - t0) * 1000, 1),
            }
            if "pool_stats" in db_health:
                checks["database"]["pool_stats"] = db_health["pool_stats"]
            if not database_ok:
                checks["database"]["error"] = db_health.get("error", "Database unhealthy")
            log_health_check(
                "database",
                database_ok,
                checks["database"]["latency_ms"],
                checks["database"].get("error"),
            )

        # A cache outage degrades latency only
        return {
            "status": "ok" if database_ok and cache_ok else "degraded" if database_ok else "down",
            "checks": checks,
        }


def build_cache_store() -> CacheStore:
    if settings.CACHE_BACKEND == "memory":
        logger.info("Using in-memory cache store")
        return InMemoryCacheStore()
    return fast_redis


def build_engine(cache_store: CacheStore | None = None) -> LettuceEngine:
    location_repository = PostgresLocationRepository()
    return LettuceEngine(
        geo_index=location_repository,
        locations=location_repository,
        ratings=PostgresRatingRepository(),
        cache_store=cache_store or build_cache_store(),
        database_health=db_health_check,
    )


@asynccontextmanager
async def lifespan() -> AsyncIterator[LettuceEngine]:
    """Open the database pool and cache, yield the engine, close both."""
    setup_logging(log_level=settings.LOG_LEVEL)
    logger.info("Engine starting", environment=settings.environment, debug=settings.debug)

    # Without the database nothing can be served
    logger.info("Initializing database pool")
    await db_pool.initialize()

    cache_store = build_cache_store()
    if cache_store is fast_redis:
        try:
            logger.info("Initializing Redis connection")
            await fast_redis.initialize()
        except Exception as e:
            logger.error("Redis unavailable at startup, serving uncached", error=str(e))

    engine = build_engine(cache_store)
    logger.info("Engine started", cache_backend=settings.CACHE_BACKEND)

    try:
        yield engine
    finally:
        logger.info("Engine shutting down")
        shutdown_errors = []

        if cache_store is fast_redis:
            try:
                await fast_redis.close()
            except Exception as e:
                logger.error("Error closing Redis", error=str(e))
                shutdown_errors.append(f"Redis: {e}")

        try:
            await db_pool.close()
        except Exception as e:
            logger.error("Error closing database pool", error=str(e))
            shutdown_errors.append(f"Database: {e}")

        if shutdown_errors:
            logger.warning("Some services had shutdown errors", errors=shutdown_errors)
        else:
            logger.info("All services closed successfully")
