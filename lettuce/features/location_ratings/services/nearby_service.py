"""
Nearby search - locations around a point, sorted by distance, with scores.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

from lettuce.config import settings
from lettuce.infrastructure.observability.logging import get_logger
from lettuce.services.cache import CacheKeys, LocationCache, canonical_coordinate

from ..domain.errors import CollaboratorError
from ..domain.hours import is_store_open
from ..domain.models import Coordinates, NearbyCandidate, NearbyLocation, NearbyResult
from ..domain.ports import GeoIndex
from .score_service import ScoreService
from .validation import haversine_distance, validate_coordinates, validate_limit, validate_radius

logger = get_logger(__name__)


class NearbyQueryService:
    """
    Serves ``find_nearby`` from the cache or the geo index.

    The cache holds the full distance-sorted list for a (lat, lng, radius)
    triple; ``limit`` is applied on the way out so every page size shares
    one entry. Open/closed status depends on the clock and is never cached.
    """

    def __init__(self, geo_index: GeoIndex, scores: ScoreService, cache: LocationCache):
        self.geo_index = geo_index
        self.scores = scores
        self.cache = cache

    async def find_nearby(
        self,
        lat: float,
        lng: float,
        radius_meters: int = settings.NEARBY_DEFAULT_RADIUS_M,
        limit: int = settings.NEARBY_DEFAULT_LIMIT,
        *,
        timeout: float | None = None,
    ) -> NearbyResult:
        """
        Find locations within ``radius_meters`` of (lat, lng).

        Args:
            lat: Latitude in degrees
            lng: Longitude in degrees
            radius_meters: Search radius, 100 - 50,000
            limit: Max locations returned, 1 - 100
            timeout: Seconds to wait for the geo index

        Returns:
            Closest ``limit`` locations plus the untruncated ``total_found``

        Raises:
            QueryValidationError: Bad coordinates, radius or limit
            CollaboratorError: Geo index or rating store failed or timed out
        """
        requested = validate_coordinates(lat, lng)
        radius = validate_radius(radius_meters)
        limit = validate_limit(limit)

        # Search from the rounded center the cache key is built from
        center = Coordinates(
            lat=canonical_coordinate(requested.lat), lng=canonical_coordinate(requested.lng)
        )
        key = CacheKeys.nearby(center.lat, center.lng, radius)
        result = await self.cache.read_through(
            key,
            NearbyResult,
            self.cache.ttl.nearby,
            lambda: self._search(center, radius, timeout),
        )

        now = datetime.now(UTC)
        page = [
            location.model_copy(update={"is_open": is_store_open(location.hours, now)})
            for location in result.locations[:limit]
        ]
        logger.info(
            "Nearby search served",
            lat=center.lat,
            lng=center.lng,
            radius_meters=radius,
            returned=len(page),
            total_found=result.total_found,
        )
        return result.model_copy(update={"locations": page})

    async def _search(
        self, center: Coordinates, radius: int, timeout: float | None
    ) -> NearbyResult:
        candidates = await self._query_geo_index(center, radius, timeout)

        snapshots = await asyncio.gather(
            *(self.scores.get_current_score(candidate.id) for candidate in candidates)
        )

        locations = [
            NearbyLocation.model_validate(
                {
                    **candidate.model_dump(),
                    "distance_meters": self._distance(center, candidate),
                    "freshness_score": snapshot.display_score,
                }
            )
            for candidate, snapshot in zip(candidates, snapshots)
        ]
        locations.sort(key=lambda location: (location.distance_meters, location.id))

        return NearbyResult(
            locations=locations,
            user_location=center,
            search_radius=radius,
            total_found=len(locations),
        )

    async def _query_geo_index(
        self, center: Coordinates, radius: int, timeout: float | None
    ) -> list[NearbyCandidate]:
        call = self.geo_index.nearby(center.lat, center.lng, radius)
        if timeout is None:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError as e:
            logger.error(
                "Geo index timed out",
                lat=center.lat,
                lng=center.lng,
                radius_meters=radius,
                timeout=timeout,
            )
            raise CollaboratorError(
                f"geo_index timed out after {timeout}s",
                collaborator="geo_index",
                operation="nearby",
                retryable=True,
            ) from e

    @staticmethod
    def _distance(center: Coordinates, candidate: NearbyCandidate) -> float:
        if candidate.distance_meters is not None:
            return candidate.distance_meters
        return haversine_distance(center, candidate.coordinates)
