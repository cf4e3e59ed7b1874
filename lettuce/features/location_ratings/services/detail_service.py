"""
Location detail - base attributes, score, rating history and best times.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

from lettuce.config import settings
from lettuce.infrastructure.observability.logging import get_logger
from lettuce.services.cache import CacheKeys, LocationCache

from ..domain.hours import is_store_open
from ..domain.models import LocationDetail, Rating
from ..domain.ports import LocationStore, RatingStore
from ..pipeline.scoring import ScoringService, scoring_service
from ..pipeline.time_analysis import TimePeriodAggregator, time_period_aggregator
from .validation import validate_location_id

logger = get_logger(__name__)


def newest_first(ratings: list[Rating]) -> list[Rating]:
    return sorted(ratings, key=lambda rating: rating.timestamp, reverse=True)


def average_score(ratings: list[Rating]) -> float:
    if not ratings:
        return 0.0
    return round(sum(rating.score for rating in ratings) / len(ratings), 2)


def is_recently_rated(
    last_rated: datetime | None, window_hours: float, now: datetime | None = None
) -> bool:
    if last_rated is None:
        return False
    now = now or datetime.now(UTC)
    return now - last_rated <= timedelta(hours=window_hours)


class LocationDetailService:
    def __init__(
        self,
        locations: LocationStore,
        ratings: RatingStore,
        cache: LocationCache,
        scoring: ScoringService | None = None,
        aggregator: TimePeriodAggregator | None = None,
    ):
        self.locations = locations
        self.ratings = ratings
        self.cache = cache
        self.scoring = scoring or scoring_service
        self.aggregator = aggregator or time_period_aggregator

    async def get_detail(self, location_id: str) -> LocationDetail | None:
        """
        Full detail view of one location.

        Returns None for an unknown location; that outcome is not cached.
        """
        location_id = validate_location_id(location_id)

        detail = await self.cache.read_through(
            CacheKeys.detail(location_id),
            LocationDetail,
            self.cache.ttl.detail,
            lambda: self._assemble(location_id),
            location_id=location_id,
        )
        if detail is None:
            return None

        return detail.model_copy(update={"is_open": is_store_open(detail.hours)})

    async def _assemble(self, location_id: str) -> LocationDetail | None:
        location, ratings = await asyncio.gather(
            self.locations.by_id(location_id),
            self.ratings.ratings_for(location_id),
        )
        if location is None:
            logger.info("Location not found", location_id=location_id)
            return None

        ratings = newest_first(ratings)
        score = self.scoring.compute_score(ratings[: settings.SCORE_RATING_WINDOW])
        last_rated = ratings[0].timestamp if ratings else location.last_rated

        return LocationDetail.model_validate(
            {
                **location.model_dump(),
                "freshness_score": self.scoring.display(score),
                "ratings": ratings[: settings.DETAIL_RATING_HISTORY_LIMIT],
                "time_recommendations": self.aggregator.recommendations(
                    ratings, location.hours.tz
                ),
                "total_ratings": len(ratings),
                "average_score": average_score(ratings),
                "last_rated": last_rated,
                "recently_rated": is_recently_rated(
                    last_rated, settings.RECENTLY_RATED_WINDOW_HOURS
                ),
            }
        )
