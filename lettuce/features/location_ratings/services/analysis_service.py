"""
Rating summary and historical time-of-day analysis for one location.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

from lettuce.config import settings
from lettuce.infrastructure.observability.logging import get_logger
from lettuce.services.cache import CacheKeys, LocationCache

from ..domain.models import RatingSummary, TimeAnalysis
from ..domain.ports import LocationStore, RatingStore
from ..pipeline.time_analysis import TimePeriodAggregator, time_period_aggregator
from .detail_service import newest_first
from .score_service import ScoreService
from .validation import validate_location_id

logger = get_logger(__name__)


class RatingAnalysisService:
    def __init__(
        self,
        locations: LocationStore,
        ratings: RatingStore,
        scores: ScoreService,
        cache: LocationCache,
        aggregator: TimePeriodAggregator | None = None,
        days_back: int | None = None,
    ):
        self.locations = locations
        self.ratings = ratings
        self.scores = scores
        self.cache = cache
        self.aggregator = aggregator or time_period_aggregator
        self.days_back = days_back or settings.TIME_ANALYSIS_DAYS

    async def get_time_analysis(self, location_id: str) -> TimeAnalysis | None:
        """Best/worst time to visit, from the last ``days_back`` days of ratings."""
        location_id = validate_location_id(location_id)
        return await self.cache.read_through(
            CacheKeys.time_analysis(location_id),
            TimeAnalysis,
            self.cache.ttl.time_analysis,
            lambda: self._analyze(location_id),
            location_id=location_id,
        )

    async def get_rating_summary(self, location_id: str) -> RatingSummary | None:
        location_id = validate_location_id(location_id)
        return await self.cache.read_through(
            CacheKeys.summary(location_id),
            RatingSummary,
            self.cache.ttl.summary,
            lambda: self._summarize(location_id),
            location_id=location_id,
        )

    async def _analyze(self, location_id: str) -> TimeAnalysis | None:
        location, ratings = await asyncio.gather(
            self.locations.by_id(location_id),
            self.ratings.ratings_for(location_id),
        )
        if location is None:
            return None

        recent = self.aggregator.filter_recent(ratings, self.days_back)
        analysis = self.aggregator.analyze(recent, location.hours.tz, location_id=location_id)
        logger.debug(
            "Time analysis computed",
            location_id=location_id,
            analyzed=analysis.total_analyzed_ratings,
            best_period=analysis.best_period,
        )
        return analysis

    async def _summarize(self, location_id: str) -> RatingSummary | None:
        location, ratings = await asyncio.gather(
            self.locations.by_id(location_id),
            self.ratings.ratings_for(location_id),
        )
        if location is None:
            return None

        snapshot = await self.scores.get_current_score(location_id)
        ratings = newest_first(ratings)
        now = datetime.now(UTC)
        activity_cutoff = now - timedelta(hours=settings.RECENTLY_RATED_WINDOW_HOURS)

        distribution = {score: 0 for score in range(1, 6)}
        for rating in ratings:
            distribution[rating.score] += 1

        recent = self.aggregator.filter_recent(ratings, self.days_back, now)
        return RatingSummary(
            location_id=location_id,
            current_score=snapshot.display_score,
            total_ratings=len(ratings),
            last_rated=ratings[0].timestamp if ratings else location.last_rated,
            optimal_times=self.aggregator.recommendations(recent, location.hours.tz),
            recent_activity=sum(1 for rating in ratings if rating.timestamp >= activity_cutoff),
            score_distribution=distribution,
        )
