"""
Current score of a location, read through the cache.
"""

from __future__ import annotations

from lettuce.config import settings
from lettuce.infrastructure.observability.logging import get_logger
from lettuce.services.cache import CacheKeys, LocationCache

from ..domain.models import ScoreSnapshot
from ..domain.ports import RatingStore
from ..pipeline.scoring import ScoringService, scoring_service

logger = get_logger(__name__)


class ScoreService:
    def __init__(
        self,
        ratings: RatingStore,
        cache: LocationCache,
        scoring: ScoringService | None = None,
        rating_window: int | None = None,
    ):
        self.ratings = ratings
        self.cache = cache
        self.scoring = scoring or scoring_service
        self.rating_window = rating_window or settings.SCORE_RATING_WINDOW

    async def get_current_score(self, location_id: str) -> ScoreSnapshot:
        """Weighted score over the most recent ratings (cached briefly)."""
        snapshot = await self.cache.read_through(
            CacheKeys.score(location_id),
            ScoreSnapshot,
            self.cache.ttl.score,
            lambda: self.compute(location_id),
            location_id=location_id,
        )
        return snapshot

    async def compute(self, location_id: str) -> ScoreSnapshot:
        recent = await self.ratings.ratings_for(location_id, limit=self.rating_window)
        return ScoreSnapshot(
            location_id=location_id,
            score=self.scoring.compute_score(recent),
            rating_count=len(recent),
        )
