"""
Rating writes - submission and administrative deletion.
"""

from __future__ import annotations

from datetime import UTC, datetime

from lettuce.infrastructure.observability.logging import get_logger

from ..domain.errors import CollaboratorError, LocationNotFoundError
from ..domain.models import RatingSubmission
from ..domain.ports import LocationStore, RatingStore
from .invalidation_service import InvalidationCoordinator
from .score_service import ScoreService
from .validation import validate_location_id, validate_score, validate_user_id

logger = get_logger(__name__)


class RatingService:
    def __init__(
        self,
        locations: LocationStore,
        ratings: RatingStore,
        scores: ScoreService,
        invalidation: InvalidationCoordinator,
    ):
        self.locations = locations
        self.ratings = ratings
        self.scores = scores
        self.invalidation = invalidation

    async def submit_rating(
        self, location_id: str, score: int, user_id: str | None = None
    ) -> RatingSubmission:
        """
        Store a rating and refresh the location's score.

        Cached views are invalidated before this returns, so the caller's
        next read reflects the new rating.

        Raises:
            QueryValidationError: Bad id, score or user id
            LocationNotFoundError: No such location
            CollaboratorError: The rating could not be stored
        """
        location_id = validate_location_id(location_id)
        score = validate_score(score)
        user_id = validate_user_id(user_id)

        location = await self.locations.by_id(location_id)
        if location is None:
            raise LocationNotFoundError(location_id)

        rating_id = await self.ratings.create(location_id, score, user_id)
        await self.invalidation.on_rating_created(location_id)

        snapshot = await self.scores.get_current_score(location_id)
        try:
            await self.locations.update_score_snapshot(
                location_id, snapshot.score, datetime.now(UTC)
            )
        except CollaboratorError as e:
            # The rating is stored; the denormalized snapshot catches up on the next write
            logger.warning(
                "Failed to persist score snapshot",
                location_id=location_id,
                rating_id=rating_id,
                error=str(e),
            )

        logger.info(
            "Rating submitted",
            location_id=location_id,
            rating_id=rating_id,
            score=score,
            new_location_score=snapshot.display_score,
        )
        return RatingSubmission(
            rating_id=rating_id,
            location_id=location_id,
            score=score,
            new_location_score=snapshot.display_score,
        )

    async def delete_rating(self, rating_id: str) -> bool:
        """Delete a rating and evict every cached view of its location."""
        rating_id = validate_location_id(rating_id, field="rating_id")

        location_id = await self.ratings.delete(rating_id)
        if location_id is None:
            logger.info("Rating not found for deletion", rating_id=rating_id)
            return False

        await self.invalidation.evict_location(location_id)
        return True
