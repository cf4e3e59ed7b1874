"""
Freshness scoring - weighted mean of ratings with exponential recency decay.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from lettuce.config import settings

from ...domain.models import Rating


@dataclass(frozen=True, slots=True)
class RecencyWeighting:
    full_weight_hours: float = 1.0
    half_life_hours: float = 24.0
    min_weight: float = 0.05

    @classmethod
    def from_settings(cls) -> RecencyWeighting:
        return cls(
            full_weight_hours=settings.SCORE_FULL_WEIGHT_HOURS,
            half_life_hours=settings.SCORE_HALF_LIFE_HOURS,
            min_weight=settings.SCORE_MIN_WEIGHT,
        )


class ScoringService:
    """
    Computes a location's current freshness score from its ratings.

    Ratings inside the full-weight window count 1.0; older ones decay by
    half every ``half_life_hours`` down to ``min_weight``. The score is a
    pure function of the rating set: ``as_of`` defaults to the newest
    rating's timestamp rather than the wall clock.
    """

    def __init__(self, weighting: RecencyWeighting | None = None):
        self.weighting = weighting or RecencyWeighting()

    def recency_weight(self, age_hours: float) -> float:
        if age_hours <= self.weighting.full_weight_hours:
            return 1.0
        decayed = 0.5 ** (age_hours / self.weighting.half_life_hours)
        return max(decayed, self.weighting.min_weight)

    def compute_score(
        self, ratings: Sequence[Rating], as_of: datetime | None = None
    ) -> float | None:
        """
        Weighted freshness score at full precision.

        Args:
            ratings: Ratings in any order
            as_of: Reference time for ages (defaults to newest rating)

        Returns:
            None for no ratings, the exact score for one rating, otherwise
            the recency-weighted mean
        """
        if not ratings:
            return None
        if len(ratings) == 1:
            return float(ratings[0].score)

        reference = as_of or max(r.timestamp for r in ratings)

        weights = []
        weighted_scores = []
        for rating in ratings:
            age_hours = max((reference - rating.timestamp).total_seconds() / 3600, 0.0)
            weight = self.recency_weight(age_hours)
            weights.append(weight)
            weighted_scores.append(rating.score * weight)

        return math.fsum(weighted_scores) / math.fsum(weights)

    @staticmethod
    def display(score: float | None) -> float | None:
        return round(score, 1) if score is not None else None


scoring_service = ScoringService(RecencyWeighting.from_settings())
