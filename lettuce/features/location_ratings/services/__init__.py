"""
Query and write services for location ratings.
"""

from .analysis_service import RatingAnalysisService
from .detail_service import LocationDetailService
from .invalidation_service import InvalidationCoordinator
from .nearby_service import NearbyQueryService
from .rating_service import RatingService
from .score_service import ScoreService

__all__ = [
    "InvalidationCoordinator",
    "LocationDetailService",
    "NearbyQueryService",
    "RatingAnalysisService",
    "RatingService",
    "ScoreService",
]
