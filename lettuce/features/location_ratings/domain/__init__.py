"""
Domain subpackage for location ratings.
"""

from .errors import (
    CacheUnavailableError,
    CollaboratorError,
    LocationNotFoundError,
    LocationRatingsError,
    QueryValidationError,
)
from .hours import DayHours, StoreHours, is_store_open
from .models import (
    Coordinates,
    Location,
    LocationDetail,
    NearbyCandidate,
    NearbyLocation,
    NearbyResult,
    Rating,
    RatingSubmission,
    RatingSummary,
    ScoreSnapshot,
    TimeAnalysis,
    TimeRecommendation,
)
from .ports import GeoIndex, LocationStore, RatingStore

__all__ = [
    "CacheUnavailableError",
    "CollaboratorError",
    "Coordinates",
    "DayHours",
    "GeoIndex",
    "Location",
    "LocationDetail",
    "LocationNotFoundError",
    "LocationRatingsError",
    "LocationStore",
    "NearbyCandidate",
    "NearbyLocation",
    "NearbyResult",
    "QueryValidationError",
    "Rating",
    "RatingStore",
    "RatingSubmission",
    "RatingSummary",
    "ScoreSnapshot",
    "StoreHours",
    "TimeAnalysis",
    "TimeRecommendation",
    "is_store_open",
]
