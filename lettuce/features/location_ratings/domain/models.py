"""
Domain and read models for locations and their freshness ratings.

Repositories return ``Location`` / ``NearbyCandidate`` / ``Rating``; the
query services assemble the remaining read models, which are also the
shapes serialized into the cache.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .hours import DayHours, StoreHours

TimePeriod = Literal["morning", "lunch", "afternoon", "evening"]
ConfidenceLevel = Literal["high", "medium", "low"]

__all__ = [
    "ConfidenceLevel",
    "Coordinates",
    "DayHours",
    "Location",
    "LocationDetail",
    "NearbyCandidate",
    "NearbyLocation",
    "NearbyResult",
    "Rating",
    "RatingSubmission",
    "RatingSummary",
    "ScoreSnapshot",
    "StoreHours",
    "TimeAnalysis",
    "TimePeriod",
    "TimeRecommendation",
]


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class Coordinates(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90, description="Latitude in degrees")
    lng: float = Field(..., ge=-180, le=180, description="Longitude in degrees")


class Location(BaseModel):
    """A store as known to the location store."""

    id: str
    name: str = Field(..., min_length=1, max_length=255)
    address: str
    coordinates: Coordinates
    hours: StoreHours
    current_score: float | None = Field(None, description="Denormalized freshness score")
    last_rated: datetime | None = None
    recently_rated: bool = False

    @field_validator("last_rated")
    @classmethod
    def normalize_last_rated(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)


class NearbyCandidate(Location):
    """Geo index hit: a location plus its distance from the search center."""

    distance_meters: float | None = None


class NearbyLocation(Location):
    distance_meters: float
    freshness_score: float | None = Field(None, description="Weighted score, 1 decimal")
    is_open: bool | None = Field(None, description="Filled at read time, never cached")


class NearbyResult(BaseModel):
    locations: list[NearbyLocation]
    user_location: Coordinates
    search_radius: int
    total_found: int


class Rating(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    location_id: str
    score: int = Field(..., ge=1, le=5)
    timestamp: datetime
    user_id: str | None = None

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, value: datetime) -> datetime:
        return _as_utc(value)


class ScoreSnapshot(BaseModel):
    """Current weighted score of one location at full precision."""

    location_id: str
    score: float | None
    rating_count: int

    @property
    def display_score(self) -> float | None:
        return round(self.score, 1) if self.score is not None else None


class TimeRecommendation(BaseModel):
    period: TimePeriod
    average_score: float
    confidence: ConfidenceLevel
    sample_size: int
    time_range: str


class TimeAnalysis(BaseModel):
    location_id: str | None = None
    time_recommendations: list[TimeRecommendation]
    best_period: TimePeriod | None = None
    worst_period: TimePeriod | None = None
    total_analyzed_ratings: int
    has_reliable_data: bool
    optimal_timing_message: str


class LocationDetail(Location):
    freshness_score: float | None = None
    ratings: list[Rating] = Field(default_factory=list, description="Most recent ratings")
    time_recommendations: list[TimeRecommendation] = Field(default_factory=list)
    total_ratings: int = 0
    average_score: float = Field(0.0, description="Plain mean of all ratings, 0.0 when none")
    is_open: bool | None = None


class RatingSummary(BaseModel):
    location_id: str
    current_score: float | None
    total_ratings: int
    last_rated: datetime | None
    optimal_times: list[TimeRecommendation]
    recent_activity: int = Field(..., description="Ratings inside the recently-rated window")
    score_distribution: dict[int, int]


class RatingSubmission(BaseModel):
    rating_id: str
    location_id: str
    score: int
    new_location_score: float | None
    message: str = "Rating submitted successfully"
