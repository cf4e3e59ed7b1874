"""
Input validation for queries and rating writes.

Everything here runs before any cache or collaborator call and raises
``QueryValidationError`` on bad input.
"""

from __future__ import annotations

import math
import re
from typing import Any

from lettuce.config import settings

from ..domain.errors import QueryValidationError
from ..domain.models import Coordinates

EARTH_RADIUS_M = 6_371_000.0

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def _require_number(field: str, value: Any) -> float:
    # bool is an int subclass but never a coordinate
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise QueryValidationError(field, "must be a number")
    if not math.isfinite(value):
        raise QueryValidationError(field, "must be finite")
    return float(value)


def _require_int(field: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise QueryValidationError(field, "must be an integer")
    return value


def validate_coordinates(lat: Any, lng: Any) -> Coordinates:
    lat = _require_number("lat", lat)
    lng = _require_number("lng", lng)
    if not -90 <= lat <= 90:
        raise QueryValidationError("lat", "must be between -90 and 90")
    if not -180 <= lng <= 180:
        raise QueryValidationError("lng", "must be between -180 and 180")
    return Coordinates(lat=lat, lng=lng)


def validate_radius(
    radius_meters: Any,
    min_radius: int | None = None,
    max_radius: int | None = None,
) -> int:
    min_radius = settings.NEARBY_MIN_RADIUS_M if min_radius is None else min_radius
    max_radius = settings.NEARBY_MAX_RADIUS_M if max_radius is None else max_radius
    radius = _require_int("radius_meters", radius_meters)
    if not min_radius <= radius <= max_radius:
        raise QueryValidationError(
            "radius_meters", f"must be between {min_radius} and {max_radius}"
        )
    return radius


def validate_limit(
    limit: Any, min_limit: int | None = None, max_limit: int | None = None
) -> int:
    min_limit = settings.NEARBY_MIN_LIMIT if min_limit is None else min_limit
    max_limit = settings.NEARBY_MAX_LIMIT if max_limit is None else max_limit
    limit = _require_int("limit", limit)
    if not min_limit <= limit <= max_limit:
        raise QueryValidationError("limit", f"must be between {min_limit} and {max_limit}")
    return limit


def validate_location_id(location_id: Any, field: str = "location_id") -> str:
    if not isinstance(location_id, str) or not UUID_PATTERN.match(location_id):
        raise QueryValidationError(field, "must be a valid UUID")
    return location_id.lower()


def validate_score(score: Any) -> int:
    score = _require_int("score", score)
    if not 1 <= score <= 5:
        raise QueryValidationError("score", "must be an integer between 1 and 5")
    return score


def validate_user_id(user_id: Any) -> str | None:
    if user_id is None:
        return None
    if not isinstance(user_id, str) or not user_id.strip() or len(user_id) > 255:
        raise QueryValidationError("user_id", "must be a non-empty string")
    return user_id


def haversine_distance(a: Coordinates, b: Coordinates) -> float:
    """Great-circle distance between two points in meters."""
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    d_lat = lat2 - lat1
    d_lng = math.radians(b.lng - a.lng)

    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(h)))
