"""
Collaborator contracts consumed by the query services.

The PostGIS-backed implementations live in ``..repository``; tests plug in
in-memory versions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from .models import Location, NearbyCandidate, Rating


class GeoIndex(Protocol):
    async def nearby(self, lat: float, lng: float, radius_meters: int) -> list[NearbyCandidate]:
        """All known locations within ``radius_meters`` of the center."""
        ...


class LocationStore(Protocol):
    async def by_id(self, location_id: str) -> Location | None: ...

    async def update_score_snapshot(
        self, location_id: str, score: float | None, rated_at: datetime
    ) -> bool:
        """Persist the denormalized current score and last-rated time."""
        ...


class RatingStore(Protocol):
    async def ratings_for(self, location_id: str, limit: int | None = None) -> list[Rating]:
        """Ratings of one location, newest first."""
        ...

    async def create(self, location_id: str, score: int, user_id: str | None = None) -> str: ...

    async def delete(self, rating_id: str) -> str | None:
        """Delete a rating, returning its location id (None when unknown)."""
        ...
