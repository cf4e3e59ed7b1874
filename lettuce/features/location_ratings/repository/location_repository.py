"""
PostGIS-backed geo index and location store.
"""

from __future__ import annotations

from datetime import datetime

from lettuce.config import settings
from lettuce.db.helpers import execute_query, fetch_all, fetch_one
from lettuce.infrastructure.observability.logging import get_logger

from ..domain.models import Location, NearbyCandidate
from .base import build_location, collaborator_call, row_to_location

logger = get_logger(__name__)

_LOCATION_COLUMNS = """
    l.id,
    l.name,
    l.address,
    ST_Y(l.location::geometry) AS lat,
    ST_X(l.location::geometry) AS lng,
    l.hours,
    l.current_score,
    l.last_rated,
    (l.last_rated IS NOT NULL
        AND l.last_rated > NOW() - %s * INTERVAL '1 hour') AS recently_rated
"""


class PostgresLocationRepository:
    """Implements both ``GeoIndex`` and ``LocationStore`` over ``locations``."""

    def __init__(self, recently_rated_hours: float | None = None):
        self.recently_rated_hours = (
            recently_rated_hours
            if recently_rated_hours is not None
            else settings.RECENTLY_RATED_WINDOW_HOURS
        )

    @collaborator_call("geo_index")
    async def nearby(self, lat: float, lng: float, radius_meters: int) -> list[NearbyCandidate]:
        query = f"""
            SELECT {_LOCATION_COLUMNS},
                   ST_Distance(
                       l.location,
                       ST_SetSRID(ST_MakePoint(%s, %s), 4326)::geography
                   ) AS distance_meters
            FROM locations l
            WHERE ST_DWithin(
                l.location,
                ST_SetSRID(ST_MakePoint(%s, %s), 4326)::geography,
                %s
            )
            ORDER BY distance_meters ASC, l.id ASC
        """
        rows = await fetch_all(
            query,
            (self.recently_rated_hours, lng, lat, lng, lat, radius_meters),
        )

        candidates = [
            NearbyCandidate(
                **row_to_location(row),
                distance_meters=(
                    float(row["distance_meters"])
                    if row.get("distance_meters") is not None
                    else None
                ),
            )
            for row in rows
        ]
        logger.debug(
            "Geo index lookup",
            lat=lat,
            lng=lng,
            radius_meters=radius_meters,
            found=len(candidates),
        )
        return candidates

    @collaborator_call("location_store")
    async def by_id(self, location_id: str) -> Location | None:
        row = await fetch_one(
            f"SELECT {_LOCATION_COLUMNS} FROM locations l WHERE l.id = %s",
            (self.recently_rated_hours, location_id),
        )
        return build_location(row) if row else None

    @collaborator_call("location_store")
    async def update_score_snapshot(
        self, location_id: str, score: float | None, rated_at: datetime
    ) -> bool:
        updated = await execute_query(
            """
            UPDATE locations
            SET current_score = %s,
                last_rated = %s,
                updated_at = NOW()
            WHERE id = %s
            """,
            (score, rated_at, location_id),
        )
        return updated > 0
