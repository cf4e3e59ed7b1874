"""
Rating store over the ``ratings`` table.
"""

from __future__ import annotations

from lettuce.db.helpers import fetch_all, fetch_one
from lettuce.infrastructure.observability.logging import get_logger

from ..domain.models import Rating
from .base import collaborator_call

logger = get_logger(__name__)


class PostgresRatingRepository:
    @collaborator_call("rating_store")
    async def ratings_for(self, location_id: str, limit: int | None = None) -> list[Rating]:
        """Ratings for one location, newest first."""
        query = """
            SELECT id, location_id, score, timestamp, user_id
            FROM ratings
            WHERE location_id = %s
            ORDER BY timestamp DESC, id DESC
        """
        params: tuple = (location_id,)
        if limit is not None:
            query += " LIMIT %s"
            params = (location_id, limit)

        rows = await fetch_all(query, params)
        return [
            Rating(
                id=str(row["id"]),
                location_id=str(row["location_id"]),
                score=row["score"],
                timestamp=row["timestamp"],
                user_id=str(row["user_id"]) if row.get("user_id") is not None else None,
            )
            for row in rows
        ]

    @collaborator_call("rating_store")
    async def create(self, location_id: str, score: int, user_id: str | None = None) -> str:
        row = await fetch_one(
            """
            INSERT INTO ratings (location_id, score, user_id, timestamp)
            VALUES (%s, %s, %s, NOW())
            RETURNING id::text AS id
            """,
            (location_id, score, user_id),
        )
        rating_id = row["id"]
        logger.info("Rating stored", rating_id=rating_id, location_id=location_id, score=score)
        return rating_id

    @collaborator_call("rating_store")
    async def delete(self, rating_id: str) -> str | None:
        row = await fetch_one(
            "DELETE FROM ratings WHERE id = %s RETURNING location_id::text AS location_id",
            (rating_id,),
        )
        if not row:
            return None
        logger.info("Rating deleted", rating_id=rating_id, location_id=row["location_id"])
        return row["location_id"]
