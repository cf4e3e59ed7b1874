"""
Shared plumbing for the PostGIS-backed repositories.
"""

from __future__ import annotations

import functools
from typing import Any

from lettuce.db.helpers import DatabaseError
from lettuce.infrastructure.observability.logging import get_logger

from ..domain.errors import CollaboratorError
from ..domain.hours import StoreHours
from ..domain.models import Coordinates, Location

logger = get_logger(__name__)


def collaborator_call(collaborator: str):
    """
    Decorator translating database failures into ``CollaboratorError``.

    Args:
        collaborator: Name reported on the error (``geo_index``,
            ``location_store``, ``rating_store``)
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except DatabaseError as e:
                logger.error(
                    "Collaborator call failed",
                    collaborator=collaborator,
                    operation=func.__name__,
                    db_operation=e.operation,
                    recoverable=e.recoverable,
                    error=str(e),
                )
                raise CollaboratorError(
                    f"{collaborator} unavailable: {e}",
                    collaborator=collaborator,
                    operation=func.__name__,
                    retryable=e.recoverable,
                ) from e

        return wrapper

    return decorator


def row_to_location(row: dict[str, Any]) -> dict[str, Any]:
    """Normalize a ``locations`` row into ``Location`` field values."""
    score = row.get("current_score")
    return {
        "id": str(row["id"]),
        "name": row["name"],
        "address": row["address"],
        "coordinates": Coordinates(lat=float(row["lat"]), lng=float(row["lng"])),
        "hours": StoreHours.model_validate(row["hours"]),
        "current_score": float(score) if score is not None else None,
        "last_rated": row.get("last_rated"),
        "recently_rated": bool(row.get("recently_rated", False)),
    }


def build_location(row: dict[str, Any]) -> Location:
    return Location(**row_to_location(row))
