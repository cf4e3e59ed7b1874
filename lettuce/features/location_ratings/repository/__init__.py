from .location_repository import PostgresLocationRepository
from .rating_repository import PostgresRatingRepository

__all__ = ["PostgresLocationRepository", "PostgresRatingRepository"]
