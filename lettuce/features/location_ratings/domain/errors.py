"""
Error taxonomy for location queries and rating writes.

Validation errors are caller faults; collaborator errors are retryable
failures of the geo index or the stores. Cache failures never surface.
"""


class LocationRatingsError(Exception):
    """Base class for every error raised by the engine."""


class QueryValidationError(LocationRatingsError):
    """Bad coordinates, out-of-range radius/limit/score or a malformed id."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class LocationNotFoundError(LocationRatingsError):
    """A write referenced a location id that does not exist."""

    def __init__(self, location_id: str):
        super().__init__(f"No location found with ID: {location_id}")
        self.location_id = location_id


class CollaboratorError(LocationRatingsError):
    """The geo index, location store or rating store failed or timed out."""

    def __init__(
        self,
        message: str,
        collaborator: str = "unknown",
        operation: str = "unknown",
        retryable: bool = True,
    ):
        super().__init__(message)
        self.collaborator = collaborator
        self.operation = operation
        self.retryable = retryable


class CacheUnavailableError(LocationRatingsError):
    """Cache store failure.

    Stores may raise this for an unreachable backend. LocationCache treats
    it like any other store exception and reports a miss.
    """
