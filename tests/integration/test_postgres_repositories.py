from datetime import UTC, datetime
from decimal import Decimal

import pytest

from lettuce.db.helpers import DatabaseError
from lettuce.features.location_ratings.domain import CollaboratorError
from lettuce.features.location_ratings.repository import (
    PostgresLocationRepository,
    PostgresRatingRepository,
)
from lettuce.features.location_ratings.repository import location_repository, rating_repository

LOCATION_ID = "6f9619ff-8b86-4011-b42d-00c04fc964ff"

HOURS = {
    day: {"open": "07:00", "close": "22:00"}
    for day in ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
} | {"timezone": "America/Chicago"}


def _location_row(**overrides):
    row = {
        "id": LOCATION_ID,
        "name": "Corner Market",
        "address": "12 Elm St",
        "lat": 41.8781,
        "lng": -87.6298,
        "hours": HOURS,
        "current_score": Decimal("4.3"),
        "last_rated": datetime(2026, 10, 18, 15, 0, tzinfo=UTC),
        "recently_rated": True,
    }
    row.update(overrides)
    return row


class QueryRecorder:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    async def __call__(self, query, params=()):
        self.calls.append((query, params))
        if self.error:
            raise self.error
        return self.result


@pytest.mark.asyncio
async def test_nearby_maps_rows_to_candidates(monkeypatch):
    recorder = QueryRecorder(result=[_location_row(distance_meters=123.4)])
    monkeypatch.setattr(location_repository, "fetch_all", recorder)

    candidates = await PostgresLocationRepository(recently_rated_hours=24).nearby(
        41.88, -87.63, 5000
    )

    assert len(candidates) == 1
    candidate = candidates[0]
    assert candidate.id == LOCATION_ID
    assert candidate.distance_meters == 123.4
    assert candidate.current_score == 4.3
    assert candidate.coordinates.lat == 41.8781
    assert candidate.hours.timezone == "America/Chicago"
    assert candidate.recently_rated is True

    query, params = recorder.calls[0]
    assert "ST_DWithin" in query
    # lng before lat for ST_MakePoint
    assert params == (24, -87.63, 41.88, -87.63, 41.88, 5000)


@pytest.mark.asyncio
async def test_by_id_missing_returns_none(monkeypatch):
    monkeypatch.setattr(location_repository, "fetch_one", QueryRecorder(result=None))

    assert await PostgresLocationRepository().by_id(LOCATION_ID) is None


@pytest.mark.asyncio
async def test_by_id_handles_unrated_location(monkeypatch):
    row = _location_row(current_score=None, last_rated=None, recently_rated=False)
    monkeypatch.setattr(location_repository, "fetch_one", QueryRecorder(result=row))

    location = await PostgresLocationRepository().by_id(LOCATION_ID)

    assert location.current_score is None
    assert location.last_rated is None


@pytest.mark.asyncio
async def test_update_score_snapshot(monkeypatch):
    recorder = QueryRecorder(result=1)
    monkeypatch.setattr(location_repository, "execute_query", recorder)
    rated_at = datetime(2026, 10, 19, tzinfo=UTC)

    assert await PostgresLocationRepository().update_score_snapshot(LOCATION_ID, 4.25, rated_at)
    assert recorder.calls[0][1] == (4.25, rated_at, LOCATION_ID)


@pytest.mark.asyncio
async def test_database_error_becomes_collaborator_error(monkeypatch):
    error = DatabaseError("Query failed: connection refused", operation="fetch_all")
    monkeypatch.setattr(location_repository, "fetch_all", QueryRecorder(error=error))

    with pytest.raises(CollaboratorError) as exc:
        await PostgresLocationRepository().nearby(41.88, -87.63, 5000)

    assert exc.value.collaborator == "geo_index"
    assert exc.value.operation == "nearby"
    assert exc.value.retryable is True
    assert exc.value.__cause__ is error


@pytest.mark.asyncio
async def test_permanent_database_error_is_not_retryable(monkeypatch):
    error = DatabaseError("Query failed: bad input", operation="fetch_one", recoverable=False)
    monkeypatch.setattr(rating_repository, "fetch_one", QueryRecorder(error=error))

    with pytest.raises(CollaboratorError) as exc:
        await PostgresRatingRepository().create(LOCATION_ID, 4)

    assert exc.value.collaborator == "rating_store"
    assert exc.value.retryable is False


@pytest.mark.asyncio
async def test_ratings_for_applies_limit(monkeypatch):
    rows = [
        {
            "id": "r-2",
            "location_id": LOCATION_ID,
            "score": 5,
            "timestamp": datetime(2026, 10, 19, 9, 0),
            "user_id": None,
        },
        {
            "id": "r-1",
            "location_id": LOCATION_ID,
            "score": 3,
            "timestamp": datetime(2026, 10, 18, 9, 0, tzinfo=UTC),
            "user_id": "user-1",
        },
    ]
    recorder = QueryRecorder(result=rows)
    monkeypatch.setattr(rating_repository, "fetch_all", recorder)

    ratings = await PostgresRatingRepository().ratings_for(LOCATION_ID, limit=10)

    assert [r.id for r in ratings] == ["r-2", "r-1"]
    # Naive timestamps are read as UTC
    assert ratings[0].timestamp.tzinfo is not None
    assert ratings[1].user_id == "user-1"
    query, params = recorder.calls[0]
    assert "ORDER BY timestamp DESC" in query
    assert query.rstrip().endswith("LIMIT %s")
    assert params == (LOCATION_ID, 10)


@pytest.mark.asyncio
async def test_create_and_delete_rating(monkeypatch):
    monkeypatch.setattr(rating_repository, "fetch_one", QueryRecorder(result={"id": "new-rating"}))
    assert await PostgresRatingRepository().create(LOCATION_ID, 4, "user-1") == "new-rating"

    monkeypatch.setattr(
        rating_repository, "fetch_one", QueryRecorder(result={"location_id": LOCATION_ID})
    )
    assert await PostgresRatingRepository().delete("r-1") == LOCATION_ID

    monkeypatch.setattr(rating_repository, "fetch_one", QueryRecorder(result=None))
    assert await PostgresRatingRepository().delete("r-1") is None
