import uuid
from datetime import UTC, datetime, timedelta

import pytest

from lettuce.features.location_ratings.domain import CollaboratorError, QueryValidationError
from lettuce.services.cache import CacheKeys


@pytest.mark.asyncio
async def test_location_without_ratings(engine, location_index, new_location):
    location = location_index.add(new_location())

    detail = await engine.get_detail(location.id)

    assert detail.id == location.id
    assert detail.total_ratings == 0
    assert detail.average_score == 0.0
    assert detail.time_recommendations == []
    assert detail.ratings == []
    assert detail.freshness_score is None
    assert detail.recently_rated is False
    assert detail.is_open is True


@pytest.mark.asyncio
async def test_unknown_location_returns_none_and_is_not_cached(engine, memory_store):
    missing = str(uuid.uuid4())

    assert await engine.get_detail(missing) is None
    assert await memory_store.get(CacheKeys.detail(missing)) is None


@pytest.mark.asyncio
async def test_malformed_id_rejected(engine, location_index):
    with pytest.raises(QueryValidationError):
        await engine.get_detail("store-42")

    assert location_index.calls["by_id"] == 0


@pytest.mark.asyncio
async def test_detail_assembles_ratings(engine, location_index, rating_store, new_location):
    location = location_index.add(new_location())
    now = datetime.now(UTC)
    for hours_ago, score in ((3, 5), (2, 4), (1, 3)):
        rating_store.add(location.id, score, timestamp=now - timedelta(hours=hours_ago))

    detail = await engine.get_detail(location.id)

    assert detail.total_ratings == 3
    assert detail.average_score == 4.0
    assert [r.score for r in detail.ratings] == [3, 4, 5]
    assert detail.last_rated == detail.ratings[0].timestamp
    assert detail.recently_rated is True
    assert detail.freshness_score is not None
    assert sum(rec.sample_size for rec in detail.time_recommendations) == 3


@pytest.mark.asyncio
async def test_rating_history_is_capped(engine, location_index, rating_store, new_location):
    location = location_index.add(new_location())
    now = datetime.now(UTC)
    for i in range(60):
        rating_store.add(location.id, 4, timestamp=now - timedelta(minutes=i))

    detail = await engine.get_detail(location.id)

    assert detail.total_ratings == 60
    assert len(detail.ratings) == 50
    timestamps = [r.timestamp for r in detail.ratings]
    assert timestamps == sorted(timestamps, reverse=True)


@pytest.mark.asyncio
async def test_old_ratings_are_not_recent(engine, location_index, rating_store, new_location):
    location = location_index.add(new_location())
    rating_store.add(location.id, 2, timestamp=datetime.now(UTC) - timedelta(days=3))

    detail = await engine.get_detail(location.id)

    assert detail.recently_rated is False
    assert detail.freshness_score == 2.0


@pytest.mark.asyncio
async def test_detail_is_cached(engine, location_index, new_location):
    location = location_index.add(new_location())

    await engine.get_detail(location.id)
    await engine.get_detail(location.id)

    assert location_index.calls["by_id"] == 1


@pytest.mark.asyncio
async def test_detail_reflects_new_rating_after_invalidation(
    engine, location_index, rating_store, new_location
):
    location = location_index.add(new_location())
    rating_store.add(location.id, 5)
    before = await engine.get_detail(location.id)

    rating_store.add(location.id, 1)
    stale = await engine.get_detail(location.id)
    await engine.invalidation.on_rating_created(location.id)
    fresh = await engine.get_detail(location.id)

    assert before.total_ratings == stale.total_ratings == 1
    assert fresh.total_ratings == 2
    assert fresh.average_score == 3.0


@pytest.mark.asyncio
async def test_collaborator_failure_propagates(engine, location_index, rating_store, new_location):
    location = location_index.add(new_location())
    rating_store.fail = True

    with pytest.raises(CollaboratorError):
        await engine.get_detail(location.id)


@pytest.mark.asyncio
async def test_detail_served_without_cache(broken_engine, location_index, new_location):
    location = location_index.add(new_location())

    detail = await broken_engine.get_detail(location.id)

    assert detail.id == location.id
