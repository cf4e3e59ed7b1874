import asyncio
import uuid
from collections import Counter
from datetime import UTC, datetime

import pytest

from lettuce.features.location_ratings.domain import (
    CacheUnavailableError,
    CollaboratorError,
    Coordinates,
    DayHours,
    Location,
    NearbyCandidate,
    Rating,
    StoreHours,
)
from lettuce.features.location_ratings.services.validation import haversine_distance
from lettuce.main import LettuceEngine
from lettuce.services.cache import CacheTTL, InMemoryCacheStore, LocationCache


def build_hours(open_time="00:00", close_time="24:00", timezone="UTC", closed_days=()):
    days = {
        day: DayHours(closed=True) if day in closed_days else DayHours(open=open_time, close=close_time)
        for day in ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
    }
    return StoreHours(**days, timezone=timezone)


def make_location(lat=40.0, lng=-74.0, **overrides) -> Location:
    data = {
        "id": str(uuid.uuid4()),
        "name": "Green Grocer",
        "address": "1 Market St",
        "coordinates": Coordinates(lat=lat, lng=lng),
        "hours": build_hours(),
    }
    data.update(overrides)
    return Location(**data)


class InMemoryLocationIndex:
    """Geo index and location store over a dict, with call counters."""

    def __init__(self):
        self.locations: dict[str, Location] = {}
        self.snapshots: dict[str, tuple[float | None, datetime]] = {}
        self.calls: Counter = Counter()
        self.fail = False
        self.fail_snapshot = False
        self.delay: float | None = None
        self.report_distance = True

    def add(self, location: Location) -> Location:
        self.locations[location.id] = location
        return location

    def _check(self, operation: str) -> None:
        self.calls[operation] += 1
        if self.fail:
            raise CollaboratorError("store offline", collaborator="geo_index", operation=operation)

    async def nearby(self, lat, lng, radius_meters):
        self._check("nearby")
        if self.delay:
            await asyncio.sleep(self.delay)

        center = Coordinates(lat=lat, lng=lng)
        hits = []
        for location in self.locations.values():
            distance = haversine_distance(center, location.coordinates)
            if distance <= radius_meters:
                hits.append(
                    NearbyCandidate(
                        **location.model_dump(),
                        distance_meters=distance if self.report_distance else None,
                    )
                )
        return hits

    async def by_id(self, location_id):
        self._check("by_id")
        return self.locations.get(location_id)

    async def update_score_snapshot(self, location_id, score, rated_at):
        self.calls["update_score_snapshot"] += 1
        if self.fail_snapshot:
            raise CollaboratorError(
                "write failed", collaborator="location_store", operation="update_score_snapshot"
            )
        self.snapshots[location_id] = (score, rated_at)
        return location_id in self.locations


class InMemoryRatingStore:
    def __init__(self):
        self.ratings: list[Rating] = []
        self.calls: Counter = Counter()
        self.fail = False

    def add(self, location_id, score, timestamp=None, user_id=None) -> Rating:
        rating = Rating(
            id=str(uuid.uuid4()),
            location_id=location_id,
            score=score,
            timestamp=timestamp or datetime.now(UTC),
            user_id=user_id,
        )
        self.ratings.append(rating)
        return rating

    def _check(self, operation: str) -> None:
        self.calls[operation] += 1
        if self.fail:
            raise CollaboratorError("store offline", collaborator="rating_store", operation=operation)

    async def ratings_for(self, location_id, limit=None):
        self._check("ratings_for")
        matching = sorted(
            (r for r in self.ratings if r.location_id == location_id),
            key=lambda r: r.timestamp,
            reverse=True,
        )
        return matching[:limit] if limit is not None else matching

    async def create(self, location_id, score, user_id=None):
        self._check("create")
        return self.add(location_id, score, user_id=user_id).id

    async def delete(self, rating_id):
        self._check("delete")
        for rating in self.ratings:
            if rating.id == rating_id:
                self.ratings.remove(rating)
                return rating.location_id
        return None


class BrokenCacheStore:
    """Cache store whose every call fails, like an unreachable Redis."""

    def __init__(self):
        self.calls: Counter = Counter()

    def _fail(self, operation):
        self.calls[operation] += 1
        raise CacheUnavailableError("connection refused")

    async def ping(self):
        self._fail("ping")

    async def get(self, key):
        self._fail("get")

    async def set_with_ttl(self, key, value, ttl_s=None):
        self._fail("set_with_ttl")

    async def delete(self, key):
        self._fail("delete")

    async def delete_prefix(self, prefix):
        self._fail("delete_prefix")

    async def incr_with_ttl(self, key, ttl_s=None):
        self._fail("incr_with_ttl")


@pytest.fixture
def location_index():
    return InMemoryLocationIndex()


@pytest.fixture
def rating_store():
    return InMemoryRatingStore()


@pytest.fixture
def memory_store():
    return InMemoryCacheStore()


@pytest.fixture
def cache(memory_store):
    return LocationCache(memory_store, CacheTTL())


@pytest.fixture
def engine(location_index, rating_store, memory_store):
    return LettuceEngine(
        geo_index=location_index,
        locations=location_index,
        ratings=rating_store,
        cache_store=memory_store,
        ttl=CacheTTL(),
    )


@pytest.fixture
def broken_engine(location_index, rating_store):
    return LettuceEngine(
        geo_index=location_index,
        locations=location_index,
        ratings=rating_store,
        cache_store=BrokenCacheStore(),
        ttl=CacheTTL(),
    )


@pytest.fixture
def new_location():
    return make_location


@pytest.fixture
def store_hours():
    return build_hours


@pytest.fixture
def broken_store():
    return BrokenCacheStore()
