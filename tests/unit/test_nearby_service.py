import pytest

from lettuce.features.location_ratings.domain import CollaboratorError, QueryValidationError

CENTER = (40.0, -74.0)


def _seed_line(location_index, new_location, count, step=0.0001):
    """Locations due north of CENTER, ``step`` degrees apart (~11 m)."""
    return [
        location_index.add(new_location(lat=CENTER[0] + step * (i + 1), lng=CENTER[1]))
        for i in range(count)
    ]


@pytest.mark.asyncio
async def test_results_sorted_by_distance(engine, location_index, new_location):
    far = location_index.add(new_location(lat=40.02, lng=-74.0))
    near = location_index.add(new_location(lat=40.001, lng=-74.0))
    middle = location_index.add(new_location(lat=40.0, lng=-74.01))

    result = await engine.find_nearby(*CENTER)

    assert [loc.id for loc in result.locations] == [near.id, middle.id, far.id]
    distances = [loc.distance_meters for loc in result.locations]
    assert distances == sorted(distances)
    assert result.search_radius == 5000
    assert result.user_location.lat == 40.0


@pytest.mark.asyncio
async def test_locations_outside_radius_are_excluded(engine, location_index, new_location):
    inside = location_index.add(new_location(lat=40.01, lng=-74.0))
    location_index.add(new_location(lat=40.2, lng=-74.0))

    result = await engine.find_nearby(*CENTER, radius_meters=5000)

    assert [loc.id for loc in result.locations] == [inside.id]


@pytest.mark.asyncio
async def test_limit_caps_results_but_total_is_untruncated(engine, location_index, new_location):
    _seed_line(location_index, new_location, 100)

    result = await engine.find_nearby(*CENTER, limit=20)

    assert len(result.locations) == 20
    assert result.total_found == 100


@pytest.mark.asyncio
async def test_page_sizes_share_one_cache_entry(engine, location_index, new_location):
    _seed_line(location_index, new_location, 30)

    small = await engine.find_nearby(*CENTER, limit=5)
    large = await engine.find_nearby(*CENTER, limit=25)

    assert location_index.calls["nearby"] == 1
    assert [loc.id for loc in large.locations[:5]] == [loc.id for loc in small.locations]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"radius_meters": 50},
        {"radius_meters": 50_001},
        {"limit": 0},
        {"limit": 101},
        {"lat": 91},
        {"lat": -91},
        {"lng": 181},
        {"lng": -181},
    ],
)
@pytest.mark.asyncio
async def test_invalid_input_rejected_before_any_lookup(engine, location_index, memory_store, kwargs):
    params = {"lat": CENTER[0], "lng": CENTER[1], **kwargs}

    with pytest.raises(QueryValidationError):
        await engine.find_nearby(**params)

    assert location_index.calls["nearby"] == 0
    assert memory_store.size == 0


@pytest.mark.parametrize("lat,lng", [(90, 180), (-90, -180)])
@pytest.mark.asyncio
async def test_extreme_coordinates_accepted(engine, lat, lng):
    result = await engine.find_nearby(lat, lng)

    assert result.locations == []
    assert result.total_found == 0


@pytest.mark.asyncio
async def test_geo_failure_propagates(engine, location_index, new_location):
    _seed_line(location_index, new_location, 3)
    location_index.fail = True

    with pytest.raises(CollaboratorError):
        await engine.find_nearby(*CENTER)


@pytest.mark.asyncio
async def test_cached_result_served_while_geo_index_down(engine, location_index, new_location):
    _seed_line(location_index, new_location, 3)
    first = await engine.find_nearby(*CENTER)

    location_index.fail = True
    second = await engine.find_nearby(*CENTER)

    assert [loc.id for loc in second.locations] == [loc.id for loc in first.locations]


@pytest.mark.asyncio
async def test_geo_timeout_is_retryable_collaborator_error(engine, location_index, new_location):
    _seed_line(location_index, new_location, 1)
    location_index.delay = 0.5

    with pytest.raises(CollaboratorError) as exc:
        await engine.find_nearby(*CENTER, timeout=0.01)

    assert exc.value.retryable is True
    assert exc.value.collaborator == "geo_index"


@pytest.mark.asyncio
async def test_freshness_score_and_open_status_attached(
    engine, location_index, rating_store, new_location, store_hours
):
    rated = location_index.add(new_location(lat=40.001, lng=-74.0))
    closed = location_index.add(
        new_location(
            lat=40.002,
            lng=-74.0,
            hours=store_hours(
                closed_days=(
                    "monday",
                    "tuesday",
                    "wednesday",
                    "thursday",
                    "friday",
                    "saturday",
                    "sunday",
                )
            ),
        )
    )
    rating_store.add(rated.id, 4)
    rating_store.add(rated.id, 5)

    result = await engine.find_nearby(*CENTER)
    by_id = {loc.id: loc for loc in result.locations}

    assert by_id[rated.id].freshness_score == 4.5
    assert by_id[rated.id].is_open is True
    assert by_id[closed.id].freshness_score is None
    assert by_id[closed.id].is_open is False


@pytest.mark.asyncio
async def test_missing_distance_falls_back_to_haversine(engine, location_index, new_location):
    location_index.add(new_location(lat=40.001, lng=-74.0))
    location_index.report_distance = False

    result = await engine.find_nearby(*CENTER)

    assert result.locations[0].distance_meters == pytest.approx(111.19, abs=0.1)


@pytest.mark.asyncio
async def test_search_works_without_cache(broken_engine, location_index, new_location):
    _seed_line(location_index, new_location, 4)

    first = await broken_engine.find_nearby(*CENTER)
    second = await broken_engine.find_nearby(*CENTER)

    assert first.total_found == second.total_found == 4
    assert location_index.calls["nearby"] == 2


@pytest.mark.asyncio
async def test_nearby_centers_sharing_a_key_report_the_same_center(
    engine, location_index, new_location
):
    _seed_line(location_index, new_location, 3)

    first = await engine.find_nearby(40.00004, -74.00003)
    second = await engine.find_nearby(39.99996, -73.99997)

    assert location_index.calls["nearby"] == 1
    assert first.user_location == second.user_location
    assert (first.user_location.lat, first.user_location.lng) == (40.0, -74.0)
    assert [loc.distance_meters for loc in first.locations] == [
        loc.distance_meters for loc in second.locations
    ]
    assert first.locations[0].distance_meters == pytest.approx(11.12, abs=0.1)
