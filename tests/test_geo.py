import random

from blip.services import geo

from conftest import NYC, NYC_NEIGHBOUR


def test_encode_is_deterministic():
    assert geo.encode(*NYC, precision=6) == geo.encode(*NYC, precision=6)
    assert geo.encode(*NYC, precision=6) == "dr5reg"


def test_search_key_is_prefix_of_storage_key():
    rng = random.Random(7)
    for _ in range(500):
        lat = rng.uniform(-89.9, 89.9)
        lng = rng.uniform(-179.9, 179.9)
        search = geo.search_key(lat, lng)
        stored = geo.storage_key(lat, lng)
        assert len(search) == 5
        assert len(stored) == 6
        assert stored.startswith(search)


def test_neighbours_share_a_cell():
    assert geo.storage_key(*NYC) == geo.storage_key(*NYC_NEIGHBOUR)


def test_round_location_keeps_four_decimals():
    assert geo.round_location(40.712849, -74.006049) == (40.7128, -74.006)


def test_haversine_short_distance():
    distance = geo.haversine_m(*NYC, *NYC_NEIGHBOUR)
    assert 20 < distance < 40


def test_jitter_stays_inside_box_and_varies():
    lat, lng = NYC
    seen = set()
    for _ in range(200):
        j_lat, j_lng = geo.jitter(lat, lng)
        assert abs(j_lat - lat) <= 0.0025
        assert abs(j_lng - lng) <= 0.0025
        seen.add((j_lat, j_lng))
    assert len(seen) > 1
