from __future__ import annotations

import math
import random

import geohash2

from blip.core.lifecycle import (
    COORDINATE_DECIMALS,
    FUZZ_DEGREES,
    SEARCH_GEOHASH_PRECISION,
    STORAGE_GEOHASH_PRECISION,
)

EARTH_RADIUS_M = 6371000


def encode(lat: float, lng: float, precision: int = STORAGE_GEOHASH_PRECISION) -> str:
    return geohash2.encode(lat, lng, precision=precision)


def storage_key(lat: float, lng: float) -> str:
    return encode(lat, lng, STORAGE_GEOHASH_PRECISION)


def search_key(lat: float, lng: float) -> str:
    # Coarser than storage_key so it is a prefix of every neighbouring stored key
    return encode(lat, lng, SEARCH_GEOHASH_PRECISION)


def round_location(lat: float, lng: float, decimals: int = COORDINATE_DECIMALS) -> tuple[float, float]:
    return round(lat, decimals), round(lng, decimals)


def haversine_m(lat1, lng1, lat2, lng2):
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lng2 - lng1)

    a = (
        math.sin(dphi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def jitter(lat: float, lng: float, spread: float = FUZZ_DEGREES, rng: random.Random | None = None) -> tuple[float, float]:
    """Perturb a position independently on each axis by up to ``spread`` degrees.

    Applied per response only; jittered values are never written back.
    """
    rng = rng or random
    return (
        lat + rng.uniform(-spread, spread),
        lng + rng.uniform(-spread, spread),
    )
