from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from blip.core.clock import utcnow
from blip.core.db import upsert
from blip.core.lifecycle import NEARBY_RESULT_LIMIT, PRESENCE_TTL
from blip.models.presence import Presence
from blip.services import geo


@dataclass
class NearbyDot:
    lat: float
    lng: float


def upsert_presence(
    db: Session,
    user_id: str,
    lat: float,
    lng: float,
    device_hash: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Presence:
    now = now or utcnow()
    lat, lng = geo.round_location(lat, lng)
    geohash = geo.storage_key(lat, lng)

    upsert(
        db,
        Presence,
        {
            "user_id": user_id,
            "lat": lat,
            "lng": lng,
            "geohash": geohash,
            "device_hash": device_hash or "unknown",
            "is_online": True,
            "expires_at": now + PRESENCE_TTL,
            "last_seen_at": now,
        },
        conflict_on=["user_id"],
        update=["lat", "lng", "geohash", "device_hash", "is_online", "expires_at", "last_seen_at"],
    )
    db.commit()

    logger.debug(f"Presence refreshed | user={user_id} geohash={geohash}")
    return db.get(Presence, user_id, populate_existing=True)


def query_nearby(
    db: Session,
    lat: float,
    lng: float,
    exclude_user_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> List[NearbyDot]:
    now = now or utcnow()
    prefix = geo.search_key(lat, lng)

    stmt = (
        select(Presence.lat, Presence.lng)
        .where(
            Presence.is_online.is_(True),
            Presence.expires_at > now,
            Presence.geohash.like(f"{prefix}%"),
        )
        .limit(NEARBY_RESULT_LIMIT)
    )
    if exclude_user_id:
        stmt = stmt.where(Presence.user_id != exclude_user_id)

    rows = db.execute(stmt).all()
    logger.debug(f"Nearby query | prefix={prefix} found={len(rows)}")

    dots = []
    for row in rows:
        fuzzed_lat, fuzzed_lng = geo.jitter(row.lat, row.lng)
        dots.append(NearbyDot(lat=fuzzed_lat, lng=fuzzed_lng))
    return dots
