from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from loguru import logger
from sqlalchemy import case, update
from sqlalchemy.orm import Session

from blip.core import config
from blip.core.clock import utcnow
from blip.core.errors import RateLimitError
from blip.core.lifecycle import DEFAULT_SIGNAL_RADIUS_METERS, SIGNAL_TTL, TIER_SIGNAL_LIMITS
from blip.models.signal import MutualSignal, Signal
from blip.models.user import User
from blip.services import geo
from blip.services.matching import detect_mutual_signals
from blip.services.users import ensure_user


@dataclass
class SignalResult:
    signal: Signal
    matches: List[MutualSignal] = field(default_factory=list)


def daily_limit_clause():
    # Evaluated in SQL so the limit follows the tier stored on the same row
    return case(
        TIER_SIGNAL_LIMITS,
        value=User.subscription_tier,
        else_=TIER_SIGNAL_LIMITS["premium"],
    )


def _claim_daily_slot(db: Session, user_id: str, now: datetime) -> bool:
    """
    Increment signals_today iff it is still below the tier limit.

    One conditional UPDATE, so concurrent creations cannot both pass the
    check on a stale count.
    """
    result = db.execute(
        update(User)
        .where(User.id == user_id, User.signals_today < daily_limit_clause())
        .values(signals_today=User.signals_today + 1, last_signal_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def capped_radius(radius: Optional[int]) -> int:
    if radius is None:
        radius = DEFAULT_SIGNAL_RADIUS_METERS
    return max(1, min(int(radius), config.MAX_DISTANCE_METERS))


def create_signal(
    db: Session,
    user_id: str,
    lat: float,
    lng: float,
    radius: Optional[int] = None,
    boosted: bool = False,
    now: Optional[datetime] = None,
) -> SignalResult:
    now = now or utcnow()

    ensure_user(db, user_id)

    if not _claim_daily_slot(db, user_id, now):
        db.rollback()
        logger.warning(f"Daily signal limit reached | user={user_id}")
        raise RateLimitError("Daily signal limit reached", upgrade_required=True)

    # Only the rounded position is ever stored
    rounded_lat, rounded_lng = geo.round_location(lat, lng)

    signal = Signal(
        user_id=user_id,
        geohash=geo.storage_key(rounded_lat, rounded_lng),
        lat=rounded_lat,
        lng=rounded_lng,
        visibility_radius_meters=capped_radius(radius),
        signal_type="boosted" if boosted else "standard",
        status="active",
        expires_at=now + SIGNAL_TTL,
    )
    db.add(signal)
    db.commit()
    db.refresh(signal)

    logger.info(
        f"Signal created | user={user_id} signal={signal.id} geohash={signal.geohash} "
        f"radius={signal.visibility_radius_meters}"
    )

    matches = detect_mutual_signals(db, signal, now=now)
    return SignalResult(signal=signal, matches=matches)
