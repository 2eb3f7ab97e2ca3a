from __future__ import annotations

from datetime import datetime
from typing import Callable, List, Optional

from loguru import logger
from sqlalchemy import and_, exists, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from blip.core.clock import utcnow
from blip.core.lifecycle import MUTUAL_SIGNAL_TTL, SEARCH_GEOHASH_PRECISION
from blip.models.reveal import Reveal
from blip.models.signal import MutualSignal, Signal
from blip.services import geo

# (signal, candidate, distance_meters) -> bool
MatchPredicate = Callable[[Signal, Signal, float], bool]


def within_smaller_radius(signal: Signal, candidate: Signal, distance: float) -> bool:
    return distance <= min(signal.visibility_radius_meters, candidate.visibility_radius_meters)


# Swap to change which signal pairs qualify as mutual
match_predicate: MatchPredicate = within_smaller_radius


def _pair_low_high(a, b) -> tuple[str, str]:
    a_str = str(a)
    b_str = str(b)
    return (a_str, b_str) if a_str < b_str else (b_str, a_str)


def _open_match_exists(db: Session, user_a: str, user_b: str, now: datetime) -> bool:
    between = or_(
        and_(MutualSignal.user_a_id == user_a, MutualSignal.user_b_id == user_b),
        and_(MutualSignal.user_a_id == user_b, MutualSignal.user_b_id == user_a),
    )
    # accepted stays open past its consent window while the reveal is live
    live_reveal = exists().where(
        Reveal.mutual_signal_id == MutualSignal.id,
        Reveal.expires_at > now,
    ).correlate(MutualSignal)
    is_open = or_(
        and_(MutualSignal.status == "pending", MutualSignal.expires_at > now),
        and_(MutualSignal.status == "accepted", live_reveal),
    )
    return bool(db.scalar(select(exists().where(between, is_open))))


def _candidates(db: Session, signal: Signal, now: datetime) -> List[Signal]:
    prefix = signal.geohash[:SEARCH_GEOHASH_PRECISION]
    return list(
        db.scalars(
            select(Signal)
            .where(
                Signal.status == "active",
                Signal.expires_at > now,
                Signal.user_id != signal.user_id,
                Signal.geohash.like(f"{prefix}%"),
            )
            .order_by(Signal.created_at.desc())
        )
    )


def detect_mutual_signals(
    db: Session,
    signal: Signal,
    now: Optional[datetime] = None,
    predicate: Optional[MatchPredicate] = None,
) -> List[MutualSignal]:
    """
    Pair a freshly created signal with nearby active signals from other users.

    At most one open (pending or accepted) match exists per pair of users;
    a given pair of signals can only ever produce one row.
    """
    now = now or utcnow()
    predicate = predicate or match_predicate

    created: List[MutualSignal] = []
    seen_users = set()

    for candidate in _candidates(db, signal, now):
        if candidate.user_id in seen_users:
            continue

        distance = geo.haversine_m(signal.lat, signal.lng, candidate.lat, candidate.lng)
        if not predicate(signal, candidate, distance):
            continue

        seen_users.add(candidate.user_id)

        if _open_match_exists(db, signal.user_id, candidate.user_id, now):
            logger.debug(f"Match skipped, already open | {signal.user_id} <-> {candidate.user_id}")
            continue

        low, high = _pair_low_high(signal.id, candidate.id)
        match = MutualSignal(
            user_a_id=candidate.user_id,
            user_b_id=signal.user_id,
            signal_low_id=low,
            signal_high_id=high,
            distance_meters=round(distance, 1),
            status="pending",
            expires_at=now + MUTUAL_SIGNAL_TTL,
        )

        # one commit per pair so a lost race only drops that pair
        db.add(match)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.debug(f"Match already recorded for signals {low}/{high}")
            continue

        db.refresh(match)
        created.append(match)
        logger.info(
            f"Mutual signal created | match={match.id} users={match.user_a_id},{match.user_b_id} "
            f"distance={match.distance_meters}m"
        )

    return created
