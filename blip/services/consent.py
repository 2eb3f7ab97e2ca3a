from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger
from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from blip.core.clock import utcnow
from blip.core.errors import AuthorizationError, NotFoundError
from blip.core.lifecycle import REVEAL_TTL
from blip.models.reveal import Reveal
from blip.models.signal import MutualSignal
from blip.models.user import User
from blip.services.users import public_profile


@dataclass
class AcknowledgeResult:
    match_id: str
    reveal_created: bool
    other_user_id: str
    other_user_profile: Optional[Dict[str, Any]] = None
    reveal_expires_at: Optional[datetime] = None


def _load_participating_match(db: Session, match_id: str, user_id: str, now: datetime) -> MutualSignal:
    match = db.get(MutualSignal, match_id)
    # expired matches are treated as absent
    if not match or match.expires_at <= now:
        raise NotFoundError("Match not found or expired")

    if user_id not in match.participants():
        raise AuthorizationError("Not authorized")

    return match


def _side(match: MutualSignal, user_id: str) -> str:
    return "a" if match.user_a_id == user_id else "b"


def _still_pending(match_id: str, now: datetime):
    return (
        MutualSignal.id == match_id,
        MutualSignal.status == "pending",
        MutualSignal.expires_at > now,
    )


def _transition_to_accepted(db: Session, match_id: str) -> bool:
    """
    pending -> accepted iff both sides have acknowledged.

    Conditional UPDATE: exactly one caller sees rowcount == 1 and owns
    creating the reveal pair.
    """
    result = db.execute(
        update(MutualSignal)
        .where(
            MutualSignal.id == match_id,
            MutualSignal.status == "pending",
            MutualSignal.user_a_acknowledged.is_(True),
            MutualSignal.user_b_acknowledged.is_(True),
        )
        .values(status="accepted")
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _create_reveal_pair(db: Session, match: MutualSignal, now: datetime) -> datetime:
    expires_at = now + REVEAL_TTL
    db.add_all(
        [
            Reveal(
                mutual_signal_id=match.id,
                viewer_id=match.user_a_id,
                viewed_id=match.user_b_id,
                expires_at=expires_at,
            ),
            Reveal(
                mutual_signal_id=match.id,
                viewer_id=match.user_b_id,
                viewed_id=match.user_a_id,
                expires_at=expires_at,
            ),
        ]
    )
    return expires_at


def acknowledge(
    db: Session,
    match_id: str,
    user_id: str,
    now: Optional[datetime] = None,
) -> AcknowledgeResult:
    now = now or utcnow()
    match = _load_participating_match(db, match_id, user_id, now)
    other_id = match.other_user(user_id)

    flag = f"user_{_side(match, user_id)}_acknowledged"
    flagged = db.execute(
        update(MutualSignal)
        .where(*_still_pending(match_id, now))
        .values({flag: True})
        .execution_options(synchronize_session=False)
    )
    if flagged.rowcount != 1:
        db.rollback()
        raise NotFoundError("Match is no longer pending")

    reveal_expires_at = None
    if _transition_to_accepted(db, match_id):
        reveal_expires_at = _create_reveal_pair(db, match, now)

    db.commit()

    if reveal_expires_at is None:
        logger.info(f"Match acknowledged, waiting for other party | match={match_id} user={user_id}")
        return AcknowledgeResult(match_id=match_id, reveal_created=False, other_user_id=other_id)

    logger.info(f"Match accepted, reveals created | match={match_id}")
    return AcknowledgeResult(
        match_id=match_id,
        reveal_created=True,
        other_user_id=other_id,
        other_user_profile=public_profile(db.get(User, other_id)),
        reveal_expires_at=reveal_expires_at,
    )


def decline(
    db: Session,
    match_id: str,
    user_id: str,
    now: Optional[datetime] = None,
) -> None:
    """Either party declining ends the match."""
    now = now or utcnow()
    match = _load_participating_match(db, match_id, user_id, now)

    flag = f"user_{_side(match, user_id)}_declined"
    declined = db.execute(
        update(MutualSignal)
        .where(*_still_pending(match_id, now))
        .values({flag: True, "status": "declined"})
        .execution_options(synchronize_session=False)
    )
    if declined.rowcount != 1:
        db.rollback()
        raise NotFoundError("Match is no longer pending")

    db.commit()
    logger.info(f"Match declined | match={match_id} user={user_id}")


def list_pending(
    db: Session,
    user_id: str,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    now = now or utcnow()
    matches = db.scalars(
        select(MutualSignal)
        .where(
            or_(MutualSignal.user_a_id == user_id, MutualSignal.user_b_id == user_id),
            MutualSignal.status == "pending",
            MutualSignal.expires_at > now,
        )
        .order_by(MutualSignal.expires_at.asc())
    ).all()

    out = []
    for m in matches:
        mine_is_a = m.user_a_id == user_id
        out.append(
            {
                "mutual_signal_id": m.id,
                "expires_at": m.expires_at,
                "other_user_id": m.user_b_id if mine_is_a else m.user_a_id,
                "acknowledged": m.user_a_acknowledged if mine_is_a else m.user_b_acknowledged,
                "distance_meters": m.distance_meters,
                "time_remaining": max(0, int((m.expires_at - now).total_seconds() * 1000)),
            }
        )
    return out
