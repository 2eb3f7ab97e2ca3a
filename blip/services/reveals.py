from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from blip.core.clock import utcnow
from blip.core.errors import NotFoundError, ValidationError
from blip.core.lifecycle import INTERACTION_TTL
from blip.models.reveal import Interaction, Reveal
from blip.models.user import User
from blip.services.realtime import NEW_MESSAGE, Publisher, user_channel

MAX_MESSAGE_LENGTH = 1000


def _active_reveal_for(db: Session, reveal_id: str, user_id: str, now: datetime) -> Reveal:
    reveal = db.scalar(
        select(Reveal).where(
            Reveal.id == reveal_id,
            or_(Reveal.viewer_id == user_id, Reveal.viewed_id == user_id),
            Reveal.expires_at > now,
        )
    )
    if not reveal:
        raise NotFoundError("Reveal not found or expired")
    return reveal


# ---------- MESSAGING ----------

def send_message(
    db: Session,
    reveal_id: str,
    sender_id: str,
    content: str,
    publisher: Optional[Publisher] = None,
    now: Optional[datetime] = None,
) -> Interaction:
    now = now or utcnow()

    content = (content or "").strip()
    if not content:
        raise ValidationError("Message content required")
    if len(content) > MAX_MESSAGE_LENGTH:
        raise ValidationError(f"Message longer than {MAX_MESSAGE_LENGTH} characters")

    reveal = _active_reveal_for(db, reveal_id, sender_id, now)
    receiver_id = reveal.viewed_id if reveal.viewer_id == sender_id else reveal.viewer_id

    msg = Interaction(
        reveal_id=reveal.id,
        sender_id=sender_id,
        receiver_id=receiver_id,
        interaction_type="message",
        content=content,
        expires_at=now + INTERACTION_TTL,
        created_at=now,
    )
    db.add(msg)
    db.commit()
    db.refresh(msg)

    logger.info(f"Message sent | reveal={reveal.id} interaction={msg.id}")

    if publisher is not None:
        publisher.publish(
            user_channel(receiver_id),
            NEW_MESSAGE,
            {
                "interaction_id": msg.id,
                "sender_id": sender_id,
                "content": content,
                "created_at": msg.created_at.isoformat(),
            },
        )

    return msg


def list_messages(
    db: Session,
    reveal_id: str,
    user_id: str,
    now: Optional[datetime] = None,
) -> List[Interaction]:
    now = now or utcnow()
    reveal = _active_reveal_for(db, reveal_id, user_id, now)

    # Both directions of a match share one conversation
    sibling_ids = select(Reveal.id).where(Reveal.mutual_signal_id == reveal.mutual_signal_id)

    return list(
        db.scalars(
            select(Interaction)
            .where(
                Interaction.reveal_id.in_(sibling_ids),
                Interaction.expires_at > now,
            )
            .order_by(Interaction.created_at.asc())
        )
    )


# ---------- REVEALS ----------

def list_active_reveals(
    db: Session,
    user_id: str,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    now = now or utcnow()

    rows = db.execute(
        select(
            Reveal.id,
            Reveal.mutual_signal_id,
            Reveal.viewed_id,
            Reveal.expires_at,
            Reveal.last_viewed_at,
            User.display_name,
            User.avatar_url,
            User.short_bio,
        )
        .outerjoin(User, User.id == Reveal.viewed_id)
        .where(Reveal.viewer_id == user_id, Reveal.expires_at > now)
        .order_by(Reveal.expires_at.asc())
    ).all()

    return [
        {
            "id": r.id,
            "mutual_signal_id": r.mutual_signal_id,
            "viewed_id": r.viewed_id,
            "expires_at": r.expires_at,
            "last_viewed_at": r.last_viewed_at,
            "profile": {
                "display_name": r.display_name or "Anonymous",
                "avatar_url": r.avatar_url,
                "short_bio": r.short_bio,
            },
        }
        for r in rows
    ]
