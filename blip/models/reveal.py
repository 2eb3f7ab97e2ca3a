import uuid

from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.sql import func

from blip.core.db import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class Reveal(Base):
    __tablename__ = "reveals"

    id = Column(String(36), primary_key=True, default=_uuid)
    mutual_signal_id = Column(
        String(36),
        ForeignKey("mutual_signals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    viewer_id = Column(String, nullable=False, index=True)
    viewed_id = Column(String, nullable=False)

    expires_at = Column(DateTime, nullable=False)
    last_viewed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    __table_args__ = (
        # one row per direction per match
        UniqueConstraint("mutual_signal_id", "viewer_id", name="uq_reveal_direction"),
    )


class Interaction(Base):
    __tablename__ = "interactions"

    id = Column(String(36), primary_key=True, default=_uuid)
    reveal_id = Column(
        String(36),
        ForeignKey("reveals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    sender_id = Column(String, nullable=False)
    receiver_id = Column(String, nullable=False, index=True)
    interaction_type = Column(String, nullable=False, default="message")
    content = Column(String, nullable=False)

    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index("idx_interactions_expires", "expires_at"),
    )
