import uuid

from sqlalchemy import (
    Column,
    String,
    Float,
    Integer,
    Boolean,
    DateTime,
    CheckConstraint,
    Index,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from blip.core.db import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class Signal(Base):
    __tablename__ = "signals"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String, nullable=False, index=True)

    geohash = Column(String(12), nullable=False)
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)

    visibility_radius_meters = Column(Integer, nullable=False)
    signal_type = Column(
        String,
        CheckConstraint(
            "signal_type IN ('standard','boosted')",
            name="signals_signal_type_check",
        ),
        nullable=False,
        default="standard",
    )
    status = Column(
        String,
        CheckConstraint(
            "status IN ('active','expired')",
            name="signals_status_check",
        ),
        nullable=False,
        default="active",
    )

    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_signals_geohash_status", "geohash", "status"),
        Index("idx_signals_expires", "expires_at"),
    )


class MutualSignal(Base):
    __tablename__ = "mutual_signals"

    id = Column(String(36), primary_key=True, default=_uuid)

    user_a_id = Column(String, nullable=False, index=True)
    user_b_id = Column(String, nullable=False, index=True)

    # the pair of signals that produced this match, stored low/high
    signal_low_id = Column(String(36), nullable=False)
    signal_high_id = Column(String(36), nullable=False)

    distance_meters = Column(Float, nullable=False)

    user_a_acknowledged = Column(Boolean, nullable=False, default=False)
    user_b_acknowledged = Column(Boolean, nullable=False, default=False)
    user_a_declined = Column(Boolean, nullable=False, default=False)
    user_b_declined = Column(Boolean, nullable=False, default=False)

    status = Column(
        String,
        CheckConstraint(
            "status IN ('pending','accepted','declined')",
            name="mutual_signals_status_check",
        ),
        nullable=False,
        default="pending",
    )

    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("signal_low_id", "signal_high_id", name="uq_mutual_signal_pair"),
        Index("idx_mutual_signals_status_expires", "status", "expires_at"),
    )

    def participants(self) -> tuple[str, str]:
        return (self.user_a_id, self.user_b_id)

    def other_user(self, user_id: str) -> str:
        return self.user_b_id if self.user_a_id == user_id else self.user_a_id
