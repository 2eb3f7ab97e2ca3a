from sqlalchemy import Column, String, Float, Boolean, DateTime, Index
from sqlalchemy.sql import func

from blip.core.db import Base

class Presence(Base):
    __tablename__ = "user_presence"

    user_id = Column(String, primary_key=True, index=True)

    # rounded to ~100m before storage
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    geohash = Column(String(12), nullable=False)

    device_hash = Column(String, nullable=False, default="unknown")

    is_online = Column(Boolean, nullable=False, default=True)
    expires_at = Column(DateTime, nullable=False)

    last_seen_at = Column(DateTime, nullable=False, server_default=func.now())

    __table_args__ = (
        Index("idx_presence_geohash", "geohash"),
        Index("idx_presence_expires", "expires_at"),
    )
