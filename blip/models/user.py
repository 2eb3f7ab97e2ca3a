from sqlalchemy import Column, String, Integer, DateTime, JSON, CheckConstraint
from sqlalchemy.sql import func

from blip.core.db import Base


class User(Base):
    __tablename__ = "users"

    # Supabase auth subject; stable across signups
    id = Column(String, primary_key=True)

    email = Column(String, nullable=True)
    display_name = Column(String, nullable=False)
    avatar_url = Column(String, nullable=True)
    short_bio = Column(String, nullable=True)

    age_range = Column(String, nullable=True)
    # free-form tags like ["coffee","running"]
    interests = Column(JSON, nullable=True)

    subscription_tier = Column(
        String,
        CheckConstraint(
            "subscription_tier IN ('free','plus','premium')",
            name="users_subscription_tier_check",
        ),
        nullable=False,
        default="free",
    )
    max_distance_meters = Column(Integer, nullable=False, default=1000)
    visibility_preference = Column(String, nullable=False, default="balanced")

    signals_today = Column(Integer, nullable=False, default=0)
    last_signal_at = Column(DateTime, nullable=True)
    report_score = Column(Integer, nullable=False, default=100)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime,
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )
