from __future__ import annotations

import time
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session
from supabase import AuthError, AuthRetryableError, Client, create_client

from blip.core import config
from blip.core.clock import utcnow
from blip.core.db import upsert
from blip.core.errors import AppError, NotFoundError, TransientUpstreamError, ValidationError
from blip.models.signal import MutualSignal
from blip.models.user import User

PUBLIC_PROFILE_FIELDS = ("display_name", "avatar_url", "short_bio")
EDITABLE_PROFILE_FIELDS = ("display_name", "avatar_url", "short_bio")

_SUPABASE: Optional[Client] = None


def supabase_admin() -> Client:
    """Service-role client, created on first use."""
    global _SUPABASE
    if _SUPABASE is None:
        if not config.SUPABASE_URL or not config.SUPABASE_SERVICE_ROLE_KEY:
            logger.error("Missing SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY")
            raise AppError()
        _SUPABASE = create_client(config.SUPABASE_URL, config.SUPABASE_SERVICE_ROLE_KEY)
    return _SUPABASE


def default_display_name(user_id: str) -> str:
    return f"User_{user_id[:8]}"


def public_profile(user: Optional[User]) -> Dict[str, Any]:
    if user is None:
        return {"display_name": "Anonymous", "avatar_url": None, "short_bio": None}
    return {field: getattr(user, field) for field in PUBLIC_PROFILE_FIELDS}


def ensure_user(db: Session, user_id: str) -> None:
    """Insert a bare user row if none exists yet. Does not commit."""
    upsert(
        db,
        User,
        {
            "id": user_id,
            "display_name": default_display_name(user_id),
            "subscription_tier": "free",
            "signals_today": 0,
        },
        conflict_on=["id"],
    )


# ---------- SIGNUP ----------

def create_account(
    db: Session,
    email: str,
    password: str,
    display_name: Optional[str] = None,
    avatar_url: Optional[str] = None,
    short_bio: Optional[str] = None,
    age_range: Optional[str] = None,
    interests: Optional[List[str]] = None,
) -> User:
    if not email or not password:
        raise ValidationError("Email and password are required")

    credentials = {
        "email": email,
        "password": password,
        "options": {
            "data": {
                "display_name": display_name or f"User_{str(int(time.time()))[-6:]}",
            }
        },
    }

    # Supabase sends the verification email; no session is returned here
    try:
        auth = supabase_admin().auth.sign_up(credentials)
    except AuthRetryableError as exc:
        logger.warning(f"Signup failed upstream, retryable: {exc}")
        raise TransientUpstreamError()
    except AuthError as exc:
        status = getattr(exc, "status", None)
        if status is not None and status < 500:
            # weak password, malformed email, already registered
            logger.info(f"Signup rejected by Supabase | status={status} reason={exc}")
            raise ValidationError(str(exc))
        logger.warning(f"Signup failed upstream | status={status} reason={exc}")
        raise TransientUpstreamError()
    except httpx.HTTPError as exc:
        logger.warning(f"Signup transport failure: {exc}")
        raise TransientUpstreamError()

    if not auth.user:
        raise ValidationError("User creation failed")

    user_id = str(auth.user.id)
    values = {
        "id": user_id,
        "email": email,
        "display_name": display_name or default_display_name(user_id),
        "avatar_url": avatar_url,
        "short_bio": short_bio,
        "age_range": age_range,
        "interests": interests or [],
        "subscription_tier": "free",
        "max_distance_meters": 1000,
        "visibility_preference": "balanced",
        "updated_at": utcnow(),
    }

    # Upsert: a repeated signup refreshes the profile instead of failing
    upsert(
        db,
        User,
        values,
        conflict_on=["id"],
        update=[k for k in values if k not in ("id", "subscription_tier")],
    )
    db.commit()

    logger.info(f"Account created | user={user_id}")
    return db.get(User, user_id, populate_existing=True)


# ---------- PROFILE ----------

def get_user(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("Profile not found")
    return user


def update_profile(db: Session, user_id: str, changes: Dict[str, Any]) -> User:
    user = get_user(db, user_id)

    applied = {k: v for k, v in changes.items() if k in EDITABLE_PROFILE_FIELDS and v}
    for field, value in applied.items():
        setattr(user, field, value)

    if applied:
        user.updated_at = utcnow()
        db.commit()
        db.refresh(user)
        logger.info(f"Profile updated | user={user_id} fields={sorted(applied)}")

    return user


def get_stats(db: Session, user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or utcnow()
    user = db.get(User, user_id)

    involving_me = or_(MutualSignal.user_a_id == user_id, MutualSignal.user_b_id == user_id)

    total = db.scalar(select(func.count()).select_from(MutualSignal).where(involving_me)) or 0
    successful = db.scalar(
        select(func.count())
        .select_from(MutualSignal)
        .where(involving_me, MutualSignal.status == "accepted")
    ) or 0

    age_days = 0
    if user and user.created_at:
        age_days = max(0, (now - user.created_at).days)

    return {
        "signals_today": user.signals_today if user else 0,
        "total_matches": total,
        "successful_matches": successful,
        "account_age_days": age_days,
        "subscription_tier": user.subscription_tier if user else "free",
    }
