from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Callable, Optional

from loguru import logger
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from blip.core import config
from blip.core.clock import utcnow
from blip.core.errors import RateLimitError, ValidationError
from blip.models.report import Report
from blip.models.user import User
from blip.services.users import ensure_user

REPORT_WINDOW = timedelta(hours=24)

# (report) -> change applied to the reported user's report_score
ScorePolicy = Callable[[Report], int]


def flat_penalty(report: Report) -> int:
    return -1


score_policy: ScorePolicy = flat_penalty


def reports_in_window(db: Session, reporter_id: str, now: datetime) -> int:
    return db.scalar(
        select(func.count())
        .select_from(Report)
        .where(Report.reporter_id == reporter_id, Report.created_at >= now - REPORT_WINDOW)
    ) or 0


def _seconds_until_slot_frees(db: Session, reporter_id: str, now: datetime) -> int:
    oldest = db.scalar(
        select(func.min(Report.created_at))
        .where(Report.reporter_id == reporter_id, Report.created_at >= now - REPORT_WINDOW)
    )
    if oldest is None:
        return int(REPORT_WINDOW.total_seconds())
    return max(1, math.ceil((oldest + REPORT_WINDOW - now).total_seconds()))


def create_report(
    db: Session,
    reporter_id: str,
    reported_user_id: str,
    report_type: str,
    description: Optional[str] = None,
    signal_id: Optional[str] = None,
    interaction_id: Optional[str] = None,
    device_hash: Optional[str] = None,
    ip_address: Optional[str] = None,
    now: Optional[datetime] = None,
    policy: Optional[ScorePolicy] = None,
) -> Report:
    now = now or utcnow()
    policy = policy or score_policy

    if reported_user_id == reporter_id:
        raise ValidationError("Cannot report yourself")

    # lock the reporter row so concurrent reports are counted one at a time
    ensure_user(db, reporter_id)
    db.execute(select(User.id).where(User.id == reporter_id).with_for_update())

    if reports_in_window(db, reporter_id, now) >= config.RATE_LIMIT_REPORTS_PER_DAY:
        retry_after = _seconds_until_slot_frees(db, reporter_id, now)
        db.rollback()
        logger.warning(f"Daily report limit reached | reporter={reporter_id} retry_after={retry_after}s")
        raise RateLimitError("Daily report limit reached", retry_after=retry_after)

    report = Report(
        reporter_id=reporter_id,
        reported_user_id=reported_user_id,
        reported_signal_id=signal_id,
        reported_interaction_id=interaction_id,
        report_type=report_type,
        description=description,
        device_hash=device_hash,
        ip_address=ip_address,
        created_at=now,
    )
    db.add(report)

    delta = policy(report)
    if delta:
        # increment in SQL, never read-modify-write
        db.execute(
            update(User)
            .where(User.id == reported_user_id)
            .values(report_score=User.report_score + delta)
            .execution_options(synchronize_session=False)
        )

    db.commit()
    db.refresh(report)

    logger.info(f"Report filed | report={report.id} type={report_type} reported={reported_user_id}")
    return report
