from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from loguru import logger
from sqlalchemy import delete, update
from sqlalchemy.orm import Session

from blip.core.clock import utcnow
from blip.core.lifecycle import DAILY_RESET_UTC_HOUR, MUTUAL_SIGNAL_GRACE, PRESENCE_RETENTION
from blip.models.presence import Presence
from blip.models.reveal import Interaction, Reveal
from blip.models.signal import MutualSignal, Signal
from blip.models.user import User

MARK = "mark"
DELETE = "delete"


@dataclass(frozen=True)
class SweepPolicy:
    """
    One TTL rule: rows of ``model`` whose ``expiry_field`` is older than
    ``now - grace`` are either updated with ``values`` or deleted.
    """

    task: str
    model: Any
    expiry_field: str
    action: str
    grace: timedelta = timedelta(0)
    values: Dict[str, Any] = field(default_factory=dict)
    # extra equality filters; keep MARK rules from re-touching settled rows
    only_when: Dict[str, Any] = field(default_factory=dict)

    def statement(self, now: datetime):
        cutoff = now - self.grace
        conditions = [getattr(self.model, self.expiry_field) < cutoff]
        conditions += [getattr(self.model, col) == val for col, val in self.only_when.items()]

        if self.action == MARK:
            stmt = update(self.model).where(*conditions).values(**self.values)
        elif self.action == DELETE:
            stmt = delete(self.model).where(*conditions)
        else:
            raise ValueError(f"Unknown sweep action: {self.action}")
        return stmt.execution_options(synchronize_session=False)


# Order matters only for readability; every rule is independent.
SWEEP_POLICIES: List[SweepPolicy] = [
    SweepPolicy(
        task="expire_signals",
        model=Signal,
        expiry_field="expires_at",
        action=MARK,
        values={"status": "expired"},
        only_when={"status": "active"},
    ),
    SweepPolicy(
        task="clean_mutual_signals",
        model=MutualSignal,
        expiry_field="expires_at",
        action=DELETE,
        grace=MUTUAL_SIGNAL_GRACE,
    ),
    SweepPolicy(
        task="update_offline_users",
        model=Presence,
        expiry_field="expires_at",
        action=MARK,
        values={"is_online": False},
        only_when={"is_online": True},
    ),
    SweepPolicy(
        task="clean_old_presence",
        model=Presence,
        expiry_field="expires_at",
        action=DELETE,
        grace=PRESENCE_RETENTION,
    ),
    SweepPolicy(
        task="clean_interactions",
        model=Interaction,
        expiry_field="expires_at",
        action=DELETE,
    ),
    SweepPolicy(
        task="clean_reveals",
        model=Reveal,
        expiry_field="expires_at",
        action=DELETE,
    ),
]


def _apply_policy(db: Session, policy: SweepPolicy, now: datetime) -> Dict[str, Any]:
    result = db.execute(policy.statement(now))
    db.commit()
    return {"task": policy.task, "affected": result.rowcount}


def reset_daily_counts(db: Session, now: datetime) -> Dict[str, Any]:
    if now.hour != DAILY_RESET_UTC_HOUR:
        return {"task": "reset_daily_counts", "skipped": "not_midnight"}

    result = db.execute(
        update(User)
        .where(User.signals_today > 0)
        .values(signals_today=0)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return {"task": "reset_daily_counts", "affected": result.rowcount}


def _tasks(policies: List[SweepPolicy]) -> List[tuple[str, Callable[[Session, datetime], Dict[str, Any]]]]:
    tasks = [(p.task, lambda db, now, p=p: _apply_policy(db, p, now)) for p in policies]
    tasks.append(("reset_daily_counts", reset_daily_counts))
    return tasks


def run_sweep(
    db: Session,
    now: Optional[datetime] = None,
    policies: Optional[List[SweepPolicy]] = None,
) -> List[Dict[str, Any]]:
    """
    Run every expiry task once and report each outcome.

    A failing task is rolled back and recorded; the remaining tasks still run.
    """
    now = now or utcnow()
    results: List[Dict[str, Any]] = []

    for name, task in _tasks(SWEEP_POLICIES if policies is None else policies):
        try:
            outcome = task(db, now)
        except Exception as exc:
            db.rollback()
            logger.opt(exception=exc).error(f"Sweep task failed | task={name}")
            outcome = {"task": name, "error": str(exc)}
        else:
            logger.info(f"Sweep task done | {outcome}")
        results.append(outcome)

    return results
