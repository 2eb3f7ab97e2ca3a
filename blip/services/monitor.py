from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from blip.core.clock import utcnow
from blip.models.presence import Presence
from blip.models.report import Report
from blip.models.signal import MutualSignal, Signal

ACTIVE_SIGNALS_WARN = 50
RECENT_REPORTS_WARN = 10


def _count(db: Session, model, *conditions) -> int:
    return db.scalar(select(func.count()).select_from(model).where(*conditions)) or 0


def live_stats(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or utcnow()

    stats = {
        "active_users": _count(db, Presence, Presence.is_online.is_(True), Presence.expires_at > now),
        "active_signals": _count(db, Signal, Signal.status == "active", Signal.expires_at > now),
        "pending_matches": _count(
            db, MutualSignal, MutualSignal.status == "pending", MutualSignal.expires_at > now
        ),
        "recent_reports": _count(db, Report, Report.created_at >= now - timedelta(hours=24)),
    }

    issues = []
    if stats["active_signals"] > ACTIVE_SIGNALS_WARN:
        issues.append("High number of active signals - consider scaling")
    if stats["recent_reports"] > RECENT_REPORTS_WARN:
        issues.append("High number of reports - check moderation")

    return {**stats, "issues": issues, "generated_at": now}


def format_report(report: Dict[str, Any]) -> str:
    lines = [
        "SYSTEM MONITORING REPORT",
        "========================",
        "",
        f"Active users:          {report['active_users']}",
        f"Active signals:        {report['active_signals']}",
        f"Pending matches:       {report['pending_matches']}",
        f"Recent reports (24h):  {report['recent_reports']}",
        "",
    ]
    if report["issues"]:
        lines.append("ISSUES DETECTED:")
        lines.extend(f"  - {issue}" for issue in report["issues"])
    else:
        lines.append("All systems normal")
    return "\n".join(lines)
