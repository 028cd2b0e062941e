"""
Records dashboard activity (logins, user administration, data checks) and
scheduled-task runs.

Usage (from any endpoint / service):
    from app.services.activity_logger import log_activity
    log_activity(db, ActivityType.USER_LOGIN, "Usuario Ana fez login", user_id=user.id)

Writing an activity is best-effort: failures are logged but never raised, so
callers must commit their own work before logging.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.rbac import MODULE_NAMES
from app.models.activity import ActivityLog, ActivityType, ScheduledTaskRun

logger = logging.getLogger(__name__)


def log_activity(
    db: Session,
    type: str,
    description: str,
    module_id: str | None = None,
    metadata: dict | None = None,
    user_id: uuid.UUID | None = None,
) -> ActivityLog | None:
    entry = ActivityLog(
        type=type,
        module_id=module_id,
        description=description,
        meta=metadata,
        user_id=user_id,
    )
    try:
        db.add(entry)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to record activity %s", type)
        return None
    return entry


def start_of_day(now: datetime | None = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def get_activity_stats(db: Session, days: int = 7) -> dict:
    """Activity counts per type and per module over the last `days` days."""
    start_date = start_of_day() - timedelta(days=days)

    by_type = (
        db.query(ActivityLog.type, func.count(ActivityLog.id))
        .filter(ActivityLog.created_at >= start_date)
        .group_by(ActivityLog.type)
        .all()
    )
    by_module = (
        db.query(ActivityLog.module_id, func.count(ActivityLog.id))
        .filter(ActivityLog.created_at >= start_date, ActivityLog.module_id.is_not(None))
        .group_by(ActivityLog.module_id)
        .all()
    )
    total = db.query(ActivityLog).filter(ActivityLog.created_at >= start_date).count()

    return {
        "by_type": [{"type": t, "count": c} for t, c in by_type],
        "by_module": [{"module_id": m, "count": c} for m, c in by_module],
        "total": total,
        "period": {"start_date": start_date, "days": days},
    }


def last_module_update(db: Session, module_id: str, since: datetime | None = None) -> ActivityLog | None:
    query = db.query(ActivityLog).filter(
        ActivityLog.module_id == module_id,
        ActivityLog.type == ActivityType.DATA_UPDATED,
    )
    if since is not None:
        query = query.filter(ActivityLog.created_at >= since)
    return query.order_by(ActivityLog.created_at.desc()).first()


def get_modules_status(db: Session, module_ids: list[str], now: datetime | None = None) -> list[dict]:
    """Per-module data freshness: updated today or not, plus the last data check."""
    today_start = start_of_day(now)
    statuses = []
    for module_id in module_ids:
        last_check = (
            db.query(ActivityLog)
            .filter(
                ActivityLog.module_id == module_id,
                ActivityLog.type.in_((ActivityType.DATA_UPDATED, ActivityType.DATA_NO_CHANGE)),
            )
            .order_by(ActivityLog.created_at.desc())
            .first()
        )
        updated_today = last_module_update(db, module_id, since=today_start) is not None
        statuses.append({
            "module_id": module_id,
            "name": MODULE_NAMES[module_id],
            "status": "updated" if updated_today else "no_update",
            "last_activity_type": last_check.type if last_check else None,
            "last_activity_date": last_check.created_at if last_check else None,
        })
    return statuses


# ── Scheduled tasks ────────────────────────────────────────────────────────

def record_task_run(db: Session, task_name: str, status: str, details: str | None = None) -> None:
    run = ScheduledTaskRun(task_name=task_name, status=status, details=details)
    try:
        db.add(run)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to record run of task %s", task_name)


def get_last_task_run(db: Session, task_name: str) -> ScheduledTaskRun | None:
    return (
        db.query(ScheduledTaskRun)
        .filter(ScheduledTaskRun.task_name == task_name)
        .order_by(ScheduledTaskRun.started_at.desc())
        .first()
    )
