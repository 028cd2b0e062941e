import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from app.core.auth import Actor, actor_has_permission, get_current_actor
from app.core.database import get_db
from app.core.rbac import MODULES, get_accessible_modules
from app.models.activity import ActivityLog
from app.schemas.activity import ActivityListResponse
from app.services.activity_logger import (
    get_activity_stats,
    get_last_task_run,
    get_modules_status,
)

logger = logging.getLogger(__name__)
router = APIRouter()

CRON_TASKS = {"refresh_data": "refresh-data", "daily_check": "daily-check"}


@router.get(
    "/activities",
    response_model=ActivityListResponse,
    summary="Recent activity, limited to what the current user may see",
)
def list_activities(
    module: str = "",
    type: str = "",
    limit: int = Query(50, ge=1, le=500),
    days: int = Query(7, ge=1, le=365),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> dict:
    can_view_all = actor_has_permission(actor, "activity:view:all")
    can_view_own = actor_has_permission(actor, "activity:view:own")
    if not can_view_all and not can_view_own:
        raise HTTPException(
            status_code=403,
            detail="Missing permissions: activity:view:all or activity:view:own",
        )

    if can_view_all:
        allowed_modules = list(MODULES)
    else:
        allowed_modules = get_accessible_modules(actor.role, actor.permissions)

    query = db.query(ActivityLog).options(joinedload(ActivityLog.user))
    if module:
        query = query.filter(ActivityLog.module_id == module)
    if type:
        query = query.filter(ActivityLog.type == type)
    if not can_view_all:
        # Activities on reachable modules, plus the actor's own
        own = ActivityLog.user_id == actor.user_id
        if allowed_modules:
            query = query.filter(or_(ActivityLog.module_id.in_(allowed_modules), own))
        else:
            query = query.filter(own)

    activities = query.order_by(ActivityLog.created_at.desc()).limit(limit).all()

    cron_jobs = {}
    for key, task_name in CRON_TASKS.items():
        run = get_last_task_run(db, task_name)
        cron_jobs[key] = {"last_run": run.started_at, "status": run.status} if run else None

    return {
        "activities": activities,
        "accessible_modules": allowed_modules,
        "modules_status": get_modules_status(db, allowed_modules),
        "stats": get_activity_stats(db, days),
        "cron_jobs": cron_jobs,
    }
