import json
import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.rbac import MODULE_NAMES, MODULES
from app.core.security import verify_cron_secret
from app.models.activity import ActivityType
from app.services.activity_logger import (
    last_module_update,
    log_activity,
    record_task_run,
    start_of_day,
)

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(verify_cron_secret)])

TASK_NAME = "daily-check"


def _days_between(later: datetime, earlier: datetime) -> int:
    if earlier.tzinfo is None:
        earlier = earlier.replace(tzinfo=timezone.utc)
    return (later - earlier).days


def run_daily_check(db: Session, now: datetime | None = None) -> dict:
    """Flags every module without a DATA_UPDATED activity since midnight (UTC)."""
    now = now or datetime.now(timezone.utc)
    today_start = start_of_day(now)
    results: dict[str, dict] = {}

    for module_id in MODULES:
        had_update = last_module_update(db, module_id, since=today_start) is not None
        last_update = last_module_update(db, module_id)
        results[module_id] = {
            "had_update": had_update,
            "last_update": last_update.created_at.isoformat() if last_update else None,
        }

        if not had_update:
            log_activity(
                db,
                ActivityType.DATA_NO_CHANGE,
                f"Nenhuma atualizacao em {MODULE_NAMES[module_id]} hoje",
                module_id=module_id,
                metadata={
                    "last_update": results[module_id]["last_update"],
                    "days_since_update": (
                        _days_between(now, last_update.created_at) if last_update else None
                    ),
                },
            )

    with_update = sum(1 for r in results.values() if r["had_update"])
    without_update = len(results) - with_update

    log_activity(
        db,
        ActivityType.DATA_REFRESH,
        f"Verificacao diaria: {with_update} modulos atualizados, "
        f"{without_update} sem atualizacao",
        metadata={
            "date": today_start.isoformat(),
            "modules_with_update": with_update,
            "modules_without_update": without_update,
        },
    )

    return {
        "date": today_start.isoformat(),
        "summary": {
            "modules_with_update": with_update,
            "modules_without_update": without_update,
        },
        "results": results,
    }


@router.api_route(
    "/cron/daily-check",
    methods=["GET", "POST"],
    summary="Daily check for modules without fresh data",
)
def daily_check(db: Session = Depends(get_db)):
    start = time.monotonic()
    try:
        outcome = run_daily_check(db)
    except Exception as exc:
        db.rollback()
        logger.exception("Daily check failed")
        record_task_run(db, TASK_NAME, "error", str(exc))
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "message": str(exc)},
        )

    duration = int((time.monotonic() - start) * 1000)
    record_task_run(db, TASK_NAME, "success", json.dumps({**outcome, "duration": duration}))
    logger.info(
        "Daily check finished in %dms: %d module(s) without update",
        duration, outcome["summary"]["modules_without_update"],
    )

    return {"success": True, "duration": f"{duration}ms", **outcome}
