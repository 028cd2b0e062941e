from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.auth import Actor, get_current_actor, require_module_access
from app.core.database import get_db
from app.core.rbac import MODULE_NAMES, MODULES, get_accessible_modules
from app.schemas.module import ModuleInfo
from app.services.activity_logger import last_module_update

router = APIRouter()


def _module_info(module_id: str, accessible: bool) -> dict:
    return {
        "id": module_id,
        "name": MODULE_NAMES[module_id],
        "route": f"/{module_id}",
        "accessible": accessible,
    }


@router.get(
    "/modules",
    response_model=list[ModuleInfo],
    summary="List dashboard modules and whether the current user may open them",
)
def list_modules(actor: Actor = Depends(get_current_actor)) -> list[dict]:
    accessible = set(get_accessible_modules(actor.role, actor.permissions))
    return [_module_info(m, m in accessible) for m in MODULES]


@router.get(
    "/modules/{module_id}",
    summary="Get a module the current user may view",
)
def get_module(
    module_id: str,
    actor: Actor = Depends(require_module_access),
    db: Session = Depends(get_db),
) -> dict:
    last_update = last_module_update(db, module_id)
    return {
        **_module_info(module_id, True),
        "last_update": last_update.created_at if last_update else None,
    }
