import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.auth import require_permission
from app.core.database import get_db
from app.core.rbac import (
    PERMISSION_CATEGORIES,
    PERMISSIONS,
    expand_permissions,
    get_permissions_by_category,
    is_valid_permission_code,
)
from app.models.role import Role
from app.models.user import User
from app.schemas.role import (
    PermissionExpandRequest,
    PermissionExpandResponse,
    RoleCreate,
    RoleListResponse,
    RoleResponse,
    RoleUpdate,
)

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(require_permission("admin:users:manage"))])


def _validate_permissions(permissions: list[str]) -> None:
    invalid = [p for p in permissions if not is_valid_permission_code(p)]
    if invalid:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid permissions: {', '.join(invalid)}. "
            f"Valid permissions: *, {', '.join(PERMISSIONS)}",
        )


def _role_to_dict(role: Role, user_count: int) -> dict:
    return {
        "id": role.id,
        "name": role.name,
        "display_name": role.display_name,
        "description": role.description,
        "is_system": role.is_system,
        "permissions": [
            {"code": code, "label": PERMISSIONS.get(code), "category": code.split(":")[0]}
            for code in role.permissions or []
        ],
        "user_count": user_count,
        "created_at": role.created_at,
    }


def _get_role_or_404(db: Session, role_id: uuid.UUID) -> Role:
    role = db.query(Role).filter(Role.id == role_id).first()
    if not role:
        raise HTTPException(status_code=404, detail="Role not found")
    return role


def _count_users(db: Session, role_id: uuid.UUID) -> int:
    return db.query(User).filter(User.role_id == role_id).count()


@router.get(
    "/roles",
    response_model=RoleListResponse,
    summary="List roles",
)
def list_roles(db: Session = Depends(get_db)) -> dict:
    counts = dict(
        db.query(User.role_id, func.count(User.id)).group_by(User.role_id).all()
    )
    roles = db.query(Role).order_by(Role.name).all()
    items = [_role_to_dict(role, counts.get(role.id, 0)) for role in roles]
    return {"items": items, "total": len(items)}


@router.post(
    "/roles",
    response_model=RoleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a role",
)
def create_role(body: RoleCreate, db: Session = Depends(get_db)) -> dict:
    if db.query(Role).filter(Role.name == body.name).first():
        raise HTTPException(status_code=409, detail="A role with this name already exists")

    _validate_permissions(body.permissions)

    role = Role(
        name=body.name,
        display_name=body.display_name,
        description=body.description,
        permissions=body.permissions,
        is_system=False,
    )
    db.add(role)
    db.commit()
    db.refresh(role)

    logger.info("Role '%s' created", role.name)
    return _role_to_dict(role, 0)


@router.get(
    "/roles/{role_id}",
    response_model=RoleResponse,
    summary="Get role details",
)
def get_role(role_id: uuid.UUID, db: Session = Depends(get_db)) -> dict:
    role = _get_role_or_404(db, role_id)
    return _role_to_dict(role, _count_users(db, role.id))


@router.put(
    "/roles/{role_id}",
    response_model=RoleResponse,
    summary="Update a role",
)
def update_role(role_id: uuid.UUID, body: RoleUpdate, db: Session = Depends(get_db)) -> dict:
    role = _get_role_or_404(db, role_id)
    if role.is_system:
        raise HTTPException(status_code=400, detail="System roles cannot be modified")

    if body.display_name is not None:
        role.display_name = body.display_name
    if body.description is not None:
        role.description = body.description
    if body.permissions is not None:
        _validate_permissions(body.permissions)
        role.permissions = body.permissions

    db.commit()
    db.refresh(role)

    logger.info("Role '%s' updated", role.name)
    return _role_to_dict(role, _count_users(db, role.id))


@router.delete(
    "/roles/{role_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a role",
)
def delete_role(role_id: uuid.UUID, db: Session = Depends(get_db)) -> None:
    role = _get_role_or_404(db, role_id)
    if role.is_system:
        raise HTTPException(status_code=400, detail="System roles cannot be deleted")

    user_count = _count_users(db, role_id)
    if user_count > 0:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot delete role: {user_count} user(s) still assigned to it",
        )

    name = role.name
    db.delete(role)
    db.commit()
    logger.info("Role '%s' deleted", name)


@router.get(
    "/permissions",
    summary="List all available permissions",
)
def list_permissions() -> dict:
    """Returns all permission codes that can be assigned to roles, grouped by category."""
    return {
        "permissions": list(PERMISSIONS),
        "categories": dict(PERMISSION_CATEGORIES),
        "grouped": get_permissions_by_category(),
    }


@router.post(
    "/permissions/expand",
    response_model=PermissionExpandResponse,
    summary="Preview the concrete permissions a set of codes grants",
)
def expand(body: PermissionExpandRequest) -> dict:
    expanded = expand_permissions(body.permissions)
    return {"permissions": expanded, "total": len(expanded)}
