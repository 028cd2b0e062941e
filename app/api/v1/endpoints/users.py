import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from app.core.auth import (
    Actor,
    actor_has_permission,
    generate_random_password,
    get_current_actor,
    hash_password,
    require_permission,
    validate_password,
)
from app.core.database import get_db
from app.models.activity import ActivityType
from app.models.role import Role
from app.models.user import User
from app.schemas.user import (
    UserCreate,
    UserListResponse,
    UserMutationResponse,
    UserResponse,
    UserUpdate,
)
from app.services.activity_logger import log_activity

logger = logging.getLogger(__name__)
router = APIRouter()

MANAGE_USERS = "admin:users:manage"


def _check_password(password: str) -> None:
    errors = validate_password(password)
    if errors:
        raise HTTPException(status_code=400, detail=", ".join(errors))


@router.get(
    "/users",
    response_model=UserListResponse,
    summary="List users",
    dependencies=[Depends(require_permission(MANAGE_USERS))],
)
def list_users(
    search: str = "",
    role: str = "",
    status_filter: str = Query("", alias="status", pattern="^(|active|inactive)$"),
    db: Session = Depends(get_db),
) -> dict:
    query = db.query(User).options(joinedload(User.role))

    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(User.name.ilike(pattern), User.email.ilike(pattern), User.cargo.ilike(pattern))
        )
    if role:
        query = query.join(User.role).filter(Role.name == role)
    if status_filter == "active":
        query = query.filter(User.is_active.is_(True))
    elif status_filter == "inactive":
        query = query.filter(User.is_active.is_(False))

    users = query.order_by(User.created_at.desc()).all()
    return {"items": users, "total": len(users)}


@router.post(
    "/users",
    response_model=UserMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user",
)
def create_user(
    body: UserCreate,
    actor: Actor = Depends(require_permission(MANAGE_USERS)),
    db: Session = Depends(get_db),
) -> dict:
    if db.query(User).filter(User.email == body.email).first():
        raise HTTPException(status_code=400, detail="Email already registered")

    role = db.query(Role).filter(Role.id == body.role_id).first()
    if not role:
        raise HTTPException(status_code=400, detail="Role not found")

    generated = body.generate_password or not body.password
    if generated:
        password = generate_random_password()
    else:
        password = body.password
        _check_password(password)

    user = User(
        name=body.name,
        email=body.email,
        cargo=body.cargo,
        role_id=role.id,
        password_hash=hash_password(password),
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("User '%s' created by %s", user.email, actor.email)
    log_activity(
        db,
        ActivityType.USER_CREATED,
        f"Usuario {user.name} criado por {actor.name}",
        metadata={
            "created_user_id": str(user.id),
            "created_user_email": user.email,
            "role_id": str(role.id),
        },
        user_id=actor.user_id,
    )

    return {
        "success": True,
        "user": user,
        "generated_password": password if generated else None,
    }


@router.get(
    "/users/{user_id}",
    response_model=UserResponse,
    summary="Get user details",
)
def get_user(
    user_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> User:
    # Anyone may read their own profile
    if actor.user_id != user_id and not actor_has_permission(actor, MANAGE_USERS):
        raise HTTPException(status_code=403, detail=f"Missing permissions: {MANAGE_USERS}")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.put(
    "/users/{user_id}",
    response_model=UserMutationResponse,
    summary="Update a user",
)
def update_user(
    user_id: uuid.UUID,
    body: UserUpdate,
    actor: Actor = Depends(require_permission(MANAGE_USERS)),
    db: Session = Depends(get_db),
) -> dict:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    previous_role = user.role.name
    changes: list[str] = []

    if body.email is not None and body.email != user.email:
        if db.query(User).filter(User.email == body.email, User.id != user_id).first():
            raise HTTPException(status_code=400, detail="Email already in use")
        user.email = body.email
        changes.append("email")

    role_changed = False
    if body.role_id is not None and body.role_id != user.role_id:
        role = db.query(Role).filter(Role.id == body.role_id).first()
        if not role:
            raise HTTPException(status_code=400, detail="Role not found")
        user.role = role
        role_changed = True
        changes.append("role")

    if body.name is not None and body.name != user.name:
        user.name = body.name
        changes.append("nome")
    if body.cargo is not None and body.cargo != user.cargo:
        user.cargo = body.cargo
        changes.append("cargo")
    if body.is_active is not None and body.is_active != user.is_active:
        user.is_active = body.is_active
        changes.append("ativado" if body.is_active else "desativado")

    generated_password: str | None = None
    if body.reset_password:
        generated_password = generate_random_password()
        user.password_hash = hash_password(generated_password)
        changes.append("senha")
    elif body.new_password:
        _check_password(body.new_password)
        user.password_hash = hash_password(body.new_password)
        changes.append("senha")

    db.commit()
    db.refresh(user)

    if changes:
        logger.info("User '%s' updated by %s: %s", user.email, actor.email, ", ".join(changes))
        log_activity(
            db,
            ActivityType.ROLE_CHANGED if role_changed else ActivityType.USER_UPDATED,
            f"Usuario {user.name} atualizado: {', '.join(changes)}",
            metadata={
                "updated_user_id": str(user.id),
                "changes": changes,
                "previous_role": previous_role,
                "new_role": user.role.name,
            },
            user_id=actor.user_id,
        )

    return {"success": True, "user": user, "generated_password": generated_password}


@router.delete(
    "/users/{user_id}",
    summary="Deactivate a user",
)
def delete_user(
    user_id: uuid.UUID,
    actor: Actor = Depends(require_permission(MANAGE_USERS)),
    db: Session = Depends(get_db),
) -> dict:
    if actor.user_id == user_id:
        raise HTTPException(status_code=400, detail="You cannot delete your own user")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    # Soft delete: users keep their activity history
    user.is_active = False
    db.commit()

    logger.info("User '%s' deactivated by %s", user.email, actor.email)
    log_activity(
        db,
        ActivityType.USER_DELETED,
        f"Usuario {user.name} desativado por {actor.name}",
        metadata={"deleted_user_id": str(user.id), "deleted_user_email": user.email},
        user_id=actor.user_id,
    )

    return {"success": True, "message": "User deactivated"}
