import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from app.core import rbac
from app.core.auth import (
    Actor,
    create_access_token,
    get_optional_actor,
    verify_password,
)
from app.core.config import settings
from app.core.database import get_db
from app.models.activity import ActivityType
from app.models.user import User
from app.schemas.auth import LoginRequest, LoginResponse, SessionResponse
from app.services.activity_logger import log_activity

logger = logging.getLogger(__name__)
router = APIRouter()


def build_session_user(user: User) -> dict:
    """Session payload for a user, with the capability flags the UI renders from."""
    role = user.role.name
    permissions = list(user.role.permissions or [])
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "cargo": user.cargo,
        "role": role,
        "role_display_name": user.role.display_name,
        "permissions": permissions,
        "can_manage_users": rbac.can_manage_users(role, permissions),
        "can_view_config": rbac.can_view_config(role, permissions),
        "can_edit_config": rbac.can_edit_config(role, permissions),
        "can_view_all_activities": rbac.can_view_all_activities(role, permissions),
        "accessible_modules": rbac.get_accessible_modules(role, permissions),
        "created_at": user.created_at,
    }


@router.post(
    "/auth/login",
    response_model=LoginResponse,
    summary="Login and obtain JWT token",
)
def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> dict:
    user = db.query(User).filter(User.email == body.email).first()
    if not user or not verify_password(body.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User is deactivated. Contact an administrator.",
        )

    session_user = build_session_user(user)
    token = create_access_token(
        user_id=user.id,
        email=user.email,
        name=user.name,
        role=session_user["role"],
        permissions=session_user["permissions"],
    )
    response.set_cookie(
        settings.AUTH_COOKIE_NAME,
        token,
        httponly=True,
        secure=not settings.is_development,
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        path="/",
    )

    logger.info("User '%s' logged in (role %s)", user.email, session_user["role"])
    log_activity(
        db,
        ActivityType.USER_LOGIN,
        f"Usuario {user.name} fez login",
        metadata={
            "user_agent": request.headers.get("user-agent"),
            "ip": request.headers.get("x-forwarded-for", "unknown"),
        },
        user_id=user.id,
    )

    return {
        "success": True,
        "access_token": token,
        "token_type": "bearer",
        "user": session_user,
    }


@router.post(
    "/auth/logout",
    summary="Clear the session cookie",
)
def logout(
    response: Response,
    actor: Actor | None = Depends(get_optional_actor),
    db: Session = Depends(get_db),
) -> dict:
    response.delete_cookie(settings.AUTH_COOKIE_NAME, path="/")

    if actor is not None:
        logger.info("User '%s' logged out", actor.email)
        log_activity(
            db,
            ActivityType.USER_LOGOUT,
            f"Usuario {actor.name} fez logout",
            user_id=actor.user_id,
        )

    return {"success": True, "message": "Logged out"}


@router.get(
    "/auth/session",
    response_model=SessionResponse,
    summary="Get the current session with fresh role data",
)
def get_session(
    actor: Actor | None = Depends(get_optional_actor),
    db: Session = Depends(get_db),
) -> dict:
    if actor is None:
        return {"authenticated": False, "user": None}

    user = db.query(User).filter(User.id == actor.user_id).first()
    if not user:
        return {"authenticated": False, "user": None, "error": "User not found"}
    if not user.is_active:
        return {"authenticated": False, "user": None, "error": "User is deactivated"}

    return {"authenticated": True, "user": build_session_user(user)}
