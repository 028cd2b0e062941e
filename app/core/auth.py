"""
JWT utilities, password helpers and FastAPI dependencies for user authentication.

The token carries the actor's role name and permission codes. Protected
routes still confirm the user exists and is active, so a deactivated account
loses access before its token expires. Every check goes through app.core.rbac.
"""
import logging
import re
import secrets
import uuid
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.rbac import MODULES, can_access_module, has_permission
from app.models.user import User

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)

JWT_ALGORITHM = "HS256"

_SPECIAL_CHARS = '!@#$%^&*(),.?":{}|<>'


# ── Passwords ──────────────────────────────────────────────────────────────

def hash_password(plain: str) -> str:
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def validate_password(password: str) -> list[str]:
    """Returns the list of unmet password requirements (empty when valid)."""
    errors: list[str] = []
    if len(password) < 8:
        errors.append("A senha deve ter pelo menos 8 caracteres")
    if not re.search(r"[A-Z]", password):
        errors.append("A senha deve ter pelo menos uma letra maiuscula")
    if not re.search(r"[a-z]", password):
        errors.append("A senha deve ter pelo menos uma letra minuscula")
    if not re.search(r"[0-9]", password):
        errors.append("A senha deve ter pelo menos um numero")
    if not any(c in _SPECIAL_CHARS for c in password):
        errors.append("A senha deve ter pelo menos um caractere especial")
    return errors


def generate_random_password(length: int = 12) -> str:
    lowercase = "abcdefghijklmnopqrstuvwxyz"
    uppercase = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    digits = "0123456789"
    special = "!@#$%^&*"
    alphabet = lowercase + uppercase + digits + special

    # One of each class, then random fill
    chars = [secrets.choice(pool) for pool in (lowercase, uppercase, digits, special)]
    chars += [secrets.choice(alphabet) for _ in range(max(length, 4) - 4)]
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)


# ── Tokens ─────────────────────────────────────────────────────────────────

class Actor(BaseModel):
    """The authenticated user as described by their access token."""

    user_id: uuid.UUID
    email: str
    name: str
    role: str
    permissions: list[str] = []


def create_access_token(
    user_id: uuid.UUID,
    email: str,
    name: str,
    role: str,
    permissions: list[str],
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "email": email,
        "name": name,
        "role": role,
        "permissions": permissions,
        "iat": now,
        "exp": now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


def _actor_from_claims(data: dict) -> Actor:
    try:
        return Actor(
            user_id=data.get("sub"),
            email=data.get("email"),
            name=data.get("name"),
            role=data.get("role"),
            permissions=data.get("permissions") or [],
        )
    except ValidationError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


def _extract_token(
    request: Request, credentials: HTTPAuthorizationCredentials | None
) -> str | None:
    if credentials:
        return credentials.credentials
    return request.cookies.get(settings.AUTH_COOKIE_NAME)


# ── Dependencies ───────────────────────────────────────────────────────────

def get_optional_actor(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Actor | None:
    """The actor of the request, or None when the credential is missing or invalid."""
    token = _extract_token(request, credentials)
    if not token:
        return None
    try:
        return _actor_from_claims(decode_token(token))
    except HTTPException:
        return None


def get_current_actor(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Actor:
    token = _extract_token(request, credentials)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    actor = _actor_from_claims(decode_token(token))

    user = db.query(User).filter(User.id == actor.user_id, User.is_active.is_(True)).first()
    if not user:
        logger.warning("Rejected token for missing or inactive user %s", actor.email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found or inactive")
    return actor


def actor_has_permission(actor: Actor | None, permission: str) -> bool:
    """has_permission for a possibly absent actor; no actor holds anything."""
    if actor is None:
        return False
    return has_permission(actor.role, actor.permissions, permission)


def require_permission(*needed: str):
    """
    Returns a FastAPI dependency that checks the actor holds ALL the listed permissions.

    Usage:
        @router.get("/...", dependencies=[Depends(require_permission("admin:users:manage"))])
    """

    def _checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        granted = set(actor.permissions)
        missing = [p for p in needed if not has_permission(actor.role, granted, p)]
        if missing:
            logger.warning(
                "Permission denied for %s (role %s): %s",
                actor.email, actor.role, ", ".join(missing),
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing permissions: {', '.join(missing)}",
            )
        return actor

    return _checker


def require_module_access(
    module_id: str,
    actor: Actor = Depends(get_current_actor),
) -> Actor:
    """Dependency for routes with a `module_id` path parameter."""
    if module_id not in MODULES:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Module not found")
    if not can_access_module(actor.role, actor.permissions, module_id):
        logger.warning("Module %s denied for %s (role %s)", module_id, actor.email, actor.role)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Missing permissions: module:{module_id}:view",
        )
    return actor
