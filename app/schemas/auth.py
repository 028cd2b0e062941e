import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class SessionUser(BaseModel):
    id: uuid.UUID
    email: str
    name: str
    cargo: str | None = None
    role: str
    role_display_name: str | None = None
    permissions: list[str]
    can_manage_users: bool
    can_view_config: bool
    can_edit_config: bool
    can_view_all_activities: bool
    accessible_modules: list[str]
    created_at: datetime | None = None


class LoginResponse(BaseModel):
    success: bool = True
    access_token: str
    token_type: str = "bearer"
    user: SessionUser


class SessionResponse(BaseModel):
    authenticated: bool
    user: SessionUser | None = None
    error: str | None = None
