import uuid
from datetime import datetime

from pydantic import BaseModel


class RoleCreate(BaseModel):
    name: str
    display_name: str
    description: str | None = None
    permissions: list[str] = []


class RoleUpdate(BaseModel):
    display_name: str | None = None
    description: str | None = None
    permissions: list[str] | None = None


class PermissionDetail(BaseModel):
    code: str
    label: str | None = None
    category: str


class RoleResponse(BaseModel):
    id: uuid.UUID
    name: str
    display_name: str
    description: str | None = None
    is_system: bool
    permissions: list[PermissionDetail]
    user_count: int = 0
    created_at: datetime


class RoleListResponse(BaseModel):
    items: list[RoleResponse]
    total: int


class PermissionExpandRequest(BaseModel):
    permissions: list[str]


class PermissionExpandResponse(BaseModel):
    permissions: list[str]
    total: int
