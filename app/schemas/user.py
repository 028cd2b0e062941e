import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr


class UserCreate(BaseModel):
    name: str
    email: EmailStr
    cargo: str
    role_id: uuid.UUID
    password: str | None = None
    generate_password: bool = False


class UserUpdate(BaseModel):
    name: str | None = None
    email: EmailStr | None = None
    cargo: str | None = None
    role_id: uuid.UUID | None = None
    is_active: bool | None = None
    reset_password: bool = False
    new_password: str | None = None


class RoleSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    display_name: str


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str
    cargo: str
    role_id: uuid.UUID
    role: RoleSummary | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class UserListResponse(BaseModel):
    items: list[UserResponse]
    total: int


class UserMutationResponse(BaseModel):
    success: bool = True
    user: UserResponse
    # Only returned when the password was generated by the server
    generated_password: str | None = None
