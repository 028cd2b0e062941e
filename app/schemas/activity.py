import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ActivityUser(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str


class ActivityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: uuid.UUID
    type: str
    module_id: str | None = None
    description: str
    metadata: dict[str, Any] | None = Field(default=None, validation_alias="meta")
    created_at: datetime
    user: ActivityUser | None = None


class ModuleStatus(BaseModel):
    module_id: str
    name: str
    status: str
    last_activity_type: str | None = None
    last_activity_date: datetime | None = None


class CronJobStatus(BaseModel):
    last_run: datetime
    status: str


class ActivityListResponse(BaseModel):
    activities: list[ActivityResponse]
    accessible_modules: list[str]
    modules_status: list[ModuleStatus]
    stats: dict[str, Any]
    cron_jobs: dict[str, CronJobStatus | None]
