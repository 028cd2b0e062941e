from app.models.activity import ActivityLog, ActivityType, ScheduledTaskRun
from app.models.role import Role
from app.models.user import User

__all__ = ["ActivityLog", "ActivityType", "Role", "ScheduledTaskRun", "User"]
