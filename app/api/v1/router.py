from fastapi import APIRouter

from app.api.v1.endpoints import activities, auth, cron, modules, roles, users

api_router = APIRouter(prefix="/api/v1")

# Public / session
api_router.include_router(auth.router, tags=["Auth"])
api_router.include_router(cron.router, tags=["Cron"])

# Dashboard
api_router.include_router(modules.router, tags=["Modules"])
api_router.include_router(activities.router, tags=["Activities"])

# Admin
api_router.include_router(users.router, prefix="/admin", tags=["Admin - Users"])
api_router.include_router(roles.router, prefix="/admin", tags=["Admin - Roles"])
