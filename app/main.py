import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.router import api_router
from app.core.config import settings
from app.core.database import Base, engine

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)

# Models must be imported before create_all
import app.models  # noqa: F401,E402

# Fallback for environments where alembic has not run
try:
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables verified (environment: %s)", settings.ENVIRONMENT)
except Exception as e:
    logger.error("Failed to create database tables: %s", e)

if not settings.is_development and not settings.CRON_SECRET:
    logger.warning("CRON_SECRET is not set; scheduled-job endpoints will reject every call")

app = FastAPI(
    title="Executive Dashboard API",
    description="Role-based access, user administration and activity tracking for the executive dashboard.",
    version="1.0.0",
)

# Session cookies need explicit origins; a wildcard is refused by browsers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(api_router)


@app.get("/health", tags=["Health"])
def health_check() -> dict:
    return {"status": "ok", "environment": settings.ENVIRONMENT}
