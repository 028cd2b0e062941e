import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import settings

logger = logging.getLogger(__name__)
bearer_scheme = HTTPBearer(auto_error=False)


def verify_cron_secret(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> None:
    # Development → scheduled jobs may be triggered by hand
    if settings.is_development:
        return None

    if not settings.CRON_SECRET:
        logger.error("CRON_SECRET is not configured; rejecting scheduled job call")

    if (
        not settings.CRON_SECRET
        or not credentials
        or credentials.credentials != settings.CRON_SECRET
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    return None
