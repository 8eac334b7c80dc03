import secrets
from typing import Optional

import structlog
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config import Settings, get_settings
from ..core.database import get_db  # noqa: F401
from ..news.services.enhancement import EnhancementOrchestrator
from ..news.services.news_cron_service import NewsCronService

logger = structlog.get_logger(__name__)

security = HTTPBearer(auto_error=False)


def get_cron_service() -> NewsCronService:
    return NewsCronService(settings=get_settings())


def get_enhancement_orchestrator() -> EnhancementOrchestrator:
    return EnhancementOrchestrator(settings=get_settings())


async def verify_cron_secret(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_settings),
) -> None:
    """
    Check ``Authorization: Bearer <CRON_SECRET>``.

    A wrong or missing secret is rejected only in production; elsewhere the
    call goes through with a warning.
    """
    if not settings.cron_secret:
        logger.warning("CRON_SECRET not configured, cron endpoint is unprotected")
        return

    presented = credentials.credentials if credentials else ""
    if secrets.compare_digest(presented.encode(), settings.cron_secret.encode()):
        return

    if settings.is_production:
        logger.warning("Rejected cron call with invalid secret")
        raise HTTPException(status_code=401, detail="Unauthorized")

    logger.warning("Cron call with invalid secret allowed outside production", environment=settings.environment)
