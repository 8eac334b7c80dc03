from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ....config import get_settings
from ....utils.string_utils import iso_timestamp
from ...dependencies import get_db

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(db: Session = Depends(get_db)) -> Dict[str, Any]:
    settings = get_settings()
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("Database health check failed", error=str(e))
        raise HTTPException(
            status_code=503,
            detail={
                "status": "unhealthy",
                "database": "unhealthy",
                "error": "Database connectivity failed",
                "timestamp": iso_timestamp(),
            }
        )

    logger.debug("Health check passed", database_status="healthy")
    return {
        "status": "healthy",
        "service": "Mada-Flash API",
        "version": "0.1.0",
        "environment": settings.environment,
        "database": "healthy",
        "timestamp": iso_timestamp(),
    }
