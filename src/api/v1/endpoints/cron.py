from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from ....core.exceptions import NewsPipelineError, PipelineBusyError, StoreUnavailableError
from ....news.schemas.responses import (
    BacklogEnhancementResponse,
    ErrorResponse,
    PipelineHealthResponse,
    PipelineRunResponse,
    PublishScheduledResponse,
    PurgeBlockedResponse,
)
from ....news.services.news_cron_service import NewsCronService
from ...dependencies import get_cron_service, verify_cron_secret

logger = structlog.get_logger(__name__)

router = APIRouter(dependencies=[Depends(verify_cron_secret)])

ERROR_RESPONSES = {
    409: {"model": ErrorResponse, "description": "Another run holds the pipeline lock"},
    500: {"model": ErrorResponse, "description": "Article store unreachable"},
}


def _error_response(exc: NewsPipelineError) -> JSONResponse:
    status_code = 409 if isinstance(exc, PipelineBusyError) else 500
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=exc.message, details=exc.details).model_dump(),
    )


@router.api_route("/sync-rss", methods=["GET", "POST"], response_model=PipelineRunResponse, responses=ERROR_RESPONSES)
async def sync_rss(cron_service: NewsCronService = Depends(get_cron_service)):
    """Run one feed ingestion pass"""
    try:
        return await cron_service.run_sync_pipeline()
    except (StoreUnavailableError, PipelineBusyError) as e:
        logger.error("RSS sync aborted", error=e.message)
        return _error_response(e)


@router.api_route(
    "/enhance-articles",
    methods=["GET", "POST"],
    response_model=BacklogEnhancementResponse,
    responses=ERROR_RESPONSES,
)
async def enhance_articles(
    limit: Optional[int] = Query(None, description="Articles to enhance (default 10, clamped to 50)"),
    force: bool = Query(False, description="Re-enhance articles that were already enhanced"),
    cron_service: NewsCronService = Depends(get_cron_service),
):
    """Enhance stored articles that were saved without a rewrite"""
    try:
        return await cron_service.enhance_backlog(limit=limit, force=force)
    except (StoreUnavailableError, PipelineBusyError) as e:
        logger.error("Backlog enhancement aborted", error=e.message)
        return _error_response(e)


@router.api_route("/cleanup-blocked", methods=["GET", "POST"], response_model=PurgeBlockedResponse, responses=ERROR_RESPONSES)
async def cleanup_blocked(cron_service: NewsCronService = Depends(get_cron_service)):
    """Delete stored obituary and death-notice articles"""
    try:
        return cron_service.purge_blocked_articles()
    except StoreUnavailableError as e:
        return _error_response(e)


@router.api_route("/publish", methods=["GET", "POST"], response_model=PublishScheduledResponse, responses=ERROR_RESPONSES)
async def publish_scheduled(cron_service: NewsCronService = Depends(get_cron_service)):
    """Publish scheduled articles whose time has come"""
    try:
        return cron_service.publish_scheduled()
    except StoreUnavailableError as e:
        return _error_response(e)


@router.get("/health", response_model=PipelineHealthResponse, responses=ERROR_RESPONSES)
async def pipeline_health(cron_service: NewsCronService = Depends(get_cron_service)):
    try:
        return cron_service.get_pipeline_health()
    except StoreUnavailableError as e:
        return _error_response(e)
