import structlog
from fastapi import APIRouter, Depends

from ....news.schemas.requests import EnhanceArticleRequest
from ....news.schemas.responses import EnhanceArticleResponse, EnhancementStatusResponse
from ....news.services.enhancement import EnhancementOrchestrator, basic_enhancement
from ....services.llm_service import get_available_providers
from ....utils.string_utils import truncate_text
from ...dependencies import get_enhancement_orchestrator

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/enhance-article", response_model=EnhanceArticleResponse)
async def enhance_article(
    request: EnhanceArticleRequest,
    orchestrator: EnhancementOrchestrator = Depends(get_enhancement_orchestrator),
):
    """Rewrite one article; falls back to a templated version when no provider answers"""
    category = request.category or "societe"
    logger.info("Enhancing single article", title=truncate_text(request.original_title, 50), category=category)

    enhanced = await orchestrator.enhance(
        request.original_title,
        request.original_summary,
        category,
        request.source_name,
        request.source_url,
    )
    ai_generated = enhanced is not None
    if enhanced is None:
        logger.info("AI enhancement unavailable, using basic enhancement")
        enhanced = basic_enhancement(request.original_title, request.original_summary, request.source_name)

    return EnhanceArticleResponse(enhanced=enhanced.to_dict(), ai_generated=ai_generated)


@router.get("/enhance-article", response_model=EnhancementStatusResponse)
async def enhancement_status(orchestrator: EnhancementOrchestrator = Depends(get_enhancement_orchestrator)):
    providers = get_available_providers(orchestrator.providers)
    return EnhancementStatusResponse(
        ai_enhancement_enabled=bool(providers),
        providers=providers,
        message="AI article enhancement is active" if providers else "No provider configured, basic enhancement only",
    )
