"""News API response schemas"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Cron pipelines
# ============================================================================

class PipelineItemDetail(BaseModel):
    """Outcome for one article touched by a run"""
    id: Optional[int] = None
    title: str
    status: str  # saved, enhanced, skipped, blocked, conflict, failed
    error: Optional[str] = None


class SourceSummary(BaseModel):
    source: str
    items: int = 0
    error: Optional[str] = None


class RetentionSummary(BaseModel):
    count_before: Optional[int] = None
    target: int = 0
    deleted: int = 0
    error: Optional[str] = None


class PipelineRunResponse(BaseModel):
    """Summary of one ingestion run"""
    success: bool = True
    message: str
    saved: int = 0
    enhanced: int = 0
    skipped: int = 0
    conflicts: int = 0
    blocked: int = 0
    failed: int = 0
    total: int = 0
    details: List[PipelineItemDetail] = []
    sources: List[SourceSummary] = []
    retention: Optional[RetentionSummary] = None
    duration: int = Field(..., description="Run duration in milliseconds")
    timestamp: str


class BacklogEnhancementResponse(BaseModel):
    """Summary of one backlog enhancement run"""
    success: bool = True
    message: str
    enhanced: int = 0
    skipped: int = 0
    failed: int = 0
    total: int = 0
    details: List[PipelineItemDetail] = []
    duration: int = Field(..., description="Run duration in milliseconds")
    timestamp: str


class PurgeBlockedResponse(BaseModel):
    success: bool = True
    message: str
    scanned: int
    deleted: int
    remaining: int
    titles: List[str] = []
    timestamp: str


class PublishedArticle(BaseModel):
    id: int
    title: str


class PublishScheduledResponse(BaseModel):
    success: bool = True
    message: str
    published: int
    articles: List[PublishedArticle] = []
    timestamp: str


class PipelineHealthResponse(BaseModel):
    total_articles: int
    ai_enhanced: int
    from_rss: int
    featured: int
    max_articles: int
    cap_usage: float
    providers: List[str] = []
    sources: int
    overall_health: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    details: Dict[str, Any] = {}


# ============================================================================
# Single-article enhancement
# ============================================================================

class EnhancedArticle(BaseModel):
    title: str
    summary: str
    content: str
    tags: List[str] = []
    reliability_score: int
    reliability_label: str
    fact_check_notes: Optional[str] = None


class EnhanceArticleResponse(BaseModel):
    success: bool = True
    enhanced: EnhancedArticle
    ai_generated: bool


class EnhancementStatusResponse(BaseModel):
    status: str = "ok"
    ai_enhancement_enabled: bool
    providers: List[str] = []
    message: str
