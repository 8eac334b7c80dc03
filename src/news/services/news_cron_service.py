"""
News Cron Service
Cron-triggered pipelines for the news store:
1. Ingestion: retention pass, fetch every feed, parse, filter, classify,
   enhance and store new articles
2. Backlog: enhance stored articles that were saved without a rewrite
3. Maintenance: purge blocklisted articles, publish due scheduled ones
"""

import asyncio
import uuid
from contextlib import contextmanager
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional

import structlog
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import Settings, get_settings
from ...core.database import SessionLocal
from ...core.exceptions import (
    FeedParseError,
    PersistenceConflict,
    PipelineBusyError,
    StoreUnavailableError,
)
from ...core.performance_timer import WorkflowTimer
from ...repositories import ArticleRepository, PipelineLockRepository
from ...services.llm_service import get_available_providers
from ...utils.string_utils import iso_timestamp, truncate_text, utcnow
from ..models.article import Article, ArticleStatus
from .content_filter import category_key_for_name, detect_category, is_blocked, merge_and_sort
from .enhancement import EnhancementOrchestrator, run_in_batches
from .feed_fetcher import FeedFetcher
from .feed_parser import parse_feed
from .persistence import ArticlePersistenceGateway
from .retention import RetentionManager
from .sources.base import CandidateArticle, FeedFetchResult
from .sources.registry import SourceRegistry

logger = structlog.get_logger(__name__)

SYNC_LOCK = "sync-rss"
BACKLOG_LOCK = "enhance-articles"
DETAIL_TITLE_LENGTH = 50


def _detail(title: str, status: str, article_id: Optional[int] = None, error: Optional[str] = None) -> Dict[str, Any]:
    return {
        "id": article_id,
        "title": truncate_text(title or "", DETAIL_TITLE_LENGTH),
        "status": status,
        "error": error,
    }


class NewsCronService:
    """Main service for cron-driven news processing"""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        registry: Optional[SourceRegistry] = None,
        fetcher: Optional[FeedFetcher] = None,
        orchestrator: Optional[EnhancementOrchestrator] = None,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings = settings or get_settings()
        self.session_factory = session_factory
        self.registry = registry or SourceRegistry(settings=self.settings)
        self.fetcher = fetcher or FeedFetcher(settings=self.settings)
        self.orchestrator = orchestrator or EnhancementOrchestrator(settings=self.settings)
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    def _check_store(self, db: Session) -> None:
        try:
            db.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Article store unreachable", error=str(e))
            raise StoreUnavailableError("Article store is unreachable", details={"reason": str(e)}) from e

    @contextmanager
    def _single_flight(self, db: Session, lock_name: str) -> Iterator[None]:
        locks = PipelineLockRepository(db)
        owner = uuid.uuid4().hex
        try:
            acquired = locks.acquire(lock_name, owner, self.settings.pipeline_lock_ttl_minutes)
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreUnavailableError("Could not acquire pipeline lock", details={"reason": str(e)}) from e
        if not acquired:
            logger.warning("Pipeline already running", lock=lock_name)
            raise PipelineBusyError(lock_name)

        try:
            yield
        finally:
            try:
                db.rollback()
                locks.release(lock_name, owner)
            except SQLAlchemyError as e:
                # The lock goes stale after its TTL
                logger.error("Failed to release pipeline lock", lock=lock_name, error=str(e))

    def clamp_backlog_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            limit = self.settings.backlog_default_limit
        return max(1, min(limit, self.settings.backlog_max_limit))

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    async def run_sync_pipeline(self) -> Dict[str, Any]:
        """
        Run one ingestion pass.

        Per-source and per-item problems are counted in the summary. Only an
        unreachable store (StoreUnavailableError) or an overlapping run
        (PipelineBusyError) escapes.
        """
        timer = WorkflowTimer("sync_rss").start_workflow()
        logger.info("Starting RSS sync pipeline")

        db = self.session_factory()
        try:
            self._check_store(db)
            with self._single_flight(db, SYNC_LOCK):
                with timer.time_stage("retention"):
                    retention = RetentionManager(db, self.settings).enforce()

                with timer.time_stage("fetch"):
                    fetch_results = await self.fetcher.fetch_all(self.registry.all())

                with timer.time_stage("parse"):
                    candidates, source_stats, blocked = self._collect_candidates(fetch_results)

                with timer.time_stage("process"):
                    counters, details = await self._process_candidates(db, candidates, blocked)
        finally:
            db.close()

        duration = timer.complete_workflow()
        logger.info("RSS sync completed", duration_ms=duration, **counters)
        return {
            "success": True,
            "message": f"RSS sync completed: {counters['saved']} saved, {counters['enhanced']} AI enhanced",
            **counters,
            "details": details,
            "sources": source_stats,
            "retention": retention,
            "duration": duration,
            "timestamp": iso_timestamp(),
        }

    def _collect_candidates(self, fetch_results: List[FeedFetchResult]):
        candidates: List[CandidateArticle] = []
        source_stats: List[Dict[str, Any]] = []
        blocked: List[Dict[str, Any]] = []

        for result in fetch_results:
            source = result.source
            stat = {"source": source.name, "items": 0, "error": result.error}
            source_stats.append(stat)
            if not result.ok:
                continue

            try:
                result.items = parse_feed(result.body, limit=self.registry.item_limit_for(source))
            except Exception as e:
                error = FeedParseError(f"Could not parse feed '{source.name}': {e}", details={"source": source.name})
                logger.warning("Feed parse failed", source=source.name, error=error.message)
                stat["error"] = error.message
                continue

            stat["items"] = len(result.items)
            for item in result.items:
                # Blocklisted items are dropped before classification
                if is_blocked(item.title, item.description):
                    logger.info("Blocked feed item", source=source.name, link=item.link)
                    blocked.append(_detail(item.title, "blocked"))
                    continue
                category = detect_category(item.title, item.description)
                candidates.append(CandidateArticle.from_item(item, source, category))

        return merge_and_sort(candidates), source_stats, blocked

    async def _process_candidates(
        self,
        db: Session,
        candidates: List[CandidateArticle],
        blocked: Optional[List[Dict[str, Any]]] = None,
    ):
        """Persist candidates one by one. ``total`` counts candidates that passed the blocklist."""
        gateway = ArticlePersistenceGateway(db, self.settings)
        blocked = blocked or []
        counters = {
            "saved": 0, "enhanced": 0, "skipped": 0, "conflicts": 0,
            "blocked": len(blocked), "failed": 0, "total": len(candidates),
        }
        details: List[Dict[str, Any]] = list(blocked)

        for candidate in candidates:
            try:
                if gateway.is_duplicate(candidate.source_url):
                    counters["skipped"] += 1
                    continue

                enhanced = await self.orchestrator.enhance(
                    candidate.title,
                    candidate.summary,
                    candidate.category,
                    candidate.source_name,
                    candidate.source_url,
                )
                article = gateway.save_candidate(candidate, enhanced)

            except PersistenceConflict as e:
                counters["conflicts"] += 1
                details.append(_detail(candidate.title, "conflict", error=e.message))
                continue
            except Exception as e:
                db.rollback()
                counters["failed"] += 1
                logger.error("Failed to process feed item", source_url=candidate.source_url, error=str(e), exc_info=True)
                details.append(_detail(candidate.title, "failed", error=str(e)))
                continue

            counters["saved"] += 1
            if enhanced is not None:
                counters["enhanced"] += 1
                details.append(_detail(article.title, "enhanced", article.id))
                await self._sleep(self.settings.enhancement_delay_seconds)
            else:
                details.append(_detail(article.title, "saved", article.id))

        return counters, details

    # ------------------------------------------------------------------
    # Backlog enhancement
    # ------------------------------------------------------------------

    async def enhance_backlog(self, limit: Optional[int] = None, force: bool = False) -> Dict[str, Any]:
        """Enhance stored articles in concurrent batches. ``force`` re-enhances enhanced ones."""
        limit = self.clamp_backlog_limit(limit)
        timer = WorkflowTimer("enhance_backlog").start_workflow()

        db = self.session_factory()
        try:
            self._check_store(db)
            with self._single_flight(db, BACKLOG_LOCK):
                articles = ArticleRepository(db).find_backlog(limit, force)
                logger.info("Backlog articles found", count=len(articles), limit=limit, force=force)

                gateway = ArticlePersistenceGateway(db, self.settings)

                async def enhance_one(article: Article) -> Dict[str, Any]:
                    title = article.title
                    category = category_key_for_name(article.category.name if article.category else None)
                    enhanced = await self.orchestrator.enhance(
                        title,
                        article.summary or (article.content or "")[:500],
                        category,
                        article.source_name or "",
                        article.source_url,
                    )
                    if enhanced is None:
                        return _detail(title, "skipped", article.id)
                    gateway.apply_enhancement(article, enhanced)
                    return _detail(enhanced.title, "enhanced", article.id)

                outcomes = await run_in_batches(
                    articles,
                    enhance_one,
                    self.settings.backlog_batch_size,
                    self.settings.backlog_batch_pause_seconds,
                )
                details = self._backlog_details(db, articles, outcomes)
        finally:
            db.close()

        counters = {
            "enhanced": sum(1 for d in details if d["status"] == "enhanced"),
            "skipped": sum(1 for d in details if d["status"] == "skipped"),
            "failed": sum(1 for d in details if d["status"] == "failed"),
            "total": len(details),
        }
        duration = timer.complete_workflow()
        return {
            "success": True,
            "message": f"Enhanced {counters['enhanced']} articles",
            **counters,
            "details": details,
            "duration": duration,
            "timestamp": iso_timestamp(),
        }

    def _backlog_details(self, db: Session, articles: List[Article], outcomes: List[Any]) -> List[Dict[str, Any]]:
        details = []
        for article, outcome in zip(articles, outcomes):
            if isinstance(outcome, BaseException):
                db.rollback()
                logger.error("Backlog enhancement failed", article_id=article.id, error=str(outcome))
                details.append(_detail(article.title, "failed", article.id, error=str(outcome)))
            else:
                details.append(outcome)
        return details

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def purge_blocked_articles(self) -> Dict[str, Any]:
        """Delete stored articles whose title or summary hits the blocklist."""
        db = self.session_factory()
        try:
            self._check_store(db)
            repository = ArticleRepository(db)
            articles = repository.get_all()
            blocked = [a for a in articles if is_blocked(a.title, a.summary)]
            titles = [truncate_text(a.title, 60) for a in blocked]
            deleted = repository.delete_many([a.id for a in blocked])
            remaining = repository.count()
        finally:
            db.close()

        logger.info("Blocked article purge completed", scanned=len(articles), deleted=deleted)
        return {
            "success": True,
            "message": f"Deleted {deleted} blocked articles",
            "scanned": len(articles),
            "deleted": deleted,
            "remaining": remaining,
            "titles": titles,
            "timestamp": iso_timestamp(),
        }

    def publish_scheduled(self) -> Dict[str, Any]:
        """Publish scheduled articles whose time has come."""
        db = self.session_factory()
        try:
            self._check_store(db)
            now = utcnow()
            due = ArticleRepository(db).find_due_scheduled(now)
            for article in due:
                article.status = ArticleStatus.PUBLISHED.value
                article.published_at = now
            db.commit()
            published = [{"id": a.id, "title": a.title} for a in due]
        except SQLAlchemyError:
            db.rollback()
            raise
        finally:
            db.close()

        logger.info("Scheduled articles published", count=len(published))
        return {
            "success": True,
            "message": f"Published {len(published)} scheduled articles",
            "published": len(published),
            "articles": published,
            "timestamp": iso_timestamp(),
        }

    def get_pipeline_health(self) -> Dict[str, Any]:
        """Check the health of the news pipeline"""
        db = self.session_factory()
        try:
            self._check_store(db)
            repository = ArticleRepository(db)
            total_articles = repository.count()
            health_status = {
                "total_articles": total_articles,
                "ai_enhanced": repository.count_where(Article.is_ai_enhanced.is_(True)),
                "from_rss": repository.count_where(Article.is_from_rss.is_(True)),
                "featured": repository.count_where(Article.is_featured.is_(True)),
                "max_articles": self.settings.max_articles,
                "cap_usage": round(total_articles / self.settings.max_articles * 100, 2) if self.settings.max_articles else 0,
                "providers": get_available_providers(self.orchestrator.providers),
                "sources": len(self.registry),
            }
        finally:
            db.close()

        health_status["overall_health"] = "healthy" if health_status["providers"] else "degraded"
        logger.info("Pipeline health check", overall_health=health_status["overall_health"])
        return health_status


# Main function for cron job execution
async def run_news_cron_job() -> Dict[str, Any]:
    """Entry point for schedulers that call the pipeline without HTTP"""
    service = NewsCronService()
    return await service.run_sync_pipeline()
