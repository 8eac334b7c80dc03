"""
Persistence Gateway
Turns a candidate (and its optional enhancement) into a stored article.
"""

import time
from typing import Callable, Optional

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import Settings, get_settings
from ...core.exceptions import PersistenceConflict
from ...repositories import ArticleRepository, CategoryRepository
from ...utils.string_utils import slugify
from ..models.article import (
    NEUTRAL_RELIABILITY_LABEL,
    NEUTRAL_RELIABILITY_SCORE,
    Article,
    ArticleStatus,
)
from .content_filter import category_display_name
from .enhancement import EnhancedContent
from .sources.base import CandidateArticle

logger = structlog.get_logger(__name__)

FALLBACK_SLUG = "article"


class ArticlePersistenceGateway:
    """Dedup, slug and category resolution, then a single insert per candidate."""

    def __init__(
        self,
        session: Session,
        settings: Optional[Settings] = None,
        clock_ms: Callable[[], int] = lambda: int(time.time() * 1000),
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.articles = ArticleRepository(session)
        self.categories = CategoryRepository(session)
        self._clock_ms = clock_ms

    def is_duplicate(self, source_url: str) -> bool:
        return self.articles.exists_by_source_url(source_url)

    def unique_slug(self, title: str) -> str:
        """Slug of ``title``; an existing slug gets a millisecond timestamp suffix."""
        base = slugify(title, self.settings.slug_max_length) or FALLBACK_SLUG
        slug = base
        while self.articles.slug_exists(slug):
            slug = f"{base}-{self._clock_ms()}"
            if self.articles.slug_exists(slug):
                # Same millisecond; wait for the clock to move on
                time.sleep(0.001)
        return slug

    def resolve_category_id(self, category: str) -> Optional[int]:
        """Existing category id for a detected category key. Categories are never created here."""
        display_name = category_display_name(category)
        if not display_name:
            return None
        found = self.categories.find_by_name(display_name)
        return found.id if found else None

    def save_candidate(self, candidate: CandidateArticle, enhanced: Optional[EnhancedContent] = None) -> Article:
        """
        Insert one article.

        Raises:
            PersistenceConflict: the source URL is already stored, or a
                concurrent writer took the URL or slug first
        """
        if self.is_duplicate(candidate.source_url):
            raise PersistenceConflict(candidate.source_url)

        title = enhanced.title if enhanced else candidate.title
        article = Article(
            slug=self.unique_slug(title),
            title=title,
            summary=(enhanced.summary or candidate.summary) if enhanced else candidate.summary,
            content=enhanced.content if enhanced else candidate.summary,
            original_content=candidate.summary,
            tags=enhanced.tags if enhanced else [],
            source_url=candidate.source_url,
            source_name=candidate.source_name,
            image_url=candidate.image_url,
            status=ArticleStatus.PUBLISHED.value,
            published_at=candidate.published_at,
            is_from_rss=True,
            is_ai_enhanced=enhanced is not None,
            is_featured=False,
            reliability_score=enhanced.reliability_score if enhanced else NEUTRAL_RELIABILITY_SCORE,
            reliability_label=enhanced.reliability_label if enhanced else NEUTRAL_RELIABILITY_LABEL.value,
            fact_check_notes=enhanced.fact_check_notes if enhanced else None,
            category_id=self.resolve_category_id(candidate.category),
        )

        try:
            return self.articles.create(article)
        except IntegrityError as e:
            self.session.rollback()
            logger.info("Insert lost a uniqueness race", source_url=candidate.source_url, error=str(e.orig))
            raise PersistenceConflict(candidate.source_url, "was stored by a concurrent run") from e

    def apply_enhancement(self, article: Article, enhanced: EnhancedContent) -> Article:
        """Rewrite an existing article in place. Slug and original content stay as they are."""
        if article.original_content is None:
            article.original_content = article.summary or article.content
        article.title = enhanced.title
        article.summary = enhanced.summary or article.summary
        article.content = enhanced.content
        article.tags = enhanced.tags
        article.reliability_score = enhanced.reliability_score
        article.reliability_label = enhanced.reliability_label
        article.fact_check_notes = enhanced.fact_check_notes
        article.is_ai_enhanced = True
        try:
            return self.articles.update(article)
        except SQLAlchemyError:
            self.session.rollback()
            raise
