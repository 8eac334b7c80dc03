"""
Retention Manager
Keeps the article table under the configured cap by evicting the oldest
non-featured rows. Runs before every ingestion.
"""

from typing import Any, Dict, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import Settings, get_settings
from ...core.exceptions import RetentionError
from ...repositories import ArticleRepository

logger = structlog.get_logger(__name__)


class RetentionManager:

    def __init__(self, session: Session, settings: Optional[Settings] = None):
        self.session = session
        self.settings = settings or get_settings()
        self.articles = ArticleRepository(session)

    def eviction_target(self, count: int) -> int:
        """Rows to delete for ``count`` stored rows. Overshooting the cap evicts an extra batch."""
        cap = self.settings.max_articles
        if count <= cap:
            return 0
        return count - cap + self.settings.retention_extra_batch

    def enforce(self) -> Dict[str, Any]:
        """
        Apply the cap. Never raises: a failure is logged and reported in the
        returned stats so ingestion can go on.
        """
        stats = {"count_before": None, "target": 0, "deleted": 0, "error": None}
        try:
            count = self.articles.count()
            stats["count_before"] = count
            target = self.eviction_target(count)
            stats["target"] = target
            if target == 0:
                return stats

            ids = self.articles.oldest_non_featured_ids(target)
            stats["deleted"] = self.articles.delete_many(ids)
            if stats["deleted"] < target:
                logger.warning(
                    "Not enough non-featured articles to reach retention target",
                    target=target,
                    deleted=stats["deleted"],
                )
            logger.info("Retention pass completed", count_before=count, deleted=stats["deleted"], cap=self.settings.max_articles)
            return stats

        except SQLAlchemyError as e:
            self.session.rollback()
            error = RetentionError(f"Retention pass failed: {e}", details={"target": stats["target"]})
            logger.error("Retention pass failed", error=error.message)
            stats["error"] = error.message
            return stats
