from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import asc, desc, or_
from sqlalchemy.orm import Session

from ..news.models.article import Article, ArticleStatus


class ArticleRepository:
    def __init__(self, session: Session):
        self.session = session

    def create(self, article: Article) -> Article:
        self.session.add(article)
        self.session.commit()
        self.session.refresh(article)
        return article

    def find_by_source_url(self, source_url: str) -> Optional[Article]:
        return self.session.query(Article).filter(Article.source_url == source_url).first()

    def find_by_slug(self, slug: str) -> Optional[Article]:
        return self.session.query(Article).filter(Article.slug == slug).first()

    def exists_by_source_url(self, source_url: str) -> bool:
        return self.session.query(Article.id).filter(Article.source_url == source_url).first() is not None

    def slug_exists(self, slug: str) -> bool:
        return self.session.query(Article.id).filter(Article.slug == slug).first() is not None

    def update(self, article: Article) -> Article:
        self.session.commit()
        self.session.refresh(article)
        return article

    def delete_many(self, article_ids: Sequence[int]) -> int:
        if not article_ids:
            return 0
        deleted = (
            self.session.query(Article)
            .filter(Article.id.in_(list(article_ids)))
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return deleted

    def count(self) -> int:
        return self.session.query(Article).count()

    def count_where(self, *criteria) -> int:
        return self.session.query(Article).filter(*criteria).count()

    def oldest_non_featured_ids(self, limit: int) -> List[int]:
        """Eviction candidates: never featured rows, oldest ``published_at`` first."""
        if limit <= 0:
            return []
        rows = (
            self.session.query(Article.id)
            .filter(or_(Article.is_featured.is_(False), Article.is_featured.is_(None)))
            .order_by(asc(Article.published_at), asc(Article.id))
            .limit(limit)
            .all()
        )
        return [row.id for row in rows]

    def find_backlog(self, limit: int, force: bool = False) -> List[Article]:
        """Published articles waiting for enhancement, newest first. ``force`` includes enhanced ones."""
        query = self.session.query(Article).filter(Article.status == ArticleStatus.PUBLISHED.value)
        if not force:
            query = query.filter(Article.is_ai_enhanced.is_(False))
        return query.order_by(desc(Article.published_at), desc(Article.id)).limit(limit).all()

    def find_due_scheduled(self, now: datetime) -> List[Article]:
        return (
            self.session.query(Article)
            .filter(Article.status == ArticleStatus.SCHEDULED.value)
            .filter(Article.scheduled_at.isnot(None))
            .filter(Article.scheduled_at <= now)
            .all()
        )

    def get_all(self) -> List[Article]:
        return self.session.query(Article).order_by(asc(Article.id)).all()
