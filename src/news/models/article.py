import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, JSON, ForeignKey
from sqlalchemy.orm import relationship, validates
from sqlalchemy.sql import func

from ...core.database import Base


class ArticleStatus(str, enum.Enum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"


class ReliabilityLabel(str, enum.Enum):
    VERIFIED = "verified"
    LIKELY = "likely"
    UNVERIFIED = "unverified"
    DISPUTED = "disputed"


NEUTRAL_RELIABILITY_SCORE = 50
NEUTRAL_RELIABILITY_LABEL = ReliabilityLabel.UNVERIFIED


class Article(Base):
    """
    A stored news article.

    Rows created by the feed pipeline carry ``is_from_rss=True`` and the
    untouched feed summary in ``original_content``. ``source_url`` is the
    dedup key and is unique at the storage layer.
    """
    __tablename__ = "articles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String(150), nullable=False, unique=True, index=True)

    title = Column(String(500), nullable=False)
    summary = Column(Text)
    content = Column(Text, nullable=False, default="")
    original_content = Column(Text)  # Provenance, never rewritten once set
    tags = Column(JSON)

    source_url = Column(String(1000), unique=True, index=True)
    source_name = Column(String(200))
    image_url = Column(String(1000))  # Backfilled later by the image subsystem

    status = Column(String(20), nullable=False, default=ArticleStatus.PUBLISHED.value)
    published_at = Column(DateTime, index=True)
    scheduled_at = Column(DateTime)

    is_from_rss = Column(Boolean, nullable=False, default=False)
    is_ai_enhanced = Column(Boolean, nullable=False, default=False)
    is_featured = Column(Boolean, nullable=False, default=False)

    # Reliability metadata from enhancement
    reliability_score = Column(Integer, nullable=False, default=NEUTRAL_RELIABILITY_SCORE)
    reliability_label = Column(String(20), nullable=False, default=NEUTRAL_RELIABILITY_LABEL.value)
    fact_check_notes = Column(Text)

    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    category = relationship("Category", back_populates="articles")

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    @validates("original_content")
    def _keep_original_content(self, key, value):
        if self.original_content is not None and value != self.original_content:
            raise ValueError(f"original_content of article {self.id} is immutable once set")
        return value

    def __repr__(self):
        return f"<Article(id={self.id}, slug='{self.slug}', source='{self.source_name}')>"
