"""
Domain records shared by the feed pipeline stages.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

PRIORITY_TIER = 1


@dataclass(frozen=True)
class FeedSource:
    """A configured RSS source. Lower ``priority`` numbers are fetched with a larger quota."""
    id: str
    name: str
    feed_url: str
    base_url: str
    priority: int = 2

    @property
    def is_priority(self) -> bool:
        return self.priority == PRIORITY_TIER


@dataclass
class RawFeedItem:
    """One feed item as extracted by the parser."""
    title: str
    link: str
    description: str
    published_at: datetime
    image_url: Optional[str] = None


@dataclass
class CandidateArticle:
    """A parsed, classified feed item not yet persisted."""
    title: str
    source_url: str
    summary: str
    published_at: datetime
    source_name: str
    category: str
    image_url: Optional[str] = None
    source_priority: int = 2

    @classmethod
    def from_item(cls, item: RawFeedItem, source: FeedSource, category: str) -> "CandidateArticle":
        return cls(
            title=item.title,
            source_url=item.link,
            summary=item.description,
            published_at=item.published_at,
            source_name=source.name,
            category=category,
            image_url=item.image_url,
            source_priority=source.priority,
        )


@dataclass
class FeedFetchResult:
    """Outcome of fetching one source. ``body`` holds the raw bytes, None when the fetch failed."""
    source: FeedSource
    body: Optional[bytes] = None
    status_code: Optional[int] = None
    error: Optional[str] = None
    items: List[RawFeedItem] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.body is not None and self.error is None
