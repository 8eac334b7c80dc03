"""
Static registry of the Malagasy news feeds the pipeline pulls from.
Priority tier 1 sources carry most of the politics and society coverage.
"""

from typing import Dict, Iterable, List, Optional

from ....config import Settings, get_settings
from .base import FeedSource

DEFAULT_FEED_SOURCES: List[FeedSource] = [
    FeedSource(
        id="midi-madagascar",
        name="Midi Madagascar",
        feed_url="https://www.midi-madagasikara.mg/feed/",
        base_url="https://www.midi-madagasikara.mg",
        priority=1,
    ),
    FeedSource(
        id="la-gazette",
        name="La Gazette de la Grande Île",
        feed_url="https://www.lagazette-dgi.com/feed/",
        base_url="https://www.lagazette-dgi.com",
        priority=1,
    ),
    FeedSource(
        id="lexpress",
        name="L'Express de Madagascar",
        feed_url="https://lexpress.mg/feed/",
        base_url="https://lexpress.mg",
        priority=1,
    ),
    FeedSource(
        id="24h-mada",
        name="24h Mada",
        feed_url="https://www.24hmada.com/feed/",
        base_url="https://www.24hmada.com",
        priority=2,
    ),
    FeedSource(
        id="newsmada",
        name="News Mada",
        feed_url="https://www.newsmada.com/feed/",
        base_url="https://www.newsmada.com",
        priority=2,
    ),
]


class SourceRegistry:
    """Ordered collection of feed sources with per-tier item quotas."""

    def __init__(self, sources: Optional[Iterable[FeedSource]] = None, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._sources: Dict[str, FeedSource] = {}
        for source in (DEFAULT_FEED_SOURCES if sources is None else sources):
            self.add_source(source)

    def add_source(self, source: FeedSource) -> None:
        if source.id in self._sources:
            raise ValueError(f"Duplicate feed source id: {source.id}")
        self._sources[source.id] = source

    def get(self, source_id: str) -> Optional[FeedSource]:
        return self._sources.get(source_id)

    def all(self) -> List[FeedSource]:
        """Sources ordered by priority tier, registration order within a tier."""
        return sorted(self._sources.values(), key=lambda s: s.priority)

    def item_limit_for(self, source: FeedSource) -> int:
        if source.is_priority:
            return self.settings.priority_source_item_limit
        return self.settings.secondary_source_item_limit

    def __len__(self) -> int:
        return len(self._sources)
