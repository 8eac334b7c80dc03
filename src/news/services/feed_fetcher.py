"""
Feed Fetcher
Fetches every registered RSS source concurrently over a bounded pool.
A failing source is recorded and never affects the others.
"""

import asyncio
from typing import List, Optional, Sequence

import httpx
import structlog

from ...config import Settings, get_settings
from ...core.exceptions import SourceFetchError
from .sources.base import FeedFetchResult, FeedSource

logger = structlog.get_logger(__name__)

FEED_ACCEPT = "application/rss+xml, application/xml, text/xml, */*"


class FeedFetcher:
    """Timed HTTP GET per source with per-source error isolation."""

    def __init__(self, settings: Optional[Settings] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings or get_settings()
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.settings.feed_fetch_timeout_seconds,
            follow_redirects=True,
            headers={
                "User-Agent": self.settings.feed_user_agent,
                "Accept": FEED_ACCEPT,
            },
            transport=self._transport,
        )

    async def fetch_all(self, sources: Sequence[FeedSource]) -> List[FeedFetchResult]:
        """Fetch all sources; results keep the order of ``sources``."""
        if not sources:
            return []

        semaphore = asyncio.Semaphore(max(1, self.settings.feed_fetch_concurrency))

        async with self._client() as client:
            async def bounded(source: FeedSource) -> FeedFetchResult:
                async with semaphore:
                    return await self.fetch_source(client, source)

            results = await asyncio.gather(*(bounded(source) for source in sources))

        failed = [r.source.name for r in results if not r.ok]
        logger.info(
            "Feed fetch completed",
            sources=len(results),
            succeeded=len(results) - len(failed),
            failed_sources=failed,
        )
        return list(results)

    async def fetch_source(self, client: httpx.AsyncClient, source: FeedSource) -> FeedFetchResult:
        try:
            response = await client.get(source.feed_url)
            if not response.is_success:
                error = SourceFetchError(source.name, f"HTTP {response.status_code}")
                logger.warning("Feed source returned an error", source=source.name, status_code=response.status_code)
                return FeedFetchResult(source=source, error=error.message, status_code=response.status_code)
            return FeedFetchResult(source=source, body=response.content, status_code=response.status_code)

        except httpx.TimeoutException:
            error = SourceFetchError(source.name, "timed out")
            logger.warning("Feed source timed out", source=source.name, timeout=self.settings.feed_fetch_timeout_seconds)
            return FeedFetchResult(source=source, error=error.message)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            error = SourceFetchError(source.name, str(e) or e.__class__.__name__)
            logger.warning("Feed source unreachable", source=source.name, error=error.message)
            return FeedFetchResult(source=source, error=error.message)
