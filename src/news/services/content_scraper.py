"""
Content Scraper Service
Fetches the original article page and reduces it to plain text for prompting
"""

import logging
from typing import Optional

import httpx

from ...config import Settings, get_settings
from ...core.cache import TTLCache
from .content_cleaner import ContentCleaner

logger = logging.getLogger(__name__)


class ContentScraperService:
    """Fetch article page text with a bounded timeout and an injected TTL cache"""

    def __init__(
        self,
        cache: Optional[TTLCache] = None,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self.cache = cache if cache is not None else TTLCache(self.settings.page_cache_ttl_seconds)
        self._transport = transport

    async def fetch_article_text(self, url: Optional[str]) -> Optional[str]:
        """
        Return the readable text of an article page.

        Args:
            url: Link to the original article

        Returns:
            Plain text truncated to the configured length, or None when the
            page could not be fetched or carried no text
        """
        if not url or not url.startswith('http'):
            return None

        cached = self.cache.get(url)
        if cached is not None:
            return cached

        try:
            async with httpx.AsyncClient(
                timeout=self.settings.article_fetch_timeout_seconds,
                follow_redirects=True,
                headers={'User-Agent': self.settings.article_user_agent},
                transport=self._transport,
            ) as client:
                response = await client.get(url)

            if not response.is_success:
                logger.info(f"Article page {url} returned HTTP {response.status_code}")
                return None

            text = ContentCleaner.extract_page_text(response.text, self.settings.article_text_max_chars)

        except httpx.HTTPError as e:
            logger.info(f"Could not fetch article page {url}: {e!r}")
            return None

        if not text:
            return None

        self.cache.set(url, text)
        return text
