"""
Content cleaning utilities for news articles
Handles HTML removal, entity decoding and whitespace normalization
"""

import re
import html
import logging
from typing import Optional

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

# Page regions that never carry article text
NOISE_TAGS = ['script', 'style', 'nav', 'footer', 'header', 'aside', 'noscript', 'form', 'iframe']

ARTICLE_SELECTORS = [
    'article',
    '.entry-content',
    '.post-content',
    '.article-content',
    '.td-post-content',
    'main',
]


class ContentCleaner:
    """Utility class for turning feed/page markup into plain text"""

    @staticmethod
    def clean_html_content(content: Optional[str]) -> str:
        """
        Unescape entities and strip all markup from a feed text field.

        Args:
            content: Raw text that may contain HTML and entities

        Returns:
            Plain single-spaced text
        """
        if not content:
            return ""

        try:
            # Entities may be double-encoded in feeds (&amp;eacute;)
            text = html.unescape(content)
            if '<' in text:
                text = BeautifulSoup(text, 'html.parser').get_text(separator=' ')
            text = html.unescape(text)
            return ContentCleaner._normalize_whitespace(text)

        except Exception as e:
            logger.warning(f"Error cleaning HTML content: {e}")
            return ContentCleaner._simple_html_removal(content)

    @staticmethod
    def extract_page_text(page_html: str, max_chars: int) -> str:
        """
        Extract readable article text from a full HTML page.

        Noise regions are removed, the main article container is preferred
        when one is present, and the result is truncated to ``max_chars``.
        """
        if not page_html:
            return ""

        try:
            soup = BeautifulSoup(page_html, 'html.parser')

            for element in soup(NOISE_TAGS):
                element.decompose()

            container = None
            for selector in ARTICLE_SELECTORS:
                container = soup.select_one(selector)
                if container is not None:
                    break
            if container is None:
                container = soup.body or soup

            text = container.get_text(separator=' ', strip=True)
            text = ContentCleaner._normalize_whitespace(html.unescape(text))

        except Exception as e:
            logger.warning(f"Error extracting page text: {e}")
            text = ContentCleaner._simple_html_removal(page_html)

        return text[:max_chars].strip()

    @staticmethod
    def _simple_html_removal(content: str) -> str:
        """Simple fallback HTML tag removal"""
        text = re.sub(r'<(script|style)[^>]*>[\s\S]*?</\1>', ' ', content, flags=re.IGNORECASE)
        text = re.sub(r'<[^>]+>', ' ', text)
        text = html.unescape(text)
        return ContentCleaner._normalize_whitespace(text)

    @staticmethod
    def _normalize_whitespace(text: str) -> str:
        """Collapse all whitespace runs, including non-breaking spaces"""
        text = text.replace('\xa0', ' ')
        return re.sub(r'\s+', ' ', text).strip()
