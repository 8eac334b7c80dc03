"""
Feed item parser.

feedparser handles the common case. Regex extraction is kept for the optional
image field and for feeds so broken that feedparser finds no entries at all.
"""

import re
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Iterable, List, Optional, Union

import feedparser
import structlog

from ...utils.string_utils import utcnow
from .content_cleaner import ContentCleaner
from .sources.base import RawFeedItem

logger = structlog.get_logger(__name__)

_ITEM_RE = re.compile(r"<item\b[^>]*>([\s\S]*?)</item>", re.IGNORECASE)
_ENCLOSURE_IMAGE_RE = re.compile(r"<enclosure\b[^>]*url=[\"']([^\"']+)[\"'][^>]*type=[\"']image", re.IGNORECASE)
_ENCLOSURE_IMAGE_ALT_RE = re.compile(r"<enclosure\b[^>]*type=[\"']image[^\"']*[\"'][^>]*url=[\"']([^\"']+)[\"']", re.IGNORECASE)
_MEDIA_RE = re.compile(r"<media:(?:content|thumbnail)\b[^>]*url=[\"']([^\"']+)[\"']", re.IGNORECASE)
_IMG_RE = re.compile(r"<img\b[^>]*\bsrc=[\"']([^\"']+)[\"']", re.IGNORECASE)


def parse_feed(body: Union[bytes, str], limit: Optional[int] = None) -> List[RawFeedItem]:
    """
    Extract complete items from one feed body, in feed order.

    Pass the raw bytes so feedparser can honour the XML encoding declaration.
    """
    if not body:
        return []

    feed = feedparser.parse(body)
    if feed.bozo:
        logger.debug("Feed parsed leniently", error=str(feed.get("bozo_exception")))

    if feed.entries:
        items = [item for item in (_item_from_entry(entry) for entry in feed.entries) if item]
    else:
        items = _parse_with_regex(_decode_body(body, feed.get("encoding")))

    return items[:limit] if limit is not None else items


def _decode_body(body: Union[bytes, str], encoding: Optional[str]) -> str:
    if isinstance(body, str):
        return body
    try:
        return body.decode(encoding or "utf-8", errors="replace")
    except LookupError:
        return body.decode("utf-8", errors="replace")


def _item_from_entry(entry: Any) -> Optional[RawFeedItem]:
    title = ContentCleaner.clean_html_content(entry.get("title"))
    link = (entry.get("link") or "").strip()
    if not title or not link:
        return None

    raw_description = entry.get("summary") or entry.get("description") or ""
    return RawFeedItem(
        title=title,
        link=link,
        description=ContentCleaner.clean_html_content(raw_description),
        published_at=_struct_to_datetime(entry.get("published_parsed") or entry.get("updated_parsed")),
        image_url=_image_from_entry(entry, raw_description),
    )


def _image_from_entry(entry: Any, raw_description: str) -> Optional[str]:
    for enclosure in entry.get("enclosures") or []:
        url = enclosure.get("href") or enclosure.get("url")
        if url and (enclosure.get("type") or "").startswith("image"):
            return url

    for media in (entry.get("media_content") or []) + (entry.get("media_thumbnail") or []):
        if media.get("url"):
            return media["url"]

    markup = [block.get("value", "") for block in entry.get("content") or []]
    markup.append(raw_description)
    return _first_inline_image(markup)


def _first_inline_image(markup: Iterable[str]) -> Optional[str]:
    for fragment in markup:
        match = _IMG_RE.search(fragment or "")
        if match:
            return match.group(1)
    return None


def _struct_to_datetime(value: Optional[time.struct_time]) -> datetime:
    if value:
        try:
            return datetime(*value[:6])
        except (TypeError, ValueError):
            pass
    return utcnow()


def _parse_with_regex(body: str) -> List[RawFeedItem]:
    items = []
    for match in _ITEM_RE.finditer(body):
        block = match.group(1)
        title = ContentCleaner.clean_html_content(_extract_tag(block, "title"))
        link = ContentCleaner.clean_html_content(_extract_tag(block, "link"))
        if not title or not link:
            continue

        description = _extract_tag(block, "description") or ""
        image_match = (
            _ENCLOSURE_IMAGE_RE.search(block)
            or _ENCLOSURE_IMAGE_ALT_RE.search(block)
            or _MEDIA_RE.search(block)
            or _IMG_RE.search(block)
        )
        items.append(RawFeedItem(
            title=title,
            link=link,
            description=ContentCleaner.clean_html_content(description),
            published_at=parse_date(_extract_tag(block, "pubDate")),
            image_url=image_match.group(1) if image_match else None,
        ))

    if items:
        logger.info("Recovered items with regex fallback", count=len(items))
    return items


def _extract_tag(block: str, tag: str) -> Optional[str]:
    cdata = re.search(rf"<{tag}[^>]*>\s*<!\[CDATA\[([\s\S]*?)\]\]>\s*</{tag}>", block, re.IGNORECASE)
    if cdata:
        return cdata.group(1)
    plain = re.search(rf"<{tag}[^>]*>([\s\S]*?)</{tag}>", block, re.IGNORECASE)
    return plain.group(1) if plain else None


def parse_date(value: Optional[str]) -> datetime:
    """RFC 822 or ISO-8601 to naive UTC; anything else becomes now."""
    if not value:
        return utcnow()

    value = value.strip()
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return utcnow()

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
