"""
Enhancement Orchestrator

Rewrites a feed item into an original article through an ordered chain of
text-generation providers. The first provider whose output validates wins;
when none is configured or all fail the caller gets None and stores the
item as-is.
"""

import asyncio
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

import structlog

from ...config import Settings, get_settings
from ...services.llm_service import BaseLLMProvider, ProviderResult, build_providers, extract_json_object
from ...utils.prompt_strings import PromptStrings
from ...utils.string_utils import truncate_text
from ..models.article import NEUTRAL_RELIABILITY_LABEL, NEUTRAL_RELIABILITY_SCORE, ReliabilityLabel
from .content_filter import DEFAULT_CATEGORY, category_context
from .content_scraper import ContentScraperService

logger = structlog.get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")

_TAG_WORD_RE = re.compile(r"[^a-zàâäéèêëïîôùûüç]")


@dataclass
class EnhancedContent:
    title: str
    summary: str
    content: str
    tags: List[str] = field(default_factory=list)
    reliability_score: int = NEUTRAL_RELIABILITY_SCORE
    reliability_label: str = NEUTRAL_RELIABILITY_LABEL.value
    fact_check_notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "summary": self.summary,
            "content": self.content,
            "tags": self.tags,
            "reliability_score": self.reliability_score,
            "reliability_label": self.reliability_label,
            "fact_check_notes": self.fact_check_notes,
        }


def _normalize_score(value: Any) -> int:
    try:
        score = int(round(float(value)))
    except (TypeError, ValueError):
        return NEUTRAL_RELIABILITY_SCORE
    return max(0, min(100, score))


def _normalize_label(value: Any) -> str:
    label = str(value or "").strip().lower()
    if label in {member.value for member in ReliabilityLabel}:
        return label
    return NEUTRAL_RELIABILITY_LABEL.value


def _normalize_tags(value: Any) -> List[str]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        return []
    return [str(tag).strip() for tag in value if str(tag).strip()]


def parse_enhanced_content(text: str) -> Optional[EnhancedContent]:
    """Validate raw provider text. Title and content must both be non-empty."""
    data = extract_json_object(text)
    if not data:
        return None

    title = str(data.get("title") or "").strip()
    content = str(data.get("content") or "").strip()
    if not title or not content:
        return None

    notes = data.get("fact_check_notes")
    return EnhancedContent(
        title=title,
        summary=str(data.get("summary") or "").strip(),
        content=content,
        tags=_normalize_tags(data.get("tags")),
        reliability_score=_normalize_score(data.get("reliability_score")),
        reliability_label=_normalize_label(data.get("reliability_label")),
        fact_check_notes=str(notes).strip() if notes else None,
    )


def basic_enhancement(title: str, summary: str, source_name: str) -> EnhancedContent:
    """Non-AI rewrite used by the single-article API when no provider answers."""
    words = title.lower().split()
    tags = [_TAG_WORD_RE.sub("", word) for word in words if len(word) > 4][:5]
    return EnhancedContent(
        title=truncate_text(title, 60),
        summary=truncate_text(summary, 180),
        content=PromptStrings.BASIC_CONTENT.format(
            original_title=title,
            original_summary=summary,
            source_name=source_name,
        ),
        tags=[tag for tag in tags if tag],
    )


class EnhancementOrchestrator:
    """Builds the prompt and reduces over the provider chain."""

    def __init__(
        self,
        providers: Optional[Sequence[BaseLLMProvider]] = None,
        page_fetcher: Optional[ContentScraperService] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.providers = list(providers) if providers is not None else build_providers(self.settings)
        self.page_fetcher = page_fetcher or ContentScraperService(settings=self.settings)

    @property
    def configured_providers(self) -> List[BaseLLMProvider]:
        return [provider for provider in self.providers if provider.is_configured]

    @property
    def is_enabled(self) -> bool:
        return bool(self.configured_providers)

    async def select_source_text(self, title: str, summary: str, source_url: Optional[str]) -> str:
        """Full page text when it says more than the summary, else summary, else title."""
        summary = summary or ""
        if source_url:
            page_text = await self.page_fetcher.fetch_article_text(source_url)
            if page_text and len(page_text) > len(summary):
                return page_text
        return summary or title

    def build_prompt(self, title: str, summary: str, category: str, source_name: str, source_text: str) -> str:
        category = category or DEFAULT_CATEGORY
        return PromptStrings.ARTICLE_ENHANCEMENT.format(
            original_title=title,
            original_summary=summary or "",
            source_name=source_name,
            category=category,
            category_context=category_context(category),
            source_text=source_text[:self.settings.prompt_source_max_chars],
        )

    async def enhance(
        self,
        title: str,
        summary: str,
        category: str,
        source_name: str,
        source_url: Optional[str] = None,
    ) -> Optional[EnhancedContent]:
        """
        Rewrite one item. Returns None when no provider is configured or
        every configured provider failed.
        """
        providers = self.configured_providers
        if not providers:
            logger.debug("No enhancement provider configured")
            return None

        source_text = await self.select_source_text(title, summary, source_url)
        prompt = self.build_prompt(title, summary, category, source_name, source_text)

        failures: List[ProviderResult] = []
        # Attempts are awaited one at a time; later providers are never called after a success
        for provider in providers:
            result = await provider.attempt(prompt, parse_enhanced_content)
            if result.ok:
                logger.info(
                    "Article enhanced",
                    provider=result.provider,
                    title=truncate_text(title, 50),
                    failed_before=[f.provider for f in failures],
                )
                return result.value
            failures.append(result)

        logger.warning(
            "All enhancement providers failed",
            title=truncate_text(title, 50),
            errors={f.provider: f.error for f in failures},
        )
        return None


async def run_in_batches(
    items: Iterable[T],
    handler: Callable[[T], Awaitable[R]],
    batch_size: int,
    pause_seconds: float,
) -> List[Any]:
    """
    Run ``handler`` over ``items`` in concurrent batches, pausing between batches.

    Results keep input order. A handler exception is returned in place of its
    result and never cancels its siblings.
    """
    items = list(items)
    batch_size = max(1, batch_size)
    results: List[Any] = []

    for start in range(0, len(items), batch_size):
        batch = items[start:start + batch_size]
        results.extend(await asyncio.gather(*(handler(item) for item in batch), return_exceptions=True))

        if start + batch_size < len(items) and pause_seconds > 0:
            await asyncio.sleep(pause_seconds)

    return results
