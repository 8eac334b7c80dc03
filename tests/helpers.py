"""Builders and fakes shared by the test modules."""

from typing import Dict, List, Optional, Union

import httpx

from src.config import Settings
from src.news.services.sources.base import FeedSource
from src.services.llm_service import BaseLLMProvider, LLMProvider


PRIORITY_SOURCE = FeedSource(
    id="midi-test",
    name="Midi Test",
    feed_url="https://midi.test/feed/",
    base_url="https://midi.test",
    priority=1,
)

SECONDARY_SOURCE = FeedSource(
    id="mada-test",
    name="Mada Test",
    feed_url="https://mada.test/feed/",
    base_url="https://mada.test",
    priority=2,
)


def rss_item(title: str, link: str, description: str = "", pub_date: Optional[str] = None, extra: str = "") -> str:
    date = f"<pubDate>{pub_date}</pubDate>" if pub_date else ""
    return (
        f"<item><title>{title}</title><link>{link}</link>"
        f"<description><![CDATA[{description}]]></description>{date}{extra}</item>"
    )


def rss_feed(*items: str, encoding: str = "UTF-8") -> str:
    return (
        f'<?xml version="1.0" encoding="{encoding}"?>'
        '<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/">'
        "<channel><title>Test feed</title><link>https://feed.test</link>"
        + "".join(items)
        + "</channel></rss>"
    )


def feed_transport(bodies: Dict[str, Union[str, bytes, int]]) -> httpx.MockTransport:
    """Serve feed bodies by URL. An int value is returned as that HTTP status, bytes are sent as-is."""

    def handler(request: httpx.Request) -> httpx.Response:
        body = bodies.get(str(request.url))
        if body is None:
            return httpx.Response(404)
        if isinstance(body, int):
            return httpx.Response(body)
        if isinstance(body, bytes):
            return httpx.Response(200, content=body, headers={"Content-Type": "application/rss+xml"})
        return httpx.Response(200, text=body, headers={"Content-Type": "application/rss+xml"})

    return httpx.MockTransport(handler)


class ScriptedProvider(BaseLLMProvider):
    """Provider returning canned responses in order. Exceptions in the script are raised."""

    def __init__(self, name: LLMProvider, responses: List, settings: Settings, api_key: Optional[str] = "test-key"):
        super().__init__(api_key=api_key, model_name="test-model", settings=settings)
        self.name = name
        self.responses = list(responses)
        self.calls: List[str] = []

    async def _complete(self, prompt: str) -> Optional[str]:
        self.calls.append(prompt)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


VALID_ENHANCEMENT = """{
  "title": "Les enseignants en grève à Antananarivo",
  "summary": "Mobilisation des enseignants dans la capitale.",
  "content": "Les enseignants ont cessé le travail ce lundi.",
  "tags": ["éducation", "grève"],
  "reliability_score": 82,
  "reliability_label": "likely",
  "fact_check_notes": "Confirmé par deux sources."
}"""
