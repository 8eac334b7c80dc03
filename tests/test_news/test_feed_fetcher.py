import pytest
import httpx

from src.news.services.feed_fetcher import FeedFetcher
from src.news.services.sources.base import FeedSource
from tests.helpers import PRIORITY_SOURCE, SECONDARY_SOURCE, feed_transport, rss_feed, rss_item


class TestFeedFetcher:
    @pytest.mark.asyncio
    async def test_fetches_all_sources_in_order(self, settings):
        body = rss_feed(rss_item("Titre", "https://x.mg/1"))
        fetcher = FeedFetcher(settings, transport=feed_transport({
            PRIORITY_SOURCE.feed_url: body,
            SECONDARY_SOURCE.feed_url: body,
        }))

        results = await fetcher.fetch_all([PRIORITY_SOURCE, SECONDARY_SOURCE])

        assert [r.source.id for r in results] == [PRIORITY_SOURCE.id, SECONDARY_SOURCE.id]
        assert all(r.ok for r in results)
        assert b"Titre" in results[0].body

    @pytest.mark.asyncio
    async def test_non_success_status_is_isolated(self, settings):
        fetcher = FeedFetcher(settings, transport=feed_transport({
            PRIORITY_SOURCE.feed_url: 503,
            SECONDARY_SOURCE.feed_url: rss_feed(rss_item("Titre", "https://x.mg/1")),
        }))

        failed, succeeded = await fetcher.fetch_all([PRIORITY_SOURCE, SECONDARY_SOURCE])

        assert not failed.ok
        assert failed.status_code == 503
        assert "HTTP 503" in failed.error
        assert succeeded.ok

    @pytest.mark.asyncio
    async def test_timeout_is_isolated(self, settings):
        def handler(request):
            if request.url.host == "midi.test":
                raise httpx.ReadTimeout("timed out", request=request)
            return httpx.Response(200, text=rss_feed())

        fetcher = FeedFetcher(settings, transport=httpx.MockTransport(handler))

        failed, succeeded = await fetcher.fetch_all([PRIORITY_SOURCE, SECONDARY_SOURCE])

        assert "timed out" in failed.error
        assert failed.body is None
        assert succeeded.ok

    @pytest.mark.asyncio
    async def test_connection_error_is_isolated(self, settings):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        fetcher = FeedFetcher(settings, transport=httpx.MockTransport(handler))

        results = await fetcher.fetch_all([PRIORITY_SOURCE])

        assert not results[0].ok
        assert "Midi Test" in results[0].error

    @pytest.mark.asyncio
    async def test_sends_descriptive_user_agent(self, settings):
        seen = {}

        def handler(request):
            seen["ua"] = request.headers["User-Agent"]
            return httpx.Response(200, text=rss_feed())

        await FeedFetcher(settings, transport=httpx.MockTransport(handler)).fetch_all([PRIORITY_SOURCE])

        assert seen["ua"] == "Mada-Flash News Aggregator/1.0"

    @pytest.mark.asyncio
    async def test_no_sources(self, settings):
        assert await FeedFetcher(settings).fetch_all([]) == []

    @pytest.mark.asyncio
    async def test_body_is_kept_as_raw_bytes(self, settings):
        latin1 = rss_feed(rss_item("Décès d'un artiste", "https://x.mg/1"), encoding="ISO-8859-1").encode("latin-1")
        fetcher = FeedFetcher(settings, transport=feed_transport({PRIORITY_SOURCE.feed_url: latin1}))

        (result,) = await fetcher.fetch_all([PRIORITY_SOURCE])

        assert result.body == latin1

    @pytest.mark.asyncio
    async def test_malformed_feed_url_is_isolated(self, settings):
        broken = FeedSource(
            id="broken",
            name="Broken",
            feed_url="https://broken.test/feed\x01",
            base_url="https://broken.test",
        )
        fetcher = FeedFetcher(settings, transport=feed_transport({
            SECONDARY_SOURCE.feed_url: rss_feed(rss_item("Titre", "https://x.mg/1")),
        }))

        failed, succeeded = await fetcher.fetch_all([broken, SECONDARY_SOURCE])

        assert not failed.ok
        assert "Broken" in failed.error
        assert succeeded.ok
