from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from src.core.exceptions import PipelineBusyError, StoreUnavailableError
from src.news.models import Article, ArticleStatus, PipelineLock
from src.news.services.enhancement import EnhancementOrchestrator, parse_enhanced_content
from src.news.services.feed_fetcher import FeedFetcher
from src.news.services.news_cron_service import NewsCronService
from src.news.services.sources.registry import SourceRegistry
from src.services.llm_service import LLMProvider
from src.utils.string_utils import utcnow
from tests.helpers import (
    PRIORITY_SOURCE,
    SECONDARY_SOURCE,
    VALID_ENHANCEMENT,
    feed_transport,
    rss_feed,
    rss_item,
)

SCENARIO_A = rss_item(
    "Grève des enseignants à Antananarivo",
    "https://x.mg/a1",
    "Les enseignants réclament leurs indemnités.",
    "Mon, 06 Jan 2025 08:00:00 +0300",
)
SPORT_ITEM = rss_item(
    "Les Barea gagnent le match amical",
    "https://x.mg/s1",
    "Victoire nette des Barea.",
    "Tue, 07 Jan 2025 08:00:00 +0300",
)
OBITUARY_ITEM = rss_item(
    "Hommage à un enseignant",
    "https://x.mg/o1",
    "Les obsèques auront lieu samedi.",
    "Tue, 07 Jan 2025 09:00:00 +0300",
)


def seed(db, n, **overrides):
    fields = dict(
        slug=f"seed-{n}",
        title=f"Seed {n}",
        summary=f"Résumé {n}",
        content=f"Contenu {n}",
        source_url=f"https://seed.mg/{n}",
        source_name="Midi Test",
        published_at=datetime(2024, 1, 1) + timedelta(hours=n),
        status=ArticleStatus.PUBLISHED.value,
        is_from_rss=True,
    )
    fields.update(overrides)
    article = Article(**fields)
    db.add(article)
    db.commit()
    return article


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def build_service(settings, session_factory, page_fetcher, sleeps):
    async def fake_sleep(seconds):
        sleeps.append(seconds)

    def factory(feeds, providers=(), orchestrator=None, sources=(PRIORITY_SOURCE, SECONDARY_SOURCE)):
        return NewsCronService(
            session_factory=session_factory,
            registry=SourceRegistry(sources, settings),
            fetcher=FeedFetcher(settings, transport=feed_transport(feeds)),
            orchestrator=orchestrator or EnhancementOrchestrator(list(providers), page_fetcher, settings),
            settings=settings,
            sleep=fake_sleep,
        )

    return factory


class TestSyncPipeline:
    @pytest.mark.asyncio
    async def test_scenario_a_persists_once(self, build_service, test_db):
        service = build_service({PRIORITY_SOURCE.feed_url: rss_feed(SCENARIO_A)})

        first = await service.run_sync_pipeline()
        second = await service.run_sync_pipeline()

        assert first["success"] is True
        assert first["saved"] == 1
        assert first["enhanced"] == 0
        assert first["details"][0]["status"] == "saved"
        assert second["saved"] == 0
        assert second["skipped"] == 1

        article = test_db.query(Article).one()
        assert article.slug == "greve-des-enseignants-a-antananarivo"
        assert article.is_ai_enhanced is False
        assert article.reliability_label == "unverified"

    @pytest.mark.asyncio
    async def test_scenario_b_blocked_item_never_written(self, build_service, test_db):
        service = build_service({PRIORITY_SOURCE.feed_url: rss_feed(OBITUARY_ITEM, SCENARIO_A)})

        result = await service.run_sync_pipeline()

        assert result["blocked"] == 1
        assert result["saved"] == 1
        assert test_db.query(Article).filter(Article.source_url == "https://x.mg/o1").count() == 0
        blocked = next(d for d in result["details"] if d["status"] == "blocked")
        assert blocked["title"] == "Hommage à un enseignant"
        assert blocked["id"] is None

    @pytest.mark.asyncio
    async def test_latin1_feed_blocklist_matches_accented_terms(self, build_service, test_db):
        body = rss_feed(OBITUARY_ITEM, SCENARIO_A, encoding="ISO-8859-1").encode("latin-1")
        service = build_service({PRIORITY_SOURCE.feed_url: body})

        result = await service.run_sync_pipeline()

        assert result["blocked"] == 1
        assert result["saved"] == 1
        assert test_db.query(Article).filter(Article.source_url == "https://x.mg/o1").count() == 0
        assert test_db.query(Article).one().slug == "greve-des-enseignants-a-antananarivo"

    @pytest.mark.asyncio
    async def test_blocked_items_skip_classification_and_total(self, build_service, monkeypatch):
        from src.news.services import news_cron_service

        classified = []
        original = news_cron_service.detect_category

        def recording_detect_category(title, description=""):
            classified.append(title)
            return original(title, description)

        monkeypatch.setattr(news_cron_service, "detect_category", recording_detect_category)
        service = build_service({PRIORITY_SOURCE.feed_url: rss_feed(OBITUARY_ITEM, SCENARIO_A)})

        result = await service.run_sync_pipeline()

        assert classified == ["Grève des enseignants à Antananarivo"]
        assert result["total"] == 1
        assert result["blocked"] == 1

    @pytest.mark.asyncio
    async def test_priority_categories_processed_first(self, build_service):
        service = build_service({
            PRIORITY_SOURCE.feed_url: rss_feed(SPORT_ITEM),
            SECONDARY_SOURCE.feed_url: rss_feed(SCENARIO_A),
        })

        result = await service.run_sync_pipeline()

        # The sport item is newer, but societe is a priority category
        assert [d["title"] for d in result["details"]] == [
            "Grève des enseignants à Antananarivo",
            "Les Barea gagnent le match amical",
        ]

    @pytest.mark.asyncio
    async def test_enhanced_items_are_paced(self, build_service, scripted_provider, settings, sleeps, test_db):
        provider = scripted_provider(LLMProvider.GROQ, [VALID_ENHANCEMENT])
        service = build_service({PRIORITY_SOURCE.feed_url: rss_feed(SCENARIO_A)}, providers=[provider])

        result = await service.run_sync_pipeline()

        assert result["enhanced"] == 1
        assert result["details"][0]["status"] == "enhanced"
        assert sleeps == [settings.enhancement_delay_seconds]
        article = test_db.query(Article).one()
        assert article.title == "Les enseignants en grève à Antananarivo"
        assert article.original_content == "Les enseignants réclament leurs indemnités."

    @pytest.mark.asyncio
    async def test_failing_source_does_not_stop_run(self, build_service):
        service = build_service({
            PRIORITY_SOURCE.feed_url: 500,
            SECONDARY_SOURCE.feed_url: rss_feed(SCENARIO_A),
        })

        result = await service.run_sync_pipeline()

        assert result["saved"] == 1
        errors = {s["source"]: s["error"] for s in result["sources"]}
        assert "HTTP 500" in errors["Midi Test"]
        assert errors["Mada Test"] is None

    @pytest.mark.asyncio
    async def test_item_failure_is_counted_and_run_continues(self, build_service, settings):
        orchestrator = MagicMock()
        orchestrator.providers = []
        orchestrator.enhance = AsyncMock(side_effect=[RuntimeError("boom"), None])
        service = build_service(
            {PRIORITY_SOURCE.feed_url: rss_feed(SCENARIO_A, SPORT_ITEM)},
            orchestrator=orchestrator,
        )

        result = await service.run_sync_pipeline()

        assert result["failed"] == 1
        assert result["saved"] == 1
        failed = next(d for d in result["details"] if d["status"] == "failed")
        assert failed["error"] == "boom"

    @pytest.mark.asyncio
    async def test_per_source_item_limits(self, build_service, settings):
        items = [rss_item(f"Les Barea, épisode {n}", f"https://x.mg/b{n}") for n in range(12)]
        service = build_service({SECONDARY_SOURCE.feed_url: rss_feed(*items)})

        result = await service.run_sync_pipeline()

        assert result["total"] == settings.secondary_source_item_limit
        assert result["saved"] == 8

    @pytest.mark.asyncio
    async def test_retention_runs_before_ingestion(self, build_service, settings, test_db):
        settings.max_articles = 2
        settings.retention_extra_batch = 0
        for n in range(3):
            seed(test_db, n)
        service = build_service({PRIORITY_SOURCE.feed_url: rss_feed(SCENARIO_A)})

        result = await service.run_sync_pipeline()

        assert result["retention"]["deleted"] == 1
        assert result["saved"] == 1
        # Bounded overshoot until the next retention pass
        assert test_db.query(Article).count() == 3
        assert test_db.query(Article).filter(Article.slug == "seed-0").count() == 0

    @pytest.mark.asyncio
    async def test_response_shape(self, build_service):
        result = await build_service({PRIORITY_SOURCE.feed_url: rss_feed(SCENARIO_A)}).run_sync_pipeline()

        for key in ("success", "message", "saved", "enhanced", "skipped", "blocked", "failed", "total", "details", "duration", "timestamp"):
            assert key in result
        assert isinstance(result["duration"], int)
        assert result["timestamp"].endswith("Z")

    @pytest.mark.asyncio
    async def test_store_unreachable_is_run_level_failure(self, settings, page_fetcher):
        broken = MagicMock()
        broken.execute.side_effect = OperationalError("SELECT 1", {}, Exception("unable to open database file"))
        service = NewsCronService(
            session_factory=lambda: broken,
            registry=SourceRegistry([PRIORITY_SOURCE], settings),
            fetcher=FeedFetcher(settings, transport=feed_transport({})),
            orchestrator=EnhancementOrchestrator([], page_fetcher, settings),
            settings=settings,
        )

        with pytest.raises(StoreUnavailableError):
            await service.run_sync_pipeline()
        broken.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_overlapping_run_is_rejected(self, build_service, test_db):
        test_db.add(PipelineLock(name="sync-rss", owner="other", acquired_at=utcnow()))
        test_db.commit()

        with pytest.raises(PipelineBusyError):
            await build_service({PRIORITY_SOURCE.feed_url: rss_feed(SCENARIO_A)}).run_sync_pipeline()

    @pytest.mark.asyncio
    async def test_stale_lock_is_taken_over_and_released(self, build_service, test_db):
        test_db.add(PipelineLock(name="sync-rss", owner="crashed", acquired_at=utcnow() - timedelta(hours=2)))
        test_db.commit()

        result = await build_service({PRIORITY_SOURCE.feed_url: rss_feed(SCENARIO_A)}).run_sync_pipeline()

        assert result["saved"] == 1
        test_db.expire_all()
        assert test_db.query(PipelineLock).count() == 0


class TestEnhanceBacklog:
    def test_limit_clamping(self, build_service):
        service = build_service({})
        assert service.clamp_backlog_limit(None) == 10
        assert service.clamp_backlog_limit(500) == 50
        assert service.clamp_backlog_limit(0) == 1
        assert service.clamp_backlog_limit(7) == 7

    @pytest.mark.asyncio
    async def test_enhances_unenhanced_articles(self, build_service, scripted_provider, test_db):
        for n in range(4):
            seed(test_db, n)
        seed(test_db, 99, is_ai_enhanced=True)
        provider = scripted_provider(LLMProvider.GROQ, [VALID_ENHANCEMENT])
        service = build_service({}, providers=[provider])

        result = await service.enhance_backlog(limit=3)

        assert result["total"] == 3
        assert result["enhanced"] == 3
        test_db.expire_all()
        assert test_db.query(Article).filter(Article.is_ai_enhanced.is_(True)).count() == 4
        # Slugs never change on rewrite
        assert test_db.query(Article).filter(Article.slug == "seed-3").one().is_ai_enhanced is True

    @pytest.mark.asyncio
    async def test_force_includes_enhanced_articles(self, build_service, scripted_provider, test_db):
        seed(test_db, 1, is_ai_enhanced=True)
        provider = scripted_provider(LLMProvider.GROQ, [VALID_ENHANCEMENT])
        service = build_service({}, providers=[provider])

        assert (await service.enhance_backlog())["total"] == 0
        assert (await service.enhance_backlog(force=True))["enhanced"] == 1

    @pytest.mark.asyncio
    async def test_one_failure_does_not_affect_batch(self, build_service, test_db):
        for n in range(3):
            seed(test_db, n)
        enhanced = parse_enhanced_content(VALID_ENHANCEMENT)
        orchestrator = MagicMock()
        orchestrator.providers = []
        orchestrator.enhance = AsyncMock(side_effect=[RuntimeError("provider exploded"), enhanced, None])
        service = build_service({}, orchestrator=orchestrator)

        result = await service.enhance_backlog(limit=3)

        assert [d["status"] for d in result["details"]] == ["failed", "enhanced", "skipped"]
        assert result["failed"] == 1
        assert result["enhanced"] == 1
        assert result["skipped"] == 1

    @pytest.mark.asyncio
    async def test_no_provider_leaves_articles_untouched(self, build_service, test_db):
        seed(test_db, 1)
        result = await build_service({}).enhance_backlog()

        assert result["enhanced"] == 0
        assert result["skipped"] == 1
        assert test_db.query(Article).one().content == "Contenu 1"


class TestMaintenance:
    def test_purge_blocked_articles(self, build_service, test_db):
        seed(test_db, 1, title="Nécrologie : adieu à un artiste")
        seed(test_db, 2, title="Les Barea en finale")

        result = build_service({}).purge_blocked_articles()

        assert result["scanned"] == 2
        assert result["deleted"] == 1
        assert result["remaining"] == 1
        assert result["titles"] == ["Nécrologie : adieu à un artiste"]

    def test_publish_scheduled(self, build_service, test_db):
        due = seed(test_db, 1, status="scheduled", scheduled_at=utcnow() - timedelta(minutes=5))
        later = seed(test_db, 2, status="scheduled", scheduled_at=utcnow() + timedelta(days=1))
        due_id, later_id = due.id, later.id

        result = build_service({}).publish_scheduled()

        assert result["published"] == 1
        test_db.expire_all()
        assert test_db.get(Article, due_id).status == "published"
        assert test_db.get(Article, later_id).status == "scheduled"

    def test_pipeline_health(self, build_service, test_db, scripted_provider):
        seed(test_db, 1, is_ai_enhanced=True)
        seed(test_db, 2, is_featured=True)
        service = build_service({}, providers=[scripted_provider(LLMProvider.GOOGLE, [VALID_ENHANCEMENT])])

        health = service.get_pipeline_health()

        assert health["total_articles"] == 2
        assert health["ai_enhanced"] == 1
        assert health["featured"] == 1
        assert health["providers"] == ["google"]
        assert health["overall_health"] == "healthy"
