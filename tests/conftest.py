import pytest
from typing import List, Optional
from unittest.mock import AsyncMock, MagicMock

import httpx
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.config import Settings
from src.core.cache import TTLCache
from src.core.database import Base
from src.news.services.content_scraper import ContentScraperService
from src.services.llm_service import LLMProvider
from tests.helpers import ScriptedProvider


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        environment="development",
        database_url="sqlite://",
        cron_secret=None,
        groq_api_key=None,
        google_api_key=None,
        openai_api_key=None,
        anthropic_api_key=None,
        enhancement_delay_seconds=0,
        backlog_batch_pause_seconds=0,
        max_articles=500,
        retention_extra_batch=50,
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    # Import models to register them with Base
    from src.news.models import article, category, pipeline_lock  # noqa: F401
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def test_db(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def page_fetcher(settings):
    """Page fetcher whose every article page is missing, so prompts use the feed summary."""
    return ContentScraperService(
        cache=TTLCache(60),
        settings=settings,
        transport=httpx.MockTransport(lambda request: httpx.Response(404)),
    )


@pytest.fixture
def scripted_provider(settings):
    def factory(name: LLMProvider, responses: List, api_key: Optional[str] = "test-key") -> ScriptedProvider:
        return ScriptedProvider(name, responses, settings, api_key=api_key)
    return factory


@pytest.fixture
def mock_cron_service():
    service = MagicMock()
    service.run_sync_pipeline = AsyncMock()
    service.enhance_backlog = AsyncMock()
    return service


@pytest.fixture
async def async_client(test_db, settings):
    from httpx import AsyncClient, ASGITransport
    from src.main import app
    from src.config import get_settings
    from src.core.database import get_db

    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings

    # Use ASGITransport for direct app interaction
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
