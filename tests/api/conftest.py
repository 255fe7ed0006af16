"""Shared fixtures for API tests."""
from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from api.dependencies import get_entity_store, get_summarizer
from api.main import app
from core.config import Settings, get_settings
from services.entity_store import InMemoryEntityStore
from tests.factories import USER_ID, FakeSummarizer


@pytest.fixture
async def client(
    store: InMemoryEntityStore, summarizer: FakeSummarizer,
) -> AsyncGenerator[AsyncClient]:
    """
    Client acting as USER_ID against an in-memory store and a fake summarizer.

    Tests may add further entries to ``app.dependency_overrides``; all are
    cleared on teardown.
    """

    def override_get_settings() -> Settings:
        return Settings(_env_file=None, DATABASE_URL="", DEV_MODE="false")

    app.dependency_overrides[get_settings] = override_get_settings
    app.dependency_overrides[get_entity_store] = lambda: store
    app.dependency_overrides[get_summarizer] = lambda: summarizer

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
            headers={"X-User-Id": USER_ID},
        ) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
