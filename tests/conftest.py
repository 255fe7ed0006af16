"""Pytest fixtures for testing."""
import pytest

from core.config import get_settings
from services.entity_store import InMemoryEntityStore
from tests.factories import FakeSummarizer


@pytest.fixture(autouse=True)
def clear_settings_cache() -> None:
    """Make every test read settings from a clean cache."""
    get_settings.cache_clear()


@pytest.fixture
def store() -> InMemoryEntityStore:
    """Empty in-memory entity store."""
    return InMemoryEntityStore()


@pytest.fixture
def summarizer() -> FakeSummarizer:
    """Summarizer that always succeeds."""
    return FakeSummarizer()
