"""Builders and fakes shared across test modules."""
from datetime import UTC, datetime, timedelta

from schemas.bookmark import StoredBookmark
from schemas.category import CategoryEntity
from schemas.collection import CollectionEntity
from schemas.tag import TagEntity
from services.exceptions import UpstreamUnavailableError
from services.tag_inference import Suggestion

USER_ID = "user-1"
OTHER_USER_ID = "user-2"
FAKE_ID = "00000000-0000-0000-0000-000000000000"

BASE_TIME = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)


def make_tag(tag_id: str, name: str, user_id: str = USER_ID) -> TagEntity:
    """Build a tag entity."""
    return TagEntity(id=tag_id, name=name, user_id=user_id)


def make_collection(collection_id: str, name: str, user_id: str = USER_ID) -> CollectionEntity:
    """Build a collection entity."""
    return CollectionEntity(id=collection_id, name=name, user_id=user_id)


def make_category(
    category_id: str, name: str, emoji: str | None = None, user_id: str = USER_ID,
) -> CategoryEntity:
    """Build a category entity."""
    return CategoryEntity(id=category_id, name=name, emoji=emoji, user_id=user_id)


def make_stored(
    bookmark_id: str = "b1",
    tag_ids: tuple[str, ...] = (),
    collection_ids: tuple[str, ...] = (),
    category_id: str | None = None,
    user_id: str = USER_ID,
    minutes: int = 0,
    **fields: object,
) -> StoredBookmark:
    """Build a stored bookmark; ``minutes`` offsets created_at from a fixed base."""
    data: dict = {
        "id": bookmark_id,
        "user_id": user_id,
        "url": "https://example.com/article",
        "title": "Example article",
        "summary": "An example.",
        "tag_ids": frozenset(tag_ids),
        "collection_ids": frozenset(collection_ids),
        "category_id": category_id,
        "created_at": BASE_TIME + timedelta(minutes=minutes),
    }
    data.update(fields)
    return StoredBookmark(**data)


class FakeSummarizer:
    """Summarizer returning a fixed summary, or failing every call."""

    def __init__(self, summary: str = "A concise summary.", fail_status: int | None = None):
        self.summary = summary
        self.fail_status = fail_status
        self.calls: list[tuple[str, str | None, str | None]] = []

    async def summarize(
        self, url: str, title: str | None = None, authorization: str | None = None,
    ) -> str:
        self.calls.append((url, title, authorization))
        if self.fail_status is not None:
            raise UpstreamUnavailableError("summarizer", status_code=self.fail_status)
        return self.summary


class FakeTagInferrer:
    """Tag inferrer returning a fixed suggestion, or failing every call."""

    def __init__(self, suggestion: Suggestion | None = None, fail: bool = False):
        self.suggestion = suggestion or Suggestion()
        self.fail = fail
        self.calls: list[str] = []

    async def suggest(
        self, url: str, title: str, summary: str, authorization: str | None = None,
    ) -> Suggestion:
        self.calls.append(url)
        if self.fail:
            raise UpstreamUnavailableError("tag-inference", reason="timed out")
        return self.suggestion
