"""Tests for the add-bookmark ingestion flow."""
import asyncio
from unittest.mock import AsyncMock

import pytest

from schemas.bookmark import BookmarkDraft, BookmarkFieldsUpdate, StoredBookmark
from services.diagnostics import DiagnosticKind
from services.entity_store import InMemoryEntityStore
from services.exceptions import InvalidInputError, PersistenceFailedError
from services.ingestion import (
    BookmarkIngestionService,
    IngestionState,
    default_title,
    normalize_url,
)
from services.normalizer import DanglingReferencePolicy
from services.tag_inference import Suggestion
from tests.factories import (
    OTHER_USER_ID,
    USER_ID,
    FakeSummarizer,
    FakeTagInferrer,
    make_category,
    make_collection,
    make_tag,
)


# =============================================================================
# URL helpers
# =============================================================================


@pytest.mark.parametrize("url", [None, "", "   "])
def test__normalize_url__missing(url: str | None) -> None:
    with pytest.raises(InvalidInputError, match="URL is required"):
        normalize_url(url)


@pytest.mark.parametrize("url", ["not a url", "ftp://example.com/file", "/relative/path"])
def test__normalize_url__malformed(url: str) -> None:
    with pytest.raises(InvalidInputError, match="Invalid URL"):
        normalize_url(url)


def test__normalize_url__strips_whitespace() -> None:
    assert str(normalize_url("  https://example.com/a  ")) == "https://example.com/a"


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://example.com", "example.com"),
        ("https://example.com/", "example.com"),
        ("https://example.com/docs/intro", "example.com/docs/intro"),
    ],
)
def test__default_title__host_and_path(url: str, expected: str) -> None:
    assert default_title(normalize_url(url)) == expected


# =============================================================================
# Happy path
# =============================================================================


async def test__ingest__persists_and_hydrates(
    store: InMemoryEntityStore, summarizer: FakeSummarizer,
) -> None:
    service = BookmarkIngestionService(store, summarizer)

    result = await service.ingest(USER_ID, "https://example.com/post", "A post", "Bearer abc")

    assert result.state == IngestionState.DONE
    assert not result.degraded
    assert result.bookmark.summary == "A concise summary."
    assert result.bookmark.title == "A post"
    assert result.bookmark.user_id == USER_ID
    assert summarizer.calls == [("https://example.com/post", "A post", "Bearer abc")]
    stored = await store.list_bookmarks(USER_ID)
    assert [b.id for b in stored] == [result.bookmark.id]


async def test__ingest__derives_title_from_url(
    store: InMemoryEntityStore, summarizer: FakeSummarizer,
) -> None:
    service = BookmarkIngestionService(store, summarizer)

    result = await service.ingest(USER_ID, "https://example.com/docs/intro")

    assert result.bookmark.title == "example.com/docs/intro"
    # No title hint is forwarded when the caller gave none
    assert summarizer.calls[0][1] is None


async def test__ingest__blank_title_hint_is_not_forwarded(
    store: InMemoryEntityStore, summarizer: FakeSummarizer,
) -> None:
    service = BookmarkIngestionService(store, summarizer)

    result = await service.ingest(USER_ID, "https://example.com/docs", "   ")

    assert result.bookmark.title == "example.com/docs"
    assert summarizer.calls[0][1] is None


async def test__ingest__title_hint_is_trimmed_for_summarizer(
    store: InMemoryEntityStore, summarizer: FakeSummarizer,
) -> None:
    service = BookmarkIngestionService(store, summarizer)

    await service.ingest(USER_ID, "https://example.com/docs", "  Docs  ")

    assert summarizer.calls[0][1] == "Docs"


async def test__ingest__same_url_twice_creates_two_bookmarks(
    store: InMemoryEntityStore, summarizer: FakeSummarizer,
) -> None:
    service = BookmarkIngestionService(store, summarizer)

    first = await service.ingest(USER_ID, "https://example.com/")
    second = await service.ingest(USER_ID, "https://example.com/")

    assert first.bookmark.id != second.bookmark.id
    assert len(await store.list_bookmarks(USER_ID)) == 2


# =============================================================================
# Failures
# =============================================================================


async def test__ingest__malformed_url_writes_nothing(
    store: InMemoryEntityStore, summarizer: FakeSummarizer,
) -> None:
    store.create_bookmark = AsyncMock(wraps=store.create_bookmark)
    service = BookmarkIngestionService(store, summarizer)

    with pytest.raises(InvalidInputError):
        await service.ingest(USER_ID, "not a url")

    assert store.create_bookmark.await_count == 0
    assert summarizer.calls == []
    assert await store.list_bookmarks(USER_ID) == []


async def test__ingest__overlong_title_is_invalid_input(
    store: InMemoryEntityStore, summarizer: FakeSummarizer,
) -> None:
    service = BookmarkIngestionService(store, summarizer)

    with pytest.raises(InvalidInputError, match="Title exceeds"):
        await service.ingest(USER_ID, "https://example.com/", "x" * 501)

    assert await store.list_bookmarks(USER_ID) == []


async def test__ingest__summarizer_failure_saves_without_summary(
    store: InMemoryEntityStore,
) -> None:
    service = BookmarkIngestionService(store, FakeSummarizer(fail_status=503))

    result = await service.ingest(USER_ID, "https://example.com/post")

    assert result.state == IngestionState.DONE
    assert result.bookmark.summary == ""
    assert [d.kind for d in result.diagnostics] == [DiagnosticKind.SUMMARIZATION_FAILED]
    assert result.diagnostics[0].detail == {"status_code": 503}
    stored = await store.list_bookmarks(USER_ID)
    assert len(stored) == 1
    assert stored[0].id == result.bookmark.id


async def test__ingest__store_failure_leaves_no_record(
    store: InMemoryEntityStore, summarizer: FakeSummarizer,
) -> None:
    store.create_bookmark = AsyncMock(side_effect=PersistenceFailedError("disk full"))
    service = BookmarkIngestionService(store, summarizer)

    with pytest.raises(PersistenceFailedError):
        await service.ingest(USER_ID, "https://example.com/post")

    assert await store.list_bookmarks(USER_ID) == []


async def test__ingest__cancelled_during_persist_still_commits(
    store: InMemoryEntityStore, summarizer: FakeSummarizer,
) -> None:
    original_create = store.create_bookmark
    started = asyncio.Event()
    release = asyncio.Event()
    finished = asyncio.Event()

    async def slow_create(draft: BookmarkDraft) -> StoredBookmark:
        started.set()
        await release.wait()
        stored = await original_create(draft)
        finished.set()
        return stored

    store.create_bookmark = slow_create
    service = BookmarkIngestionService(store, summarizer)

    task = asyncio.create_task(service.ingest(USER_ID, "https://example.com/post"))
    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    release.set()
    await asyncio.wait_for(finished.wait(), timeout=5)

    stored = await store.list_bookmarks(USER_ID)
    assert len(stored) == 1
    assert stored[0].url == "https://example.com/post"


# =============================================================================
# Tag inference
# =============================================================================


async def test__ingest__applies_suggestions(
    store: InMemoryEntityStore, summarizer: FakeSummarizer,
) -> None:
    store.seed(
        make_tag("t-existing", "python"),
        make_collection("c1", "Read Later"),
        make_category("k1", "Tech", emoji="💻"),
        make_category("k-other", "Tech", user_id=OTHER_USER_ID),
    )
    inferrer = FakeTagInferrer(
        Suggestion(
            tags=["Python", "Machine Learning", "!!!"],
            collection="read later",
            category="TECH",
        ),
    )
    service = BookmarkIngestionService(store, summarizer, inferrer)

    result = await service.ingest(USER_ID, "https://example.com/ml")

    assert sorted(t.name for t in result.bookmark.tags) == ["machine-learning", "python"]
    assert "t-existing" in {t.id for t in result.bookmark.tags}
    assert [c.id for c in result.bookmark.collections] == ["c1"]
    assert [c.id for c in result.bookmark.categories] == ["k1"]
    assert result.diagnostics == []


async def test__ingest__unmatched_collection_is_not_created(
    store: InMemoryEntityStore, summarizer: FakeSummarizer,
) -> None:
    inferrer = FakeTagInferrer(Suggestion(collection="Nowhere", category="Nothing"))
    service = BookmarkIngestionService(store, summarizer, inferrer)

    result = await service.ingest(USER_ID, "https://example.com/")

    assert result.bookmark.collections == []
    assert result.bookmark.categories == []
    assert await store.list_user_collections(USER_ID) == []


async def test__ingest__tag_inference_failure_is_diagnostic(
    store: InMemoryEntityStore, summarizer: FakeSummarizer,
) -> None:
    service = BookmarkIngestionService(store, summarizer, FakeTagInferrer(fail=True))

    result = await service.ingest(USER_ID, "https://example.com/")

    assert result.state == IngestionState.DONE
    assert [d.kind for d in result.diagnostics] == [DiagnosticKind.TAG_INFERENCE_FAILED]
    assert result.bookmark.summary == "A concise summary."
    assert len(await store.list_bookmarks(USER_ID)) == 1


# =============================================================================
# Hydration
# =============================================================================


async def test__ingest__strict_hydration_failure_degrades(
    store: InMemoryEntityStore, summarizer: FakeSummarizer,
) -> None:
    inferrer = FakeTagInferrer(Suggestion(tags=["reading"]))
    service = BookmarkIngestionService(
        store, summarizer, inferrer, policy=DanglingReferencePolicy.STRICT,
    )
    original_update = store.update_bookmark_fields

    async def update_then_lose_tags(
        bookmark_id: str, update: BookmarkFieldsUpdate,
    ) -> StoredBookmark:
        updated = await original_update(bookmark_id, update)
        for tag_id in updated.tag_ids:
            store.remove_tag_entity_only(tag_id)
        return updated

    store.update_bookmark_fields = update_then_lose_tags

    result = await service.ingest(USER_ID, "https://example.com/")

    assert result.state == IngestionState.DONE
    kinds = [d.kind for d in result.diagnostics]
    assert kinds == [DiagnosticKind.HYDRATION_DEGRADED, DiagnosticKind.DANGLING_REFERENCE]
    assert result.bookmark.tags == []
    assert len(await store.list_bookmarks(USER_ID)) == 1
