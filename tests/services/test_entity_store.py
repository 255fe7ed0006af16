"""Tests for the association index and the in-memory entity store."""
import asyncio

import pytest

from schemas.bookmark import BookmarkDraft, BookmarkFieldsUpdate, BookmarkFilters
from services.entity_store import Association, InMemoryEntityStore, new_id
from services.exceptions import NotFoundError
from tests.factories import (
    OTHER_USER_ID,
    USER_ID,
    make_category,
    make_collection,
    make_stored,
    make_tag,
)


def _draft(**fields: object) -> BookmarkDraft:
    data: dict = {"user_id": USER_ID, "url": "https://example.com/", "title": "Example"}
    data.update(fields)
    return BookmarkDraft(**data)


# =============================================================================
# Association
# =============================================================================


def test__association__replace_keeps_inverse_in_sync() -> None:
    links = Association()
    links.replace("b1", ["t1", "t2"])
    links.replace("b2", ["t2"])

    links.replace("b1", ["t3"])

    assert links.targets("b1") == frozenset({"t3"})
    assert links.sources("t1") == frozenset()
    assert links.sources("t2") == frozenset({"b2"})


def test__association__drop_target_unlinks_every_source() -> None:
    links = Association()
    links.replace("b1", ["t1", "t2"])
    links.replace("b2", ["t1"])

    affected = links.drop_target("t1")

    assert affected == frozenset({"b1", "b2"})
    assert links.targets("b1") == frozenset({"t2"})
    assert links.targets("b2") == frozenset()


def test__new_id__is_unique() -> None:
    ids = [new_id() for _ in range(50)]
    assert len(set(ids)) == 50


# =============================================================================
# Bookmarks
# =============================================================================


async def test__create_bookmark__assigns_id_and_timestamp(store: InMemoryEntityStore) -> None:
    stored = await store.create_bookmark(_draft(tag_ids=frozenset({"t1"})))

    assert stored.id
    assert stored.created_at.tzinfo is not None
    assert stored.tag_ids == frozenset({"t1"})
    assert await store.get_bookmark(stored.id) == stored


async def test__get_bookmark__missing(store: InMemoryEntityStore) -> None:
    with pytest.raises(NotFoundError, match="Bookmark 'nope' not found"):
        await store.get_bookmark("nope")


async def test__update_bookmark_fields__applies_only_set_fields(
    store: InMemoryEntityStore,
) -> None:
    stored = await store.create_bookmark(
        _draft(summary="old", tag_ids=frozenset({"t1"}), category_id="k1"),
    )

    updated = await store.update_bookmark_fields(
        stored.id, BookmarkFieldsUpdate(summary="new", category_id=None),
    )

    assert updated.summary == "new"
    assert updated.title == "Example"
    assert updated.tag_ids == frozenset({"t1"})
    assert updated.category_id is None
    assert updated.created_at == stored.created_at
    assert updated.url == stored.url


async def test__delete_bookmark__removes_links(store: InMemoryEntityStore) -> None:
    store.seed(make_tag("t1", "reading"))
    stored = await store.create_bookmark(_draft(tag_ids=frozenset({"t1"})))

    await store.delete_bookmark(stored.id)

    with pytest.raises(NotFoundError):
        await store.get_bookmark(stored.id)
    assert await store.list_bookmarks(USER_ID, BookmarkFilters(tag_id="t1")) == []
    with pytest.raises(NotFoundError):
        await store.delete_bookmark(stored.id)


async def test__list_bookmarks__scoped_and_newest_first(store: InMemoryEntityStore) -> None:
    store.seed(
        make_stored("b1", minutes=1),
        make_stored("b2", minutes=3),
        make_stored("b3", minutes=2),
        make_stored("b4", user_id=OTHER_USER_ID, minutes=4),
    )

    bookmarks = await store.list_bookmarks(USER_ID)

    assert [b.id for b in bookmarks] == ["b2", "b3", "b1"]


async def test__list_bookmarks__filters(store: InMemoryEntityStore) -> None:
    store.seed(
        make_stored("b1", tag_ids=("t1",), collection_ids=("c1",), minutes=1),
        make_stored("b2", tag_ids=("t1", "t2"), category_id="k1", is_fav=True, minutes=2),
        make_stored("b3", collection_ids=("c1",), category_id="k1", minutes=3),
    )

    async def ids(**filters: object) -> list[str]:
        return [b.id for b in await store.list_bookmarks(USER_ID, BookmarkFilters(**filters))]

    assert await ids(tag_id="t1") == ["b2", "b1"]
    assert await ids(collection_id="c1") == ["b3", "b1"]
    assert await ids(category_id="k1") == ["b3", "b2"]
    assert await ids(is_fav=True) == ["b2"]
    assert await ids(tag_id="t1", category_id="k1") == ["b2"]


# =============================================================================
# Entities
# =============================================================================


async def test__get_or_create_tags__reuses_existing(store: InMemoryEntityStore) -> None:
    store.seed(make_tag("t1", "python"), make_tag("t-other", "rust", user_id=OTHER_USER_ID))

    tags = await store.get_or_create_tags(USER_ID, ["python", "rust"])

    assert tags[0].id == "t1"
    assert tags[1].id != "t-other"
    assert tags[1].user_id == USER_ID


async def test__get_or_create_tags__concurrent_calls_create_once(
    store: InMemoryEntityStore,
) -> None:
    results = await asyncio.gather(
        *(store.get_or_create_tags(USER_ID, ["reading"]) for _ in range(5)),
    )

    assert len({tags[0].id for tags in results}) == 1
    assert len(await store.list_user_tags(USER_ID)) == 1


async def test__delete_tag__unlinks_from_bookmarks(store: InMemoryEntityStore) -> None:
    store.seed(
        make_tag("t1", "reading"),
        make_tag("t2", "python"),
        make_stored("b1", tag_ids=("t1", "t2")),
        make_stored("b2", tag_ids=("t1",)),
    )

    await store.delete_tag("t1")

    assert (await store.get_bookmark("b1")).tag_ids == frozenset({"t2"})
    assert (await store.get_bookmark("b2")).tag_ids == frozenset()
    assert (await store.list_tags(["t1"])) == {"t1": None}


async def test__delete_category__clears_bookmark_category(store: InMemoryEntityStore) -> None:
    store.seed(make_category("k1", "Tech"), make_stored("b1", category_id="k1"))

    await store.delete_category("k1")

    assert (await store.get_bookmark("b1")).category_id is None


async def test__delete_collection__unlinks_and_keeps_bookmark(
    store: InMemoryEntityStore,
) -> None:
    store.seed(make_collection("c1", "Later"), make_stored("b1", collection_ids=("c1",)))

    await store.delete_collection("c1")

    assert (await store.get_bookmark("b1")).collection_ids == frozenset()
    with pytest.raises(NotFoundError):
        await store.delete_collection("c1")


async def test__update_category__changes_only_given_fields(store: InMemoryEntityStore) -> None:
    store.seed(make_category("k1", "Tech", emoji="💻"))

    updated = await store.update_category("k1", {"emoji": None})

    assert updated.name == "Tech"
    assert updated.emoji is None


async def test__list_user_entities__sorted_by_name(store: InMemoryEntityStore) -> None:
    store.seed(
        make_collection("c1", "Zeta"),
        make_collection("c2", "Alpha"),
        make_collection("c3", "Other", user_id=OTHER_USER_ID),
    )

    collections = await store.list_user_collections(USER_ID)

    assert [c.name for c in collections] == ["Alpha", "Zeta"]
