"""
Entity store contract and in-memory reference implementation.

The store is the only state shared between requests. Every write is applied
atomically with respect to readers: a reader sees a bookmark (or a tag,
collection, category) either before or after a write, never half-way.

Relationships are not embedded in the bookmark. They are kept in association
indexes (bookmark -> targets and target -> bookmarks) so deleting a tag,
collection or category unlinks it from every bookmark without scanning them.
"""
import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from uuid6 import uuid7

from schemas.bookmark import BookmarkDraft, BookmarkFieldsUpdate, BookmarkFilters, StoredBookmark
from schemas.category import CategoryEntity
from schemas.collection import CollectionEntity
from schemas.tag import TagEntity
from services.exceptions import NotFoundError

logger = logging.getLogger(__name__)


def new_id() -> str:
    """Generate a time-ordered identifier that is never reused."""
    return str(uuid7())


class EntityResolver(Protocol):
    """
    Batch lookups used to hydrate a bookmark.

    Each call returns one entry per requested id; ``None`` marks an id that did
    not resolve.
    """

    async def list_tags(self, ids: Iterable[str]) -> dict[str, TagEntity | None]: ...

    async def list_collections(
        self, ids: Iterable[str],
    ) -> dict[str, CollectionEntity | None]: ...

    async def list_categories(self, ids: Iterable[str]) -> dict[str, CategoryEntity | None]: ...


class EntityStore(EntityResolver, Protocol):
    """Read/write access to bookmarks, tags, collections and categories."""

    async def create_bookmark(self, draft: BookmarkDraft) -> StoredBookmark: ...

    async def get_bookmark(self, bookmark_id: str) -> StoredBookmark: ...

    async def update_bookmark_fields(
        self, bookmark_id: str, update: BookmarkFieldsUpdate,
    ) -> StoredBookmark: ...

    async def delete_bookmark(self, bookmark_id: str) -> None: ...

    async def list_bookmarks(
        self, user_id: str, filters: BookmarkFilters | None = None,
    ) -> list[StoredBookmark]: ...

    async def resolve_tag(self, tag_id: str) -> TagEntity: ...

    async def resolve_collection(self, collection_id: str) -> CollectionEntity: ...

    async def resolve_category(self, category_id: str) -> CategoryEntity: ...

    async def get_or_create_tags(self, user_id: str, names: list[str]) -> list[TagEntity]: ...

    async def create_collection(self, user_id: str, name: str) -> CollectionEntity: ...

    async def create_category(
        self, user_id: str, name: str, emoji: str | None = None,
    ) -> CategoryEntity: ...

    async def update_collection(self, collection_id: str, name: str) -> CollectionEntity: ...

    async def update_category(self, category_id: str, changes: dict) -> CategoryEntity: ...

    async def delete_tag(self, tag_id: str) -> None: ...

    async def delete_collection(self, collection_id: str) -> None: ...

    async def delete_category(self, category_id: str) -> None: ...

    async def list_user_tags(self, user_id: str) -> list[TagEntity]: ...

    async def list_user_collections(self, user_id: str) -> list[CollectionEntity]: ...

    async def list_user_categories(self, user_id: str) -> list[CategoryEntity]: ...


class Association:
    """Many-to-many index between bookmarks and one kind of related entity."""

    def __init__(self) -> None:
        self._targets: dict[str, set[str]] = {}
        self._sources: dict[str, set[str]] = {}

    def targets(self, source_id: str) -> frozenset[str]:
        """Ids linked to a bookmark."""
        return frozenset(self._targets.get(source_id, ()))

    def sources(self, target_id: str) -> frozenset[str]:
        """Bookmark ids linked to a target."""
        return frozenset(self._sources.get(target_id, ()))

    def replace(self, source_id: str, target_ids: Iterable[str]) -> None:
        """Set a bookmark's links to exactly ``target_ids``."""
        self.drop_source(source_id)
        new_targets = set(target_ids)
        if new_targets:
            self._targets[source_id] = new_targets
        for target_id in new_targets:
            self._sources.setdefault(target_id, set()).add(source_id)

    def drop_source(self, source_id: str) -> None:
        """Remove every link of a bookmark."""
        for target_id in self._targets.pop(source_id, set()):
            linked = self._sources.get(target_id)
            if linked is not None:
                linked.discard(source_id)
                if not linked:
                    del self._sources[target_id]

    def drop_target(self, target_id: str) -> frozenset[str]:
        """Unlink a target from every bookmark, returning the affected bookmark ids."""
        affected = frozenset(self._sources.pop(target_id, set()))
        for source_id in affected:
            linked = self._targets.get(source_id)
            if linked is not None:
                linked.discard(target_id)
                if not linked:
                    del self._targets[source_id]
        return affected


@dataclass
class _BookmarkRow:
    """Scalar bookmark fields; relationships live in the association indexes."""

    id: str
    user_id: str
    url: str
    title: str
    summary: str
    is_fav: bool
    created_at: datetime


class InMemoryEntityStore:
    """
    Reference :class:`EntityStore` keeping everything in process memory.

    Mutations are serialized with an ``asyncio.Lock`` and applied without
    awaiting in between, so concurrent readers never observe partial writes.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._bookmarks: dict[str, _BookmarkRow] = {}
        self._tags: dict[str, TagEntity] = {}
        self._collections: dict[str, CollectionEntity] = {}
        self._categories: dict[str, CategoryEntity] = {}
        self._bookmark_tags = Association()
        self._bookmark_collections = Association()
        # At most one target per bookmark, enforced on write
        self._bookmark_category = Association()

    # ------------------------------------------------------------------
    # Seeding (tests and fixtures)
    # ------------------------------------------------------------------

    def seed(self, *items: TagEntity | CollectionEntity | CategoryEntity | StoredBookmark) -> None:
        """
        Insert entities with caller-chosen ids.

        Bookmark relationship ids are written as given, even when they do not
        resolve, so an inconsistent store can be reproduced.
        """
        for item in items:
            if isinstance(item, TagEntity):
                self._tags[item.id] = item
            elif isinstance(item, CollectionEntity):
                self._collections[item.id] = item
            elif isinstance(item, CategoryEntity):
                self._categories[item.id] = item
            else:
                self._bookmarks[item.id] = _BookmarkRow(
                    id=item.id,
                    user_id=item.user_id,
                    url=item.url,
                    title=item.title,
                    summary=item.summary,
                    is_fav=item.is_fav,
                    created_at=item.created_at,
                )
                self._bookmark_tags.replace(item.id, item.tag_ids)
                self._bookmark_collections.replace(item.id, item.collection_ids)
                self._bookmark_category.replace(
                    item.id, [item.category_id] if item.category_id else [],
                )

    def remove_tag_entity_only(self, tag_id: str) -> None:
        """Delete a tag without unlinking it, leaving dangling references behind."""
        self._tags.pop(tag_id, None)

    # ------------------------------------------------------------------
    # Bookmarks
    # ------------------------------------------------------------------

    def _snapshot(self, row: _BookmarkRow) -> StoredBookmark:
        category_ids = self._bookmark_category.targets(row.id)
        return StoredBookmark(
            id=row.id,
            user_id=row.user_id,
            url=row.url,
            title=row.title,
            summary=row.summary,
            tag_ids=self._bookmark_tags.targets(row.id),
            collection_ids=self._bookmark_collections.targets(row.id),
            category_id=min(category_ids) if category_ids else None,
            is_fav=row.is_fav,
            created_at=row.created_at,
        )

    async def create_bookmark(self, draft: BookmarkDraft) -> StoredBookmark:
        async with self._lock:
            row = _BookmarkRow(
                id=new_id(),
                user_id=draft.user_id,
                url=draft.url,
                title=draft.title,
                summary=draft.summary,
                is_fav=draft.is_fav,
                created_at=datetime.now(UTC),
            )
            self._bookmarks[row.id] = row
            self._bookmark_tags.replace(row.id, draft.tag_ids)
            self._bookmark_collections.replace(row.id, draft.collection_ids)
            self._bookmark_category.replace(
                row.id, [draft.category_id] if draft.category_id else [],
            )
            return self._snapshot(row)

    async def get_bookmark(self, bookmark_id: str) -> StoredBookmark:
        row = self._bookmarks.get(bookmark_id)
        if row is None:
            raise NotFoundError("bookmark", bookmark_id)
        return self._snapshot(row)

    async def update_bookmark_fields(
        self, bookmark_id: str, update: BookmarkFieldsUpdate,
    ) -> StoredBookmark:
        async with self._lock:
            row = self._bookmarks.get(bookmark_id)
            if row is None:
                raise NotFoundError("bookmark", bookmark_id)
            changes = update.changes()
            for field_name in ("title", "summary", "is_fav"):
                if changes.get(field_name) is not None:
                    setattr(row, field_name, changes[field_name])
            if changes.get("tag_ids") is not None:
                self._bookmark_tags.replace(bookmark_id, changes["tag_ids"])
            if changes.get("collection_ids") is not None:
                self._bookmark_collections.replace(bookmark_id, changes["collection_ids"])
            if "category_id" in changes:
                category_id = changes["category_id"]
                self._bookmark_category.replace(bookmark_id, [category_id] if category_id else [])
            return self._snapshot(row)

    async def delete_bookmark(self, bookmark_id: str) -> None:
        async with self._lock:
            if self._bookmarks.pop(bookmark_id, None) is None:
                raise NotFoundError("bookmark", bookmark_id)
            self._bookmark_tags.drop_source(bookmark_id)
            self._bookmark_collections.drop_source(bookmark_id)
            self._bookmark_category.drop_source(bookmark_id)

    async def list_bookmarks(
        self, user_id: str, filters: BookmarkFilters | None = None,
    ) -> list[StoredBookmark]:
        if filters is not None and filters.tag_id is not None:
            # Narrow through the inverse index instead of scanning every bookmark
            candidate_ids: Iterable[str] = self._bookmark_tags.sources(filters.tag_id)
        else:
            candidate_ids = list(self._bookmarks)
        snapshots = [
            self._snapshot(self._bookmarks[bookmark_id])
            for bookmark_id in candidate_ids
            if bookmark_id in self._bookmarks and self._bookmarks[bookmark_id].user_id == user_id
        ]
        if filters is not None:
            snapshots = [b for b in snapshots if filters.matches(b)]
        return sorted(snapshots, key=lambda b: (b.created_at, b.id), reverse=True)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def resolve_tag(self, tag_id: str) -> TagEntity:
        tag = self._tags.get(tag_id)
        if tag is None:
            raise NotFoundError("tag", tag_id)
        return tag

    async def resolve_collection(self, collection_id: str) -> CollectionEntity:
        collection = self._collections.get(collection_id)
        if collection is None:
            raise NotFoundError("collection", collection_id)
        return collection

    async def resolve_category(self, category_id: str) -> CategoryEntity:
        category = self._categories.get(category_id)
        if category is None:
            raise NotFoundError("category", category_id)
        return category

    async def list_tags(self, ids: Iterable[str]) -> dict[str, TagEntity | None]:
        return {tag_id: self._tags.get(tag_id) for tag_id in ids}

    async def list_collections(self, ids: Iterable[str]) -> dict[str, CollectionEntity | None]:
        return {collection_id: self._collections.get(collection_id) for collection_id in ids}

    async def list_categories(self, ids: Iterable[str]) -> dict[str, CategoryEntity | None]:
        return {category_id: self._categories.get(category_id) for category_id in ids}

    # ------------------------------------------------------------------
    # Tags, collections, categories
    # ------------------------------------------------------------------

    async def get_or_create_tags(self, user_id: str, names: list[str]) -> list[TagEntity]:
        async with self._lock:
            existing = {
                tag.name: tag for tag in self._tags.values() if tag.user_id == user_id
            }
            tags = []
            for name in names:
                tag = existing.get(name)
                if tag is None:
                    tag = TagEntity(id=new_id(), user_id=user_id, name=name)
                    self._tags[tag.id] = tag
                    existing[name] = tag
                tags.append(tag)
            return tags

    async def create_collection(self, user_id: str, name: str) -> CollectionEntity:
        async with self._lock:
            collection = CollectionEntity(id=new_id(), user_id=user_id, name=name)
            self._collections[collection.id] = collection
            return collection

    async def create_category(
        self, user_id: str, name: str, emoji: str | None = None,
    ) -> CategoryEntity:
        async with self._lock:
            category = CategoryEntity(id=new_id(), user_id=user_id, name=name, emoji=emoji)
            self._categories[category.id] = category
            return category

    async def update_collection(self, collection_id: str, name: str) -> CollectionEntity:
        async with self._lock:
            collection = self._collections.get(collection_id)
            if collection is None:
                raise NotFoundError("collection", collection_id)
            updated = collection.model_copy(update={"name": name})
            self._collections[collection_id] = updated
            return updated

    async def update_category(self, category_id: str, changes: dict) -> CategoryEntity:
        async with self._lock:
            category = self._categories.get(category_id)
            if category is None:
                raise NotFoundError("category", category_id)
            allowed = {k: v for k, v in changes.items() if k in ("name", "emoji")}
            updated = category.model_copy(update=allowed)
            self._categories[category_id] = updated
            return updated

    async def delete_tag(self, tag_id: str) -> None:
        async with self._lock:
            if self._tags.pop(tag_id, None) is None:
                raise NotFoundError("tag", tag_id)
            affected = self._bookmark_tags.drop_target(tag_id)
            logger.debug("Deleted tag %s, unlinked from %d bookmarks", tag_id, len(affected))

    async def delete_collection(self, collection_id: str) -> None:
        async with self._lock:
            if self._collections.pop(collection_id, None) is None:
                raise NotFoundError("collection", collection_id)
            self._bookmark_collections.drop_target(collection_id)

    async def delete_category(self, category_id: str) -> None:
        async with self._lock:
            if self._categories.pop(category_id, None) is None:
                raise NotFoundError("category", category_id)
            self._bookmark_category.drop_target(category_id)

    async def list_user_tags(self, user_id: str) -> list[TagEntity]:
        return sorted(
            (t for t in self._tags.values() if t.user_id == user_id), key=lambda t: t.name,
        )

    async def list_user_collections(self, user_id: str) -> list[CollectionEntity]:
        return sorted(
            (c for c in self._collections.values() if c.user_id == user_id),
            key=lambda c: c.name,
        )

    async def list_user_categories(self, user_id: str) -> list[CategoryEntity]:
        return sorted(
            (c for c in self._categories.values() if c.user_id == user_id),
            key=lambda c: c.name,
        )
