"""Entity store backed by PostgreSQL through SQLAlchemy async sessions."""
import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager

import asyncpg
from sqlalchemy import delete, exists, func, insert, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models.bookmark import Bookmark
from models.category import Category
from models.collection import Collection, bookmark_collections
from models.tag import Tag, bookmark_tags
from schemas.bookmark import BookmarkDraft, BookmarkFieldsUpdate, BookmarkFilters, StoredBookmark
from schemas.category import CategoryEntity
from schemas.collection import CollectionEntity
from schemas.tag import TagEntity
from services.entity_store import new_id
from services.exceptions import NotFoundError, PersistenceFailedError

logger = logging.getLogger(__name__)


class SqlEntityStore:
    """
    :class:`EntityStore` over SQLAlchemy.

    Each operation runs in its own transaction, so a write is visible to other
    sessions either entirely (after commit) or not at all. Database errors are
    raised as ``PersistenceFailedError``.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session, session.begin():
                yield session
        # asyncpg connect failures are not wrapped by SQLAlchemy
        except (SQLAlchemyError, asyncpg.PostgresError, OSError) as e:
            logger.exception("Entity store operation failed")
            raise PersistenceFailedError("Entity store operation failed") from e

    # ------------------------------------------------------------------
    # Bookmarks
    # ------------------------------------------------------------------

    @staticmethod
    async def _relationship_ids(
        session: AsyncSession, bookmark_ids: list[str],
    ) -> tuple[dict[str, set[str]], dict[str, set[str]]]:
        tag_ids: dict[str, set[str]] = {}
        collection_ids: dict[str, set[str]] = {}
        if not bookmark_ids:
            return tag_ids, collection_ids
        tag_rows = await session.execute(
            select(bookmark_tags.c.bookmark_id, bookmark_tags.c.tag_id).where(
                bookmark_tags.c.bookmark_id.in_(bookmark_ids),
            ),
        )
        for bookmark_id, tag_id in tag_rows:
            tag_ids.setdefault(bookmark_id, set()).add(tag_id)
        collection_rows = await session.execute(
            select(
                bookmark_collections.c.bookmark_id, bookmark_collections.c.collection_id,
            ).where(bookmark_collections.c.bookmark_id.in_(bookmark_ids)),
        )
        for bookmark_id, collection_id in collection_rows:
            collection_ids.setdefault(bookmark_id, set()).add(collection_id)
        return tag_ids, collection_ids

    @staticmethod
    def _to_stored(
        bookmark: Bookmark, tag_ids: Iterable[str], collection_ids: Iterable[str],
    ) -> StoredBookmark:
        return StoredBookmark(
            id=bookmark.id,
            user_id=bookmark.user_id,
            url=bookmark.url,
            title=bookmark.title,
            summary=bookmark.summary,
            tag_ids=frozenset(tag_ids),
            collection_ids=frozenset(collection_ids),
            category_id=bookmark.category_id,
            is_fav=bookmark.is_fav,
            created_at=bookmark.created_at,
        )

    @staticmethod
    async def _link(
        session: AsyncSession,
        bookmark_id: str,
        tag_ids: Iterable[str] | None = None,
        collection_ids: Iterable[str] | None = None,
    ) -> None:
        if tag_ids is not None:
            await session.execute(
                delete(bookmark_tags).where(bookmark_tags.c.bookmark_id == bookmark_id),
            )
            rows = [{"bookmark_id": bookmark_id, "tag_id": t} for t in set(tag_ids)]
            if rows:
                await session.execute(insert(bookmark_tags), rows)
        if collection_ids is not None:
            await session.execute(
                delete(bookmark_collections).where(
                    bookmark_collections.c.bookmark_id == bookmark_id,
                ),
            )
            rows = [
                {"bookmark_id": bookmark_id, "collection_id": c} for c in set(collection_ids)
            ]
            if rows:
                await session.execute(insert(bookmark_collections), rows)

    async def _snapshot(self, session: AsyncSession, bookmark: Bookmark) -> StoredBookmark:
        tag_ids, collection_ids = await self._relationship_ids(session, [bookmark.id])
        return self._to_stored(
            bookmark, tag_ids.get(bookmark.id, ()), collection_ids.get(bookmark.id, ()),
        )

    async def create_bookmark(self, draft: BookmarkDraft) -> StoredBookmark:
        async with self._transaction() as session:
            bookmark = Bookmark(
                user_id=draft.user_id,
                url=draft.url,
                title=draft.title,
                summary=draft.summary,
                is_fav=draft.is_fav,
                category_id=draft.category_id,
            )
            session.add(bookmark)
            await session.flush()
            await self._link(session, bookmark.id, draft.tag_ids, draft.collection_ids)
            await session.refresh(bookmark)
            return self._to_stored(bookmark, draft.tag_ids, draft.collection_ids)

    async def get_bookmark(self, bookmark_id: str) -> StoredBookmark:
        async with self._transaction() as session:
            bookmark = await session.get(Bookmark, bookmark_id)
            if bookmark is None:
                raise NotFoundError("bookmark", bookmark_id)
            return await self._snapshot(session, bookmark)

    async def update_bookmark_fields(
        self, bookmark_id: str, update: BookmarkFieldsUpdate,
    ) -> StoredBookmark:
        async with self._transaction() as session:
            bookmark = await session.get(Bookmark, bookmark_id, with_for_update=True)
            if bookmark is None:
                raise NotFoundError("bookmark", bookmark_id)
            changes = update.changes()
            for field_name in ("title", "summary", "is_fav"):
                if changes.get(field_name) is not None:
                    setattr(bookmark, field_name, changes[field_name])
            if "category_id" in changes:
                bookmark.category_id = changes["category_id"]
            await self._link(
                session, bookmark_id, changes.get("tag_ids"), changes.get("collection_ids"),
            )
            bookmark.updated_at = func.clock_timestamp()
            await session.flush()
            await session.refresh(bookmark)
            return await self._snapshot(session, bookmark)

    async def delete_bookmark(self, bookmark_id: str) -> None:
        async with self._transaction() as session:
            # Junction rows go with the bookmark (ON DELETE CASCADE)
            result = await session.execute(delete(Bookmark).where(Bookmark.id == bookmark_id))
            if result.rowcount == 0:
                raise NotFoundError("bookmark", bookmark_id)

    async def list_bookmarks(
        self, user_id: str, filters: BookmarkFilters | None = None,
    ) -> list[StoredBookmark]:
        query = select(Bookmark).where(Bookmark.user_id == user_id)
        if filters is not None:
            if filters.tag_id is not None:
                query = query.where(
                    exists(
                        select(bookmark_tags.c.bookmark_id).where(
                            bookmark_tags.c.bookmark_id == Bookmark.id,
                            bookmark_tags.c.tag_id == filters.tag_id,
                        ),
                    ),
                )
            if filters.collection_id is not None:
                query = query.where(
                    exists(
                        select(bookmark_collections.c.bookmark_id).where(
                            bookmark_collections.c.bookmark_id == Bookmark.id,
                            bookmark_collections.c.collection_id == filters.collection_id,
                        ),
                    ),
                )
            if filters.category_id is not None:
                query = query.where(Bookmark.category_id == filters.category_id)
            if filters.is_fav is not None:
                query = query.where(Bookmark.is_fav.is_(filters.is_fav))
        query = query.order_by(Bookmark.created_at.desc(), Bookmark.id.desc())

        async with self._transaction() as session:
            bookmarks = list((await session.execute(query)).scalars().all())
            tag_ids, collection_ids = await self._relationship_ids(
                session, [b.id for b in bookmarks],
            )
            return [
                self._to_stored(b, tag_ids.get(b.id, ()), collection_ids.get(b.id, ()))
                for b in bookmarks
            ]

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def resolve_tag(self, tag_id: str) -> TagEntity:
        async with self._transaction() as session:
            tag = await session.get(Tag, tag_id)
            if tag is None:
                raise NotFoundError("tag", tag_id)
            return TagEntity.model_validate(tag)

    async def resolve_collection(self, collection_id: str) -> CollectionEntity:
        async with self._transaction() as session:
            collection = await session.get(Collection, collection_id)
            if collection is None:
                raise NotFoundError("collection", collection_id)
            return CollectionEntity.model_validate(collection)

    async def resolve_category(self, category_id: str) -> CategoryEntity:
        async with self._transaction() as session:
            category = await session.get(Category, category_id)
            if category is None:
                raise NotFoundError("category", category_id)
            return CategoryEntity.model_validate(category)

    async def list_tags(self, ids: Iterable[str]) -> dict[str, TagEntity | None]:
        wanted = list(ids)
        found: dict[str, TagEntity | None] = dict.fromkeys(wanted)
        if wanted:
            async with self._transaction() as session:
                result = await session.execute(select(Tag).where(Tag.id.in_(wanted)))
                for tag in result.scalars():
                    found[tag.id] = TagEntity.model_validate(tag)
        return found

    async def list_collections(self, ids: Iterable[str]) -> dict[str, CollectionEntity | None]:
        wanted = list(ids)
        found: dict[str, CollectionEntity | None] = dict.fromkeys(wanted)
        if wanted:
            async with self._transaction() as session:
                result = await session.execute(
                    select(Collection).where(Collection.id.in_(wanted)),
                )
                for collection in result.scalars():
                    found[collection.id] = CollectionEntity.model_validate(collection)
        return found

    async def list_categories(self, ids: Iterable[str]) -> dict[str, CategoryEntity | None]:
        wanted = list(ids)
        found: dict[str, CategoryEntity | None] = dict.fromkeys(wanted)
        if wanted:
            async with self._transaction() as session:
                result = await session.execute(select(Category).where(Category.id.in_(wanted)))
                for category in result.scalars():
                    found[category.id] = CategoryEntity.model_validate(category)
        return found

    # ------------------------------------------------------------------
    # Tags, collections, categories
    # ------------------------------------------------------------------

    async def get_or_create_tags(self, user_id: str, names: list[str]) -> list[TagEntity]:
        if not names:
            return []
        async with self._transaction() as session:
            # Concurrent requests may create the same tag; the unique constraint decides
            await session.execute(
                pg_insert(Tag)
                .values([{"id": new_id(), "user_id": user_id, "name": n} for n in names])
                .on_conflict_do_nothing(constraint="uq_tags_user_id_name"),
            )
            result = await session.execute(
                select(Tag).where(Tag.user_id == user_id, Tag.name.in_(names)),
            )
            by_name = {tag.name: TagEntity.model_validate(tag) for tag in result.scalars()}
            return [by_name[name] for name in names]

    async def create_collection(self, user_id: str, name: str) -> CollectionEntity:
        async with self._transaction() as session:
            collection = Collection(user_id=user_id, name=name)
            session.add(collection)
            await session.flush()
            return CollectionEntity.model_validate(collection)

    async def create_category(
        self, user_id: str, name: str, emoji: str | None = None,
    ) -> CategoryEntity:
        async with self._transaction() as session:
            category = Category(user_id=user_id, name=name, emoji=emoji)
            session.add(category)
            await session.flush()
            return CategoryEntity.model_validate(category)

    async def update_collection(self, collection_id: str, name: str) -> CollectionEntity:
        async with self._transaction() as session:
            collection = await session.get(Collection, collection_id, with_for_update=True)
            if collection is None:
                raise NotFoundError("collection", collection_id)
            collection.name = name
            collection.updated_at = func.clock_timestamp()
            await session.flush()
            await session.refresh(collection)
            return CollectionEntity.model_validate(collection)

    async def update_category(self, category_id: str, changes: dict) -> CategoryEntity:
        async with self._transaction() as session:
            category = await session.get(Category, category_id, with_for_update=True)
            if category is None:
                raise NotFoundError("category", category_id)
            if "name" in changes:
                category.name = changes["name"]
            if "emoji" in changes:
                category.emoji = changes["emoji"]
            category.updated_at = func.clock_timestamp()
            await session.flush()
            await session.refresh(category)
            return CategoryEntity.model_validate(category)

    async def _delete(self, model: type, kind: str, entity_id: str) -> None:
        async with self._transaction() as session:
            result = await session.execute(delete(model).where(model.id == entity_id))
            if result.rowcount == 0:
                raise NotFoundError(kind, entity_id)

    async def delete_tag(self, tag_id: str) -> None:
        await self._delete(Tag, "tag", tag_id)

    async def delete_collection(self, collection_id: str) -> None:
        await self._delete(Collection, "collection", collection_id)

    async def delete_category(self, category_id: str) -> None:
        # bookmarks.category_id is cleared by ON DELETE SET NULL
        await self._delete(Category, "category", category_id)

    async def list_user_tags(self, user_id: str) -> list[TagEntity]:
        async with self._transaction() as session:
            result = await session.execute(
                select(Tag).where(Tag.user_id == user_id).order_by(Tag.name),
            )
            return [TagEntity.model_validate(t) for t in result.scalars()]

    async def list_user_collections(self, user_id: str) -> list[CollectionEntity]:
        async with self._transaction() as session:
            result = await session.execute(
                select(Collection).where(Collection.user_id == user_id).order_by(Collection.name),
            )
            return [CollectionEntity.model_validate(c) for c in result.scalars()]

    async def list_user_categories(self, user_id: str) -> list[CategoryEntity]:
        async with self._transaction() as session:
            result = await session.execute(
                select(Category).where(Category.user_id == user_id).order_by(Category.name),
            )
            return [CategoryEntity.model_validate(c) for c in result.scalars()]
