"""Service layer for tags, collections and categories."""
import logging
from collections import Counter

from schemas.category import CategoryCount, CategoryEntity, CategoryUpdate
from schemas.collection import CollectionCount, CollectionEntity
from schemas.tag import TagCount, TagEntity
from schemas.validators import validate_and_normalize_tags
from services.entity_store import EntityStore
from services.exceptions import InvalidInputError, NotFoundError

logger = logging.getLogger(__name__)


async def get_or_create_tags(
    store: EntityStore,
    user_id: str,
    tag_names: list[str],
) -> list[TagEntity]:
    """
    Get existing tags or create new ones.

    Args:
        store: Entity store.
        user_id: User ID to scope tags.
        tag_names: List of tag names to get or create.

    Returns:
        List of tags (existing or newly created), in the order requested.

    Raises:
        InvalidInputError: If a tag name has an invalid format.
    """
    try:
        normalized = validate_and_normalize_tags(tag_names)
    except ValueError as e:
        raise InvalidInputError(str(e)) from None
    if not normalized:
        return []
    return await store.get_or_create_tags(user_id, normalized)


async def _bookmark_counts(store: EntityStore, user_id: str) -> tuple[Counter, Counter, Counter]:
    tag_counts: Counter = Counter()
    collection_counts: Counter = Counter()
    category_counts: Counter = Counter()
    for bookmark in await store.list_bookmarks(user_id):
        tag_counts.update(bookmark.tag_ids)
        collection_counts.update(bookmark.collection_ids)
        if bookmark.category_id:
            category_counts[bookmark.category_id] += 1
    return tag_counts, collection_counts, category_counts


async def get_user_tags_with_counts(store: EntityStore, user_id: str) -> list[TagCount]:
    """Get all tags for a user with bookmark counts, sorted by count desc then name."""
    tag_counts, _, _ = await _bookmark_counts(store, user_id)
    tags = [
        TagCount(id=tag.id, name=tag.name, count=tag_counts[tag.id])
        for tag in await store.list_user_tags(user_id)
    ]
    return sorted(tags, key=lambda t: (-t.count, t.name))


async def get_user_collections_with_counts(
    store: EntityStore, user_id: str,
) -> list[CollectionCount]:
    """Get all collections for a user with bookmark counts, sorted by name."""
    _, collection_counts, _ = await _bookmark_counts(store, user_id)
    return [
        CollectionCount(id=c.id, name=c.name, count=collection_counts[c.id])
        for c in await store.list_user_collections(user_id)
    ]


async def get_user_categories_with_counts(
    store: EntityStore, user_id: str,
) -> list[CategoryCount]:
    """Get all categories for a user with bookmark counts, sorted by name."""
    _, _, category_counts = await _bookmark_counts(store, user_id)
    return [
        CategoryCount(id=c.id, name=c.name, emoji=c.emoji, count=category_counts[c.id])
        for c in await store.list_user_categories(user_id)
    ]


async def _owned_tag(store: EntityStore, user_id: str, tag_id: str) -> TagEntity:
    tag = await store.resolve_tag(tag_id)
    if tag.user_id != user_id:
        raise NotFoundError("tag", tag_id)
    return tag


async def _owned_collection(
    store: EntityStore, user_id: str, collection_id: str,
) -> CollectionEntity:
    collection = await store.resolve_collection(collection_id)
    if collection.user_id != user_id:
        raise NotFoundError("collection", collection_id)
    return collection


async def _owned_category(store: EntityStore, user_id: str, category_id: str) -> CategoryEntity:
    category = await store.resolve_category(category_id)
    if category.user_id != user_id:
        raise NotFoundError("category", category_id)
    return category


async def delete_tag(store: EntityStore, user_id: str, tag_id: str) -> None:
    """Delete a tag and unlink it from every bookmark."""
    await _owned_tag(store, user_id, tag_id)
    await store.delete_tag(tag_id)
    logger.info("Deleted tag %s for user %s", tag_id, user_id)


async def create_collection(store: EntityStore, user_id: str, name: str) -> CollectionEntity:
    """Create a collection."""
    return await store.create_collection(user_id, name)


async def rename_collection(
    store: EntityStore, user_id: str, collection_id: str, name: str,
) -> CollectionEntity:
    """Rename a collection."""
    await _owned_collection(store, user_id, collection_id)
    return await store.update_collection(collection_id, name)


async def delete_collection(store: EntityStore, user_id: str, collection_id: str) -> None:
    """Delete a collection and unlink it from every bookmark."""
    await _owned_collection(store, user_id, collection_id)
    await store.delete_collection(collection_id)


async def create_category(
    store: EntityStore, user_id: str, name: str, emoji: str | None = None,
) -> CategoryEntity:
    """Create a category."""
    return await store.create_category(user_id, name, emoji)


async def update_category(
    store: EntityStore, user_id: str, category_id: str, data: CategoryUpdate,
) -> CategoryEntity:
    """
    Update a category's name and/or emoji.

    Raises:
        InvalidInputError: If no fields are provided.
        NotFoundError: If the category doesn't exist or belongs to another user.
    """
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise InvalidInputError("No fields to update")
    if "name" in changes and changes["name"] is None:
        raise InvalidInputError("Category name cannot be null")
    await _owned_category(store, user_id, category_id)
    return await store.update_category(category_id, changes)


async def delete_category(store: EntityStore, user_id: str, category_id: str) -> None:
    """Delete a category; bookmarks that used it are left uncategorized."""
    await _owned_category(store, user_id, category_id)
    await store.delete_category(category_id)
