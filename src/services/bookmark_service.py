"""Service layer for reading and updating stored bookmarks."""
import logging
from collections.abc import Iterable

from schemas.bookmark import (
    BookmarkDirectCreate,
    BookmarkDraft,
    BookmarkFieldsUpdate,
    BookmarkFilters,
    StoredBookmark,
)
from services.diagnostics import Diagnostic, DiagnosticKind
from services.entity_store import EntityStore
from services.exceptions import InvalidInputError, NotFoundError, UpstreamUnavailableError
from services.ingestion import default_title, normalize_url
from services.normalizer import (
    DanglingReferencePolicy,
    HydrationResult,
    hydrate_bookmark,
    hydrate_many,
)
from services.summarizer import Summarizer

logger = logging.getLogger(__name__)


async def get_owned_bookmark(
    store: EntityStore,
    user_id: str,
    bookmark_id: str,
) -> StoredBookmark:
    """
    Get a stored bookmark, scoped to user.

    Raises:
        NotFoundError: If the bookmark doesn't exist or belongs to another user.
    """
    bookmark = await store.get_bookmark(bookmark_id)
    if bookmark.user_id != user_id:
        raise NotFoundError("bookmark", bookmark_id)
    return bookmark


async def _check_references(
    store: EntityStore,
    user_id: str,
    tag_ids: Iterable[str] | None = None,
    collection_ids: Iterable[str] | None = None,
    category_id: str | None = None,
) -> None:
    """
    Ensure every referenced entity exists and belongs to the user.

    Raises:
        NotFoundError: For the first missing or foreign id.
    """
    checks = []
    if tag_ids:
        checks.append(("tag", await store.list_tags(sorted(set(tag_ids)))))
    if collection_ids:
        checks.append(("collection", await store.list_collections(sorted(set(collection_ids)))))
    if category_id:
        checks.append(("category", await store.list_categories([category_id])))
    for kind, found in checks:
        for entity_id, entity in found.items():
            if entity is None or entity.user_id != user_id:
                raise NotFoundError(kind, entity_id)


async def get_bookmark(
    store: EntityStore,
    user_id: str,
    bookmark_id: str,
    policy: DanglingReferencePolicy = DanglingReferencePolicy.DROP,
) -> HydrationResult:
    """Get a hydrated bookmark by id."""
    stored = await get_owned_bookmark(store, user_id, bookmark_id)
    return await hydrate_bookmark(stored, store, policy)


async def list_bookmarks(
    store: EntityStore,
    user_id: str,
    filters: BookmarkFilters | None = None,
    policy: DanglingReferencePolicy = DanglingReferencePolicy.DROP,
) -> list[HydrationResult]:
    """
    List a user's bookmarks, newest first.

    Args:
        store: Entity store.
        user_id: User ID to scope bookmarks.
        filters: Optional exact-match filters (tag, collection, category, favorite).
        policy: Dangling-reference policy for hydration.

    Returns:
        Hydrated bookmarks; relationships are resolved with one batch call per kind
        for the whole page.
    """
    stored = await store.list_bookmarks(user_id, filters)
    return await hydrate_many(stored, store, policy)


async def create_bookmark_direct(
    store: EntityStore,
    user_id: str,
    data: BookmarkDirectCreate,
    policy: DanglingReferencePolicy = DanglingReferencePolicy.DROP,
) -> HydrationResult:
    """
    Save a fully specified bookmark without summarization.

    Used when the caller already has a summary and relationships, e.g. when
    accepting an AI suggestion.

    Raises:
        NotFoundError: If a referenced tag, collection or category doesn't exist
            or belongs to another user.
    """
    parsed_url = normalize_url(str(data.url))
    await _check_references(
        store, user_id, data.tag_ids, data.collection_ids, data.category_id,
    )
    draft = BookmarkDraft(
        user_id=user_id,
        url=str(parsed_url),
        title=(data.title or "").strip() or default_title(parsed_url),
        summary=data.summary,
        tag_ids=frozenset(data.tag_ids),
        collection_ids=frozenset(data.collection_ids),
        category_id=data.category_id,
        is_fav=data.is_fav,
    )
    stored = await store.create_bookmark(draft)
    return await hydrate_bookmark(stored, store, policy)


async def update_bookmark(
    store: EntityStore,
    user_id: str,
    bookmark_id: str,
    update: BookmarkFieldsUpdate,
    policy: DanglingReferencePolicy = DanglingReferencePolicy.DROP,
) -> HydrationResult:
    """
    Apply a partial update to a bookmark's mutable fields.

    Raises:
        NotFoundError: If the bookmark or a newly referenced entity is missing.
        InvalidInputError: If the update is empty.
    """
    changes = update.changes()
    if not changes:
        raise InvalidInputError("No fields to update")
    await get_owned_bookmark(store, user_id, bookmark_id)
    await _check_references(
        store,
        user_id,
        changes.get("tag_ids"),
        changes.get("collection_ids"),
        changes.get("category_id"),
    )
    stored = await store.update_bookmark_fields(bookmark_id, update)
    return await hydrate_bookmark(stored, store, policy)


async def toggle_favorite(
    store: EntityStore,
    user_id: str,
    bookmark_id: str,
    policy: DanglingReferencePolicy = DanglingReferencePolicy.DROP,
) -> HydrationResult:
    """Flip a bookmark's favorite flag."""
    current = await get_owned_bookmark(store, user_id, bookmark_id)
    stored = await store.update_bookmark_fields(
        bookmark_id, BookmarkFieldsUpdate(is_fav=not current.is_fav),
    )
    return await hydrate_bookmark(stored, store, policy)


async def replace_summary(
    store: EntityStore,
    user_id: str,
    bookmark_id: str,
    summary: str,
    policy: DanglingReferencePolicy = DanglingReferencePolicy.DROP,
) -> HydrationResult:
    """Replace a bookmark's summary."""
    await get_owned_bookmark(store, user_id, bookmark_id)
    stored = await store.update_bookmark_fields(
        bookmark_id, BookmarkFieldsUpdate(summary=summary),
    )
    return await hydrate_bookmark(stored, store, policy)


async def resummarize_bookmark(
    store: EntityStore,
    summarizer: Summarizer,
    user_id: str,
    bookmark_id: str,
    authorization: str | None = None,
    policy: DanglingReferencePolicy = DanglingReferencePolicy.DROP,
) -> HydrationResult:
    """
    Re-run summarization for a stored bookmark.

    A summarization failure keeps the existing summary and is reported as a
    diagnostic on the result.
    """
    stored = await get_owned_bookmark(store, user_id, bookmark_id)
    try:
        summary = await summarizer.summarize(stored.url, stored.title, authorization)
    except UpstreamUnavailableError as e:
        logger.warning("Re-summarization failed for bookmark %s: %s", bookmark_id, e)
        result = await hydrate_bookmark(stored, store, policy)
        failure = Diagnostic(
            kind=DiagnosticKind.SUMMARIZATION_FAILED,
            message=e.message,
            detail={"status_code": e.status_code},
        )
        return HydrationResult(result.bookmark, [failure, *result.diagnostics])

    return await replace_summary(store, user_id, bookmark_id, summary, policy)


async def delete_bookmark(
    store: EntityStore,
    user_id: str,
    bookmark_id: str,
) -> None:
    """
    Permanently delete a bookmark and its relationship links.

    Raises:
        NotFoundError: If the bookmark doesn't exist or belongs to another user.
    """
    await get_owned_bookmark(store, user_id, bookmark_id)
    await store.delete_bookmark(bookmark_id)
