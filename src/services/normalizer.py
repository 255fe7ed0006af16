"""
Hydration of stored bookmarks into UI view models.

``hydrate`` is a pure function of a stored bookmark and the entities resolved
for it. ``hydrate_bookmark`` performs the lookups first: one batch call per
relationship kind, however many ids the bookmark carries.
"""
import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TypeVar

from pydantic import BaseModel

from schemas.bookmark import HydratedBookmark, StoredBookmark
from schemas.category import CategoryEntity
from schemas.collection import CollectionEntity
from schemas.tag import TagEntity
from services.diagnostics import Diagnostic, DiagnosticKind
from services.entity_store import EntityResolver
from services.exceptions import DanglingReferenceError

logger = logging.getLogger(__name__)

EntityT = TypeVar("EntityT", bound=BaseModel)


class DanglingReferencePolicy(StrEnum):
    """What hydration does with a relationship id that does not resolve."""

    DROP = "drop"  # omit the entity and record a diagnostic
    STRICT = "strict"  # fail the whole hydration


@dataclass(frozen=True)
class ResolvedEntities:
    """Batch lookup results for one bookmark; ``None`` marks an unresolved id."""

    tags: dict[str, TagEntity | None] = field(default_factory=dict)
    collections: dict[str, CollectionEntity | None] = field(default_factory=dict)
    categories: dict[str, CategoryEntity | None] = field(default_factory=dict)


@dataclass(frozen=True)
class HydrationResult:
    """A hydrated bookmark plus any dangling-reference diagnostics."""

    bookmark: HydratedBookmark
    diagnostics: list[Diagnostic] = field(default_factory=list)


def _resolve_kind(
    kind: str,
    ids: frozenset[str],
    lookup: dict[str, EntityT | None],
    policy: DanglingReferencePolicy,
    bookmark_id: str,
    diagnostics: list[Diagnostic],
) -> list[EntityT]:
    resolved = []
    for entity_id in sorted(ids):
        entity = lookup.get(entity_id)
        if entity is not None:
            resolved.append(entity)
            continue
        if policy == DanglingReferencePolicy.STRICT:
            raise DanglingReferenceError(kind, entity_id)
        logger.warning(
            "Dropping dangling %s reference %s on bookmark %s", kind, entity_id, bookmark_id,
        )
        diagnostics.append(
            Diagnostic(
                kind=DiagnosticKind.DANGLING_REFERENCE,
                message=f"Missing {kind} '{entity_id}' was omitted",
                detail={"kind": kind, "id": entity_id, "bookmark_id": bookmark_id},
            ),
        )
    return resolved


def hydrate(
    stored: StoredBookmark,
    resolved: ResolvedEntities,
    policy: DanglingReferencePolicy = DanglingReferencePolicy.DROP,
) -> HydrationResult:
    """
    Build the hydrated view of a stored bookmark.

    Args:
        stored: The bookmark as persisted, with relationship ids.
        resolved: Entities looked up for the bookmark's ids.
        policy: Handling of ids missing from ``resolved``.

    Returns:
        HydrationResult whose relationship lists are sorted by id ascending and
        contain only resolved entities.

    Raises:
        DanglingReferenceError: Under the strict policy, for the first missing id
            (tags, then collections, then category).
    """
    diagnostics: list[Diagnostic] = []
    tags = _resolve_kind("tag", stored.tag_ids, resolved.tags, policy, stored.id, diagnostics)
    collections = _resolve_kind(
        "collection", stored.collection_ids, resolved.collections, policy, stored.id, diagnostics,
    )
    category_ids = frozenset([stored.category_id]) if stored.category_id else frozenset()
    categories = _resolve_kind(
        "category", category_ids, resolved.categories, policy, stored.id, diagnostics,
    )

    bookmark = HydratedBookmark(
        id=stored.id,
        url=stored.url,
        title=stored.title,
        summary=stored.summary,
        tags=tags,
        collections=collections,
        categories=categories,
        created_at=stored.created_at,
        is_fav=stored.is_fav,
        user_id=stored.user_id,
    )
    return HydrationResult(bookmark=bookmark, diagnostics=diagnostics)


async def resolve_references(stored: StoredBookmark, resolver: EntityResolver) -> ResolvedEntities:
    """Look up every entity a bookmark references, one batch call per kind."""
    tags = await resolver.list_tags(stored.tag_ids) if stored.tag_ids else {}
    collections = (
        await resolver.list_collections(stored.collection_ids) if stored.collection_ids else {}
    )
    categories = (
        await resolver.list_categories([stored.category_id]) if stored.category_id else {}
    )
    return ResolvedEntities(tags=tags, collections=collections, categories=categories)


async def hydrate_bookmark(
    stored: StoredBookmark,
    resolver: EntityResolver,
    policy: DanglingReferencePolicy = DanglingReferencePolicy.DROP,
) -> HydrationResult:
    """Resolve a stored bookmark's references and hydrate it."""
    resolved = await resolve_references(stored, resolver)
    return hydrate(stored, resolved, policy)


async def hydrate_many(
    bookmarks: list[StoredBookmark],
    resolver: EntityResolver,
    policy: DanglingReferencePolicy = DanglingReferencePolicy.DROP,
) -> list[HydrationResult]:
    """
    Hydrate a page of bookmarks with one batch call per relationship kind in total.

    Order of the input is preserved.
    """
    tag_ids = frozenset().union(*(b.tag_ids for b in bookmarks))
    collection_ids = frozenset().union(*(b.collection_ids for b in bookmarks))
    category_ids = frozenset(b.category_id for b in bookmarks if b.category_id)
    resolved = ResolvedEntities(
        tags=await resolver.list_tags(tag_ids) if tag_ids else {},
        collections=await resolver.list_collections(collection_ids) if collection_ids else {},
        categories=await resolver.list_categories(category_ids) if category_ids else {},
    )
    return [hydrate(b, resolved, policy) for b in bookmarks]
