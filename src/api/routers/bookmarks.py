"""Bookmark endpoints."""
from fastapi import APIRouter, Depends, Query, Response, status

from api.dependencies import (
    get_authorization,
    get_current_user_id,
    get_entity_store,
    get_ingestion_service,
    get_policy,
    get_summarizer,
)
from schemas.bookmark import (
    BookmarkDirectCreate,
    BookmarkFieldsUpdate,
    BookmarkFilters,
    BookmarkIngest,
    HydratedBookmark,
)
from services import bookmark_service
from services.diagnostics import Diagnostic, diagnostics_header
from services.entity_store import EntityStore
from services.ingestion import BookmarkIngestionService
from services.normalizer import DanglingReferencePolicy
from services.summarizer import Summarizer

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])

DIAGNOSTICS_HEADER = "X-Bookmark-Diagnostics"


def _report(response: Response, diagnostics: list[Diagnostic]) -> None:
    if diagnostics:
        response.headers[DIAGNOSTICS_HEADER] = diagnostics_header(diagnostics)


@router.post("/", response_model=HydratedBookmark, status_code=status.HTTP_201_CREATED)
async def ingest_bookmark(
    data: BookmarkIngest,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    authorization: str | None = Depends(get_authorization),
    service: BookmarkIngestionService = Depends(get_ingestion_service),
) -> HydratedBookmark:
    """
    Save a URL as a bookmark, summarizing it on the way in.

    A summarization or tag suggestion failure still saves the bookmark; the
    degraded steps are listed in the `X-Bookmark-Diagnostics` header.
    """
    result = await service.ingest(user_id, data.url, data.title, authorization)
    _report(response, result.diagnostics)
    return result.bookmark


@router.post("/direct", response_model=HydratedBookmark, status_code=status.HTTP_201_CREATED)
async def create_bookmark_direct(
    data: BookmarkDirectCreate,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_entity_store),
    policy: DanglingReferencePolicy = Depends(get_policy),
) -> HydratedBookmark:
    """Save a fully specified bookmark (e.g. an accepted suggestion) without summarizing."""
    result = await bookmark_service.create_bookmark_direct(store, user_id, data, policy)
    _report(response, result.diagnostics)
    return result.bookmark


@router.get("/", response_model=list[HydratedBookmark])
async def list_bookmarks(
    response: Response,
    tag_id: str | None = Query(default=None, description="Only bookmarks with this tag"),
    collection_id: str | None = Query(default=None, description="Only bookmarks in this collection"),  # noqa: E501
    category_id: str | None = Query(default=None, description="Only bookmarks in this category"),
    is_fav: bool | None = Query(default=None, description="Filter by favorite flag"),
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_entity_store),
    policy: DanglingReferencePolicy = Depends(get_policy),
) -> list[HydratedBookmark]:
    """List the current user's bookmarks, newest first."""
    filters = BookmarkFilters(
        tag_id=tag_id, collection_id=collection_id, category_id=category_id, is_fav=is_fav,
    )
    results = await bookmark_service.list_bookmarks(store, user_id, filters, policy)
    _report(response, [d for r in results for d in r.diagnostics])
    return [r.bookmark for r in results]


@router.get("/{bookmark_id}", response_model=HydratedBookmark)
async def get_bookmark(
    bookmark_id: str,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_entity_store),
    policy: DanglingReferencePolicy = Depends(get_policy),
) -> HydratedBookmark:
    """Get a single bookmark by id."""
    result = await bookmark_service.get_bookmark(store, user_id, bookmark_id, policy)
    _report(response, result.diagnostics)
    return result.bookmark


@router.patch("/{bookmark_id}", response_model=HydratedBookmark)
async def update_bookmark(
    bookmark_id: str,
    data: BookmarkFieldsUpdate,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_entity_store),
    policy: DanglingReferencePolicy = Depends(get_policy),
) -> HydratedBookmark:
    """
    Update a bookmark.

    Only the fields sent are changed. `category_id: null` clears the category.
    `url` and `created_at` cannot be changed.
    """
    result = await bookmark_service.update_bookmark(store, user_id, bookmark_id, data, policy)
    _report(response, result.diagnostics)
    return result.bookmark


@router.post("/{bookmark_id}/favorite", response_model=HydratedBookmark)
async def toggle_favorite(
    bookmark_id: str,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_entity_store),
    policy: DanglingReferencePolicy = Depends(get_policy),
) -> HydratedBookmark:
    """Flip the favorite flag."""
    result = await bookmark_service.toggle_favorite(store, user_id, bookmark_id, policy)
    _report(response, result.diagnostics)
    return result.bookmark


@router.post("/{bookmark_id}/summarize", response_model=HydratedBookmark)
async def resummarize_bookmark(
    bookmark_id: str,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    authorization: str | None = Depends(get_authorization),
    store: EntityStore = Depends(get_entity_store),
    summarizer: Summarizer = Depends(get_summarizer),
    policy: DanglingReferencePolicy = Depends(get_policy),
) -> HydratedBookmark:
    """Re-run summarization. On failure the previous summary is kept."""
    result = await bookmark_service.resummarize_bookmark(
        store, summarizer, user_id, bookmark_id, authorization, policy,
    )
    _report(response, result.diagnostics)
    return result.bookmark


@router.delete("/{bookmark_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_bookmark(
    bookmark_id: str,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_entity_store),
) -> None:
    """Permanently delete a bookmark."""
    await bookmark_service.delete_bookmark(store, user_id, bookmark_id)
