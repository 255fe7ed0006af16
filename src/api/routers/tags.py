"""Tag management endpoints."""
from fastapi import APIRouter, Depends, status

from api.dependencies import get_current_user_id, get_entity_store
from schemas.tag import TagCount, TagCreate, TagEntity
from services import entity_service
from services.entity_store import EntityStore

router = APIRouter(prefix="/tags", tags=["tags"])


@router.get("/", response_model=list[TagCount])
async def list_tags(
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_entity_store),
) -> list[TagCount]:
    """
    Get all tags for the current user with their bookmark counts.

    Results are sorted by count DESC, then name ASC.
    """
    return await entity_service.get_user_tags_with_counts(store, user_id)


@router.post("/", response_model=TagEntity, status_code=status.HTTP_201_CREATED)
async def create_tag(
    data: TagCreate,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_entity_store),
) -> TagEntity:
    """Create a tag, or return the existing tag with the same name."""
    [tag] = await entity_service.get_or_create_tags(store, user_id, [data.name])
    return tag


@router.delete("/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tag(
    tag_id: str,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_entity_store),
) -> None:
    """Delete a tag. It is removed from every bookmark that used it."""
    await entity_service.delete_tag(store, user_id, tag_id)
