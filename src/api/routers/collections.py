"""Collection management endpoints."""
from fastapi import APIRouter, Depends, status

from api.dependencies import get_current_user_id, get_entity_store
from schemas.collection import CollectionCount, CollectionCreate, CollectionEntity
from services import entity_service
from services.entity_store import EntityStore

router = APIRouter(prefix="/collections", tags=["collections"])


@router.get("/", response_model=list[CollectionCount])
async def list_collections(
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_entity_store),
) -> list[CollectionCount]:
    """Get all collections for the current user with their bookmark counts."""
    return await entity_service.get_user_collections_with_counts(store, user_id)


@router.post("/", response_model=CollectionEntity, status_code=status.HTTP_201_CREATED)
async def create_collection(
    data: CollectionCreate,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_entity_store),
) -> CollectionEntity:
    """Create a collection."""
    return await entity_service.create_collection(store, user_id, data.name)


@router.patch("/{collection_id}", response_model=CollectionEntity)
async def rename_collection(
    collection_id: str,
    data: CollectionCreate,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_entity_store),
) -> CollectionEntity:
    """Rename a collection. Bookmarks in it reflect the new name."""
    return await entity_service.rename_collection(store, user_id, collection_id, data.name)


@router.delete("/{collection_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_collection(
    collection_id: str,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_entity_store),
) -> None:
    """Delete a collection. Its bookmarks are kept."""
    await entity_service.delete_collection(store, user_id, collection_id)
