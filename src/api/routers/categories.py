"""Category management endpoints."""
from fastapi import APIRouter, Depends, status

from api.dependencies import get_current_user_id, get_entity_store
from schemas.category import CategoryCount, CategoryCreate, CategoryEntity, CategoryUpdate
from services import entity_service
from services.entity_store import EntityStore

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("/", response_model=list[CategoryCount], response_model_exclude_none=True)
async def list_categories(
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_entity_store),
) -> list[CategoryCount]:
    """Get all categories for the current user with their bookmark counts."""
    return await entity_service.get_user_categories_with_counts(store, user_id)


@router.post("/", response_model=CategoryEntity, status_code=status.HTTP_201_CREATED)
async def create_category(
    data: CategoryCreate,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_entity_store),
) -> CategoryEntity:
    """Create a category with an optional emoji."""
    return await entity_service.create_category(store, user_id, data.name, data.emoji)


@router.patch("/{category_id}", response_model=CategoryEntity)
async def update_category(
    category_id: str,
    data: CategoryUpdate,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_entity_store),
) -> CategoryEntity:
    """
    Update a category's name and/or emoji.

    Send `emoji: null` to remove the emoji.
    """
    return await entity_service.update_category(store, user_id, category_id, data)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: str,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_entity_store),
) -> None:
    """Delete a category. Bookmarks that used it become uncategorized."""
    await entity_service.delete_category(store, user_id, category_id)
