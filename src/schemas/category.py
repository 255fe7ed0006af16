"""Pydantic schemas for categories."""
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    field_validator,
    model_serializer,
)

from schemas.validators import validate_entity_name


class CategoryEntity(BaseModel):
    """
    A user's category.

    Serializes as ``{id, name, emoji}``, with ``emoji`` omitted entirely when the
    category has none.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    name: str
    emoji: str | None = None
    # Owner, used for scoping. Never rendered, so absent when re-read from a response
    user_id: str | None = Field(default=None, exclude=True)

    @model_serializer(mode="wrap")
    def omit_missing_emoji(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        """Drop the emoji key when unset."""
        data = handler(self)
        if data.get("emoji") is None:
            data.pop("emoji", None)
        return data


class CategoryCreate(BaseModel):
    """Schema for creating a category."""

    name: str
    emoji: str | None = Field(default=None, max_length=16)

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        """Validate the category name."""
        return validate_entity_name(v)


class CategoryUpdate(BaseModel):
    """Schema for updating a category. Omitted fields are left unchanged."""

    name: str | None = None
    emoji: str | None = Field(default=None, max_length=16)

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str | None) -> str | None:
        """Validate the category name if provided."""
        if v is None:
            return None
        return validate_entity_name(v)


class CategoryCount(BaseModel):
    """Schema for a category with its bookmark count."""

    id: str
    name: str
    emoji: str | None = None
    count: int
