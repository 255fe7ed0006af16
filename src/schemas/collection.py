"""Pydantic schemas for collections."""
from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemas.validators import validate_entity_name


class CollectionEntity(BaseModel):
    """A user's collection. Serializes as ``{id, name}``."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    name: str
    # Owner, used for scoping. Never rendered, so absent when re-read from a response
    user_id: str | None = Field(default=None, exclude=True)


class CollectionCreate(BaseModel):
    """Schema for creating or renaming a collection."""

    name: str

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        """Validate the collection name."""
        return validate_entity_name(v)


class CollectionCount(BaseModel):
    """Schema for a collection with its bookmark count."""

    id: str
    name: str
    count: int
