"""Pydantic schemas for tags."""
from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemas.validators import validate_and_normalize_tag


class TagEntity(BaseModel):
    """
    A user's tag.

    Serializes as ``{id, name}``; the owner is kept for scoping but never
    rendered.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    name: str
    # Owner, used for scoping. Never rendered, so absent when re-read from a response
    user_id: str | None = Field(default=None, exclude=True)


class TagCreate(BaseModel):
    """Schema for creating a tag."""

    name: str = Field(..., min_length=1, max_length=100)

    @field_validator("name", mode="before")
    @classmethod
    def normalize_and_validate(cls, v: str) -> str:
        """Normalize and validate the tag name."""
        if not isinstance(v, str):
            raise ValueError("Tag name must be a string")
        return validate_and_normalize_tag(v)


class TagCount(BaseModel):
    """Schema for a tag with its bookmark count."""

    id: str
    name: str
    count: int
