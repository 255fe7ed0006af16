"""Pydantic schemas for bookmarks: stored form, hydrated view form, and request bodies."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator
from pydantic.alias_generators import to_camel

from schemas.category import CategoryEntity
from schemas.collection import CollectionEntity
from schemas.tag import TagEntity
from schemas.validators import validate_summary_length, validate_title_length


class StoredBookmark(BaseModel):
    """
    Storage-oriented bookmark: relationships are referenced by id only.

    Relationship ids are sets, so duplicates in the input are silently collapsed.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    user_id: str
    url: str
    title: str
    summary: str = ""
    tag_ids: frozenset[str] = frozenset()
    collection_ids: frozenset[str] = frozenset()
    category_id: str | None = None
    is_fav: bool = False
    created_at: datetime


class BookmarkDraft(BaseModel):
    """Fields for a new bookmark, before the store assigns id and created_at."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    url: str
    title: str
    summary: str = ""
    tag_ids: frozenset[str] = frozenset()
    collection_ids: frozenset[str] = frozenset()
    category_id: str | None = None
    is_fav: bool = False


class BookmarkFieldsUpdate(BaseModel):
    """
    Partial update of a bookmark's mutable fields.

    Only fields explicitly set are applied; ``category_id: null`` clears the
    category. ``url`` and ``created_at`` are immutable and rejected.
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    summary: str | None = None
    is_fav: bool | None = None
    tag_ids: frozenset[str] | None = None
    collection_ids: frozenset[str] | None = None
    category_id: str | None = None

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str | None) -> str | None:
        """Reject empty or over-long titles."""
        if v is not None and not v.strip():
            raise ValueError("Title cannot be empty")
        return validate_title_length(v)

    @field_validator("summary")
    @classmethod
    def check_summary_length(cls, v: str | None) -> str | None:
        """Validate summary length."""
        return validate_summary_length(v)

    def changes(self) -> dict:
        """Return only the fields the caller set."""
        return self.model_dump(exclude_unset=True)


class BookmarkIngest(BaseModel):
    """Schema for submitting a URL to be summarized and saved."""

    # Validated by the ingestion service so malformed URLs are reported as input errors
    url: str
    title: str | None = None


class BookmarkDirectCreate(BaseModel):
    """Schema for saving a fully specified bookmark without summarization."""

    url: HttpUrl
    title: str | None = None
    summary: str = ""
    tag_ids: list[str] = []
    collection_ids: list[str] = []
    category_id: str | None = None
    is_fav: bool = False

    @field_validator("title")
    @classmethod
    def check_title_length(cls, v: str | None) -> str | None:
        """Validate title length."""
        return validate_title_length(v)

    @field_validator("summary")
    @classmethod
    def check_summary_length(cls, v: str) -> str:
        """Validate summary length."""
        return validate_summary_length(v) or ""


class BookmarkFilters(BaseModel):
    """Exact-match filters for listing a user's bookmarks."""

    tag_id: str | None = None
    collection_id: str | None = None
    category_id: str | None = None
    is_fav: bool | None = None

    def matches(self, bookmark: StoredBookmark) -> bool:
        """Check whether a stored bookmark satisfies every filter set."""
        if self.tag_id is not None and self.tag_id not in bookmark.tag_ids:
            return False
        if self.collection_id is not None and self.collection_id not in bookmark.collection_ids:
            return False
        if self.category_id is not None and bookmark.category_id != self.category_id:
            return False
        return self.is_fav is None or bookmark.is_fav == self.is_fav


class HydratedBookmark(BaseModel):
    """
    UI-consumable bookmark with relationships resolved to entity objects.

    Wire shape: ``{id, url, title, summary, tags, collections, categories,
    createdAt, isFav, userId}``. Relationship lists are ordered by id ascending.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    url: str
    title: str
    summary: str
    tags: list[TagEntity] = Field(default_factory=list)
    collections: list[CollectionEntity] = Field(default_factory=list)
    categories: list[CategoryEntity] = Field(default_factory=list)
    created_at: datetime
    is_fav: bool
    user_id: str


class SummaryRequest(BaseModel):
    """Schema for a standalone summarization request."""

    url: str
    title: str | None = None


class SummaryResponse(BaseModel):
    """Schema for a standalone summarization response."""

    summary: str
