"""Collection model and the bookmark/collection association table."""
from sqlalchemy import Column, ForeignKey, Index, String, Table
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin, UUIDv7Mixin

# Junction table for many-to-many relationship between bookmarks and collections
bookmark_collections = Table(
    "bookmark_collections",
    Base.metadata,
    Column(
        "bookmark_id",
        String(36),
        ForeignKey("bookmarks.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "collection_id",
        String(36),
        ForeignKey("collections.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Index("ix_bookmark_collections_collection_id", "collection_id"),
)


class Collection(Base, UUIDv7Mixin, TimestampMixin):
    """Collection model - a user-named group of bookmarks."""

    __tablename__ = "collections"

    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
