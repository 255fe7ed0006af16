"""SQLAlchemy models."""
from models.base import Base, TimestampMixin, UUIDv7Mixin
from models.category import Category
from models.collection import Collection, bookmark_collections
from models.tag import Tag, bookmark_tags
from models.bookmark import Bookmark

__all__ = [
    "Base",
    "Bookmark",
    "Category",
    "Collection",
    "Tag",
    "TimestampMixin",
    "UUIDv7Mixin",
    "bookmark_collections",
    "bookmark_tags",
]
