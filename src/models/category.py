"""Category model."""
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin, UUIDv7Mixin


class Category(Base, UUIDv7Mixin, TimestampMixin):
    """Category model - each bookmark belongs to at most one category."""

    __tablename__ = "categories"

    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    emoji: Mapped[str | None] = mapped_column(String(16), nullable=True)
