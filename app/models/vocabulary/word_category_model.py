"""Thematic groups of vocabulary ("Greetings", "Food & Drink"...)."""

from datetime import datetime
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base_class import Base

if TYPE_CHECKING:
    from .vocabulary_item_model import VocabularyItem


class WordCategory(Base):
    __tablename__ = "word_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    icon: Mapped[Optional[str]] = mapped_column(String(16))

    # Sessions rotate through the categories of a level in sort order.
    difficulty_level: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    items: Mapped[List["VocabularyItem"]] = relationship(
        secondary="vocabulary_categories", back_populates="categories"
    )

    def __repr__(self):
        return f"<WordCategory(id={self.id}, slug='{self.slug}', level={self.difficulty_level})>"


class VocabularyCategory(Base):
    """Membership of a word in a category; a word may belong to several."""

    __tablename__ = "vocabulary_categories"

    vocabulary_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("vocabulary_items.id", ondelete="CASCADE"), primary_key=True
    )
    category_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("word_categories.id", ondelete="CASCADE"), primary_key=True, index=True
    )


__all__ = ["WordCategory", "VocabularyCategory"]
