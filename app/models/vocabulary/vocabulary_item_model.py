from sqlalchemy import Boolean, DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.base_class import Base
from typing import List, TYPE_CHECKING, Optional
from datetime import datetime

if TYPE_CHECKING:
    from ..progress.user_vocabulary_progress_model import UserVocabularyProgress
    from .word_category_model import WordCategory

class VocabularyItem(Base):
    """A Farsi word of the practice catalog.

    Rows are written by content seeding outside this service; practice code only reads them.
    """
    __tablename__ = "vocabulary_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    word: Mapped[str] = mapped_column(String(255), nullable=False)  # Persian script
    translation: Mapped[str] = mapped_column(String(255), nullable=False)  # English, "/" separates alternatives
    phonetic: Mapped[Optional[str]] = mapped_column(String(255))
    example_sentence: Mapped[Optional[str]] = mapped_column(Text)
    example_phonetic: Mapped[Optional[str]] = mapped_column(Text)
    example_translation: Mapped[Optional[str]] = mapped_column(Text)

    difficulty_level: Mapped[int] = mapped_column(Integer, default=1, server_default="1", index=True)
    is_formal: Mapped[bool] = mapped_column(Boolean, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # --- Relations ---
    user_progress: Mapped[List["UserVocabularyProgress"]] = relationship(
        back_populates="vocabulary_item", cascade="all, delete-orphan", passive_deletes=True
    )
    categories: Mapped[List["WordCategory"]] = relationship(
        secondary="vocabulary_categories", back_populates="items"
    )

    @property
    def category_ids(self) -> List[int]:
        return [category.id for category in self.categories]

    def __repr__(self):
        return f"<VocabularyItem(id={self.id}, word='{self.word}', level={self.difficulty_level})>"
