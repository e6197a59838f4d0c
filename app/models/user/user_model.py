from sqlalchemy import Integer, String, Boolean, Date, DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.base_class import Base
from typing import List, Optional, TYPE_CHECKING
from datetime import date, datetime

if TYPE_CHECKING:
    from ..progress.user_vocabulary_progress_model import UserVocabularyProgress

class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    full_name: Mapped[Optional[str]] = mapped_column(String(255))

    # --- Practice stats ---
    xp_points: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    # Difficulty tier used to pick new words (1-5); raised as XP accumulates.
    level: Mapped[int] = mapped_column(Integer, default=1, server_default="1")
    current_streak: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    longest_streak: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    last_practice_date: Mapped[Optional[date]] = mapped_column(Date)
    # Category the last session drew its new words from.
    last_category_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("word_categories.id", ondelete="SET NULL")
    )

    # --- Relations ---
    vocabulary_progress: Mapped[List["UserVocabularyProgress"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}')>"
