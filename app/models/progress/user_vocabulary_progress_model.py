"""Spaced-repetition state per user and vocabulary item."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base_class import Base


class UserVocabularyProgress(Base):
    """Stores the review schedule and answer statistics of a word for a learner."""

    __tablename__ = "user_vocabulary_progress"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    vocabulary_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("vocabulary_items.id", ondelete="CASCADE"), index=True
    )

    # Scheduling
    repetitions: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    ease_factor: Mapped[float] = mapped_column(Float, default=2.5, nullable=False)
    interval_days: Mapped[float] = mapped_column(Float, default=1.0, nullable=False)
    next_review_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), index=True)
    last_assessment: Mapped[str | None] = mapped_column(String(10))
    confidence_level: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    review_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_learned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Answer tracking
    last_answer_correct: Mapped[bool | None] = mapped_column(Boolean)
    consecutive_correct: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    consecutive_wrong: Mapped[int] = mapped_column(Integer, default=0, nullable=False, index=True)
    total_correct: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_wrong: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    accuracy: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    last_reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    first_seen_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Optimistic concurrency: concurrent writers of the same row get StaleDataError.
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    user = relationship("User", back_populates="vocabulary_progress")
    vocabulary_item = relationship("VocabularyItem", back_populates="user_progress")

    __table_args__ = (
        UniqueConstraint("user_id", "vocabulary_id", name="uq_user_vocabulary_progress"),
    )
    __mapper_args__ = {"version_id_col": version}


__all__ = ["UserVocabularyProgress"]
