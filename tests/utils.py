"""Utility helpers for test factories."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from app.models.progress.user_vocabulary_progress_model import UserVocabularyProgress
from app.models.user.user_model import User
from app.models.vocabulary.vocabulary_item_model import VocabularyItem
from app.models.vocabulary.word_category_model import WordCategory


def create_user(db, **kwargs) -> User:
    defaults = {
        "username": "user",
        "email": "user@example.com",
        "is_active": True,
        "level": 1,
        "created_at": datetime.now(timezone.utc),
    }
    defaults.update(kwargs)
    user = User(**defaults)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_words(db, count: int, *, level: int = 1, is_active: bool = True, prefix: str = "word") -> list[VocabularyItem]:
    words = [
        VocabularyItem(
            word=f"{prefix}-{level}-{index}",
            translation=f"translation {prefix} {level} {index}",
            difficulty_level=level,
            is_active=is_active,
        )
        for index in range(count)
    ]
    db.add_all(words)
    db.commit()
    for word in words:
        db.refresh(word)
    return words


def create_word(db, word: str, translation: str, *, level: int = 1, is_active: bool = True) -> VocabularyItem:
    item = VocabularyItem(word=word, translation=translation, difficulty_level=level, is_active=is_active)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def create_progress(db, user: User, item: VocabularyItem, **kwargs) -> UserVocabularyProgress:
    now = datetime.now(timezone.utc)
    defaults = {
        "repetitions": 1,
        "ease_factor": 2.5,
        "interval_days": 1.0,
        "next_review_date": now + timedelta(days=1),
        "last_reviewed_at": now,
        "last_assessment": "good",
        "consecutive_correct": 1,
        "consecutive_wrong": 0,
        "total_correct": 1,
        "total_wrong": 0,
        "accuracy": 100,
    }
    defaults.update(kwargs)
    progress = UserVocabularyProgress(user_id=user.id, vocabulary_id=item.id, **defaults)
    db.add(progress)
    db.commit()
    db.refresh(progress)
    return progress


def create_category(db, slug: str, *, level: int = 1, sort_order: int = 0, words=(), is_active: bool = True) -> WordCategory:
    category = WordCategory(
        name=slug.replace("-", " ").title(),
        slug=slug,
        difficulty_level=level,
        sort_order=sort_order,
        is_active=is_active,
    )
    category.items = list(words)
    db.add(category)
    db.commit()
    db.refresh(category)
    return category
