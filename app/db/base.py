"""Registers every SQLAlchemy model on ``Base.metadata``."""

from app.db.base_class import Base

# Users
from app.models.user.user_model import User

# Vocabulary catalog & practice progress
from app.models.vocabulary.vocabulary_item_model import VocabularyItem
from app.models.vocabulary.word_category_model import VocabularyCategory, WordCategory
from app.models.progress.user_vocabulary_progress_model import UserVocabularyProgress

__all__ = (
    "Base",
    "User",
    "VocabularyItem",
    "WordCategory",
    "VocabularyCategory",
    "UserVocabularyProgress",
)
