from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.core.config import settings
from app.services.review_scheduler import Assessment


class VocabularyItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    word: str
    translation: str
    phonetic: Optional[str] = None
    example_sentence: Optional[str] = None
    example_phonetic: Optional[str] = None
    example_translation: Optional[str] = None
    difficulty_level: int
    is_formal: bool = False


class WordCategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    icon: Optional[str] = None
    difficulty_level: int


class PracticeSessionOut(BaseModel):
    words: List[VocabularyItemOut]
    count: int
    category: Optional[WordCategoryOut] = None


# The client sends either the typed answer or an already checked result.
class ReviewIn(BaseModel):
    vocabulary_id: int
    assessment: Assessment
    is_correct: Optional[bool] = None
    answer: Optional[str] = None


class AnswerValidationOut(BaseModel):
    is_correct: bool
    similarity: float
    similarity_percentage: int
    feedback: str


class ProgressOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    vocabulary_id: int
    repetitions: int
    ease_factor: float
    interval_days: float
    next_review_date: Optional[datetime]
    last_assessment: Optional[str]
    confidence_level: int
    review_count: int
    is_learned: bool
    last_answer_correct: Optional[bool]
    consecutive_correct: int
    consecutive_wrong: int
    total_correct: int
    total_wrong: int
    accuracy: int
    last_reviewed_at: Optional[datetime]


class ReviewStatsOut(BaseModel):
    xp_earned: int
    total_xp: int
    current_level: int
    level_up: bool
    current_streak: int
    longest_streak: int
    streak_message: str


class ReviewOut(BaseModel):
    success: bool = True
    progress: ProgressOut
    next_review_in: str
    validation: Optional[AnswerValidationOut] = None
    stats: Optional[ReviewStatsOut] = None


class ScheduledReviewOut(BaseModel):
    vocabulary_id: int
    word: str
    translation: str
    next_review_date: Optional[str]
    next_review_in: Optional[str]
    interval_days: float
    repetitions: int
    accuracy: int
    is_learned: bool
    last_assessment: Optional[str]


class SRSSummaryOut(BaseModel):
    current_level: int
    words_practiced: int
    due_count: int
    failed_count: int
    learned_count: int
    accuracy: Optional[int]
    next_reviews: List[ScheduledReviewOut]


class UserStatsOut(BaseModel):
    current_level: int
    total_xp: int
    title: str
    title_persian: str
    title_level: int
    next_title: Optional[str]
    xp_to_next_title: int
    title_progress: int
    total_words_learned: int
    current_streak: int
    longest_streak: int
    last_practice_date: Optional[str]


# Guests keep their progress in the browser and send it with every request.
class GuestProgressRecord(BaseModel):
    item_id: int
    repetitions: int = 0
    ease_factor: float = 2.5
    interval_days: float = 0.0
    next_review_date: datetime
    last_assessment: str
    last_answer_correct: bool
    consecutive_correct: int = 0
    consecutive_wrong: int = 0
    total_correct: int = 0
    total_wrong: int = 0
    accuracy: int = 0
    confidence_level: int = 0
    review_count: int = 0
    is_learned: bool = False
    last_reviewed_at: datetime
    updated_at: datetime


class GuestSessionIn(BaseModel):
    session_size: int = Field(default=settings.PRACTICE_SESSION_SIZE, ge=1, le=settings.PRACTICE_MAX_SESSION_SIZE)
    level: int = Field(default=settings.PRACTICE_DEFAULT_LEVEL, ge=1)
    last_category_id: Optional[int] = None
    records: List[GuestProgressRecord] = Field(default_factory=list)


class GuestSessionOut(PracticeSessionOut):
    last_category_id: Optional[int] = None


class GuestReviewIn(ReviewIn):
    records: List[GuestProgressRecord] = Field(default_factory=list)


class GuestReviewOut(ReviewOut):
    records: List[GuestProgressRecord]
