"""Practice sessions and review submissions.

:class:`PracticeService` runs against any
:class:`~app.services.session_builder.ProgressStore`: signed-in learners get
the SQL store and their stats are updated, guests get a
:class:`LocalProgressStore` rebuilt from the records their browser keeps.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.config import settings
from app.crud.vocabulary_progress_crud import SQLAlchemyProgressStore
from app.models.user.user_model import User
from app.services.answer_validation import ValidationResult, validate_answer
from app.services.local_progress_store import LocalProgressStore, StaleProgressError
from app.services.review_scheduler import (
    Assessment,
    describe_next_review,
    normalize_datetime,
    score_review,
    utcnow,
)
from app.services.session_builder import ProgressStore, SessionBuilder
from app.services.user_stats_service import UserStatsService

logger = logging.getLogger(__name__)

GUEST_USER_ID = "guest"


@dataclass(slots=True)
class PracticeError(Exception):
    """Domain-specific exception raised when a practice request cannot be served."""

    code: str
    status_code: int = 400

    def __str__(self) -> str:  # pragma: no cover - human readable message
        return self.code


class PracticeService:
    """Glue between the HTTP layer, a progress store and the scheduling core."""

    MAX_REVIEW_ATTEMPTS = 3
    CONFLICT_ERRORS = (StaleDataError, IntegrityError, StaleProgressError)

    def __init__(
        self,
        store: ProgressStore,
        user_id: Any,
        *,
        current_level: Optional[int] = None,
        stats: Optional[UserStatsService] = None,
    ):
        self.store = store
        self.user_id = user_id
        self.stats = stats
        self._current_level = current_level

    @classmethod
    def for_user(cls, db: Session, user: User) -> "PracticeService":
        return cls(SQLAlchemyProgressStore(db), user.id, stats=UserStatsService(db, user))

    @classmethod
    def for_guest(
        cls,
        db: Session,
        records: Iterable[dict] = (),
        *,
        level: Optional[int] = None,
        last_category_id: Any = None,
    ) -> "PracticeService":
        items, categories = SQLAlchemyProgressStore(db).load_catalog()
        store = LocalProgressStore(items, categories)
        store.import_records(GUEST_USER_ID, records)
        if last_category_id is not None:
            store.set_last_category(GUEST_USER_ID, last_category_id)
        return cls(store, GUEST_USER_ID, current_level=level)

    def export_guest_state(self) -> dict:
        """Records and rotation marker for the browser to send back next time."""
        return {
            "records": self.store.export_records(self.user_id),
            "last_category_id": self.store.get_last_category(self.user_id),
        }

    @property
    def current_level(self) -> int:
        if self.stats is not None:
            return self.stats.user.level or settings.PRACTICE_DEFAULT_LEVEL
        return self._current_level or settings.PRACTICE_DEFAULT_LEVEL

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------
    def build_session(
        self,
        session_size: int | None = None,
        level: int | None = None,
        rng: random.Random | None = None,
    ) -> dict:
        """Pick the words of a session; the chosen category is remembered."""

        size = session_size or settings.PRACTICE_SESSION_SIZE
        current_level = level or self.current_level

        builder = SessionBuilder(self.store, rng=rng)
        plan = builder.plan(size, current_level, self.user_id)
        words = builder.shuffle(plan)
        self.store.commit()

        logger.info(
            "Practice session for user %s: %s/%s words at level %s",
            self.user_id,
            len(words),
            size,
            current_level,
        )
        return {"words": words, "count": len(words), "category": plan.category}

    # ------------------------------------------------------------------
    # Reviews
    # ------------------------------------------------------------------
    def get_item(self, vocabulary_id: int) -> Any:
        item = self.store.get_item(vocabulary_id)
        if item is None or not item.is_active:
            raise PracticeError("vocabulary_not_found", status_code=404)
        return item

    def submit_answer(
        self,
        vocabulary_id: int,
        assessment: Assessment | str,
        *,
        is_correct: bool | None = None,
        answer: str | None = None,
    ) -> dict:
        """Review a word from either a typed answer or an already checked result.

        A typed answer is validated against the translation and decides
        correctness.
        """

        if answer is None and is_correct is None:
            raise PracticeError("answer_or_is_correct_required")

        item = self.get_item(vocabulary_id)

        validation: ValidationResult | None = None
        if answer is not None:
            validation = validate_answer(answer, item.translation)
            is_correct = validation.is_correct

        progress, stats = self._store_review(item.id, assessment, bool(is_correct))
        return {
            "success": True,
            "progress": progress,
            "next_review_in": describe_next_review(progress.next_review_date),
            "validation": _validation_payload(validation),
            "stats": stats,
        }

    def submit_review(
        self,
        vocabulary_id: int,
        assessment: Assessment | str,
        is_correct: bool,
    ) -> Any:
        self.get_item(vocabulary_id)
        progress, _ = self._store_review(vocabulary_id, assessment, is_correct)
        return progress

    def _store_review(self, vocabulary_id: int, assessment: Assessment | str, is_correct: bool):
        """Score one answer and persist the new schedule.

        The read-score-write cycle is retried when a concurrent submission
        for the same word wins the race, so both answers are counted.
        """

        attempt = 1
        while True:
            try:
                progress = self.store.update_progress(
                    self.user_id,
                    vocabulary_id,
                    lambda prior: score_review(assessment, is_correct, prior),
                )
                stats = (
                    self.stats.record_review(progress.last_assessment)
                    if self.stats is not None
                    else None
                )
                self.store.commit()
            except self.CONFLICT_ERRORS as exc:
                self.store.rollback()
                if attempt >= self.MAX_REVIEW_ATTEMPTS:
                    logger.error(
                        "Review of word %s by user %s kept conflicting: %s",
                        vocabulary_id,
                        self.user_id,
                        exc,
                    )
                    raise
                logger.warning(
                    "Concurrent review of word %s by user %s (attempt %s/%s), retrying.",
                    vocabulary_id,
                    self.user_id,
                    attempt,
                    self.MAX_REVIEW_ATTEMPTS,
                )
                attempt += 1
                continue
            break

        logger.info(
            "Review stored: user=%s word=%s assessment=%s correct=%s next=%s",
            self.user_id,
            vocabulary_id,
            progress.last_assessment,
            is_correct,
            progress.next_review_date,
        )
        return progress, stats

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------
    def build_overview(self, limit: int | None = 10) -> dict:
        """Return a summary of the learner's review schedule for API responses."""

        now = utcnow()
        records = sorted(
            self.store.find_progress(self.user_id),
            key=lambda record: (
                normalize_datetime(record.next_review_date) is None,
                normalize_datetime(record.next_review_date) or now,
                record.vocabulary_id,
            ),
        )

        due_count = 0
        failed_count = 0
        learned_count = 0
        entries: List[dict] = []

        for record in records:
            next_review = normalize_datetime(record.next_review_date)
            if record.consecutive_wrong > 0:
                failed_count += 1
            elif next_review is not None and next_review <= now:
                due_count += 1
            if record.is_learned:
                learned_count += 1

            item = self.store.get_item(record.vocabulary_id)
            entries.append(
                {
                    "vocabulary_id": record.vocabulary_id,
                    "word": item.word if item is not None else "",
                    "translation": item.translation if item is not None else "",
                    "next_review_date": next_review.isoformat() if next_review else None,
                    "next_review_in": describe_next_review(next_review, now) if next_review else None,
                    "interval_days": round(record.interval_days or 0, 2),
                    "repetitions": record.repetitions,
                    "accuracy": record.accuracy,
                    "is_learned": record.is_learned,
                    "last_assessment": record.last_assessment,
                }
            )

        if limit is not None:
            entries = entries[:limit]

        total_correct = sum(record.total_correct for record in records)
        total_wrong = sum(record.total_wrong for record in records)
        answered = total_correct + total_wrong

        return {
            "current_level": self.current_level,
            "words_practiced": len(records),
            "due_count": due_count,
            "failed_count": failed_count,
            "learned_count": learned_count,
            "accuracy": round(total_correct / answered * 100) if answered else None,
            "next_reviews": entries,
        }


def _validation_payload(validation: ValidationResult | None) -> dict | None:
    if validation is None:
        return None
    return {
        "is_correct": validation.is_correct,
        "similarity": round(validation.similarity, 3),
        "similarity_percentage": validation.similarity_percentage,
        "feedback": validation.feedback,
    }


__all__ = ["PracticeService", "PracticeError", "GUEST_USER_ID"]
