"""SM-2 style review scheduling for vocabulary practice.

``score_review`` turns one answer (self-assessment + correctness) and the
previous progress state of a word into the next progress state. It performs
no I/O; callers load the prior record and persist the returned update.
"""

from __future__ import annotations

import enum
import math
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

# --- Ease factor ---
DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
MAX_EASE_FACTOR = 3.0
AGAIN_EASE_DELTA = -0.2
HARD_EASE_DELTA = -0.15
GOOD_EASE_DELTA = 0.0
EASY_EASE_DELTA = 0.15

# --- Intervals (days) ---
AGAIN_INTERVAL_DAYS = 1.0
FIRST_INTERVAL_DAYS = 1.0
SECOND_INTERVAL_DAYS = 6.0
EASY_FIRST_INTERVAL_DAYS = 4.0
HARD_INTERVAL_MULTIPLIER = 1.2
EASY_BONUS_MULTIPLIER = 1.3

# --- Mastery ---
LEARNED_STREAK_THRESHOLD = 5
LEARNED_REPETITIONS_THRESHOLD = 6

MAX_CONFIDENCE_LEVEL = 5


class Assessment(str, enum.Enum):
    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"


_EASE_DELTAS = {
    Assessment.AGAIN: AGAIN_EASE_DELTA,
    Assessment.HARD: HARD_EASE_DELTA,
    Assessment.GOOD: GOOD_EASE_DELTA,
    Assessment.EASY: EASY_EASE_DELTA,
}


@dataclass(slots=True)
class ReviewUpdate:
    """Scheduling state produced by one review."""

    repetitions: int
    ease_factor: float
    interval_days: float
    next_review_date: datetime
    last_assessment: str
    last_answer_correct: bool
    consecutive_correct: int
    consecutive_wrong: int
    total_correct: int
    total_wrong: int
    accuracy: int
    confidence_level: int
    review_count: int
    is_learned: bool
    last_reviewed_at: datetime
    updated_at: datetime

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_datetime(value: datetime | None) -> datetime | None:
    """Return ``value`` as an aware UTC datetime (SQLite hands back naive values)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def clamp_ease_factor(value: float | None) -> float:
    if value is None:
        return DEFAULT_EASE_FACTOR
    try:
        value = float(value)
    except (TypeError, ValueError):
        return DEFAULT_EASE_FACTOR
    if math.isnan(value):
        return DEFAULT_EASE_FACTOR
    return min(MAX_EASE_FACTOR, max(MIN_EASE_FACTOR, value))


def compute_accuracy(total_correct: int, total_wrong: int) -> int:
    total = total_correct + total_wrong
    if total <= 0:
        return 0
    return round(total_correct / total * 100)


def confidence_for(assessment: Assessment, repetitions: int) -> int:
    if assessment is Assessment.HARD:
        return max(1, min(2, repetitions))
    if assessment is Assessment.GOOD:
        return min(3, repetitions + 1)
    if assessment is Assessment.EASY:
        return min(MAX_CONFIDENCE_LEVEL, repetitions + 2)
    return 1


def _counter(prior: Any, name: str) -> int:
    value = getattr(prior, name, None) if prior is not None else None
    return max(int(value or 0), 0)


def _prior_interval_days(prior: Any) -> float:
    """Interval that produced ``prior.next_review_date``."""
    if prior is None:
        return FIRST_INTERVAL_DAYS

    stored = getattr(prior, "interval_days", None)
    if stored:
        return max(float(stored), FIRST_INTERVAL_DAYS)

    next_review = normalize_datetime(getattr(prior, "next_review_date", None))
    last_review = normalize_datetime(getattr(prior, "last_reviewed_at", None))
    if next_review and last_review and next_review > last_review:
        derived = (next_review - last_review).total_seconds() / 86400
        return max(derived, FIRST_INTERVAL_DAYS)
    return FIRST_INTERVAL_DAYS


def _next_interval(
    assessment: Assessment,
    repetitions: int,
    prior_repetitions: int,
    prior_interval: float,
    ease_factor: float,
) -> float:
    """Interval in days once ``repetitions`` already counts this review."""
    if assessment is Assessment.AGAIN:
        return AGAIN_INTERVAL_DAYS

    if assessment is Assessment.HARD:
        if repetitions == 1:
            return FIRST_INTERVAL_DAYS
        return max(FIRST_INTERVAL_DAYS, round(prior_interval * HARD_INTERVAL_MULTIPLIER, 2))

    if assessment is Assessment.GOOD:
        if repetitions == 1:
            interval = FIRST_INTERVAL_DAYS
        elif repetitions == 2:
            interval = SECOND_INTERVAL_DAYS
        else:
            interval = float(round(prior_interval * ease_factor))
    else:
        if repetitions == 1:
            interval = EASY_FIRST_INTERVAL_DAYS
        else:
            interval = float(round(prior_interval * ease_factor * EASY_BONUS_MULTIPLIER))

    # Sustained success never shortens the schedule.
    if prior_repetitions > 0:
        interval = max(interval, math.floor(prior_interval) + 1.0)
    return interval


def score_review(
    assessment: Assessment | str,
    is_correct: bool,
    prior: Any = None,
    *,
    now: datetime | None = None,
) -> ReviewUpdate:
    """Compute the progress state following one review of a word.

    ``prior`` is the stored progress (ORM row, previous ``ReviewUpdate``...)
    or ``None`` on the first review. A wrong answer is always scheduled as
    ``again``. Out-of-range ease factors are clamped rather than rejected.
    """

    assessment = Assessment(assessment)
    if not is_correct:
        assessment = Assessment.AGAIN
    now = normalize_datetime(now) or utcnow()

    total_correct = _counter(prior, "total_correct")
    total_wrong = _counter(prior, "total_wrong")
    consecutive_correct = _counter(prior, "consecutive_correct")
    consecutive_wrong = _counter(prior, "consecutive_wrong")
    prior_repetitions = _counter(prior, "repetitions")
    review_count = _counter(prior, "review_count") + 1

    if is_correct:
        total_correct += 1
        consecutive_correct += 1
        consecutive_wrong = 0
    else:
        total_wrong += 1
        consecutive_wrong += 1
        consecutive_correct = 0

    accuracy = compute_accuracy(total_correct, total_wrong)

    prior_ease = clamp_ease_factor(getattr(prior, "ease_factor", None) if prior is not None else None)
    prior_interval = _prior_interval_days(prior)

    if assessment is Assessment.AGAIN:
        repetitions = 0
    else:
        repetitions = prior_repetitions + 1

    interval_days = _next_interval(
        assessment, repetitions, prior_repetitions, prior_interval, prior_ease
    )
    ease_factor = round(clamp_ease_factor(prior_ease + _EASE_DELTAS[assessment]), 2)

    is_learned = assessment is not Assessment.AGAIN and (
        consecutive_correct >= LEARNED_STREAK_THRESHOLD
        or repetitions >= LEARNED_REPETITIONS_THRESHOLD
    )

    return ReviewUpdate(
        repetitions=repetitions,
        ease_factor=ease_factor,
        interval_days=interval_days,
        next_review_date=now + timedelta(days=interval_days),
        last_assessment=assessment.value,
        last_answer_correct=bool(is_correct),
        consecutive_correct=consecutive_correct,
        consecutive_wrong=consecutive_wrong,
        total_correct=total_correct,
        total_wrong=total_wrong,
        accuracy=accuracy,
        confidence_level=confidence_for(assessment, repetitions),
        review_count=review_count,
        is_learned=is_learned,
        last_reviewed_at=now,
        updated_at=now,
    )


def describe_next_review(next_review_date: datetime, now: datetime | None = None) -> str:
    """Human readable distance to ``next_review_date`` ("Due tomorrow"...)."""

    now = normalize_datetime(now) or utcnow()
    delta = normalize_datetime(next_review_date) - now
    days = math.ceil(delta.total_seconds() / 86400)

    if days < 0:
        return "Due now"
    if days == 0:
        return "Due today"
    if days == 1:
        return "Due tomorrow"
    if days < 7:
        return f"Due in {days} days"
    if days < 30:
        weeks = days // 7
        return f"Due in {weeks} week{'s' if weeks > 1 else ''}"
    months = days // 30
    return f"Due in {months} month{'s' if months > 1 else ''}"


__all__ = [
    "Assessment",
    "ReviewUpdate",
    "score_review",
    "describe_next_review",
    "compute_accuracy",
    "clamp_ease_factor",
]
