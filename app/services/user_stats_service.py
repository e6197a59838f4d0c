"""Experience points, practice streaks and level progression of a learner."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.progress.user_vocabulary_progress_model import UserVocabularyProgress
from app.models.user.user_model import User
from app.services.review_scheduler import Assessment, normalize_datetime, utcnow

logger = logging.getLogger(__name__)

XP_BY_ASSESSMENT = {
    Assessment.AGAIN: 1,
    Assessment.HARD: 2,
    Assessment.GOOD: 3,
    Assessment.EASY: 5,
}

# Word difficulty tiers stop at 5 even though titles go up to 10.
MAX_DIFFICULTY_LEVEL = 5


@dataclass(frozen=True, slots=True)
class Title:
    level: int
    xp_required: int
    title: str
    title_persian: str
    title_phonetic: str


TITLES = (
    Title(1, 0, "Student", "شاگرد", "Shāgerd"),
    Title(2, 100, "Apprentice", "کارآموز", "Kārāmūz"),
    Title(3, 300, "Scholar", "دانشجو", "Dāneshjū"),
    Title(4, 600, "Poet", "شاعر", "Shā'er"),
    Title(5, 1000, "Master", "استاد", "Ostād"),
    Title(6, 1500, "Sage", "حکیم", "Hakīm"),
    Title(7, 2500, "Royal Scribe", "دبیر دربار", "Dabīr-e Darbār"),
    Title(8, 4000, "Persian Scholar", "دانشمند", "Dāneshmand"),
    Title(9, 6000, "Keeper of Words", "نگهبان کلمات", "Negahbān-e Kalamāt"),
    Title(10, 10000, "Grand Vizier", "وزیر اعظم", "Vazīr-e A'zam"),
)


def xp_for(assessment: Assessment | str) -> int:
    return XP_BY_ASSESSMENT[Assessment(assessment)]


def title_for_xp(total_xp: int) -> Title:
    for title in reversed(TITLES):
        if total_xp >= title.xp_required:
            return title
    return TITLES[0]


def next_title_for_xp(total_xp: int) -> Optional[Title]:
    current = title_for_xp(total_xp)
    if current.level >= TITLES[-1].level:
        return None
    return TITLES[current.level]


def title_progress(total_xp: int) -> int:
    """Percentage of the way from the current title to the next one."""
    current = title_for_xp(total_xp)
    upcoming = next_title_for_xp(total_xp)
    if upcoming is None:
        return 100
    span = upcoming.xp_required - current.xp_required
    return min(100, round((total_xp - current.xp_required) / span * 100))


def xp_to_next_title(total_xp: int) -> int:
    upcoming = next_title_for_xp(total_xp)
    return upcoming.xp_required - total_xp if upcoming is not None else 0


def difficulty_level_for_xp(total_xp: int) -> int:
    return min(title_for_xp(total_xp).level, MAX_DIFFICULTY_LEVEL)


@dataclass(slots=True)
class StreakUpdate:
    current_streak: int
    longest_streak: int
    last_practice_date: date
    is_new_streak: bool = False
    streak_continued: bool = False
    streak_broken: bool = False

    @property
    def message(self) -> str:
        if self.is_new_streak:
            return "1 day streak started!"
        if self.streak_continued:
            return f"{self.current_streak} day streak!"
        if self.streak_broken:
            return "1 day streak! Keep it going tomorrow!"
        return f"{self.current_streak} day streak maintained!"


def advance_streak(
    last_practice_date: Optional[date],
    current_streak: int,
    longest_streak: int,
    today: date,
) -> StreakUpdate:
    """Streak after practising on ``today``.

    Practising again the same day keeps the streak, the day after extends it
    and any longer gap starts over at 1.
    """

    current_streak = current_streak or 0
    longest_streak = longest_streak or 0

    if last_practice_date is None:
        update = StreakUpdate(1, 0, today, is_new_streak=True)
    elif last_practice_date >= today:
        update = StreakUpdate(max(current_streak, 1), 0, today)
    elif last_practice_date == today - timedelta(days=1):
        update = StreakUpdate(current_streak + 1, 0, today, streak_continued=True)
    else:
        update = StreakUpdate(1, 0, today, streak_broken=True)

    update.longest_streak = max(longest_streak, update.current_streak)
    return update


def active_streak(last_practice_date: Optional[date], current_streak: int, today: date) -> int:
    """Stored streak, or 0 once a whole day went by without practice."""
    if last_practice_date is None or last_practice_date < today - timedelta(days=1):
        return 0
    return current_streak or 0


class UserStatsService:
    """Reads and updates the practice stats stored on :class:`User`."""

    def __init__(self, db: Session, user: User):
        self.db = db
        self.user = user

    def record_review(self, assessment: Assessment | str, now: datetime | None = None) -> dict:
        """Award XP for one review and move the streak and level along.

        Changes are left in the session; the caller commits them together with
        the review itself.
        """

        today = (normalize_datetime(now) or utcnow()).date()
        user = self.user

        xp_earned = xp_for(assessment)
        previous_level = user.level or 1
        user.xp_points = (user.xp_points or 0) + xp_earned

        streak = advance_streak(user.last_practice_date, user.current_streak, user.longest_streak, today)
        user.current_streak = streak.current_streak
        user.longest_streak = streak.longest_streak
        user.last_practice_date = streak.last_practice_date

        user.level = max(previous_level, difficulty_level_for_xp(user.xp_points))
        if user.level > previous_level:
            logger.info("User %s reached level %s with %s XP", user.id, user.level, user.xp_points)

        return {
            "xp_earned": xp_earned,
            "total_xp": user.xp_points,
            "current_level": user.level,
            "level_up": user.level > previous_level,
            "current_streak": streak.current_streak,
            "longest_streak": streak.longest_streak,
            "streak_message": streak.message,
        }

    def build_stats(self, now: datetime | None = None) -> dict:
        today = (normalize_datetime(now) or utcnow()).date()
        user = self.user
        total_xp = user.xp_points or 0
        title = title_for_xp(total_xp)
        upcoming = next_title_for_xp(total_xp)

        words_learned = (
            self.db.query(func.count(UserVocabularyProgress.id))
            .filter(
                UserVocabularyProgress.user_id == user.id,
                UserVocabularyProgress.is_learned.is_(True),
            )
            .scalar()
        )

        return {
            "current_level": user.level or 1,
            "total_xp": total_xp,
            "title": title.title,
            "title_persian": title.title_persian,
            "title_level": title.level,
            "next_title": upcoming.title if upcoming else None,
            "xp_to_next_title": xp_to_next_title(total_xp),
            "title_progress": title_progress(total_xp),
            "total_words_learned": words_learned or 0,
            "current_streak": active_streak(user.last_practice_date, user.current_streak, today),
            "longest_streak": user.longest_streak or 0,
            "last_practice_date": user.last_practice_date.isoformat() if user.last_practice_date else None,
        }


__all__ = [
    "UserStatsService",
    "StreakUpdate",
    "Title",
    "TITLES",
    "XP_BY_ASSESSMENT",
    "MAX_DIFFICULTY_LEVEL",
    "advance_streak",
    "active_streak",
    "difficulty_level_for_xp",
    "next_title_for_xp",
    "title_for_xp",
    "title_progress",
    "xp_for",
]
