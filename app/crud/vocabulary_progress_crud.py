"""SQLAlchemy access to the vocabulary catalog and per-user practice progress."""

import logging
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Tuple

from sqlalchemy import and_, exists, select
from sqlalchemy.orm import Session, selectinload

from app.models.progress.user_vocabulary_progress_model import UserVocabularyProgress
from app.models.user.user_model import User
from app.models.vocabulary.vocabulary_item_model import VocabularyItem
from app.models.vocabulary.word_category_model import VocabularyCategory, WordCategory
from app.services.review_scheduler import ReviewUpdate

logger = logging.getLogger(__name__)


class SQLAlchemyProgressStore:
    """Server-backed :class:`~app.services.session_builder.ProgressStore`.

    Writes are flushed only; the caller ends the transaction with :meth:`commit`.
    """

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Progress records
    # ------------------------------------------------------------------
    def find_progress(self, user_id: int, item_id: Optional[int] = None):
        query = self.db.query(UserVocabularyProgress).filter(
            UserVocabularyProgress.user_id == user_id
        )
        if item_id is not None:
            return query.filter(UserVocabularyProgress.vocabulary_id == item_id).one_or_none()
        return query.order_by(UserVocabularyProgress.id.asc()).all()

    def save_progress(self, user_id: int, item_id: int, update: ReviewUpdate) -> UserVocabularyProgress:
        """Upsert the progress row of (user_id, item_id).

        Updating a row whose ``version`` changed since it was read raises
        ``StaleDataError``; inserting a row created concurrently raises
        ``IntegrityError`` on the unique (user, item) constraint.
        """
        progress = self.find_progress(user_id, item_id)
        if progress is None:
            progress = UserVocabularyProgress(user_id=user_id, vocabulary_id=item_id)
            self.db.add(progress)

        for column, value in update.as_dict().items():
            setattr(progress, column, value)

        self.db.flush([progress])
        return progress

    def update_progress(
        self, user_id: int, item_id: int, compute: Callable[[Optional[UserVocabularyProgress]], ReviewUpdate]
    ) -> UserVocabularyProgress:
        return self.save_progress(user_id, item_id, compute(self.find_progress(user_id, item_id)))

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

    # ------------------------------------------------------------------
    # Session tiers
    # ------------------------------------------------------------------
    def find_failed_items(
        self, user_id: int, limit: int, exclude_ids: Iterable[int] = ()
    ) -> List[VocabularyItem]:
        stmt = (
            select(VocabularyItem)
            .join(UserVocabularyProgress, UserVocabularyProgress.vocabulary_id == VocabularyItem.id)
            .where(
                UserVocabularyProgress.user_id == user_id,
                UserVocabularyProgress.consecutive_wrong > 0,
                VocabularyItem.is_active.is_(True),
            )
            .order_by(UserVocabularyProgress.consecutive_wrong.desc(), VocabularyItem.id.asc())
            .limit(limit)
        )
        stmt = self._exclude(stmt, exclude_ids)
        return list(self.db.scalars(stmt))

    def find_due_items(
        self, user_id: int, now: datetime, limit: int, exclude_ids: Iterable[int] = ()
    ) -> List[VocabularyItem]:
        stmt = (
            select(VocabularyItem)
            .join(UserVocabularyProgress, UserVocabularyProgress.vocabulary_id == VocabularyItem.id)
            .where(
                UserVocabularyProgress.user_id == user_id,
                UserVocabularyProgress.next_review_date.is_not(None),
                UserVocabularyProgress.next_review_date <= now,
                UserVocabularyProgress.consecutive_wrong == 0,
                VocabularyItem.is_active.is_(True),
            )
            .order_by(UserVocabularyProgress.next_review_date.asc(), VocabularyItem.id.asc())
            .limit(limit)
        )
        stmt = self._exclude(stmt, exclude_ids)
        return list(self.db.scalars(stmt))

    def find_unseen_items(
        self,
        user_id: int,
        level: int,
        exclude_ids: Iterable[int] = (),
        category_id: Optional[int] = None,
    ) -> List[VocabularyItem]:
        seen = exists().where(
            and_(
                UserVocabularyProgress.vocabulary_id == VocabularyItem.id,
                UserVocabularyProgress.user_id == user_id,
            )
        )
        stmt = select(VocabularyItem).where(VocabularyItem.is_active.is_(True), ~seen)
        if category_id is not None:
            # Category members are taken whatever their own level.
            stmt = stmt.join(
                VocabularyCategory, VocabularyCategory.vocabulary_id == VocabularyItem.id
            ).where(VocabularyCategory.category_id == category_id)
        else:
            stmt = stmt.where(VocabularyItem.difficulty_level == level)
        stmt = self._exclude(stmt, exclude_ids)
        return list(self.db.scalars(stmt))

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------
    def find_items_by_level(
        self, level: int, active_only: bool = True, exclude_ids: Iterable[int] = ()
    ) -> List[VocabularyItem]:
        stmt = select(VocabularyItem).where(VocabularyItem.difficulty_level == level)
        if active_only:
            stmt = stmt.where(VocabularyItem.is_active.is_(True))
        stmt = self._exclude(stmt, exclude_ids)
        return list(self.db.scalars(stmt))

    def find_items(self, exclude_ids: Iterable[int] = (), active_only: bool = True) -> List[VocabularyItem]:
        stmt = select(VocabularyItem)
        if active_only:
            stmt = stmt.where(VocabularyItem.is_active.is_(True))
        stmt = self._exclude(stmt, exclude_ids)
        return list(self.db.scalars(stmt))

    def get_item(self, item_id: int) -> Optional[VocabularyItem]:
        return self.db.get(VocabularyItem, item_id)

    def load_catalog(self) -> Tuple[List[VocabularyItem], List[WordCategory]]:
        """Every item (with its categories) and every category, for in-memory stores."""
        items = list(
            self.db.scalars(
                select(VocabularyItem)
                .options(selectinload(VocabularyItem.categories))
                .order_by(VocabularyItem.id.asc())
            )
        )
        categories = list(self.db.scalars(select(WordCategory).order_by(WordCategory.id.asc())))
        return items, categories

    # ------------------------------------------------------------------
    # Category rotation
    # ------------------------------------------------------------------
    def find_categories(self, level: Optional[int] = None) -> List[WordCategory]:
        stmt = select(WordCategory).where(WordCategory.is_active.is_(True))
        if level is not None:
            stmt = stmt.where(WordCategory.difficulty_level == level)
        stmt = stmt.order_by(WordCategory.sort_order.asc(), WordCategory.id.asc())
        return list(self.db.scalars(stmt))

    def get_last_category(self, user_id: int) -> Optional[int]:
        user = self.db.get(User, user_id)
        return user.last_category_id if user is not None else None

    def set_last_category(self, user_id: int, category_id: Optional[int]) -> None:
        user = self.db.get(User, user_id)
        if user is None:
            logger.warning("Cannot remember category %s: user %s not found", category_id, user_id)
            return
        user.last_category_id = category_id
        self.db.flush([user])

    @staticmethod
    def _exclude(stmt, exclude_ids: Iterable[int]):
        exclude_ids = list(exclude_ids)
        if exclude_ids:
            stmt = stmt.where(VocabularyItem.id.not_in(exclude_ids))
        return stmt


__all__ = ["SQLAlchemyProgressStore"]
