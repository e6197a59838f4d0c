"""Word selection for practice sessions.

A session is filled tier by tier, each tier skipping the ids already chosen:

1. failed words (``consecutive_wrong > 0``), most failures first;
2. words due for review, most overdue first;
3. words never practiced, drawn from the next category of the learner's
   level in rotation (any unseen word of the level when that category is
   empty or used up), at random;
4. any word of the learner's level, at random;
5. any word of any level, at random.

The first two tiers are capped so a session never turns into a pure
remediation drill. The last two only kick in when the level runs short, so
even a brand-new learner gets a full session. The combined list is shuffled
before it is returned.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, List, Optional, Protocol, Sequence

from app.services.review_scheduler import ReviewUpdate, utcnow

logger = logging.getLogger(__name__)

FAILED_ITEMS_CAP = 2
DUE_ITEMS_CAP = 2


class ProgressStore(Protocol):
    """Storage contract consumed by the session builder and the practice service.

    Items expose ``id``, ``difficulty_level``, ``is_active`` and
    ``category_ids``; categories expose ``id``. Progress records expose the
    attribute names of :class:`ReviewUpdate` plus ``vocabulary_id``.
    """

    def find_progress(self, user_id: Any, item_id: Any = None) -> Any:
        """One record (or ``None``) when ``item_id`` is given, else all of the user's records."""

    def find_failed_items(self, user_id: Any, limit: int, exclude_ids: Iterable[Any] = ()) -> List[Any]:
        """Active items with ``consecutive_wrong > 0``, highest count first."""

    def find_due_items(
        self, user_id: Any, now: datetime, limit: int, exclude_ids: Iterable[Any] = ()
    ) -> List[Any]:
        """Active items due at ``now`` and not failing, most overdue first."""

    def find_unseen_items(
        self, user_id: Any, level: int, exclude_ids: Iterable[Any] = (), category_id: Any = None
    ) -> List[Any]:
        """Active items without any progress record for the user.

        Restricted to ``category_id`` when given, otherwise to ``level``.
        """

    def find_items_by_level(
        self, level: int, active_only: bool = True, exclude_ids: Iterable[Any] = ()
    ) -> List[Any]:
        ...

    def find_items(self, exclude_ids: Iterable[Any] = (), active_only: bool = True) -> List[Any]:
        ...

    def get_item(self, item_id: Any) -> Optional[Any]:
        ...

    def find_categories(self, level: Optional[int] = None) -> List[Any]:
        """Active categories of ``level`` in rotation order."""

    def get_last_category(self, user_id: Any) -> Any:
        ...

    def set_last_category(self, user_id: Any, category_id: Any) -> None:
        ...

    def save_progress(self, user_id: Any, item_id: Any, update: ReviewUpdate) -> Any:
        """Upsert the record keyed by (user_id, item_id)."""

    def update_progress(
        self, user_id: Any, item_id: Any, compute: Callable[[Any], ReviewUpdate]
    ) -> Any:
        """Read the record, pass it to ``compute`` and save the result.

        Raises when the record changed between the read and the write.
        """

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...


@dataclass
class SessionPlan:
    """Words picked by each tier, in tier order, before the final shuffle."""

    failed: List[Any] = field(default_factory=list)
    due: List[Any] = field(default_factory=list)
    new: List[Any] = field(default_factory=list)
    level_fill: List[Any] = field(default_factory=list)
    any_fill: List[Any] = field(default_factory=list)
    category: Any = None

    @property
    def items(self) -> List[Any]:
        return [*self.failed, *self.due, *self.new, *self.level_fill, *self.any_fill]

    @property
    def selected_ids(self) -> set:
        return {item.id for item in self.items}

    def __len__(self) -> int:
        return len(self.items)


class SessionBuilder:
    """Assemble practice sessions from a :class:`ProgressStore`."""

    def __init__(
        self,
        store: ProgressStore,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.rng = rng or random.Random()
        self.clock = clock or utcnow

    def plan(self, session_size: int, current_level: int, user_id: Any) -> SessionPlan:
        """Run the five selection tiers without shuffling the result."""

        plan = SessionPlan()
        if session_size <= 0:
            return plan

        chosen: set = set()

        def take(candidates: Sequence[Any], limit: int) -> List[Any]:
            picked: List[Any] = []
            for item in candidates:
                if len(picked) >= limit:
                    break
                if item.id in chosen or not getattr(item, "is_active", True):
                    continue
                chosen.add(item.id)
                picked.append(item)
            return picked

        def remaining() -> int:
            return session_size - len(chosen)

        failed_limit = min(FAILED_ITEMS_CAP, session_size)
        plan.failed = take(
            self.store.find_failed_items(user_id, limit=failed_limit, exclude_ids=frozenset(chosen)),
            failed_limit,
        )

        if remaining() > 0:
            due_limit = min(DUE_ITEMS_CAP, remaining())
            plan.due = take(
                self.store.find_due_items(
                    user_id, now=self.clock(), limit=due_limit, exclude_ids=frozenset(chosen)
                ),
                due_limit,
            )

        if remaining() > 0:
            plan.category = self._next_category(user_id, current_level)
            unseen: List[Any] = []
            if plan.category is not None:
                unseen = self.store.find_unseen_items(
                    user_id, current_level, exclude_ids=frozenset(chosen), category_id=plan.category.id
                )
            if not unseen:
                unseen = self.store.find_unseen_items(
                    user_id, current_level, exclude_ids=frozenset(chosen)
                )
            plan.new = take(self._shuffled(unseen), remaining())

        if remaining() > 0:
            level_items = self.store.find_items_by_level(
                current_level, active_only=True, exclude_ids=frozenset(chosen)
            )
            plan.level_fill = take(self._shuffled(level_items), remaining())

        if remaining() > 0:
            any_items = self.store.find_items(exclude_ids=frozenset(chosen), active_only=True)
            plan.any_fill = take(self._shuffled(any_items), remaining())

        logger.debug(
            "Session plan for user %s (level %s, category %s): failed=%s due=%s new=%s level_fill=%s any_fill=%s",
            user_id,
            current_level,
            getattr(plan.category, "id", None),
            len(plan.failed),
            len(plan.due),
            len(plan.new),
            len(plan.level_fill),
            len(plan.any_fill),
        )
        return plan

    def build(self, session_size: int, current_level: int, user_id: Any) -> List[Any]:
        """Return up to ``session_size`` distinct active items in random order."""

        items = self.shuffle(self.plan(session_size, current_level, user_id))
        if not items:
            logger.info("No vocabulary available for user %s at level %s", user_id, current_level)
        return items

    def shuffle(self, plan: SessionPlan) -> List[Any]:
        items = plan.items
        self.rng.shuffle(items)
        return items

    def _next_category(self, user_id: Any, current_level: int) -> Any:
        """Pick the category after the one used last and remember it."""

        categories = self.store.find_categories(current_level)
        if not categories:
            return None

        ids = [category.id for category in categories]
        last = self.store.get_last_category(user_id)
        index = (ids.index(last) + 1) % len(ids) if last in ids else 0
        category = categories[index]
        self.store.set_last_category(user_id, category.id)
        return category

    def _shuffled(self, candidates: Sequence[Any]) -> List[Any]:
        # Sorted first so a seeded generator yields the same order whatever
        # order the store returned rows in.
        pool = sorted(candidates, key=lambda item: item.id)
        self.rng.shuffle(pool)
        return pool


def build_session(
    store: ProgressStore,
    session_size: int,
    current_level: int,
    user_id: Any,
    *,
    rng: Optional[random.Random] = None,
) -> List[Any]:
    return SessionBuilder(store, rng=rng).build(session_size, current_level, user_id)


__all__ = [
    "ProgressStore",
    "SessionBuilder",
    "SessionPlan",
    "build_session",
    "FAILED_ITEMS_CAP",
    "DUE_ITEMS_CAP",
]
