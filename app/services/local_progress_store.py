"""Local-first progress store.

Keeps the catalog and the progress records in process memory, keyed by
(user_id, item_id). Guests practising before they sign in use it: their
browser sends back the records it holds, the store is rebuilt around the
server catalog for the request, and the updated records are returned for the
browser to keep.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from app.services.review_scheduler import ReviewUpdate, normalize_datetime

_DATETIME_FIELDS = {"next_review_date", "last_reviewed_at", "updated_at"}
_UPDATE_FIELDS = tuple(f.name for f in fields(ReviewUpdate))


class StaleProgressError(RuntimeError):
    """An update was computed from a record that has changed since."""


@dataclass(slots=True)
class LocalProgressRecord(ReviewUpdate):
    vocabulary_id: Any = None


class LocalProgressStore:
    """In-memory :class:`~app.services.session_builder.ProgressStore`."""

    def __init__(self, items: Iterable[Any] = (), categories: Iterable[Any] = ()):
        self._items: Dict[Any, Any] = {item.id: item for item in items}
        self._categories: List[Any] = list(categories)
        self._records: Dict[Tuple[Any, Any], LocalProgressRecord] = {}
        self._last_category: Dict[Any, Any] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Progress records
    # ------------------------------------------------------------------
    def find_progress(self, user_id: Any, item_id: Any = None):
        with self._lock:
            if item_id is not None:
                return self._records.get((user_id, item_id))
            return [
                record for (owner, _), record in self._records.items() if owner == user_id
            ]

    def save_progress(self, user_id: Any, item_id: Any, update: ReviewUpdate) -> LocalProgressRecord:
        """Store ``update`` for (user_id, item_id).

        Each review adds exactly one to ``review_count``, so an update whose
        count does not follow the stored record was computed from a stale
        read and raises :class:`StaleProgressError`.
        """
        with self._lock:
            current = self._records.get((user_id, item_id))
            if current is not None and update.review_count != current.review_count + 1:
                raise StaleProgressError(
                    f"progress of item {item_id} for user {user_id} is at review "
                    f"{current.review_count}, update is for review {update.review_count}"
                )
            record = self._to_record(item_id, update)
            self._records[(user_id, item_id)] = record
            return record

    def update_progress(
        self, user_id: Any, item_id: Any, compute: Callable[[Optional[LocalProgressRecord]], ReviewUpdate]
    ) -> LocalProgressRecord:
        """Read, compute and save under one lock so concurrent reviews all count."""
        with self._lock:
            return self.save_progress(user_id, item_id, compute(self.find_progress(user_id, item_id)))

    def commit(self) -> None:
        """Writes are applied immediately."""

    def rollback(self) -> None:
        """Nothing is pending, so there is nothing to undo."""

    def _user_records(self, user_id: Any) -> Dict[Any, LocalProgressRecord]:
        with self._lock:
            return {
                item_id: record
                for (owner, item_id), record in self._records.items()
                if owner == user_id
            }

    @staticmethod
    def _to_record(item_id: Any, update: ReviewUpdate) -> LocalProgressRecord:
        return LocalProgressRecord(
            **{name: getattr(update, name) for name in _UPDATE_FIELDS}, vocabulary_id=item_id
        )

    # ------------------------------------------------------------------
    # Session tiers
    # ------------------------------------------------------------------
    def find_failed_items(self, user_id: Any, limit: int, exclude_ids: Iterable[Any] = ()) -> List[Any]:
        excluded = set(exclude_ids)
        rows = [
            (record.consecutive_wrong, item_id)
            for item_id, record in self._user_records(user_id).items()
            if record.consecutive_wrong > 0 and item_id not in excluded and self._is_active(item_id)
        ]
        rows.sort(key=lambda row: (-row[0], row[1]))
        return [self._items[item_id] for _, item_id in rows[:limit]]

    def find_due_items(
        self, user_id: Any, now: datetime, limit: int, exclude_ids: Iterable[Any] = ()
    ) -> List[Any]:
        excluded = set(exclude_ids)
        now = normalize_datetime(now)
        rows = []
        for item_id, record in self._user_records(user_id).items():
            due_at = normalize_datetime(record.next_review_date)
            if due_at is None or due_at > now or record.consecutive_wrong != 0:
                continue
            if item_id in excluded or not self._is_active(item_id):
                continue
            rows.append((due_at, item_id))
        rows.sort()
        return [self._items[item_id] for _, item_id in rows[:limit]]

    def find_unseen_items(
        self, user_id: Any, level: int, exclude_ids: Iterable[Any] = (), category_id: Any = None
    ) -> List[Any]:
        seen = set(self._user_records(user_id))
        excluded = set(exclude_ids) | seen
        if category_id is None:
            return self.find_items_by_level(level, active_only=True, exclude_ids=excluded)
        return [
            item
            for item in self.find_items(exclude_ids=excluded, active_only=True)
            if category_id in getattr(item, "category_ids", ())
        ]

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------
    def find_items_by_level(
        self, level: int, active_only: bool = True, exclude_ids: Iterable[Any] = ()
    ) -> List[Any]:
        return [
            item
            for item in self.find_items(exclude_ids=exclude_ids, active_only=active_only)
            if item.difficulty_level == level
        ]

    def find_items(self, exclude_ids: Iterable[Any] = (), active_only: bool = True) -> List[Any]:
        excluded = set(exclude_ids)
        return [
            item
            for item_id, item in self._items.items()
            if item_id not in excluded and (not active_only or item.is_active)
        ]

    def get_item(self, item_id: Any) -> Optional[Any]:
        return self._items.get(item_id)

    def _is_active(self, item_id: Any) -> bool:
        item = self._items.get(item_id)
        return bool(item is not None and item.is_active)

    # ------------------------------------------------------------------
    # Category rotation
    # ------------------------------------------------------------------
    def find_categories(self, level: Optional[int] = None) -> List[Any]:
        categories = [
            category
            for category in self._categories
            if category.is_active and (level is None or category.difficulty_level == level)
        ]
        return sorted(categories, key=lambda category: (category.sort_order, category.id))

    def get_last_category(self, user_id: Any) -> Any:
        with self._lock:
            return self._last_category.get(user_id)

    def set_last_category(self, user_id: Any, category_id: Any) -> None:
        with self._lock:
            self._last_category[user_id] = category_id

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------
    def export_records(self, user_id: Any) -> List[dict]:
        """JSON-friendly copy of the user's records."""
        exported = []
        for item_id, record in sorted(self._user_records(user_id).items(), key=lambda row: row[0]):
            payload = {name: getattr(record, name) for name in _UPDATE_FIELDS}
            for name in _DATETIME_FIELDS:
                payload[name] = payload[name].isoformat()
            payload["item_id"] = item_id
            exported.append(payload)
        return exported

    def import_records(self, user_id: Any, payloads: Iterable[dict]) -> int:
        """Load records produced by :meth:`export_records`; returns how many were stored.

        Datetimes may be ISO strings or ``datetime`` objects. Imported records
        replace whatever the store held for the same item.
        """
        count = 0
        with self._lock:
            for payload in payloads:
                values = {name: payload[name] for name in _UPDATE_FIELDS}
                for name in _DATETIME_FIELDS:
                    value = values[name]
                    if isinstance(value, str):
                        value = datetime.fromisoformat(value)
                    values[name] = normalize_datetime(value)
                item_id = payload["item_id"]
                self._records[(user_id, item_id)] = LocalProgressRecord(**values, vocabulary_id=item_id)
                count += 1
        return count


__all__ = ["LocalProgressStore", "LocalProgressRecord", "StaleProgressError"]
