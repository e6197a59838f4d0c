from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import pytest

from app.services.local_progress_store import LocalProgressStore
from app.services.review_scheduler import score_review
from app.services.session_builder import SessionBuilder, build_session

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
USER = "learner-1"


@dataclass
class Word:
    id: int
    difficulty_level: int = 1
    is_active: bool = True
    category_ids: list = field(default_factory=list)


@dataclass
class Category:
    id: int
    difficulty_level: int = 1
    sort_order: int = 0
    is_active: bool = True


def make_store(levels: dict[int, int], inactive: int = 0) -> LocalProgressStore:
    words = []
    next_id = 1
    for level, count in levels.items():
        for _ in range(count):
            words.append(Word(id=next_id, difficulty_level=level))
            next_id += 1
    for _ in range(inactive):
        words.append(Word(id=next_id, difficulty_level=1, is_active=False))
        next_id += 1
    return LocalProgressStore(words)


def fail(store, item_id, times=1, *, at=NOW):
    state = store.find_progress(USER, item_id)
    for _ in range(times):
        state = score_review("again", False, state, now=at - timedelta(days=3))
    store.save_progress(USER, item_id, state)


def review_due(store, item_id, overdue_days):
    reviewed_at = NOW - timedelta(days=overdue_days + 1)
    store.save_progress(USER, item_id, score_review("good", True, None, now=reviewed_at))


def review_later(store, item_id):
    store.save_progress(USER, item_id, score_review("easy", True, None, now=NOW))


def builder(store, seed=0):
    return SessionBuilder(store, rng=random.Random(seed), clock=lambda: NOW)


def test_new_learner_gets_every_word_of_small_level():
    store = make_store({1: 5})

    words = builder(store).build(5, 1, USER)

    assert sorted(word.id for word in words) == [1, 2, 3, 4, 5]


def test_empty_catalog_returns_empty_session():
    store = make_store({}, inactive=3)

    assert builder(store).build(5, 1, USER) == []


def test_non_positive_size_returns_empty_session():
    store = make_store({1: 5})

    assert builder(store).build(0, 1, USER) == []


@pytest.mark.parametrize("size", [1, 3, 5, 8, 12, 30])
def test_session_size_is_capped_by_catalog(size):
    store = make_store({1: 4, 2: 6}, inactive=2)
    fail(store, 1, times=2)
    fail(store, 5)
    review_due(store, 2, overdue_days=4)

    words = builder(store, seed=size).build(size, 1, USER)
    ids = [word.id for word in words]

    assert len(ids) == min(size, 10)
    assert len(set(ids)) == len(ids)
    assert all(word.is_active for word in words)


def test_failed_words_take_priority_by_failure_count():
    store = make_store({1: 10})
    fail(store, 3, times=1)
    fail(store, 7, times=4)
    fail(store, 9, times=2)

    plan = builder(store).plan(5, 1, USER)

    assert [word.id for word in plan.failed] == [7, 9]
    assert 3 not in plan.selected_ids


def test_failed_words_are_included_even_from_other_levels():
    store = make_store({1: 6, 3: 2})
    fail(store, 7, times=2)
    fail(store, 8, times=1)

    words = builder(store).build(5, 1, USER)

    assert {7, 8} <= {word.id for word in words}


def test_due_words_follow_failed_words_most_overdue_first():
    store = make_store({1: 10})
    fail(store, 1)
    review_due(store, 4, overdue_days=1)
    review_due(store, 5, overdue_days=9)
    review_due(store, 6, overdue_days=3)
    review_later(store, 2)

    plan = builder(store).plan(6, 1, USER)

    assert [word.id for word in plan.failed] == [1]
    assert [word.id for word in plan.due] == [5, 6]
    assert 2 not in {word.id for word in plan.new}


def test_due_tier_only_fills_remaining_slots():
    store = make_store({1: 6})
    fail(store, 1)
    fail(store, 2)
    review_due(store, 3, overdue_days=2)

    plan = builder(store).plan(2, 1, USER)

    assert [word.id for word in plan.failed] == [1, 2]
    assert plan.due == []
    assert len(plan) == 2


def test_new_words_come_from_current_level_and_are_unseen():
    store = make_store({1: 3, 2: 8})
    review_later(store, 4)
    review_later(store, 5)

    plan = builder(store).plan(4, 2, USER)

    assert len(plan.new) == 4
    assert all(word.difficulty_level == 2 for word in plan.new)
    assert not {4, 5} & {word.id for word in plan.new}


def test_exhausted_level_falls_back_to_seen_words_then_other_levels():
    store = make_store({1: 3, 2: 10})
    review_later(store, 1)
    review_later(store, 2)

    plan = builder(store).plan(6, 1, USER)

    assert [word.id for word in plan.new] == [3]
    assert sorted(word.id for word in plan.level_fill) == [1, 2]
    assert len(plan.any_fill) == 3
    assert all(word.difficulty_level == 2 for word in plan.any_fill)


def test_inactive_words_are_never_selected():
    store = LocalProgressStore([Word(1), Word(2, is_active=False), Word(3, is_active=False)])
    fail(store, 2, times=3)
    review_due(store, 3, overdue_days=5)

    words = builder(store).build(5, 1, USER)

    assert [word.id for word in words] == [1]


def test_seeded_sessions_are_reproducible():
    store = make_store({1: 20, 2: 20})
    fail(store, 11, times=2)
    review_due(store, 12, overdue_days=2)

    first = [word.id for word in builder(store, seed=42).build(8, 1, USER)]
    second = [word.id for word in builder(store, seed=42).build(8, 1, USER)]

    assert first == second


def test_shuffle_is_a_permutation_of_the_plan():
    store = make_store({1: 12})
    fail(store, 1, times=2)
    fail(store, 2)

    plan = builder(store, seed=3).plan(6, 1, USER)
    words = builder(store, seed=3).build(6, 1, USER)

    assert sorted(word.id for word in words) == sorted(word.id for word in plan.items)


def test_failed_words_do_not_always_open_the_session():
    store = make_store({1: 12})
    fail(store, 1, times=2)
    fail(store, 2)

    first_positions = {
        build_session(store, 5, 1, USER, rng=random.Random(seed))[0].id for seed in range(30)
    }

    assert first_positions - {1, 2}


def make_categorised_store() -> LocalProgressStore:
    words = [
        Word(1, category_ids=[100]),
        Word(2, category_ids=[100]),
        Word(3, category_ids=[200]),
        Word(4, category_ids=[200]),
        Word(5),
        Word(6),
        Word(7),
    ]
    categories = [Category(200, sort_order=2), Category(100, sort_order=1), Category(300, sort_order=3)]
    return LocalProgressStore(words, categories)


def test_new_words_rotate_through_categories():
    store = make_categorised_store()

    plans = [builder(store, seed=index).plan(2, 1, USER) for index in range(4)]

    assert [plan.category.id for plan in plans] == [100, 200, 300, 100]
    assert sorted(word.id for word in plans[0].new) == [1, 2]
    assert sorted(word.id for word in plans[1].new) == [3, 4]
    assert store.get_last_category(USER) == 100


def test_empty_category_falls_back_to_unseen_level_words():
    store = make_categorised_store()
    store.set_last_category(USER, 200)

    plan = builder(store).plan(7, 1, USER)

    assert plan.category.id == 300
    assert sorted(word.id for word in plan.new) == [1, 2, 3, 4, 5, 6, 7]


def test_used_up_category_falls_back_to_unseen_level_words():
    store = make_categorised_store()
    review_later(store, 1)
    review_later(store, 2)

    plan = builder(store).plan(3, 1, USER)

    assert plan.category.id == 100
    assert {word.id for word in plan.new} <= {3, 4, 5, 6, 7}
    assert len(plan.new) == 3


def test_category_that_is_partly_seen_gives_only_its_own_unseen_words():
    store = make_categorised_store()
    review_later(store, 1)

    plan = builder(store).plan(3, 1, USER)

    assert [word.id for word in plan.new] == [2]
    assert len(plan.level_fill) == 2


def test_without_categories_nothing_is_remembered():
    store = make_store({1: 4})

    plan = builder(store).plan(3, 1, USER)

    assert plan.category is None
    assert len(plan.new) == 3
    assert store.get_last_category(USER) is None


def test_unknown_last_category_restarts_the_rotation():
    store = make_categorised_store()
    store.set_last_category(USER, 999)

    assert builder(store).plan(2, 1, USER).category.id == 100
