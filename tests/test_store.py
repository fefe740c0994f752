"""Tests for todocore.store module."""

from __future__ import annotations

from datetime import date

import pytest

from todocore.batch import CancelToken
from todocore.config import FilterConfig
from todocore.sorting import DEFAULT_SORT
from todocore.store import RolloverReport, TaskStore


@pytest.fixture
def store(sample_lines: list[str]) -> TaskStore:
    store = TaskStore()
    store.load(sample_lines)
    return store


class TestLoading:
    """Tests for loading and saving lines."""

    def test_load_skips_blank_lines(self) -> None:
        store = TaskStore()
        store.load(["Call mom", "", "   ", "Buy milk"])
        assert store.to_lines() == ["Call mom", "Buy milk"]

    def test_cancelled_load_keeps_old_tasks(self, store: TaskStore) -> None:
        token = CancelToken()
        batch = store.iter_load(["One", "Two", "Three"], token)
        next(batch)
        token.cancel()
        assert list(batch) == []
        assert len(store) == 8

    def test_iter_load_yields_per_task(self) -> None:
        store = TaskStore()
        steps = list(store.iter_load(["One", "Two"], CancelToken()))
        assert steps == [1, 2]
        assert len(store) == 2


class TestEdits:
    """Tests for store mutations."""

    def test_add_task_goes_first(self, store: TaskStore, today: date) -> None:
        task = store.add_task("New thing @home", today)
        assert store[0] is task
        assert len(store) == 9

    def test_edit_task(self, store: TaskStore, today: date) -> None:
        store.edit_task(2, "Buy oat milk @store", today)
        assert store[2].raw_text == "Buy oat milk @store"

    def test_toggle_task(self, store: TaskStore, today: date) -> None:
        task = store.toggle_task(1, today)
        assert task.raw_text == "x 2024-03-01 2024-02-10 Call mom @phone pri:A"
        assert store[1] is task

    def test_toggle_pin(self, store: TaskStore, today: date) -> None:
        assert store.toggle_pin(2, today).pinned

    def test_delete_task(self, store: TaskStore) -> None:
        removed = store.delete_task(0)
        assert removed.raw_text == "(B) 2024-02-01 Write report @work +q1"
        assert len(store) == 7
        assert all(i < 7 for i in store.viewport_indices)

    def test_clear_completed_keeps_recurring(self, today: date) -> None:
        store = TaskStore()
        store.load(
            [
                "x 2024-02-20 Pay bills",
                "x 2024-02-28 2024-02-27 Water plants rec:3d",
                "Call mom",
            ]
        )
        removed = store.clear_completed()
        assert [t.raw_text for t in removed] == ["x 2024-02-20 Pay bills"]
        assert store.to_lines() == ["x 2024-02-28 2024-02-27 Water plants rec:3d", "Call mom"]

    def test_mutation_clears_search_cache(self, store: TaskStore, today: date) -> None:
        store.search("milk")
        assert len(store.search_cache) == 1
        store.toggle_pin(0, today)
        assert len(store.search_cache) == 0

    def test_index_of(self, store: TaskStore) -> None:
        assert store.index_of(store[3]) == 3


class TestCheckDates:
    """Tests for the day rollover."""

    def test_reports_recurred_and_opened(self) -> None:
        store = TaskStore()
        store.load(["2024-02-28 Water plants rec:3d", "Plan trip t:2024-03-02", "Call mom"])

        assert store.check_dates(date(2024, 3, 1)) == RolloverReport(recurred=0, opened=0)
        assert store[1].is_deferred

        report = store.check_dates(date(2024, 3, 2))
        assert report == RolloverReport(recurred=1, opened=1)
        assert store[0].raw_text == "2024-03-02 Water plants rec:3d"
        assert not store[1].is_deferred

    def test_far_future_task_does_not_stop_rollover(self) -> None:
        store = TaskStore()
        store.load(["9999-12-31 Far future rec:1d", "2024-02-28 Water plants rec:3d"])

        report = store.check_dates(date(2024, 3, 2))

        assert report.recurred == 1
        assert store[0].raw_text == "9999-12-31 Far future rec:1d"
        assert store[1].raw_text == "2024-03-02 Water plants rec:3d"

    def test_messages(self) -> None:
        assert RolloverReport(1, 1).messages() == [
            "1 task has recurred",
            "1 deferred task has been opened",
        ]
        assert RolloverReport(3, 0).messages() == ["3 tasks have recurred"]
        assert RolloverReport(0, 2).messages() == ["2 deferred tasks have been opened"]
        assert RolloverReport().messages() == []
        assert not RolloverReport().changed


class TestStats:
    """Tests for stats() and incomplete_count()."""

    def test_counts(self, store: TaskStore, today: date) -> None:
        store.check_dates(today)
        stats = store.stats()

        assert stats.deferred_tasks == 1
        assert stats.completed == 1
        assert stats.hidden == 1
        assert stats.recurring_incomplete == 1
        assert stats.recurring_completed == 0
        assert stats.priorities == {"(B)": 1, "(A)": 1}
        assert stats.no_priority == 3
        assert stats.contexts == {"@work": 1, "@phone": 1, "@store": 1}
        assert stats.projects == {"+q1": 1}
        assert store.incomplete_count(stats) == 5


class TestViews:
    """Tests for sorting, filtering and searching."""

    def test_sort(self, store: TaskStore, today: date) -> None:
        store.check_dates(today)
        store.sort(DEFAULT_SORT)
        assert store[0].raw_text == "Pick up parcel pin:1"
        assert store[1].priority == "A"
        assert store[-1].completed

    def test_viewport_applies_filters(self, store: TaskStore, today: date) -> None:
        store.check_dates(today)
        visible = store.update_viewport(FilterConfig())
        texts = [t.raw_text for t in visible]
        assert "Secret plans h:1" not in texts
        assert "Plan trip +travel t:2024-04-01" not in texts
        assert "Buy milk @store" in texts

    def test_viewport_ignoring_filters(self, store: TaskStore) -> None:
        visible = store.update_viewport(FilterConfig(), ignore_filters=True)
        assert len(visible) == len(store)

    def test_search_covers_filtered_out_tasks(self, store: TaskStore) -> None:
        store.update_viewport(FilterConfig(priorities=["(A)"]))
        results = store.search("secret")
        assert [t.raw_text for t in results] == ["Secret plans h:1"]

    def test_end_search(self, store: TaskStore) -> None:
        store.search("milk")
        store.end_search()
        assert len(store.search_cache) == 0
