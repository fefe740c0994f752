"""Task store: the single owner of all parsed tasks.

The viewport and the search cache hold indices into the store's task
list, never copies. Any mutation clears the search cache and marks the
viewport stale, so one rebuild refreshes every derived view.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from datetime import date

from todocore.batch import CancelToken
from todocore.config import FilterConfig
from todocore.deferral import check_deferral
from todocore.filters import filter_test
from todocore.recurrence import check_recurrence
from todocore.search import SearchCache
from todocore.sorting import SortRule, sort_order
from todocore.task import Task, parse_task, toggle_pin, toggle_task


@dataclass
class TaskStats:
    """Counts used for the task counter and for pruning stale filters.

    Deferred tasks are only counted as deferred and completed tasks only as
    completed; contexts and projects of hidden tasks still count.
    """

    deferred_tasks: int = 0
    recurring_completed: int = 0
    recurring_incomplete: int = 0
    hidden: int = 0
    completed: int = 0
    no_priority: int = 0
    priorities: dict[str, int] = field(default_factory=dict)
    contexts: dict[str, int] = field(default_factory=dict)
    projects: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class RolloverReport:
    """What happened to the task list when a new day was checked."""

    recurred: int = 0
    opened: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.recurred or self.opened)

    def messages(self) -> list[str]:
        """User-facing notifications for this report."""
        messages = []
        if self.recurred == 1:
            messages.append("1 task has recurred")
        elif self.recurred > 1:
            messages.append(f"{self.recurred} tasks have recurred")
        if self.opened == 1:
            messages.append("1 deferred task has been opened")
        elif self.opened > 1:
            messages.append(f"{self.opened} deferred tasks have been opened")
        return messages


def refresh_task(task: Task, today: date) -> tuple[Task, bool, bool]:
    """Run recurrence and deferral checks on a task.

    Returns (task, recurred, opened).
    """
    task, recurred = check_recurrence(task, today)
    task, opened = check_deferral(task, today)
    return task, recurred, opened


class TaskStore:
    """Ordered collection of tasks plus the views derived from it."""

    def __init__(self, tasks: Iterable[Task] | None = None) -> None:
        self._tasks: list[Task] = list(tasks or [])
        self._viewport: list[int] = list(range(len(self._tasks)))
        self.search_cache = SearchCache()

    def __len__(self) -> int:
        return len(self._tasks)

    def __getitem__(self, index: int) -> Task:
        return self._tasks[index]

    def __iter__(self) -> Iterator[Task]:
        return iter(self._tasks)

    @property
    def tasks(self) -> Sequence[Task]:
        return tuple(self._tasks)

    @property
    def viewport(self) -> list[Task]:
        return [self._tasks[i] for i in self._viewport]

    @property
    def viewport_indices(self) -> list[int]:
        return list(self._viewport)

    def index_of(self, task: Task) -> int:
        """Position of ``task`` (by identity) in the store."""
        for i, candidate in enumerate(self._tasks):
            if candidate is task:
                return i
        raise ValueError("Task is not in the store")

    def _invalidate(self) -> None:
        self.search_cache.clear()
        self._viewport = [i for i in self._viewport if i < len(self._tasks)]

    # Loading and saving

    def iter_load(self, lines: Iterable[str], token: CancelToken) -> Iterator[int]:
        """Parse ``lines`` one per step, replacing the store when done.

        A cancelled load leaves the store untouched.
        """
        parsed: list[Task] = []
        for line in lines:
            if token.cancelled:
                return
            if not line.strip():
                continue
            parsed.append(parse_task(line))
            yield len(parsed)

        if token.cancelled:
            return
        self._tasks = parsed
        self._viewport = list(range(len(parsed)))
        self.search_cache.clear()

    def load(self, lines: Iterable[str]) -> None:
        for _ in self.iter_load(lines, CancelToken()):
            pass

    def to_lines(self) -> list[str]:
        return [task.raw_text for task in self._tasks]

    # Edits

    def add_task(self, line: str, today: date) -> Task:
        """Parse ``line`` and insert it at the front of the store."""
        task, _, _ = refresh_task(parse_task(line), today)
        self._tasks.insert(0, task)
        self._viewport = [i + 1 for i in self._viewport]
        self._invalidate()
        return task

    def replace_task(self, index: int, task: Task) -> Task:
        self._tasks[index] = task
        self._invalidate()
        return task

    def edit_task(self, index: int, line: str, today: date) -> Task:
        task, _, _ = refresh_task(parse_task(line), today)
        return self.replace_task(index, task)

    def toggle_task(self, index: int, today: date) -> Task:
        task, _, _ = refresh_task(toggle_task(self._tasks[index], today), today)
        return self.replace_task(index, task)

    def toggle_pin(self, index: int, today: date) -> Task:
        task, _, _ = refresh_task(toggle_pin(self._tasks[index]), today)
        return self.replace_task(index, task)

    def delete_task(self, index: int) -> Task:
        task = self._tasks.pop(index)
        self._viewport = [i if i < index else i - 1 for i in self._viewport if i != index]
        self._invalidate()
        return task

    def clear_completed(self) -> list[Task]:
        """Remove completed, non-recurring tasks and return them."""
        removed = [t for t in self._tasks if t.completed and not t.is_recurring]
        self._tasks = [t for t in self._tasks if not t.completed or t.is_recurring]
        self._viewport = list(range(len(self._tasks)))
        self._invalidate()
        return removed

    # Day rollover

    def check_dates(self, today: date) -> RolloverReport:
        """Apply recurrence and deferral to every task for ``today``."""
        recurred = 0
        opened = 0

        for i, task in enumerate(self._tasks):
            updated, did_recur, did_open = refresh_task(task, today)
            recurred += did_recur
            opened += did_open
            self._tasks[i] = updated

        if recurred or opened:
            self.search_cache.clear()
        return RolloverReport(recurred=recurred, opened=opened)

    # Derived views

    def stats(self) -> TaskStats:
        stats = TaskStats()

        for task in self._tasks:
            if task.is_deferred:
                stats.deferred_tasks += 1
                continue

            if task.completed:
                if task.is_recurring:
                    stats.recurring_completed += 1
                else:
                    stats.completed += 1
                continue

            for project in task.projects:
                stats.projects[project] = stats.projects.get(project, 0) + 1
            for context in task.contexts:
                stats.contexts[context] = stats.contexts.get(context, 0) + 1

            if task.hidden:
                stats.hidden += 1
                continue

            if task.priority is None:
                stats.no_priority += 1
            else:
                marker = task.priority_marker
                stats.priorities[marker] = stats.priorities.get(marker, 0) + 1

            if task.is_recurring:
                stats.recurring_incomplete += 1

        return stats

    def incomplete_count(self, stats: TaskStats | None = None) -> int:
        """Number of open tasks shown on the task counter."""
        if stats is None:
            stats = self.stats()
        return (
            len(self._tasks)
            - stats.completed
            - stats.hidden
            - stats.recurring_completed
            - stats.deferred_tasks
        )

    def sort(self, rules: Sequence[SortRule]) -> None:
        """Reorder the store by ``rules`` (stable)."""
        order = sort_order(self._tasks, rules)
        self._tasks = [self._tasks[i] for i in order]
        self._viewport = list(range(len(self._tasks)))
        self.search_cache.clear()

    def iter_viewport(
        self,
        filters: FilterConfig,
        token: CancelToken,
        ignore_filters: bool = False,
    ) -> Iterator[int]:
        """Rebuild the viewport one task per step."""
        self._viewport = []
        for i, task in enumerate(self._tasks):
            if token.cancelled:
                return
            if ignore_filters or filter_test(task, filters):
                self._viewport.append(i)
            yield i

    def update_viewport(self, filters: FilterConfig, ignore_filters: bool = False) -> list[Task]:
        for _ in self.iter_viewport(filters, CancelToken(), ignore_filters):
            pass
        return self.viewport

    def search(self, query: str) -> list[Task]:
        """Narrow the viewport to tasks fuzzy-matching ``query``.

        Searches every task regardless of filters.
        """
        self._viewport = self.search_cache.search(query, self._tasks)
        return self.viewport

    def end_search(self) -> None:
        self.search_cache.clear()
