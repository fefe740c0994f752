"""Todo session: wires the task store to its file, cache and notifier.

The session owns the only ``TaskStore``. Every edit follows the same
order: mutate the store, recompute derived views once, then write the
file. Long loads run as cooperative batches on ``scheduler``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import date
from pathlib import Path

from todocore.batch import BatchScheduler, CancelToken
from todocore.config import CONFIG_FILE, FilterConfig, TodoCache, TodoConfig, TodoFileEntry
from todocore.filters import (
    prune_stale_filters,
    toggle_custom_term,
    toggle_filter,
    toggle_invert,
)
from todocore.sorting import DEFAULT_SORT, SortRule
from todocore.store import RolloverReport, TaskStore
from todocore.task import Task
from todocore.todo_file import (
    TodoFileError,
    TodoFileWatcher,
    append_archive,
    read_todo_lines,
    write_todo_lines,
)

Notifier = Callable[[str], None]


def _silent(message: str) -> None:
    pass


class TodoSession:
    """A loaded todo file and the state derived from it."""

    def __init__(
        self,
        config: TodoConfig,
        notifier: Notifier | None = None,
        clock: Callable[[], date] | None = None,
        config_path: Path | None = None,
    ) -> None:
        self.config = config
        self.config_path = config_path or CONFIG_FILE
        self.notify = notifier or _silent
        self._clock = clock or date.today
        self.cache_path = Path(config.cache_file)
        self.cache = TodoCache.load(self.cache_path)
        self.store = TaskStore()
        self.scheduler = BatchScheduler()
        self.watcher: TodoFileWatcher | None = None
        self.searching = False
        self._last_day: date | None = None

    @property
    def entry(self) -> TodoFileEntry | None:
        return self.config.current_file

    @property
    def filters(self) -> FilterConfig:
        return self.cache.filters

    def today(self) -> date:
        return self._clock()

    # Loading

    def begin_load(self) -> bool:
        """Read the todo file and schedule parsing as a batch.

        Any load still in flight is cancelled. Returns False (after
        notifying) if there is no usable todo file.
        """
        entry = self.entry
        if entry is None:
            self.notify("No todo file configured")
            return False

        try:
            lines = read_todo_lines(entry.todo_file)
        except TodoFileError as e:
            self.scheduler.cancel()
            self.notify(str(e))
            return False

        self.scheduler.start(lambda token: self._load_batch(lines, token))
        return True

    def load(self) -> bool:
        """Load the todo file, running the whole batch now."""
        if not self.begin_load():
            return False
        self.scheduler.run()
        return True

    def _load_batch(self, lines: list[str], token: CancelToken) -> Iterator[int]:
        yield from self.store.iter_load(lines, token)
        if token.cancelled:
            return

        today = self.today()
        report = self.store.check_dates(today)
        self._last_day = today
        self._report(report)
        if report.changed:
            self.write()

        self._prepare_views()
        yield from self.store.iter_viewport(self.filters, token)

    # Derived views

    def _prepare_views(self) -> None:
        stats = self.store.stats()
        if prune_stale_filters(self.filters, stats):
            self.save_cache()
        self.store.sort(self.cache.sort)

    def on_tasks_changed(self, run: bool = True) -> None:
        """Recompute stats, sort order and viewport after edits.

        Call once after a group of edits, not after each one.
        """
        self._prepare_views()
        self.refresh_viewport(run=run)

    def refresh_viewport(self, run: bool = True) -> None:
        filters = self.filters
        self.scheduler.start(lambda token: self.store.iter_viewport(filters, token))
        if run:
            self.scheduler.run()

    @property
    def viewport(self) -> list[Task]:
        return self.store.viewport

    # Writing

    def write(self) -> bool:
        entry = self.entry
        if entry is None:
            return False

        if self.watcher is not None:
            self.watcher.expect_self_write()

        try:
            write_todo_lines(entry.todo_file, self.store.to_lines())
        except TodoFileError as e:
            if self.watcher is not None:
                self.watcher.cancel_self_write()
            self.notify(str(e))
            return False
        return True

    def save_cache(self) -> None:
        self.cache.save(self.cache_path)

    def archive(self, tasks: list[Task]) -> int:
        """Append ``tasks`` to the done file. Returns lines written."""
        entry = self.entry
        if entry is None or not entry.done_file:
            self.notify("No done file configured; nothing archived")
            return 0

        try:
            return append_archive(entry.done_file, tasks, self.today())
        except TodoFileError as e:
            self.notify(str(e))
            return 0

    # Day rollover

    def _report(self, report: RolloverReport) -> None:
        for message in report.messages():
            self.notify(message)

    def tick(self) -> RolloverReport | None:
        """Check for a new day; returns a report only when the day changed."""
        today = self.today()
        if today == self._last_day:
            return None

        self._last_day = today
        report = self.store.check_dates(today)
        self._report(report)
        if report.changed:
            self.write()
            self.on_tasks_changed()
        return report

    # File watching

    def start_watching(self) -> None:
        entry = self.entry
        if entry is None:
            return
        self.watcher = TodoFileWatcher(entry.todo_file)
        self.watcher.start()

    def stop_watching(self) -> None:
        if self.watcher is not None:
            self.watcher.stop()
            self.watcher = None

    def poll_file_changes(self) -> bool:
        """Reload if the todo file changed on disk. Returns True on reload."""
        if self.watcher is None or not self.watcher.poll():
            return False
        self.load()
        return True

    # Edits

    def _after_edit(self) -> None:
        if not self.searching:
            self.on_tasks_changed()
        self.write()

    def add_task(self, line: str) -> Task:
        task = self.store.add_task(line, self.today())
        self._after_edit()
        return task

    def edit_task(self, index: int, line: str) -> Task:
        task = self.store.edit_task(index, line, self.today())
        self._after_edit()
        return task

    def toggle_task(self, index: int) -> Task:
        task = self.store.toggle_task(index, self.today())
        self._after_edit()
        return task

    def toggle_pin(self, index: int) -> Task:
        task = self.store.toggle_pin(index, self.today())
        self._after_edit()
        return task

    def delete_task(self, index: int, archive: bool = False) -> Task:
        task = self.store[index]
        if archive:
            self.archive([task])
        self.store.delete_task(index)
        self._after_edit()
        return task

    def clear_completed(self, archive: bool = False) -> list[Task]:
        """Delete (optionally archiving) completed, non-recurring tasks."""
        completed = [t for t in self.store if t.completed and not t.is_recurring]
        if archive:
            self.archive(completed)
        removed = self.store.clear_completed()
        self._after_edit()
        return removed

    # Search

    def search(self, query: str) -> list[Task]:
        self.searching = True
        return self.store.search(query)

    def end_search(self) -> None:
        self.searching = False
        self.store.end_search()
        self.refresh_viewport()

    # Filters and sorting

    def _filters_changed(self) -> None:
        self.save_cache()
        if not self.searching:
            self.refresh_viewport()

    def toggle_filter(self, keyword: str) -> bool:
        active = toggle_filter(self.filters, keyword)
        self._filters_changed()
        return active

    def toggle_custom_term(self, term: str) -> bool:
        active = toggle_custom_term(self.filters, term)
        self._filters_changed()
        return active

    def toggle_invert(self) -> bool:
        inverted = toggle_invert(self.filters)
        self._filters_changed()
        return inverted

    def reset_filters(self) -> None:
        self.cache.filters = FilterConfig()
        self._filters_changed()

    def set_sort(self, rules: list[SortRule]) -> None:
        self.cache.sort = list(rules)
        self.save_cache()
        self.on_tasks_changed()

    def reset_sort(self) -> None:
        self.set_sort(list(DEFAULT_SORT))

    # Files

    def switch_file(self, name: str) -> bool:
        """Make ``name`` the current todo file and load it."""
        if not self.config.switch_file(name):
            self.notify(f"Unknown todo file: {name}")
            return False

        self.config.save(self.config_path)
        watching = self.watcher is not None
        self.stop_watching()
        loaded = self.load()
        if watching:
            self.start_watching()
        return loaded
