"""Multi-key stable sorting of tasks."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date
from enum import Enum
from functools import cmp_to_key
from typing import Any

from todocore.dates import EARLIEST, LATEST, UNKNOWN_OCCURRENCE
from todocore.task import Task


class SortKey(str, Enum):
    """Task fields the user can sort on."""

    PIN = "pin"
    COMPLETED = "completed"
    PRIORITY = "priority"
    DUE_DATE = "due_date"
    RECURRENCE = "recurrence"
    CONTEXT = "context"
    PROJECT = "project"
    CREATION_DATE = "creation_date"
    COMPLETION_DATE = "completion_date"


class SortDirection(str, Enum):
    ASCENDING = "asc"
    DESCENDING = "desc"


SortRule = tuple[SortKey, SortDirection]

DEFAULT_SORT: list[SortRule] = [
    (SortKey.PIN, SortDirection.DESCENDING),
    (SortKey.COMPLETED, SortDirection.ASCENDING),
    (SortKey.PRIORITY, SortDirection.ASCENDING),
    (SortKey.DUE_DATE, SortDirection.ASCENDING),
    (SortKey.RECURRENCE, SortDirection.ASCENDING),
    (SortKey.CONTEXT, SortDirection.ASCENDING),
    (SortKey.PROJECT, SortDirection.ASCENDING),
    (SortKey.CREATION_DATE, SortDirection.ASCENDING),
    (SortKey.COMPLETION_DATE, SortDirection.ASCENDING),
]


def _recurrence_value(task: Task) -> date:
    if task.recurrence is None:
        return LATEST
    return task.recurrence.next_occurrence or UNKNOWN_OCCURRENCE


def sort_value(task: Task, key: SortKey) -> Any:
    """Comparable value of ``task`` for ``key``, with sentinels for gaps."""
    if key == SortKey.PIN:
        return task.pinned
    if key == SortKey.COMPLETED:
        return task.completed
    if key == SortKey.PRIORITY:
        return task.priority
    if key == SortKey.DUE_DATE:
        return task.due_date or LATEST
    if key == SortKey.RECURRENCE:
        return _recurrence_value(task)
    if key == SortKey.CONTEXT:
        return task.first_context
    if key == SortKey.PROJECT:
        return task.first_project
    if key == SortKey.CREATION_DATE:
        return task.creation_date or EARLIEST
    if key == SortKey.COMPLETION_DATE:
        return task.completion_date or EARLIEST
    raise ValueError(f"Unknown sort key: {key}")


def _compare_priority(a: str | None, b: str | None, direction: SortDirection) -> int:
    # Tasks without a priority go last in both directions.
    if a is None:
        return 1
    if b is None:
        return -1
    result = -1 if a < b else 1
    return result if direction == SortDirection.ASCENDING else -result


def compare_tasks(a: Task, b: Task, rules: Sequence[SortRule]) -> int:
    """Compare two tasks on the first key where they differ."""
    for key, direction in rules:
        left = sort_value(a, key)
        right = sort_value(b, key)
        if left == right:
            continue

        if key == SortKey.PRIORITY:
            return _compare_priority(left, right, direction)

        result = -1 if left < right else 1
        return result if direction == SortDirection.ASCENDING else -result
    return 0


def sort_tasks(tasks: Iterable[Task], rules: Sequence[SortRule]) -> list[Task]:
    """Return ``tasks`` ordered by ``rules``; equal tasks keep their order."""
    return sorted(tasks, key=cmp_to_key(lambda a, b: compare_tasks(a, b, rules)))


def sort_order(tasks: Sequence[Task], rules: Sequence[SortRule]) -> list[int]:
    """Indices of ``tasks`` in sorted order."""
    return sorted(
        range(len(tasks)),
        key=cmp_to_key(lambda i, j: compare_tasks(tasks[i], tasks[j], rules)),
    )


def parse_rule(text: str) -> SortRule:
    """Parse ``key`` or ``key:asc|desc`` as written on the command line."""
    name, _, direction = text.partition(":")
    return SortKey(name.strip().lower()), SortDirection(direction.strip().lower() or "asc")
