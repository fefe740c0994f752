"""Deferral tracker for ``t:`` (threshold) dates."""

from __future__ import annotations

from dataclasses import replace
from datetime import date

from todocore.task import Task


def check_deferral(task: Task, today: date) -> tuple[Task, bool]:
    """Update the deferred state of ``task`` for ``today``.

    A deferred task is treated as created on its defer date. Returns the
    updated task and True only on the transition from deferred to active,
    so each task is reported as opened exactly once.
    """
    if task.defer_date is None:
        return task, False

    if task.defer_date > today:
        return replace(task, creation_date=task.defer_date, is_deferred=True), False

    opened = task.is_deferred
    return replace(task, creation_date=task.defer_date, is_deferred=False), opened
