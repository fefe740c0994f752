"""Recurrence engine.

Three ways of rolling a task forward:

    PERIODIC          every n days/weeks counted from the creation date
    SINCE_COMPLETION  n days/weeks after the task was last completed
    MONTHLY_DAY       day d of every n-th month, counted from creation

A task never recurs on the day it was created, since it could not be
closed on that day. When a task fires, its creation date becomes today
and a completed task is reopened.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum

from todocore.dates import add_days, add_months, clamp_day
from todocore.task import Task, parse_task, set_creation_date, toggle_task
from todocore.tokens import RecurrenceKind, RecurrenceRule


class RecurrenceState(Enum):
    """Where a task stands relative to its next occurrence."""

    NO_RECURRENCE = "none"
    SCHEDULED = "scheduled"
    FIRES_TODAY = "fires_today"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class RecurrenceResult:
    """Outcome of evaluating a recurrence on a given day."""

    state: RecurrenceState
    next_occurrence: date | None = None

    @property
    def fires(self) -> bool:
        return self.state == RecurrenceState.FIRES_TODAY


def _advance_days(reference: date, step: int, today: date) -> RecurrenceResult:
    candidate = reference
    try:
        while candidate < today:
            candidate = add_days(candidate, step)

        fires = candidate == today and reference != today
        if fires or candidate == reference:
            candidate = add_days(candidate, step)
    except OverflowError:
        # Next occurrence lies past the end of the calendar.
        return RecurrenceResult(RecurrenceState.UNKNOWN)

    state = RecurrenceState.FIRES_TODAY if fires else RecurrenceState.SCHEDULED
    return RecurrenceResult(state, candidate)


def _advance_months(reference: date, rule: RecurrenceRule, today: date) -> RecurrenceResult:
    day = rule.day or reference.day
    year, month = reference.year, reference.month

    # The unclamped (year, month, day) triple is compared first, so a
    # target of the 31st in a 30 day month still lands in that month.
    try:
        while (year, month, day) < (today.year, today.month, today.day):
            year, month = add_months(year, month, rule.interval)
        candidate = clamp_day(year, month, day)

        fires = candidate == today and reference != today
        if fires or candidate == reference:
            year, month = add_months(year, month, rule.interval)
            candidate = clamp_day(year, month, day)
    except ValueError:
        return RecurrenceResult(RecurrenceState.UNKNOWN)

    state = RecurrenceState.FIRES_TODAY if fires else RecurrenceState.SCHEDULED
    return RecurrenceResult(state, candidate)


def compute_recurrence(task: Task, today: date) -> RecurrenceResult:
    """Decide whether ``task`` recurs today and when it recurs next."""
    recurrence = task.recurrence
    if recurrence is None:
        return RecurrenceResult(RecurrenceState.NO_RECURRENCE)

    rule = recurrence.rule

    if rule.kind == RecurrenceKind.SINCE_COMPLETION:
        if task.completion_date is None:
            return RecurrenceResult(RecurrenceState.UNKNOWN)
        return _advance_days(task.completion_date, rule.interval, today)

    # Creation anchored kinds are only accepted by the parser when a
    # creation date exists.
    if task.creation_date is None:
        return RecurrenceResult(RecurrenceState.UNKNOWN)

    if rule.kind == RecurrenceKind.MONTHLY_DAY:
        return _advance_months(task.creation_date, rule, today)
    return _advance_days(task.creation_date, rule.interval, today)


def check_recurrence(task: Task, today: date) -> tuple[Task, bool]:
    """Apply the recurrence rule for ``today``.

    Returns the (possibly rebuilt) task and whether it recurred.
    """
    result = compute_recurrence(task, today)

    if result.state == RecurrenceState.NO_RECURRENCE:
        return task, False

    if not result.fires:
        return task.with_next_occurrence(result.next_occurrence), False

    if task.completed:
        task = toggle_task(task, today)
    task = parse_task(set_creation_date(task.raw_text, today))

    follow_up = compute_recurrence(task, today)
    return task.with_next_occurrence(follow_up.next_occurrence), True
