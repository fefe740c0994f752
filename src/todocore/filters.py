"""Filter engine deciding which tasks are visible.

Filter categories combine with OR: a task passes as soon as one active
category matches it. With ``invert`` set the outcome is flipped, so a task
is hidden as soon as one category matches.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from todocore.config import FilterConfig
from todocore.fuzzy import fuzzy_score
from todocore.task import Task
from todocore.tokens import is_context, is_priority, is_project

if TYPE_CHECKING:
    from todocore.store import TaskStats


def has_active_filters(filters: FilterConfig) -> bool:
    return bool(
        filters.include_deferred
        or filters.include_recurring
        or filters.include_hidden
        or filters.include_completed
        or filters.include_no_priority
        or filters.priorities
        or filters.contexts
        or filters.projects
        or filters.custom_terms
    )


def filter_test(task: Task, filters: FilterConfig) -> bool:
    """Return True if ``task`` belongs in the viewport."""
    if task.pinned:
        return True
    if filters.include_hidden:
        return task.hidden
    if task.hidden:
        return False
    if filters.include_deferred:
        return task.is_deferred
    if filters.include_recurring:
        return task.is_recurring
    if task.is_recurring and task.completed:
        return False
    if task.is_deferred:
        return False
    if not has_active_filters(filters):
        return True

    matched = not filters.invert

    if task.completed:
        if filters.include_completed:
            return matched
    elif task.priority is None:
        if filters.include_no_priority:
            return matched

    if task.priority_marker in filters.priorities:
        return matched

    for context in filters.contexts:
        if context in task.contexts:
            return matched

    for project in filters.projects:
        if project in task.projects:
            return matched

    text = task.raw_text.lower()
    for term in filters.custom_terms:
        if fuzzy_score(term.lower(), text) is not None:
            return matched

    return filters.invert


def toggle_filter(filters: FilterConfig, keyword: str) -> bool:
    """Add or remove a priority, context or project filter.

    Returns True if the keyword is now filtered on, False if it was removed.
    Raises ValueError for anything that isn't ``(X)``, ``@ctx`` or ``+proj``.
    """
    if is_priority(keyword):
        values = filters.priorities
    elif is_context(keyword):
        values = filters.contexts
    elif is_project(keyword):
        values = filters.projects
    else:
        raise ValueError(f"Not a priority, context or project: {keyword}")

    if keyword in values:
        values.remove(keyword)
        return False

    values.append(keyword)
    return True


def toggle_custom_term(filters: FilterConfig, term: str) -> bool:
    """Activate or deactivate a custom fuzzy term, saving it if new."""
    if term not in filters.custom:
        filters.custom.append(term)

    if term in filters.custom_terms:
        filters.custom_terms.remove(term)
        return False

    filters.custom_terms.append(term)
    return True


def toggle_invert(filters: FilterConfig) -> bool:
    filters.invert = not filters.invert
    return filters.invert


def prune_stale_filters(filters: FilterConfig, stats: TaskStats) -> list[str]:
    """Drop priority/context/project filters that no task carries anymore.

    Returns the removed keywords.
    """
    removed = [p for p in filters.priorities if p not in stats.priorities]
    removed += [c for c in filters.contexts if c not in stats.contexts]
    removed += [p for p in filters.projects if p not in stats.projects]

    filters.priorities = [p for p in filters.priorities if p in stats.priorities]
    filters.contexts = [c for c in filters.contexts if c in stats.contexts]
    filters.projects = [p for p in filters.projects if p in stats.projects]

    return removed
