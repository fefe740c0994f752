"""Task entity and the todo.txt line parser.

A ``Task`` is an immutable value built from one line of a todo file. The
line (``raw_text``) is the source of truth: every edit produces new text
which is parsed into a fresh ``Task`` rather than patching fields.

Line grammar::

    ["x" [completion_date [creation_date]]] | ["(" PRIORITY ")" [creation_date]] | [creation_date]
    description_word*
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum

from todocore.dates import format_date, parse_iso_date
from todocore.tokens import (
    COMPLETION_MARKER,
    PRIORITY_RE,
    ExtensionKind,
    RecurrenceKind,
    RecurrenceRule,
    classify_extension,
    is_context,
    is_link,
    is_project,
)

# Sort value used for tasks without a priority; greater than any "(A)".."(Z)".
NO_PRIORITY_MARKER = "(_)"


class SpanKind(Enum):
    """How a description word is rendered."""

    PLAIN = "plain"
    CONTEXT = "context"
    PROJECT = "project"
    LINK = "link"


@dataclass(frozen=True)
class DescriptionSpan:
    """One word of the rendered description."""

    text: str
    kind: SpanKind = SpanKind.PLAIN


@dataclass(frozen=True)
class Recurrence:
    """An accepted ``rec:`` token plus its computed next occurrence.

    ``next_occurrence`` is None until the recurrence engine has run, and
    stays None for a since-completion rule on a task never completed.
    """

    rule: RecurrenceRule
    token: str
    next_occurrence: date | None = None

    @property
    def kind(self) -> RecurrenceKind:
        return self.rule.kind

    @property
    def interval(self) -> int:
        return self.rule.interval


@dataclass(frozen=True)
class Task:
    """One logical todo-file line."""

    raw_text: str
    completed: bool = False
    priority: str | None = None
    creation_date: date | None = None
    completion_date: date | None = None
    due_date: date | None = None
    defer_date: date | None = None
    is_deferred: bool = False
    recurrence: Recurrence | None = None
    pinned: bool = False
    hidden: bool = False
    tracker_id: str | None = None
    contexts: tuple[str, ...] = ()
    projects: tuple[str, ...] = ()
    description_spans: tuple[DescriptionSpan, ...] = field(default=(), compare=False)

    @classmethod
    def parse(cls, line: str) -> Task:
        """Parse a todo.txt line. Never fails."""
        return parse_task(line)

    def serialize(self) -> str:
        """Canonical text form, with runs of whitespace collapsed."""
        return " ".join(self.raw_text.split())

    @property
    def description(self) -> str:
        return " ".join(span.text for span in self.description_spans)

    @property
    def first_context(self) -> str:
        return self.contexts[0] if self.contexts else ""

    @property
    def first_project(self) -> str:
        return self.projects[0] if self.projects else ""

    @property
    def priority_marker(self) -> str:
        """Priority as written in the header, ``(_)`` when there is none."""
        return f"({self.priority})" if self.priority else NO_PRIORITY_MARKER

    @property
    def is_recurring(self) -> bool:
        return self.recurrence is not None

    def with_next_occurrence(self, next_occurrence: date | None) -> Task:
        if self.recurrence is None:
            return self
        return replace(self, recurrence=replace(self.recurrence, next_occurrence=next_occurrence))


@dataclass
class _Header:
    completed: bool = False
    priority: str | None = None
    completion_date: date | None = None
    creation_date: date | None = None
    creation_index: int | None = None
    length: int = 0


def _parse_header(words: list[str]) -> _Header:
    header = _Header()
    if not words:
        return header

    def date_at(index: int) -> date | None:
        return parse_iso_date(words[index]) if index < len(words) else None

    first = words[0]
    priority_match = PRIORITY_RE.match(first)

    if first == COMPLETION_MARKER:
        header.completed = True
        header.length = 1
        header.completion_date = date_at(1)
        if header.completion_date is not None:
            header.length = 2
            header.creation_date = date_at(2)
            if header.creation_date is not None:
                header.creation_index = 2
                header.length = 3
    elif priority_match:
        header.priority = priority_match.group(1)
        header.length = 1
        header.creation_date = date_at(1)
        if header.creation_date is not None:
            header.creation_index = 1
            header.length = 2
    else:
        header.creation_date = date_at(0)
        if header.creation_date is not None:
            header.creation_index = 0
            header.length = 1

    return header


def parse_task(line: str) -> Task:
    """Build a Task from one todo.txt line.

    Extension tokens whose preconditions fail stay in the description as
    plain text. Once ``h:1`` is seen the task is hidden: everything gathered
    from the description so far is dropped and later extensions, contexts
    and projects are kept as plain words.
    """
    words = line.split()
    header = _parse_header(words)

    contexts: list[str] = []
    projects: list[str] = []
    spans: list[DescriptionSpan] = []
    due_date: date | None = None
    defer_date: date | None = None
    recurrence: Recurrence | None = None
    pinned = False
    hidden = False
    tracker_id: str | None = None

    for word in words[header.length :]:
        token = classify_extension(word)

        if hidden:
            if token is not None and token.kind == ExtensionKind.HIDE:
                continue
            spans.append(DescriptionSpan(word))
            continue

        if token is not None:
            kind = token.kind
            accepted = True

            if kind == ExtensionKind.TRACKER_ID:
                tracker_id = token.text
            elif kind == ExtensionKind.DUE:
                if recurrence is not None:
                    accepted = False
                else:
                    due_date = token.date
            elif kind == ExtensionKind.DEFER:
                if recurrence is not None:
                    accepted = False
                else:
                    defer_date = token.date
            elif kind in (ExtensionKind.REC_CREATION, ExtensionKind.REC_MONTHLY):
                if recurrence is not None or due_date is not None or header.creation_date is None:
                    accepted = False
                else:
                    recurrence = Recurrence(rule=token.rule, token=word)
            elif kind == ExtensionKind.REC_COMPLETION:
                if (
                    recurrence is not None
                    or due_date is not None
                    or (header.completed and header.completion_date is None)
                ):
                    accepted = False
                else:
                    recurrence = Recurrence(rule=token.rule, token=word)
            elif kind == ExtensionKind.PIN:
                pinned = True
            elif kind == ExtensionKind.HIDE:
                hidden = True
                contexts.clear()
                projects.clear()
                due_date = defer_date = None
                recurrence = None
                pinned = False
            elif kind == ExtensionKind.PRIORITY_BACKUP:
                pass
            else:
                raise AssertionError(f"unhandled extension kind: {kind}")

            if not accepted:
                spans.append(DescriptionSpan(word))
            continue

        if is_context(word):
            if word not in contexts:
                contexts.append(word)
            spans.append(DescriptionSpan(word, SpanKind.CONTEXT))
        elif is_project(word):
            if word not in projects:
                projects.append(word)
            spans.append(DescriptionSpan(word, SpanKind.PROJECT))
        elif is_link(word):
            spans.append(DescriptionSpan(word, SpanKind.LINK))
        else:
            spans.append(DescriptionSpan(word))

    return Task(
        raw_text=line.strip(),
        completed=header.completed,
        priority=header.priority,
        creation_date=header.creation_date,
        completion_date=header.completion_date,
        due_date=due_date,
        defer_date=defer_date,
        recurrence=recurrence,
        pinned=pinned,
        hidden=hidden,
        tracker_id=tracker_id,
        contexts=tuple(contexts),
        projects=tuple(projects),
        description_spans=tuple(spans),
    )


def toggle_task(task: Task, today: date) -> Task:
    """Complete an open task or reopen a completed one.

    Completing moves the priority into a trailing ``pri:X`` token so it can
    be restored when the task is reopened.
    """
    words = task.raw_text.split()

    if task.completed:
        priority = ""
        for i, word in enumerate(words):
            token = classify_extension(word)
            if token is not None and token.kind == ExtensionKind.PRIORITY_BACKUP:
                priority = f"({token.text})"
                del words[i]
                break

        # drop the "x" and the completion date
        if len(words) > 1 and parse_iso_date(words[1]) is not None:
            words = words[2:]
        else:
            words = words[1:]

        if priority:
            words.insert(0, priority)
        return parse_task(" ".join(words))

    stamp = format_date(today)
    if task.priority is None:
        return parse_task(f"{COMPLETION_MARKER} {stamp} {' '.join(words)}")

    rest = " ".join(words[1:])
    return parse_task(f"{COMPLETION_MARKER} {stamp} {rest} pri:{task.priority}")


def toggle_pin(task: Task) -> Task:
    """Pin or unpin a task. Hidden tasks can't be pinned and are returned as is."""
    if task.hidden:
        return task

    if not task.pinned:
        return parse_task(f"{task.serialize()} pin:1")

    words = task.raw_text.split()
    for i, word in enumerate(words):
        token = classify_extension(word)
        if token is not None and token.kind == ExtensionKind.PIN:
            del words[i]
            break
    return parse_task(" ".join(words))


def set_creation_date(text: str, value: date) -> str:
    """Replace the header creation date, inserting one if the line has none.

    The task must not be completed; a date right after the completion
    marker would read as a completion date.
    """
    words = text.split()
    header = _parse_header(words)
    stamp = format_date(value)

    if header.creation_index is not None:
        words[header.creation_index] = stamp
    elif header.priority is not None:
        words.insert(1, stamp)
    else:
        words.insert(0, stamp)

    return " ".join(words)
