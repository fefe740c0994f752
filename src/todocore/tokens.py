"""Word-level classification for todo.txt lines.

Every predicate here looks at a single whitespace-delimited word. Extension
tokens (``due:``, ``t:``, ``rec:`` ...) are a closed set described by
``ExtensionKind``; ``classify_extension`` returns at most one match because
the shapes are mutually exclusive and are tried in a fixed order.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from enum import Enum

from todocore.dates import parse_iso_date

PRIORITY_RE = re.compile(r"^\(([A-Z])\)$")
CONTEXT_RE = re.compile(r"^@\S+$")
PROJECT_RE = re.compile(r"^\+\S+$")
URL_RE = re.compile(r"^(?:(?:https?|ftp|file)://|www\.)\S+$", re.IGNORECASE)
FILE_PATH_RE = re.compile(r"^(?:~|\.{1,2})?/\S+$")

COMPLETION_MARKER = "x"


class ExtensionKind(Enum):
    """Recognised todo.txt extension tokens."""

    TRACKER_ID = "tracker-id"
    DUE = "due"
    DEFER = "defer"
    REC_CREATION = "rec-creation"
    REC_COMPLETION = "rec-completion"
    REC_MONTHLY = "rec-monthly"
    PIN = "pin"
    HIDE = "hide"
    PRIORITY_BACKUP = "pri"


class RecurrenceKind(Enum):
    """The three date-advance algorithms."""

    PERIODIC = 1
    SINCE_COMPLETION = 2
    MONTHLY_DAY = 3


@dataclass(frozen=True)
class RecurrenceRule:
    """The static part of a ``rec:`` token.

    ``interval`` is in days for the periodic kinds and in calendar months
    for ``MONTHLY_DAY``, where ``day`` holds the target day of month.
    """

    kind: RecurrenceKind
    interval: int
    day: int | None = None


@dataclass(frozen=True)
class ExtensionToken:
    """A classified extension word and the value it carries."""

    kind: ExtensionKind
    word: str
    date: date | None = None
    text: str | None = None
    rule: RecurrenceRule | None = None


# (kind, pattern) in match order. Each pattern is anchored on both ends.
_EXTENSION_PATTERNS: list[tuple[ExtensionKind, re.Pattern[str]]] = [
    (ExtensionKind.TRACKER_ID, re.compile(r"^tracker-id:(\S+)$")),
    (ExtensionKind.DUE, re.compile(r"^due:(\d{4}-\d{2}-\d{2})$")),
    (ExtensionKind.DEFER, re.compile(r"^t:(\d{4}-\d{2}-\d{2})$")),
    (ExtensionKind.REC_CREATION, re.compile(r"^rec:(\d+)([dw])$")),
    (ExtensionKind.REC_COMPLETION, re.compile(r"^(?:\+rec:|rec:x-)(\d+)([dw])$")),
    (ExtensionKind.REC_MONTHLY, re.compile(r"^rec:(?:(\d+)m:(\d{1,2})d|(\d{1,2})d-(\d+)m)$")),
    (ExtensionKind.PIN, re.compile(r"^pin:1$")),
    (ExtensionKind.HIDE, re.compile(r"^h:1$")),
    (ExtensionKind.PRIORITY_BACKUP, re.compile(r"^pri:([A-Z])$")),
]


def is_priority(word: str) -> bool:
    return bool(PRIORITY_RE.match(word))


def is_iso_date(word: str) -> bool:
    """True for a ``yyyy-mm-dd`` word naming a real calendar day."""
    return parse_iso_date(word) is not None


def is_context(word: str) -> bool:
    return bool(CONTEXT_RE.match(word))


def is_project(word: str) -> bool:
    return bool(PROJECT_RE.match(word))


def is_link(word: str) -> bool:
    return bool(URL_RE.match(word) or FILE_PATH_RE.match(word))


def classify_extension(word: str) -> ExtensionToken | None:
    """Classify an extension token, or return None for ordinary text.

    Words that have an extension's shape but carry an invalid value
    (``due:2023-02-30``, ``rec:0d``) are ordinary text.
    """
    for kind, pattern in _EXTENSION_PATTERNS:
        match = pattern.match(word)
        if match is None:
            continue
        return _build_token(kind, word, match)
    return None


def _build_token(kind: ExtensionKind, word: str, match: re.Match[str]) -> ExtensionToken | None:
    if kind in (ExtensionKind.DUE, ExtensionKind.DEFER):
        value = parse_iso_date(match.group(1))
        if value is None:
            return None
        return ExtensionToken(kind=kind, word=word, date=value)

    if kind in (ExtensionKind.TRACKER_ID, ExtensionKind.PRIORITY_BACKUP):
        return ExtensionToken(kind=kind, word=word, text=match.group(1))

    if kind in (ExtensionKind.REC_CREATION, ExtensionKind.REC_COMPLETION):
        count = int(match.group(1))
        if count == 0:
            return None
        days = count * 7 if match.group(2) == "w" else count
        rec_kind = (
            RecurrenceKind.PERIODIC
            if kind == ExtensionKind.REC_CREATION
            else RecurrenceKind.SINCE_COMPLETION
        )
        return ExtensionToken(kind=kind, word=word, rule=RecurrenceRule(rec_kind, days))

    if kind == ExtensionKind.REC_MONTHLY:
        if match.group(1) is not None:
            months, day = int(match.group(1)), int(match.group(2))
        else:
            day, months = int(match.group(3)), int(match.group(4))
        if months == 0 or not 1 <= day <= 31:
            return None
        rule = RecurrenceRule(RecurrenceKind.MONTHLY_DAY, months, day)
        return ExtensionToken(kind=kind, word=word, rule=rule)

    # pin:1, h:1
    return ExtensionToken(kind=kind, word=word)
