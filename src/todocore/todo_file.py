"""Todo file I/O: reading, writing, archiving and change watching."""

from __future__ import annotations

import os
import re
import stat
import tempfile
import threading
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from watchdog.events import (
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from todocore.dates import format_date
from todocore.task import Task
from todocore.tokens import COMPLETION_MARKER

if TYPE_CHECKING:
    from watchdog.events import FileSystemEvent

_LINE_SPLIT_RE = re.compile(r"\r?\n")

# Bytes that aren't valid UTF-8 survive a read/write round trip unchanged.
_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


class TodoFileError(Exception):
    """A todo or done file is missing or can't be read or written."""


def read_todo_lines(path: str | Path) -> list[str]:
    """Read the non-blank lines of a todo file.

    Raises:
        TodoFileError: If the file doesn't exist or can't be read.
    """
    file_path = Path(path).expanduser()
    if not file_path.exists():
        raise TodoFileError(f"Todo file not found: {file_path}")

    try:
        content = file_path.read_text(encoding=_ENCODING, errors=_ERRORS)
    except OSError as e:
        raise TodoFileError(f"Could not read todo file {file_path}: {e}") from e

    return [line for line in _LINE_SPLIT_RE.split(content) if line.strip()]


def write_todo_lines(path: str | Path, lines: list[str]) -> None:
    """Replace the todo file with ``lines``, one task per line.

    The content goes to a temporary file in the same directory which is
    then renamed over the todo file, so readers never see a partial file.
    """
    file_path = Path(path).expanduser()
    content = "".join(f"{line}\n" for line in lines)
    tmp_name: str | None = None

    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
        )
        with os.fdopen(fd, "w", encoding=_ENCODING, errors=_ERRORS) as f:
            f.write(content)
        if file_path.exists():
            os.chmod(tmp_name, stat.S_IMODE(file_path.stat().st_mode))
        os.replace(tmp_name, file_path)
    except OSError as e:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise TodoFileError(f"Could not write todo file {file_path}: {e}") from e


def archive_line(task: Task, today: date) -> str:
    """The done.txt form of ``task``.

    Open tasks are written as completed today, with their priority moved
    into a ``pri:`` token. The task itself is not modified.
    """
    if task.completed:
        return task.raw_text

    stamp = format_date(today)
    if task.priority is None:
        return f"{COMPLETION_MARKER} {stamp} {task.serialize()}"

    rest = " ".join(task.raw_text.split()[1:])
    return f"{COMPLETION_MARKER} {stamp} {rest} pri:{task.priority}"


def append_archive(path: str | Path, tasks: list[Task], today: date) -> int:
    """Append ``tasks`` to the done file. Returns the number of lines written."""
    if not tasks:
        return 0

    file_path = Path(path).expanduser()
    content = "".join(f"{archive_line(task, today)}\n" for task in tasks)

    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(file_path, "a", encoding=_ENCODING, errors=_ERRORS) as f:
            f.write(content)
    except OSError as e:
        raise TodoFileError(f"Could not write done file {file_path}: {e}") from e

    return len(tasks)


@dataclass
class FileChange:
    """A change event for the watched todo file.

    Attributes:
        path: Path of the file that changed.
        change_type: 'created', 'modified', 'deleted' or 'moved'.
        timestamp: When the change was detected.
    """

    path: str
    change_type: str
    timestamp: datetime = field(default_factory=datetime.now)


class _TodoChangeHandler(FileSystemEventHandler):
    """Collects events that concern one file.

    ``expect_self_write`` arms a one-shot flag: the next event for the file
    other than a delete is swallowed, since it is the engine's own write
    (a modification, or the rename of the temporary file over it).

    Handlers run on the observer thread; ``_lock`` guards the buffer and
    the flag against the owner draining them.
    """

    def __init__(self, target: Path) -> None:
        super().__init__()
        self._target = target
        self._changes: list[FileChange] = []
        self._skip_next_write = False
        self._lock = threading.Lock()

    def expect_self_write(self) -> None:
        with self._lock:
            self._skip_next_write = True

    def cancel_self_write(self) -> None:
        with self._lock:
            self._skip_next_write = False

    def _matches(self, path: str | bytes) -> bool:
        if isinstance(path, bytes):
            path = path.decode("utf-8")
        return Path(path).resolve() == self._target

    def _record_change(self, path: str | bytes, change_type: str) -> None:
        if isinstance(path, bytes):
            path = path.decode("utf-8")

        with self._lock:
            if change_type != "deleted" and self._skip_next_write:
                self._skip_next_write = False
                return
            self._changes.append(FileChange(path=path, change_type=change_type))

    def on_created(self, event: FileSystemEvent) -> None:
        if isinstance(event, FileCreatedEvent) and self._matches(event.src_path):
            self._record_change(event.src_path, "created")

    def on_modified(self, event: FileSystemEvent) -> None:
        if isinstance(event, FileModifiedEvent) and self._matches(event.src_path):
            self._record_change(event.src_path, "modified")

    def on_deleted(self, event: FileSystemEvent) -> None:
        if isinstance(event, FileDeletedEvent) and self._matches(event.src_path):
            self._record_change(event.src_path, "deleted")

    def on_moved(self, event: FileSystemEvent) -> None:
        if not isinstance(event, FileMovedEvent):
            return
        if self._matches(event.src_path) or self._matches(event.dest_path):
            self._record_change(event.src_path, "moved")

    def get_changes(self) -> list[FileChange]:
        """Get accumulated changes and clear the buffer."""
        with self._lock:
            changes, self._changes = self._changes, []
        return changes


class TodoFileWatcher:
    """Watches a todo file for external changes using watchdog.

    Events are buffered on the observer thread and drained with ``poll()``
    from the owner's loop, so reloads always run on the caller's thread.

    Example:
        watcher = TodoFileWatcher("~/todo.txt")
        watcher.start()
        ...
        if watcher.poll():
            session.load()
        watcher.stop()
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser().resolve()
        self._handler = _TodoChangeHandler(self._path)
        self._observer = Observer()
        self._started = False

    @property
    def path(self) -> Path:
        return self._path

    def start(self) -> None:
        """Start watching the todo file's directory."""
        if self._started:
            return

        # Threads can only be started once
        if not self._observer.is_alive():
            self._observer = Observer()

        self._observer.schedule(self._handler, str(self._path.parent), recursive=False)
        self._observer.start()
        self._started = True

    def stop(self) -> None:
        if not self._started:
            return

        self._observer.stop()
        self._observer.join()
        self._started = False

    def expect_self_write(self) -> None:
        """Swallow the change event caused by our own next write."""
        self._handler.expect_self_write()

    def cancel_self_write(self) -> None:
        """Disarm ``expect_self_write`` after a write that didn't happen."""
        self._handler.cancel_self_write()

    def poll(self) -> list[FileChange]:
        """Changes seen since the last poll."""
        return self._handler.get_changes()

    @property
    def is_running(self) -> bool:
        return self._started
