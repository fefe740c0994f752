"""Configuration and cache models for todocore."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from todocore.fuzzy import rank
from todocore.sorting import DEFAULT_SORT, SortDirection, SortKey

# Bump when the cache layout changes; old caches are then discarded.
CACHE_FORMAT_VERSION = 2


class FilterConfig(BaseModel):
    """Which tasks make it into the viewport.

    Stored under the short names used by the cache file (``defer``,
    ``custom_active`` ...).
    """

    model_config = ConfigDict(populate_by_name=True)

    invert: bool = False
    include_deferred: bool = Field(default=False, alias="defer")
    include_recurring: bool = Field(default=False, alias="recurring")
    include_hidden: bool = Field(default=False, alias="hidden")
    include_completed: bool = Field(default=False, alias="completed")
    include_no_priority: bool = Field(default=False, alias="no_priority")
    priorities: list[str] = Field(default_factory=list)
    contexts: list[str] = Field(default_factory=list)
    projects: list[str] = Field(default_factory=list)
    custom: list[str] = Field(default_factory=list)
    """Every saved custom term, active or not."""
    custom_terms: list[str] = Field(default_factory=list, alias="custom_active")


def _default_sort() -> list[tuple[SortKey, SortDirection]]:
    return list(DEFAULT_SORT)


class TodoCache(BaseModel):
    """Persisted sort and filter state."""

    format_version: int = CACHE_FORMAT_VERSION
    sort: list[tuple[SortKey, SortDirection]] = Field(default_factory=_default_sort)
    filters: FilterConfig = Field(default_factory=FilterConfig)

    @classmethod
    def load(cls, path: Path | None = None) -> TodoCache:
        """Load the cache, falling back to defaults.

        A missing, unreadable or invalid file, or one written with another
        format version, yields a fresh default cache.
        """
        if path is None:
            path = CACHE_FILE

        if not path.exists():
            return cls()

        try:
            with open(path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError):
            return cls()

        if not isinstance(data, dict) or data.get("format_version") != CACHE_FORMAT_VERSION:
            return cls()

        try:
            return cls.model_validate(data)
        except ValidationError:
            return cls()

    def save(self, path: Path | None = None) -> None:
        """Save the cache to file."""
        if path is None:
            path = CACHE_FILE

        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(self.model_dump(mode="json", by_alias=True), f, indent=2)


class TodoFileEntry(BaseModel):
    """A named todo.txt file and its done.txt archive."""

    name: str
    todo_file: str
    done_file: str | None = None


class TodoConfig(BaseModel):
    """Main configuration for todocore."""

    files: list[TodoFileEntry] = Field(default_factory=list)
    current: str | None = None
    cache_file: str = ".todocore/cache.json"

    @classmethod
    def load(cls, path: Path | None = None) -> TodoConfig:
        """Load configuration from file or return defaults."""
        if path is None:
            path = CONFIG_FILE

        if not path.exists():
            return cls()

        with open(path) as f:
            data = json.load(f)

        return cls.model_validate(data)

    def save(self, path: Path | None = None) -> None:
        """Save configuration to file."""
        if path is None:
            path = CONFIG_FILE

        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(self.model_dump(exclude_none=True), f, indent=2)

    def get_file(self, name: str) -> TodoFileEntry | None:
        for entry in self.files:
            if entry.name == name:
                return entry
        return None

    @property
    def current_file(self) -> TodoFileEntry | None:
        """The active todo file, defaulting to the first registered one."""
        if self.current:
            entry = self.get_file(self.current)
            if entry is not None:
                return entry
        return self.files[0] if self.files else None

    def add_file(self, name: str, todo_file: str, done_file: str | None = None) -> TodoFileEntry:
        """Register a todo file, replacing any entry with the same name."""
        entry = TodoFileEntry(name=name, todo_file=todo_file, done_file=done_file)
        self.files = [f for f in self.files if f.name != name] + [entry]
        if self.current is None:
            self.current = name
        return entry

    def switch_file(self, name: str) -> bool:
        """Make ``name`` the current file. Returns False if it isn't registered."""
        if self.get_file(name) is None:
            return False
        self.current = name
        return True

    def find_files(self, query: str) -> list[TodoFileEntry]:
        """Registered files whose names fuzzy-match ``query``, best first."""
        needle = query.strip().lower()
        if not needle:
            return list(self.files)
        order = rank(needle, [entry.name.lower() for entry in self.files])
        return [self.files[i] for i in order]


# Default config directory
TODOCORE_DIR = Path(".todocore")
CONFIG_FILE = TODOCORE_DIR / "config.json"
CACHE_FILE = TODOCORE_DIR / "cache.json"
