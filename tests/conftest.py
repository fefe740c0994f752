"""Shared fixtures for todocore tests."""

from __future__ import annotations

import os
from collections.abc import Generator
from datetime import date
from pathlib import Path

import pytest

from todocore.config import TodoConfig


@pytest.fixture
def temp_project(tmp_path: Path) -> Generator[Path, None, None]:
    """Create a temporary project directory and change to it."""
    original_dir = os.getcwd()
    os.chdir(tmp_path)
    try:
        yield tmp_path
    finally:
        os.chdir(original_dir)


@pytest.fixture
def temp_todocore_dir(temp_project: Path) -> Path:
    """Create a temporary .todocore directory."""
    todocore_dir = temp_project / ".todocore"
    todocore_dir.mkdir()
    return todocore_dir


@pytest.fixture
def today() -> date:
    """The fixed day most tests run on."""
    return date(2024, 3, 1)


@pytest.fixture
def sample_lines() -> list[str]:
    """A small todo file covering the common task shapes."""
    return [
        "(B) 2024-02-01 Write report @work +q1",
        "(A) 2024-02-10 Call mom @phone",
        "Buy milk @store",
        "x 2024-02-20 2024-02-01 Pay bills pri:C",
        "2024-02-15 Water plants rec:3d",
        "Plan trip +travel t:2024-04-01",
        "Pick up parcel pin:1",
        "Secret plans h:1",
    ]


@pytest.fixture
def todo_path(temp_project: Path, sample_lines: list[str]) -> Path:
    """Write the sample todo file into the temp project."""
    path = temp_project / "todo.txt"
    path.write_text("\n".join(sample_lines) + "\n")
    return path


@pytest.fixture
def todo_config(temp_project: Path, todo_path: Path) -> TodoConfig:
    """A config with the sample todo file registered as current."""
    config = TodoConfig(cache_file=str(temp_project / ".todocore" / "cache.json"))
    config.add_file("main", str(todo_path), str(temp_project / "done.txt"))
    return config
