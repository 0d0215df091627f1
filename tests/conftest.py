"""Shared fixtures for wikigantt tests.

File handling in tests:
- Use tmp_path for any directory or file creation so tests are isolated and cleaned up.
- Use wikigantt.io_utils read_text/write_text for consistent UTF-8 I/O.
"""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Callable

import pytest

from wikigantt import log
from wikigantt.codec import encode
from wikigantt.io_utils import write_text
from wikigantt.tasks.model import Prefs, Task


@pytest.fixture(autouse=True)
def _quiet_log():
    """Tests that turn on verbose logging must not leak it into others."""
    yield
    log.set_verbose(False)


@pytest.fixture(autouse=True)
def _no_color_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("WIKIGANTT_DEFAULT_COLOR", raising=False)


def _make_task(
    id: int,
    parent_id: int | None = None,
    *,
    group: bool = False,
    name: str = "",
    start: date | None = date(2024, 3, 4),
    duration: int = 1,
    depends_on: tuple[int, ...] = (),
    milestone: bool = False,
) -> Task:
    return Task(
        id=id,
        name=name or f"Task {id}",
        start=start,
        end=start,
        duration=duration,
        is_group=group,
        is_milestone=milestone,
        parent_id=parent_id,
        depends_on=depends_on,
    )


@pytest.fixture
def make_task() -> Callable[..., Task]:
    return _make_task


@pytest.fixture
def reparent_scenario() -> list[Task]:
    """``[A(1, group), B(2 <1), C(3 <1), D(4, group), E(5 <4)]``."""
    return [
        _make_task(1, group=True, name="A"),
        _make_task(2, 1, name="B"),
        _make_task(3, 1, name="C"),
        _make_task(4, group=True, name="D"),
        _make_task(5, 4, name="E"),
    ]


@pytest.fixture
def write_chart(tmp_path: Path) -> Callable[..., Path]:
    """Write *tasks* as a task-list fragment and return the file path."""

    def _write(tasks: list[Task], name: str = "tasks.xml", prefs: Prefs | None = None) -> Path:
        path = tmp_path / name
        write_text(path, encode(tasks, prefs))
        return path

    return _write
