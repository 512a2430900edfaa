#!/usr/bin/env python3
"""
Global pytest configuration and fixtures.

This module provides:
- Isolation of the per-user working directory
- A temporary notes tree with a diary and to-do list
- Helpers for writing daily notes and reading results back
"""

import json
import os
import shutil
import tempfile
from datetime import datetime
from typing import Callable, Generator

import pytest

from jot_sync.core.models import SyncConfig
from jot_sync.core.paths import reset_path_manager
from jot_sync.journal.daily_notes import DailyNoteManager


FIXED_NOW = datetime(2026, 2, 10, 9, 30).astimezone()


@pytest.fixture(autouse=True)
def isolated_home(monkeypatch, tmp_path):
    """Point the working directory at a temp dir so tests never touch ~/.jot-sync."""
    monkeypatch.setenv("JOT_SYNC_HOME", str(tmp_path / "jot-home"))
    monkeypatch.delenv("JOT_SYNC_CONFIG", raising=False)
    reset_path_manager()
    yield
    reset_path_manager()


@pytest.fixture
def temp_dir() -> Generator[str, None, None]:
    """Create a temporary directory for test isolation."""
    temp_path = tempfile.mkdtemp(prefix="jot_sync_test_")
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def now() -> datetime:
    """Fixed clock: Tuesday 2026-02-10."""
    return FIXED_NOW


@pytest.fixture
def config(temp_dir: str) -> SyncConfig:
    """SyncConfig over an empty notes tree with a diary directory."""
    base_dir = os.path.join(temp_dir, "notes")
    os.makedirs(os.path.join(base_dir, "Diary"))
    return SyncConfig(base_dir=base_dir, lock_timeout=2.0, retry_base_delay=0.01)


@pytest.fixture
def write_daily_note(config: SyncConfig, now: datetime) -> Callable[..., str]:
    """Write today's daily note; returns its path."""
    manager = DailyNoteManager(config.diary_path, config.task_section)

    def _write(tasks_block: str, when: datetime = None) -> str:
        path = manager.get_daily_note_path((when or now).date())
        os.makedirs(os.path.dirname(path), exist_ok=True)
        content = (
            "# Tuesday\n"
            "\n"
            "Morning notes stay untouched.\n"
            "\n"
            "## Tasks\n"
            "\n"
            f"{tasks_block}"
            "\n"
            "## Log\n"
            "\n"
            "- [ ] not a synced task <!-- id: log00001 -->\n"
        )
        with open(path, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
        return path

    return _write


@pytest.fixture
def write_state(config: SyncConfig) -> Callable[[dict], str]:
    """Write a raw state document to the config's state path."""

    def _write(tasks: dict, **extra) -> str:
        data = {"lastSync": "2026-02-01T08:00:00+00:00", "version": 1, "tasks": tasks}
        data.update(extra)
        with open(config.state_path, "w", encoding="utf-8") as handle:
            json.dump(data, handle)
        return config.state_path

    return _write


@pytest.fixture
def write_todo(config: SyncConfig) -> Callable[[str], str]:
    def _write(content: str) -> str:
        with open(config.todo_path, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
        return config.todo_path

    return _write


def read_file(path: str) -> str:
    with open(path, "r", encoding="utf-8", newline="") as handle:
        return handle.read()


def read_state(config: SyncConfig) -> dict:
    with open(config.state_path, "r", encoding="utf-8") as handle:
        return json.load(handle)
