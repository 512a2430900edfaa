#!/usr/bin/env python3
"""
Unit tests for atomic writes, JSON loading and lock contention.
"""

import contextlib
import json
import os
import threading
import time
import unittest
from unittest.mock import Mock

import pytest

from jot_sync.core.exceptions import ResourceBusyError
from jot_sync.sync import locks
from jot_sync.sync.locks import acquire_locks
from jot_sync.utils.io import (
    atomic_write,
    atomic_write_json,
    file_lock,
    load_json,
    lock_file_path,
    read_text,
)


@pytest.mark.io
@pytest.mark.unit
class TestAtomicWrites:

    def test_atomic_write_replaces_content_and_leaves_no_temp_files(self, tmp_path):
        target = tmp_path / "todo.md"
        target.write_text("old\n", encoding="utf-8")

        atomic_write(str(target), "new\r\ncontent\n")

        assert read_text(str(target)) == "new\r\ncontent\n"
        assert sorted(os.listdir(tmp_path)) == ["todo.md"]

    def test_atomic_write_creates_parent_directories(self, tmp_path):
        target = tmp_path / "a" / "b" / "note.md"
        atomic_write(str(target), "x")
        assert target.read_text(encoding="utf-8") == "x"

    def test_atomic_write_json_is_sorted_with_trailing_newline(self, tmp_path):
        target = tmp_path / "state.json"
        atomic_write_json(str(target), {"b": 1, "a": "ü"})
        content = target.read_text(encoding="utf-8")
        assert content == '{\n  "a": "ü",\n  "b": 1\n}\n'

    def test_unserializable_data_keeps_existing_file(self, tmp_path):
        target = tmp_path / "state.json"
        target.write_text('{"ok": true}', encoding="utf-8")
        with pytest.raises(TypeError):
            atomic_write_json(str(target), {"bad": object()})
        assert json.loads(target.read_text(encoding="utf-8")) == {"ok": True}


@pytest.mark.io
@pytest.mark.unit
class TestLoadJson:

    def test_missing_and_empty_files_give_default(self, tmp_path):
        assert load_json(str(tmp_path / "missing.json")) == {}
        empty = tmp_path / "empty.json"
        empty.write_text("  \n", encoding="utf-8")
        assert load_json(str(empty), {"tasks": {}}) == {"tasks": {}}

    def test_invalid_json_raises(self, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("{nope", encoding="utf-8")
        with pytest.raises(json.JSONDecodeError):
            load_json(str(bad))


@pytest.mark.io
@pytest.mark.concurrency
class TestFileLock(unittest.TestCase):

    def setUp(self):
        import tempfile
        self.temp_dir = tempfile.mkdtemp(prefix="jot_sync_lock_")
        self.target = os.path.join(self.temp_dir, "todo.md")

    def tearDown(self):
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_lock_file_sits_beside_target(self):
        self.assertEqual(str(lock_file_path(self.target)), self.target + ".lock")

    def test_second_holder_times_out(self):
        with file_lock(self.target, timeout=1.0):
            start = time.monotonic()
            with self.assertRaises(TimeoutError):
                with file_lock(self.target, timeout=0.2):
                    pass
            self.assertGreaterEqual(time.monotonic() - start, 0.2)

    def test_waiter_proceeds_after_release(self):
        acquired = threading.Event()
        release = threading.Event()

        def holder():
            with file_lock(self.target, timeout=1.0):
                acquired.set()
                release.wait(2.0)

        thread = threading.Thread(target=holder)
        thread.start()
        acquired.wait(2.0)
        threading.Timer(0.1, release.set).start()

        with file_lock(self.target, timeout=2.0):
            pass
        thread.join(2.0)
        self.assertFalse(thread.is_alive())


@pytest.mark.unit
class TestAcquireLocks:

    def _recording_lock(self, events, busy=None):
        @contextlib.contextmanager
        def fake_file_lock(path, exclusive=True, timeout=None):
            if path == busy:
                raise TimeoutError(path)
            events.append(("acquire", path))
            try:
                yield
            finally:
                events.append(("release", path))
        return fake_file_lock

    def test_releases_in_reverse_order(self, monkeypatch):
        events = []
        monkeypatch.setattr(locks, "file_lock", self._recording_lock(events))

        with acquire_locks(["state", "todo", "note"], timeout=1.0):
            events.append(("body", ""))

        assert events == [
            ("acquire", "state"), ("acquire", "todo"), ("acquire", "note"),
            ("body", ""),
            ("release", "note"), ("release", "todo"), ("release", "state"),
        ]

    def test_timeout_releases_held_locks_and_raises_busy(self, monkeypatch):
        events = []
        monkeypatch.setattr(locks, "file_lock", self._recording_lock(events, busy="note"))

        with pytest.raises(ResourceBusyError) as excinfo:
            with acquire_locks(["state", "todo", "note"], timeout=0.5):
                pytest.fail("body must not run")

        assert excinfo.value.path == "note"
        assert excinfo.value.timeout == 0.5
        assert events == [
            ("acquire", "state"), ("acquire", "todo"),
            ("release", "todo"), ("release", "state"),
        ]

    def test_body_errors_still_release(self, monkeypatch):
        events = []
        monkeypatch.setattr(locks, "file_lock", self._recording_lock(events))

        with pytest.raises(RuntimeError):
            with acquire_locks(["state", "todo"], timeout=1.0):
                raise RuntimeError("write failed")

        assert events[-2:] == [("release", "todo"), ("release", "state")]

    def test_release_is_logged_after_the_locks_are_gone(self, monkeypatch):
        events = []
        monkeypatch.setattr(locks, "file_lock", self._recording_lock(events))
        logger = Mock()
        logger.debug.side_effect = lambda message: events.append(("log", message))

        with acquire_locks(["state", "todo"], timeout=1.0, logger=logger):
            pass

        assert events[-3:] == [("release", "todo"), ("release", "state"), ("log", "Released 2 lock(s)")]
