"""Locked read-reconcile-write pass over the state store, to-do list and daily note."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, TypeVar
import json
import logging
import os
import threading
import time

from ..core.exceptions import ResourceBusyError, SyncCancelledError, SyncError, SyncIOError
from ..core.models import ChangeDetail, SyncConfig, TodoState
from ..journal.daily_notes import DailyNoteManager
from ..markdown.parser import ParsedTask, ensure_task_id, parse_tasks
from ..render.todo_list import render_todo_list
from ..utils.date import now_local
from ..utils.io import atomic_write, atomic_write_json, load_json, read_text
from .engine import ReconcileResult, SyncEngine
from .locks import acquire_locks
from .resolver import Conflict

MIGRATION_SOURCE = "migration"

T = TypeVar("T")


class PassState(Enum):
    """Lifecycle of one sync pass."""

    IDLE = "idle"
    LOCKS_ACQUIRED = "locks_acquired"
    SOURCES_READ = "sources_read"
    CHANGES_COMPUTED = "changes_computed"
    CONFLICT_CHECKED = "conflict_checked"
    ABORTED = "aborted"
    APPLYING = "applying"
    PERSISTED = "persisted"
    LOCKS_RELEASED = "locks_released"
    DONE = "done"


class SyncOutcome(Enum):
    SUCCESS = "success"
    CONFLICTS = "conflicts"


@dataclass
class SyncResult:
    """Terminal outcome of a pass that did not raise."""

    outcome: SyncOutcome
    dry_run: bool = False
    journal_path: str = ""
    conflicts: Dict[str, Conflict] = field(default_factory=dict)
    tasks_from_daily: int = 0
    tasks_from_todo: int = 0
    merged: int = 0
    skipped: int = 0
    deleted: int = 0
    migrated: int = 0
    changed_ids: List[str] = field(default_factory=list)
    skipped_ids: List[str] = field(default_factory=list)
    state_updated: bool = False
    todo_updated: bool = False
    journal_updated: bool = False
    details: Dict[str, List[ChangeDetail]] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.outcome == SyncOutcome.SUCCESS

    @property
    def has_changes(self) -> bool:
        return bool(self.changed_ids) or self.migrated > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "dry_run": self.dry_run,
            "journal_path": self.journal_path,
            "conflicts": {task_id: conflict.to_dict() for task_id, conflict in self.conflicts.items()},
            "tasks_from_daily": self.tasks_from_daily,
            "tasks_from_todo": self.tasks_from_todo,
            "merged": self.merged,
            "skipped": self.skipped,
            "deleted": self.deleted,
            "migrated": self.migrated,
            "changed_ids": list(self.changed_ids),
            "skipped_ids": list(self.skipped_ids),
            "state_updated": self.state_updated,
            "todo_updated": self.todo_updated,
            "journal_updated": self.journal_updated,
            "details": {
                key: [detail.to_dict() for detail in entries]
                for key, entries in self.details.items()
            },
        }


def usable_tasks(tasks: List[ParsedTask]) -> List[ParsedTask]:
    """Drop blank tasks and give the rest an id."""
    return [ensure_task_id(task) for task in tasks if task.text.strip()]


def load_state(state_path: str) -> TodoState:
    """
    Load the state store. A missing or empty file is an empty store.

    Raises:
        SyncIOError: the file cannot be read or does not hold a valid store
    """
    try:
        data = load_json(state_path)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise SyncIOError("read state file", state_path, exc) from exc
    if not isinstance(data, dict):
        raise SyncIOError("parse state file", state_path, ValueError("expected a JSON object"))
    try:
        return TodoState.from_dict(data)
    except (AttributeError, TypeError, ValueError) as exc:
        raise SyncIOError("parse state file", state_path, exc) from exc


class SyncOrchestrator:
    """Runs one sync pass under the state → list → journal lock order."""

    def __init__(self, config: SyncConfig, logger: Optional[logging.Logger] = None):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.daily_notes = DailyNoteManager(config.diary_path, config.task_section, logger=self.logger)
        self.engine = SyncEngine(logger=self.logger)
        self.pass_state = PassState.IDLE

    def _transition(self, new_state: PassState) -> None:
        self.logger.debug(f"Pass state: {self.pass_state.value} -> {new_state.value}")
        self.pass_state = new_state

    def run(
        self,
        dry_run: bool = False,
        cancel_event: Optional[threading.Event] = None,
        now: Optional[datetime] = None,
    ) -> SyncResult:
        """
        Perform one full sync pass.

        Args:
            dry_run: Compute everything but write nothing
            cancel_event: Checked once, before any lock is taken
            now: Clock for the pass; selects today's daily note

        Returns:
            SyncResult with outcome SUCCESS or CONFLICTS

        Raises:
            SyncCancelledError: cancellation was requested before locking
            ResourceBusyError: a lock timed out; nothing was changed
            SyncIOError: a resource could not be read, parsed or written
            SyncError: today's daily note does not exist
        """
        now = now or now_local()
        self.pass_state = PassState.IDLE

        if cancel_event is not None and cancel_event.is_set():
            raise SyncCancelledError("Sync cancelled before acquiring locks")

        journal_path = self.daily_notes.get_daily_note_path(now.date())
        if not os.path.exists(journal_path):
            raise SyncError(f"Daily note not found: {journal_path}")

        state_path = self.config.state_path
        todo_path = self.config.todo_path
        lock_order = [state_path, todo_path, journal_path]

        self.logger.info(f"Starting sync (dry_run={dry_run}) with {journal_path}")
        try:
            with acquire_locks(lock_order, timeout=self.config.lock_timeout, logger=self.logger):
                self._transition(PassState.LOCKS_ACQUIRED)
                result = self._locked_pass(state_path, todo_path, journal_path, dry_run, now)
        finally:
            if self.pass_state != PassState.IDLE:
                self._transition(PassState.LOCKS_RELEASED)

        self._transition(PassState.DONE)
        return result

    def _locked_pass(self, state_path: str, todo_path: str, journal_path: str,
                     dry_run: bool, now: datetime) -> SyncResult:
        state = load_state(state_path)
        todo_content = self._read(todo_path, "read to-do list", default="")
        journal_content = self._read(journal_path, "read daily note")
        if journal_content is None:
            raise SyncIOError("read daily note", journal_path, FileNotFoundError(journal_path))

        list_tasks = usable_tasks(parse_tasks(todo_content))
        journal_tasks = usable_tasks(self.daily_notes.extract_tasks(journal_content))
        self._transition(PassState.SOURCES_READ)

        migrated = 0
        if state.needs_migration() and list_tasks:
            migrated = state.migrate_from_markdown(list_tasks, source=MIGRATION_SOURCE, now=now)
            self.logger.info(f"Migrated {migrated} task(s) from {todo_path} into empty state")

        reconciled = self.engine.reconcile(state, journal_tasks, list_tasks, now=now,
                                           on_phase=lambda phase: self._transition(PassState(phase)))

        result = self._build_result(reconciled, journal_path, dry_run, migrated)
        if reconciled.has_conflicts:
            self._transition(PassState.ABORTED)
            self.logger.warning(
                f"Sync aborted: conflicts for {', '.join(sorted(reconciled.conflicts))}"
            )
            return result

        self._transition(PassState.APPLYING)

        state_changed = reconciled.state_updated or migrated > 0
        new_todo = None
        if reconciled.list_dirty or migrated > 0:
            rendered = render_todo_list(state)
            if rendered != todo_content:
                new_todo = rendered

        new_journal = None
        if reconciled.journal_dirty:
            updated, rewritten = self.daily_notes.update_task_lines(journal_content, state)
            if rewritten and updated != journal_content:
                new_journal = updated

        result.state_updated = state_changed
        result.todo_updated = new_todo is not None
        result.journal_updated = new_journal is not None

        if dry_run:
            self.logger.info("Dry run: no files written")
        else:
            if state_changed:
                state.last_sync = now
                self._write_json(state_path, state.to_dict())
            if new_todo is not None:
                self._write(todo_path, new_todo)
            if new_journal is not None:
                self._write(journal_path, new_journal)
            self._transition(PassState.PERSISTED)

        self.logger.info(
            f"Sync complete: {result.tasks_from_daily} from daily, {result.tasks_from_todo} from todo, "
            f"{result.merged} merged, {result.deleted} deleted, {result.skipped} skipped"
        )
        return result

    def _build_result(self, reconciled: ReconcileResult, journal_path: str,
                      dry_run: bool, migrated: int) -> SyncResult:
        outcome = SyncOutcome.CONFLICTS if reconciled.has_conflicts else SyncOutcome.SUCCESS
        return SyncResult(
            outcome=outcome,
            dry_run=dry_run,
            journal_path=journal_path,
            conflicts=dict(reconciled.conflicts),
            tasks_from_daily=reconciled.applied_from_journal,
            tasks_from_todo=reconciled.applied_from_list,
            merged=reconciled.merged,
            skipped=reconciled.skipped,
            deleted=reconciled.deleted,
            migrated=migrated,
            changed_ids=sorted(reconciled.changed_ids),
            skipped_ids=list(reconciled.skipped_ids),
            details=reconciled.details,
        )

    def _read(self, path: str, operation: str, default: Optional[str] = None) -> Optional[str]:
        try:
            return read_text(path, default=default)
        except (OSError, UnicodeDecodeError) as exc:
            raise SyncIOError(operation, path, exc) from exc

    def _write(self, path: str, content: str) -> None:
        try:
            atomic_write(path, content)
        except OSError as exc:
            raise SyncIOError("write", path, exc) from exc
        self.logger.debug(f"Wrote {path}")

    def _write_json(self, path: str, data: Dict[str, Any]) -> None:
        try:
            atomic_write_json(path, data)
        except (OSError, TypeError, ValueError) as exc:
            raise SyncIOError("write", path, exc) from exc
        self.logger.debug(f"Wrote {path}")


def run_with_retry(
    fn: Callable[[], T],
    attempts: int = 3,
    base_delay: float = 0.5,
    sleep: Callable[[float], None] = time.sleep,
    logger: Optional[logging.Logger] = None,
) -> T:
    """
    Call ``fn`` and retry it only while it raises ResourceBusyError.

    The delay doubles after each busy attempt. The last ResourceBusyError is
    re-raised once ``attempts`` are used up; every other exception propagates
    immediately.
    """
    logger = logger or logging.getLogger(__name__)
    attempts = max(1, attempts)

    attempt = 1
    while True:
        try:
            return fn()
        except ResourceBusyError as exc:
            if attempt >= attempts:
                raise
            delay = base_delay * (2 ** (attempt - 1))
            attempt += 1
            logger.info(f"Resources busy ({exc.path}); retrying in {delay:.2f}s "
                        f"(attempt {attempt}/{attempts})")
            sleep(delay)
