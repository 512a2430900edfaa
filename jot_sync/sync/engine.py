"""In-memory reconciliation of the state store against two task sources."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Set
import logging

from ..core.models import (
    ChangeDetail,
    ChangeType,
    TaskChange,
    TodoState,
    build_change_detail,
)
from ..markdown.parser import generate_task_id
from ..utils.date import now_local
from .detector import detect_changes, detect_deletions
from .merger import smart_merge
from .resolver import Conflict, ConflictResolver

JOURNAL_SOURCE = "daily"
LIST_SOURCE = "todo"

PHASE_CHANGES_COMPUTED = "changes_computed"
PHASE_CONFLICT_CHECKED = "conflict_checked"


@dataclass
class ReconcileResult:
    """What one reconciliation did to the store, and which artifacts went stale."""

    state_updated: bool = False
    journal_dirty: bool = False
    list_dirty: bool = False
    applied_from_journal: int = 0
    applied_from_list: int = 0
    merged: int = 0
    skipped: int = 0
    deleted: int = 0
    deleted_ids: List[str] = field(default_factory=list)
    retained_completed: List[str] = field(default_factory=list)
    skipped_ids: List[str] = field(default_factory=list)
    changed_ids: Set[str] = field(default_factory=set)
    conflicts: Dict[str, Conflict] = field(default_factory=dict)
    details: Dict[str, List[ChangeDetail]] = field(default_factory=lambda: {
        "daily_added": [],
        "daily_updated": [],
        "todo_added": [],
        "todo_updated": [],
        "deleted": [],
    })

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    @property
    def total_changes(self) -> int:
        return self.applied_from_journal + self.applied_from_list + self.merged + self.deleted


class SyncEngine:
    """Three-way change detection, conflict check, merge and apply.

    The engine never touches the filesystem. It mutates the ``TodoState`` it
    is handed, and only when no conflicts were found.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.resolver = ConflictResolver(JOURNAL_SOURCE, LIST_SOURCE, logger=self.logger)

    def reconcile(
        self,
        state: TodoState,
        journal_tasks: Sequence[Any],
        list_tasks: Sequence[Any],
        now: Optional[datetime] = None,
        on_phase: Optional[Callable[[str], None]] = None,
    ) -> ReconcileResult:
        """
        Reconcile the store against the daily note (A) and the to-do list (B).

        Args:
            state: Store to mutate in place
            journal_tasks: Parsed tasks from the daily note's task section
            list_tasks: Parsed tasks from the to-do list
            now: Clock for timestamps; defaults to local now
            on_phase: Called with "changes_computed" once both sources and
                the deletions are compared, then with "conflict_checked"

        Returns:
            ReconcileResult. When ``conflicts`` is non-empty the store was
            left untouched.
        """
        now = now or now_local()
        today: date = now.date()
        result = ReconcileResult()

        journal_tasks = list(journal_tasks)
        list_tasks = list(list_tasks)

        changes_a = self._with_ids(detect_changes(state, journal_tasks, JOURNAL_SOURCE))
        changes_b = self._with_ids(detect_changes(state, list_tasks, LIST_SOURCE))
        deletions = detect_deletions(state, journal_tasks, list_tasks)
        self.logger.debug(
            f"Detected {len(changes_a)} daily changes, {len(changes_b)} todo changes, "
            f"{len(deletions)} deletion candidates"
        )
        if on_phase:
            on_phase(PHASE_CHANGES_COMPUTED)

        result.conflicts = self.resolver.detect_conflicts(changes_a, changes_b)
        if on_phase:
            on_phase(PHASE_CONFLICT_CHECKED)
        if result.conflicts:
            self.logger.warning(f"Aborting apply: {len(result.conflicts)} conflict(s)")
            return result

        journal_ids = {task.id for task in journal_tasks if task.id}
        by_id_a = {change.task_id: change for change in changes_a}
        by_id_b = {change.task_id: change for change in changes_b}

        for task_id, change in by_id_a.items():
            if task_id in by_id_b:
                continue
            self._record_detail(result, change, JOURNAL_SOURCE)
            state.apply_change(change, now=now)
            result.applied_from_journal += 1
            result.changed_ids.add(task_id)
            result.list_dirty = True
            if task_id in journal_ids:
                # The note may still lack this task's id annotation
                result.journal_dirty = True

        for task_id, change in by_id_b.items():
            if task_id in by_id_a:
                continue
            self._record_detail(result, change, LIST_SOURCE)
            state.apply_change(change, now=now)
            result.applied_from_list += 1
            result.changed_ids.add(task_id)
            result.list_dirty = True
            if task_id in journal_ids:
                result.journal_dirty = True

        for task_id, change_a in by_id_a.items():
            change_b = by_id_b.get(task_id)
            if change_b is None:
                continue
            merged = smart_merge(change_a, change_b, today=today)
            if merged is None:
                self.logger.warning(f"Skipping merge for {task_id}; will retry next pass")
                result.skipped += 1
                result.skipped_ids.append(task_id)
                continue
            merged_change = TaskChange(
                task_id=task_id,
                change_type=change_a.change_type,
                old_record=change_a.old_record or change_b.old_record,
                new_record=merged,
                source=merged.source,
            )
            self._record_detail(result, merged_change, JOURNAL_SOURCE)
            state.apply_change(merged_change, now=now)
            result.merged += 1
            result.changed_ids.add(task_id)
            result.list_dirty = True
            result.journal_dirty = True
            self.logger.debug(f"Merged concurrent edits for {task_id}")

        for change in deletions:
            record = state.get(change.task_id)
            if record is None:
                continue
            if record.completed:
                result.retained_completed.append(change.task_id)
                continue
            state.remove_task(change.task_id, now=now)
            result.deleted += 1
            result.deleted_ids.append(change.task_id)
            result.changed_ids.add(change.task_id)
            result.details["deleted"].append(build_change_detail(change))
            result.list_dirty = True
            self.logger.info(f"Removed task {change.task_id} missing from both sources")

        result.state_updated = bool(result.changed_ids)
        return result

    def _with_ids(self, changes: List[TaskChange]) -> List[TaskChange]:
        """Give id-less ADDED changes a content-derived id."""
        for change in changes:
            if change.task_id:
                continue
            text = change.new_record.text if change.new_record else ""
            change.task_id = generate_task_id(text)
            if change.new_record is not None:
                change.new_record.id = change.task_id
        return changes

    def _record_detail(self, result: ReconcileResult, change: TaskChange, source: str) -> None:
        kind = "added" if change.change_type == ChangeType.ADDED else "updated"
        result.details[f"{source}_{kind}"].append(build_change_detail(change))
