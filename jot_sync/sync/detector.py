"""Change and deletion detection against the state store."""

from typing import Any, Iterable, List, Set

from ..core.models import ChangeType, TaskChange, TaskRecord, TodoState
from ..utils.tags import tags_differ

DELETION_SOURCE = "deletion-detected"


def is_task_modified(record: TaskRecord, source_task: Any) -> bool:
    """True when a source's view of a task differs from the store.

    Text, priority, completion and the tag set are compared; section and
    timestamps are not.
    """
    if record.text != (getattr(source_task, "text", "") or ""):
        return True
    if record.priority != (getattr(source_task, "priority", "") or ""):
        return True
    if record.completed != bool(getattr(source_task, "completed", False)):
        return True
    return tags_differ(record.tags, getattr(source_task, "tags", None))


def detect_changes(state: TodoState, source_tasks: Iterable[Any], source_label: str) -> List[TaskChange]:
    """
    Diff the state store against one external source.

    Args:
        state: The persisted store
        source_tasks: Parsed tasks from the source
        source_label: Label recorded on each change and new snapshot

    Returns:
        MODIFIED changes for known ids that differ, ADDED changes for unknown
        or id-less tasks. Tasks missing from this one source are not reported.
    """
    source_tasks = list(source_tasks)
    changes: List[TaskChange] = []

    by_id = {}
    for task in source_tasks:
        if task.id:
            by_id[task.id] = task

    for task_id, record in state.tasks.items():
        source_task = by_id.get(task_id)
        if source_task is None:
            continue
        if is_task_modified(record, source_task):
            changes.append(TaskChange(
                task_id=task_id,
                change_type=ChangeType.MODIFIED,
                old_record=record.copy(),
                new_record=TaskRecord.from_source(source_task, source_label),
                source=source_label,
            ))

    for task in source_tasks:
        if not task.id or not state.has_task(task.id):
            changes.append(TaskChange(
                task_id=task.id,
                change_type=ChangeType.ADDED,
                new_record=TaskRecord.from_source(task, source_label),
                source=source_label,
            ))

    return changes


def _ids(tasks: Iterable[Any]) -> Set[str]:
    return {task.id for task in tasks if task.id}


def detect_deletions(state: TodoState, source_a_tasks: Iterable[Any],
                     source_b_tasks: Iterable[Any]) -> List[TaskChange]:
    """
    Find store records present in neither source.

    Must be called once per pass after both sources are read; absence from a
    single source is never evidence of deletion.
    """
    present = _ids(source_a_tasks) | _ids(source_b_tasks)
    return [
        TaskChange(
            task_id=task_id,
            change_type=ChangeType.DELETED,
            old_record=record.copy(),
            source=DELETION_SOURCE,
        )
        for task_id, record in state.tasks.items()
        if task_id not in present
    ]
