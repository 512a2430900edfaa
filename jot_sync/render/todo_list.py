"""Render the aggregated to-do list file from the state store."""

from datetime import datetime, timezone
from typing import Dict, Iterable, List

from ..core.models import DEFAULT_TASK_SECTION, TaskRecord, TodoState
from ..markdown.parser import format_task_line
from ..utils.date import is_date_section

TODO_HEADER = "# To-Do List\n\n"

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def display_section(task: TaskRecord) -> str:
    """Section a task is listed under.

    Completed tasks with a completion date move to that date's section.
    """
    if task.completed and task.completed_date:
        return task.completed_date
    return task.section or DEFAULT_TASK_SECTION


def order_sections(names: Iterable[str]) -> List[str]:
    """Date sections newest first, then other sections in encounter order."""
    names = list(names)
    dated = sorted((name for name in names if is_date_section(name)), reverse=True)
    named = [name for name in names if not is_date_section(name)]
    return dated + named


def _creation_key(task: TaskRecord):
    created = task.created_at or _EPOCH
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return (created, task.id)


def group_tasks(tasks: Iterable[TaskRecord]) -> Dict[str, List[TaskRecord]]:
    sections: Dict[str, List[TaskRecord]] = {}
    for task in sorted(tasks, key=_creation_key):
        sections.setdefault(display_section(task), []).append(task)
    return sections


def render_todo_list(state: TodoState, include_completed: bool = True) -> str:
    """
    Generate the to-do list markdown from the state store.

    Completed tasks already moved to an archive file are never listed.

    Args:
        state: Store to render
        include_completed: When False, completed tasks are left out

    Returns:
        Full file content
    """
    if include_completed:
        tasks = [task for task in state.tasks.values() if not state.is_archived(task)]
    else:
        tasks = state.active_tasks()
    sections = group_tasks(tasks)

    parts = [TODO_HEADER]
    for name in order_sections(sections):
        parts.append(f"## {name}\n\n")
        for task in sections[name]:
            line = format_task_line(
                task.text,
                completed=task.completed,
                task_id=task.id,
                completed_date=task.completed_date,
            )
            parts.append(line + "\n")
        parts.append("\n")
    return "".join(parts)
