"""Smart merge of non-conflicting concurrent edits."""

from datetime import date
from typing import Optional

from ..core.models import TaskChange, TaskRecord
from ..utils.date import format_date, now_local
from ..utils.tags import merge_tags

MERGED_SOURCE = "merged"


def smart_merge(change_a: TaskChange, change_b: TaskChange,
                today: Optional[date] = None) -> Optional[TaskRecord]:
    """
    Combine two MODIFIED changes to the same task into one record.

    Source A wins text and priority when non-empty, otherwise B's value is
    used. Tags are unioned. Creation metadata comes from whichever side has a
    prior snapshot, A first.

    Args:
        change_a: Change from the first source (the daily note)
        change_b: Change from the second source (the to-do list)
        today: Date stamped on a first completion; defaults to the local date

    Returns:
        The merged record, or None if the merge is not possible (a snapshot
        is missing or the two sides disagree on completion).
    """
    new_a = change_a.new_record
    new_b = change_b.new_record
    if new_a is None or new_b is None:
        return None
    if new_a.completed != new_b.completed:
        return None

    now = now_local()
    today = today or now.date()

    merged = TaskRecord(
        id=new_a.id or new_b.id or change_a.task_id,
        text=new_a.text or new_b.text,
        section=new_a.section or new_b.section,
        priority=new_a.priority or new_b.priority,
        tags=merge_tags(new_a.tags, new_b.tags),
        completed=new_a.completed,
        source=MERGED_SOURCE,
        last_modified=now,
    )

    prior = change_a.old_record or change_b.old_record
    was_completed = False
    if prior is not None:
        merged.created_at = prior.created_at
        merged.created_date = prior.created_date
        merged.completed_at = prior.completed_at
        was_completed = prior.completed

    if merged.completed and not was_completed:
        merged.completed_date = format_date(today)
        merged.completed_at = merged.completed_at or now
    elif was_completed and prior is not None:
        merged.completed_date = prior.completed_date

    return merged
