"""Conflict detection for bidirectional sync."""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional
import logging

from ..core.models import ChangeType, TaskChange


@dataclass
class Conflict:
    """Two sources changed the same task's text or completion differently."""

    task_id: str
    text_a: str
    text_b: str
    completed_a: bool
    completed_b: bool
    label_a: str = "daily"
    label_b: str = "todo"

    @property
    def text_differs(self) -> bool:
        return self.text_a != self.text_b

    @property
    def completion_differs(self) -> bool:
        return self.completed_a != self.completed_b

    @property
    def reason(self) -> str:
        parts: List[str] = []
        if self.text_differs:
            parts.append(
                f"text differs ({self.label_a}: '{self.text_a}', {self.label_b}: '{self.text_b}')"
            )
        if self.completion_differs:
            parts.append(
                f"completion differs ({self.label_a}: {self.completed_a}, {self.label_b}: {self.completed_b})"
            )
        return "; ".join(parts)

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.task_id,
            f"text_{self.label_a}": self.text_a,
            f"text_{self.label_b}": self.text_b,
            f"completed_{self.label_a}": self.completed_a,
            f"completed_{self.label_b}": self.completed_b,
            "reason": self.reason,
        }


class ConflictResolver:
    """Finds tasks changed incompatibly by both sources."""

    def __init__(self, label_a: str = "daily", label_b: str = "todo",
                 logger: Optional[logging.Logger] = None):
        self.label_a = label_a
        self.label_b = label_b
        self.logger = logger or logging.getLogger(__name__)

    def detect_conflicts(self, changes_a: Iterable[TaskChange],
                         changes_b: Iterable[TaskChange]) -> Dict[str, Conflict]:
        """
        Compare the MODIFIED changes of two sources.

        Returns a mapping of task id to Conflict. Ids whose proposals differ
        only in tags or priority are merge-eligible and not reported.
        """
        modified_b = {
            change.task_id: change
            for change in changes_b
            if change.change_type == ChangeType.MODIFIED
        }

        conflicts: Dict[str, Conflict] = {}
        for change_a in changes_a:
            if change_a.change_type != ChangeType.MODIFIED:
                continue
            change_b = modified_b.get(change_a.task_id)
            if change_b is None or change_a.new_record is None or change_b.new_record is None:
                continue

            new_a = change_a.new_record
            new_b = change_b.new_record
            if new_a.text == new_b.text and new_a.completed == new_b.completed:
                continue

            conflict = Conflict(
                task_id=change_a.task_id,
                text_a=new_a.text,
                text_b=new_b.text,
                completed_a=new_a.completed,
                completed_b=new_b.completed,
                label_a=self.label_a,
                label_b=self.label_b,
            )
            conflicts[change_a.task_id] = conflict
            self.logger.debug(f"Conflict for {change_a.task_id}: {conflict.reason}")

        return conflicts


def detect_conflicts(changes_a: Iterable[TaskChange], changes_b: Iterable[TaskChange]) -> Dict[str, Conflict]:
    """Module-level shortcut for ``ConflictResolver().detect_conflicts``."""
    return ConflictResolver().detect_conflicts(changes_a, changes_b)
