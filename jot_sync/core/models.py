"""
Domain models for jot-sync.

This module contains the core data structures shared by the change detector,
conflict detector, merger and orchestrator: task records, the persisted state
store, change records and the sync configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional
import json
import logging
import os

from ..utils.date import as_aware, format_date, format_timestamp, is_date_section, now_local, parse_timestamp
from ..utils.tags import normalize_tags
from .paths import get_path_manager


DEFAULT_TASK_SECTION = "Tasks"
STATE_VERSION = 1


def _normalize_path(path: str) -> str:
    """Expand user and convert to absolute path."""
    return os.path.abspath(os.path.expanduser(path))


class ChangeType(Enum):
    """Kind of change detected for a task."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass
class TaskRecord:
    """Authoritative description of one task as held in the state store."""

    id: str
    text: str = ""
    section: str = ""
    priority: str = ""
    tags: List[str] = field(default_factory=list)
    completed: bool = False
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    last_modified: Optional[datetime] = None
    source: str = ""
    created_date: str = ""
    completed_date: str = ""

    def __post_init__(self) -> None:
        self.tags = normalize_tags(self.tags)

    @classmethod
    def from_source(cls, task: Any, source: str = "") -> TaskRecord:
        """Build a record snapshot from a parsed source task.

        Only the content fields a source can supply are copied; lifecycle
        timestamps stay unset.
        """
        return cls(
            id=getattr(task, "id", "") or "",
            text=getattr(task, "text", "") or "",
            section=getattr(task, "section", "") or "",
            priority=getattr(task, "priority", "") or "",
            tags=list(getattr(task, "tags", None) or []),
            completed=bool(getattr(task, "completed", False)),
            source=source,
        )

    def copy(self) -> TaskRecord:
        return TaskRecord(
            id=self.id,
            text=self.text,
            section=self.section,
            priority=self.priority,
            tags=list(self.tags),
            completed=self.completed,
            created_at=self.created_at,
            completed_at=self.completed_at,
            last_modified=self.last_modified,
            source=self.source,
            created_date=self.created_date,
            completed_date=self.completed_date,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "text": self.text,
            "section": self.section,
            "id": self.id,
            "completed": self.completed,
            "createdAt": format_timestamp(self.created_at),
            "lastModified": format_timestamp(self.last_modified),
        }
        # Optional fields are omitted when empty to keep the state file small
        if self.priority:
            data["priority"] = self.priority
        if self.tags:
            data["tags"] = sorted(self.tags)
        if self.completed_at:
            data["completedAt"] = format_timestamp(self.completed_at)
        if self.source:
            data["source"] = self.source
        if self.created_date:
            data["createdDate"] = self.created_date
        if self.completed_date:
            data["completedDate"] = self.completed_date
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], task_id: str = "") -> TaskRecord:
        return cls(
            id=data.get("id") or task_id,
            text=data.get("text", ""),
            section=data.get("section", ""),
            priority=data.get("priority") or "",
            tags=list(data.get("tags") or []),
            completed=bool(data.get("completed", False)),
            created_at=parse_timestamp(data.get("createdAt")),
            completed_at=parse_timestamp(data.get("completedAt")),
            last_modified=parse_timestamp(data.get("lastModified")),
            source=data.get("source") or "",
            created_date=data.get("createdDate") or "",
            completed_date=data.get("completedDate") or "",
        )


@dataclass
class TaskChange:
    """A detected change for one task relative to the state store."""

    task_id: str
    change_type: ChangeType
    old_record: Optional[TaskRecord] = None  # None for ADDED
    new_record: Optional[TaskRecord] = None  # None for DELETED
    source: str = ""


@dataclass
class ChangeDetail:
    """Human-readable description of a change, used for reporting."""

    id: str
    text: str
    change: str
    from_text: str = ""
    to_text: str = ""
    details: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = {"id": self.id, "text": self.text, "change": self.change}
        if self.from_text:
            data["from"] = self.from_text
        if self.to_text:
            data["to"] = self.to_text
        if self.details:
            data["details"] = self.details
        return data


def build_change_details(old: Optional[TaskRecord], new: Optional[TaskRecord]) -> str:
    """Summarise what differs between two snapshots of the same task."""
    if old is None or new is None:
        return ""

    parts: List[str] = []
    if old.text != new.text:
        parts.append("text changed")
    if not old.completed and new.completed:
        parts.append("marked complete")
    elif old.completed and not new.completed:
        parts.append("marked incomplete")
    if old.priority != new.priority and new.priority:
        parts.append(f"priority changed to {new.priority}")

    if not parts:
        return "modified"
    return ", ".join(parts)


def build_change_detail(change: TaskChange) -> ChangeDetail:
    """Turn a TaskChange into a ChangeDetail for display."""
    if change.change_type == ChangeType.ADDED:
        text = change.new_record.text if change.new_record else ""
        return ChangeDetail(id=change.task_id, text=text, change="added", details="new task added")

    if change.change_type == ChangeType.DELETED:
        old_text = change.old_record.text if change.old_record else ""
        return ChangeDetail(id=change.task_id, text="", change="deleted",
                            from_text=old_text, details="task deleted")

    return ChangeDetail(
        id=change.task_id,
        text=change.new_record.text if change.new_record else "",
        change="updated",
        from_text=change.old_record.text if change.old_record else "",
        to_text=change.new_record.text if change.new_record else "",
        details=build_change_details(change.old_record, change.new_record),
    )


@dataclass
class TodoState:
    """Persisted authoritative mapping from task id to TaskRecord.

    A TodoState is owned by exactly one sync pass at a time; it is loaded,
    mutated and written back while that pass holds every resource lock.
    """

    tasks: Dict[str, TaskRecord] = field(default_factory=dict)
    last_sync: Optional[datetime] = None
    last_archive: Optional[datetime] = None
    version: int = STATE_VERSION

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "lastSync": format_timestamp(self.last_sync),
            "tasks": {task_id: record.to_dict() for task_id, record in self.tasks.items()},
            "version": self.version,
        }
        if self.last_archive:
            data["lastArchive"] = format_timestamp(self.last_archive)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TodoState:
        raw_tasks = data.get("tasks") or {}
        tasks = {
            task_id: TaskRecord.from_dict(entry or {}, task_id)
            for task_id, entry in raw_tasks.items()
        }
        return cls(
            tasks=tasks,
            last_sync=parse_timestamp(data.get("lastSync")),
            last_archive=parse_timestamp(data.get("lastArchive")),
            version=int(data.get("version") or STATE_VERSION),
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def has_task(self, task_id: str) -> bool:
        return task_id in self.tasks

    def get(self, task_id: str) -> Optional[TaskRecord]:
        return self.tasks.get(task_id)

    def active_tasks(self) -> List[TaskRecord]:
        return [task for task in self.tasks.values() if not task.completed]

    def completed_tasks(self) -> List[TaskRecord]:
        return [task for task in self.tasks.values() if task.completed]

    def needs_migration(self) -> bool:
        return not self.tasks

    def is_archived(self, task: TaskRecord) -> bool:
        """Completed before the last archive run, so already in an archive file."""
        if not task.completed or self.last_archive is None or task.completed_at is None:
            return False
        return as_aware(task.completed_at) <= as_aware(self.last_archive)

    def archivable_tasks(self) -> List[TaskRecord]:
        return [task for task in self.completed_tasks() if not self.is_archived(task)]

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def add_task(self, task: Any, source: str, now: Optional[datetime] = None) -> TaskRecord:
        """Insert or refresh a task observed in a source.

        Creation metadata is kept from an existing record; a first observation
        stamps ``created_date`` from a date-shaped section, otherwise today.
        """
        now = now or now_local()
        today = format_date(now.date())
        record = TaskRecord.from_source(task, source)
        record.last_modified = now

        existing = self.tasks.get(record.id)
        if existing:
            record.created_at = existing.created_at
            record.completed_at = existing.completed_at
            record.created_date = existing.created_date
            record.completed_date = existing.completed_date
        else:
            record.created_at = now
            record.created_date = record.section if is_date_section(record.section) else today

        if record.completed and record.completed_at is None:
            record.completed_at = now
            if not record.completed_date:
                record.completed_date = getattr(task, "completed_date", "") or today

        self.tasks[record.id] = record
        self.last_sync = now
        return record

    def apply_change(self, change: TaskChange, now: Optional[datetime] = None) -> Optional[TaskRecord]:
        """Write a change's new snapshot into the store.

        Lifecycle fields of an existing record are preserved; the completion
        date is stamped only on a false->true transition.
        """
        if change.new_record is None:
            return None

        now = now or now_local()
        today = format_date(now.date())
        record = change.new_record.copy()
        if not record.id:
            record.id = change.task_id

        existing = self.tasks.get(record.id)
        if existing:
            record.created_at = existing.created_at
            record.created_date = existing.created_date
            # A merged snapshot may already carry the completion date it computed
            record.completed_at = existing.completed_at or record.completed_at
            record.completed_date = existing.completed_date or record.completed_date
        else:
            record.created_at = record.created_at or now
            if not record.created_date:
                record.created_date = record.section if is_date_section(record.section) else today

        was_completed = bool(existing and existing.completed) or bool(
            change.old_record and change.old_record.completed
        )
        if record.completed and not was_completed:
            if not record.completed_date:
                record.completed_date = today
            if record.completed_at is None:
                record.completed_at = now
        elif not record.completed:
            # Reopened tasks get a fresh completion date next time
            record.completed_at = None
            record.completed_date = ""

        record.last_modified = now
        self.tasks[record.id] = record
        self.last_sync = now
        return record

    def remove_task(self, task_id: str, now: Optional[datetime] = None) -> Optional[TaskRecord]:
        removed = self.tasks.pop(task_id, None)
        self.last_sync = now or now_local()
        return removed

    def migrate_from_markdown(self, tasks: Iterable[Any], source: str = "migration",
                              now: Optional[datetime] = None) -> int:
        """Populate an empty store from tasks already present in the list file."""
        migrated = 0
        for task in tasks:
            if not getattr(task, "id", ""):
                continue
            self.add_task(task, source, now=now)
            migrated += 1
        return migrated

    def mark_archived(self, now: Optional[datetime] = None) -> None:
        self.last_archive = now or now_local()


@dataclass
class SyncConfig:
    """Configuration for sync operations."""

    base_dir: str = ""
    diary_dir: str = "Diary"
    todo_file_path: str = "todo"
    task_section: str = DEFAULT_TASK_SECTION
    lock_timeout: float = 10.0
    retry_attempts: int = 3
    retry_base_delay: float = 0.5

    def __post_init__(self) -> None:
        if self.base_dir:
            self.base_dir = _normalize_path(self.base_dir)
        if not self.task_section:
            self.task_section = DEFAULT_TASK_SECTION
        if not self.todo_file_path:
            self.todo_file_path = "todo"

    # ------------------------------------------------------------------
    # Derived paths
    # ------------------------------------------------------------------
    @property
    def diary_path(self) -> str:
        return os.path.join(self.base_dir, self.diary_dir)

    @property
    def todo_path(self) -> str:
        todo = self.todo_file_path
        if todo.endswith(".md"):
            todo = todo[:-3]
        return os.path.join(self.base_dir, f"{todo}.md")

    @property
    def state_path(self) -> str:
        todo_path = self.todo_path
        basename = os.path.splitext(os.path.basename(todo_path))[0]
        return os.path.join(os.path.dirname(todo_path), f".{basename}_state.json")

    @property
    def archive_dir(self) -> str:
        return os.path.join(self.base_dir, "Archive")

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "paths": {
                "base_dir": self.base_dir,
                "diary_dir": self.diary_dir,
                "todo_file_path": self.todo_file_path,
            },
            "format": {
                "task_section": self.task_section,
            },
            "sync": {
                "lock_timeout": self.lock_timeout,
                "retry_attempts": self.retry_attempts,
                "retry_base_delay": self.retry_base_delay,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SyncConfig:
        paths = data.get("paths", {})
        fmt = data.get("format", {})
        sync = data.get("sync", {})
        return cls(
            base_dir=paths.get("base_dir", ""),
            diary_dir=paths.get("diary_dir", "Diary"),
            todo_file_path=paths.get("todo_file_path", "todo"),
            task_section=fmt.get("task_section", DEFAULT_TASK_SECTION),
            lock_timeout=float(sync.get("lock_timeout", 10.0)),
            retry_attempts=int(sync.get("retry_attempts", 3)),
            retry_base_delay=float(sync.get("retry_base_delay", 0.5)),
        )

    @classmethod
    def load_from_file(cls, config_path: str) -> SyncConfig:
        config_path = _normalize_path(config_path)
        if not os.path.exists(config_path):
            return cls()

        try:
            with open(config_path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except json.JSONDecodeError as exc:
            logging.getLogger(__name__).warning("Ignoring invalid config %s: %s", config_path, exc)
            return cls()

        return cls.from_dict(data)

    def save_to_file(self, config_path: str) -> None:
        config_path = _normalize_path(config_path)
        os.makedirs(os.path.dirname(config_path), exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as handle:
            json.dump(self.to_dict(), handle, indent=2)

    def get_default_paths(self) -> Dict[str, str]:
        """Resolved locations, mostly for ``--verbose`` output."""
        manager = get_path_manager()
        return {
            "config": str(manager.config_path),
            "diary": self.diary_path,
            "todo": self.todo_path,
            "state": self.state_path,
        }
