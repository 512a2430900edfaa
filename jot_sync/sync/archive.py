"""Move completed tasks out of the to-do list into a monthly archive file."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
import logging
import os

from ..core.exceptions import SyncIOError
from ..core.models import SyncConfig
from ..markdown.parser import format_task_line, parse_tasks
from ..render.todo_list import render_todo_list
from ..utils.date import now_local
from ..utils.io import atomic_write, atomic_write_json, read_text
from .locks import acquire_locks
from .orchestrator import MIGRATION_SOURCE, load_state, usable_tasks


@dataclass
class ArchiveResult:
    archived: int = 0
    remaining: int = 0
    archive_path: str = ""
    dry_run: bool = False


class TaskArchiver:
    """Archives completed tasks while holding the state and list locks."""

    def __init__(self, config: SyncConfig, logger: Optional[logging.Logger] = None):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

    def archive_path(self, now: datetime) -> str:
        return os.path.join(self.config.archive_dir, f"archive-{now.strftime('%Y-%m')}.md")

    def archive(self, dry_run: bool = False, now: Optional[datetime] = None) -> ArchiveResult:
        """
        Append completed, not yet archived tasks to ``Archive/archive-YYYY-MM.md``.

        The list is re-rendered without completed tasks and ``lastArchive`` is
        stamped. Archived records stay in the state store as history.

        Raises:
            ResourceBusyError: a sync or archive run holds the locks
            SyncIOError: a file could not be read or written
        """
        now = now or now_local()
        state_path = self.config.state_path
        todo_path = self.config.todo_path

        with acquire_locks([state_path, todo_path], timeout=self.config.lock_timeout,
                           logger=self.logger):
            state = load_state(state_path)
            try:
                todo_content = read_text(todo_path, default="")
            except (OSError, UnicodeDecodeError) as exc:
                raise SyncIOError("read to-do list", todo_path, exc) from exc

            if state.needs_migration():
                state.migrate_from_markdown(usable_tasks(parse_tasks(todo_content)),
                                            source=MIGRATION_SOURCE, now=now)

            to_archive = sorted(state.archivable_tasks(), key=lambda task: task.id)
            result = ArchiveResult(
                archived=len(to_archive),
                remaining=len(state.active_tasks()),
                archive_path=self.archive_path(now),
                dry_run=dry_run,
            )
            if not to_archive:
                self.logger.info("No completed tasks to archive")
                return result

            if dry_run:
                self.logger.info(f"Dry run: would archive {len(to_archive)} task(s)")
                return result

            archive_file = result.archive_path
            try:
                existing = read_text(archive_file)
            except OSError as exc:
                raise SyncIOError("read archive", archive_file, exc) from exc
            if existing is None:
                existing = f"# Archive - {now.strftime('%B %Y')}\n\n"

            block = [f"\n## Archived on {now.strftime('%Y-%m-%d')}\n\n"]
            for task in to_archive:
                task.completed_at = task.completed_at or now
                block.append(format_task_line(task.text, completed=True, task_id=task.id,
                                              completed_date=task.completed_date) + "\n")

            state.mark_archived(now)
            try:
                atomic_write(archive_file, existing + "".join(block))
                atomic_write(todo_path, render_todo_list(state, include_completed=False))
                atomic_write_json(state_path, state.to_dict())
            except OSError as exc:
                raise SyncIOError("write archive", archive_file, exc) from exc

            self.logger.info(f"Archived {len(to_archive)} task(s) to {archive_file}")
            return result
