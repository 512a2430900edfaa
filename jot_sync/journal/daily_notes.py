"""Daily note management for task sync."""

import os
from datetime import date
from typing import List, Optional, Tuple
import logging

from ..core.models import DEFAULT_TASK_SECTION, TodoState
from ..markdown.parser import (
    SECTION_RE,
    ParsedTask,
    ensure_task_id,
    format_task_line,
    generate_task_id,
    parse_task_text,
    parse_tasks,
    split_task_line,
)


class DailyNoteManager:
    """Locates daily notes and keeps their task lines in step with the state store."""

    def __init__(self, diary_path: str, task_section: str = DEFAULT_TASK_SECTION,
                 logger: Optional[logging.Logger] = None):
        self.diary_path = diary_path
        self.task_section = task_section or DEFAULT_TASK_SECTION
        self.logger = logger or logging.getLogger(__name__)

    def get_daily_note_path(self, target_date: date) -> str:
        """Get path to daily note for a date.

        Layout: ``<diary>/YYYY/MM-Mon/YYYY-MM-DD-Ddd.md``.
        """
        dir_path = os.path.join(
            self.diary_path,
            target_date.strftime("%Y"),
            target_date.strftime("%m-%b"),
        )
        return os.path.join(dir_path, target_date.strftime("%Y-%m-%d-%a.md"))

    def extract_tasks(self, content: str) -> List[ParsedTask]:
        """Tasks under the task section heading, each with an id."""
        tasks = [task for task in parse_tasks(content) if task.section == self.task_section]
        return [ensure_task_id(task) for task in tasks]

    def update_task_lines(self, content: str, state: TodoState) -> Tuple[str, int]:
        """Rewrite task lines in the task section from the state store.

        Only task lines inside the task section whose id is known to the store
        are replaced. Every other byte of the note is kept as-is, including
        line endings.

        Returns:
            (new_content, number_of_lines_rewritten)
        """
        output: List[str] = []
        in_section = False
        rewritten = 0

        for line in content.splitlines(keepends=True):
            bare = line.rstrip('\r\n')
            section_match = SECTION_RE.match(bare)
            if section_match:
                in_section = section_match.group(1).strip() == self.task_section
                output.append(line)
                continue

            parts = split_task_line(line) if in_section else None
            if parts is None:
                output.append(line)
                continue

            parsed = parse_task_text(parts['body'], parts['completed'])
            task_id = parsed.id or generate_task_id(parsed.text)
            record = state.get(task_id)
            if record is None:
                output.append(line)
                continue

            new_line = format_task_line(
                record.text,
                completed=record.completed,
                task_id=record.id,
                completed_date=record.completed_date,
                indent=parts['indent'],
                bullet=parts['bullet'],
            ) + parts['newline']
            if new_line != line:
                rewritten += 1
            output.append(new_line)

        return ''.join(output), rewritten
