"""
Markdown task parsing and formatting for jot-sync.
"""

from .parser import (
    ParsedTask,
    parse_tasks,
    format_task_line,
    ensure_task_id,
    generate_task_id
)

__all__ = [
    'ParsedTask',
    'parse_tasks',
    'format_task_line',
    'ensure_task_id',
    'generate_task_id'
]
