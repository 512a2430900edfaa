"""
Markdown task parsing utilities.
"""

import hashlib
import re
from dataclasses import dataclass, field
from typing import List, Optional


# Regular expressions for parsing tasks
TASK_RE = re.compile(r'^(\*|-|\+)\s*\[([ xX])\]\s*(.*)$')
TASK_LINE_RE = re.compile(r'^(\s*)(\*|-|\+)\s*\[([ xX])\]\s*(.*?)(\r?\n)?$')
SECTION_RE = re.compile(r'^## (.*)$')
PRIORITY_RE = re.compile(r'\[P([0-3])\]')
TAG_RE = re.compile(r'#([a-zA-Z0-9_-]+)')
TASK_ID_RE = re.compile(r'<!-- id: ([A-Za-z0-9_-]+) -->')
TASK_ID_STRIP_RE = re.compile(r'\s*<!-- id: [A-Za-z0-9_-]+ -->')
COMPLETED_RE = re.compile(r'@completed\((\d{4}-\d{2}-\d{2})\)')
COMPLETED_STRIP_RE = re.compile(r'\s*@completed\(\d{4}-\d{2}-\d{2}\)')


@dataclass
class ParsedTask:
    """A task line as found in a markdown file."""

    text: str
    id: str = ""
    completed: bool = False
    priority: str = ""
    tags: List[str] = field(default_factory=list)
    section: str = ""
    line: int = 0
    completed_date: str = ""


def generate_task_id(text: str) -> str:
    """Generate a stable task ID from the task's content."""
    return hashlib.sha256(text.strip().encode('utf-8')).hexdigest()[:8]


def extract_task_id(text: str) -> str:
    match = TASK_ID_RE.search(text)
    return match.group(1) if match else ""


def strip_task_id(text: str) -> str:
    return TASK_ID_STRIP_RE.sub('', text)


def extract_completed_date(text: str) -> str:
    match = COMPLETED_RE.search(text)
    return match.group(1) if match else ""


def strip_completed_tag(text: str) -> str:
    return COMPLETED_STRIP_RE.sub('', text)


def clean_task_text(text: str) -> str:
    """Remove id and completion annotations from task text."""
    return strip_completed_tag(strip_task_id(text)).strip()


def parse_task_text(body: str, completed: bool, section: str = "", line: int = 0) -> ParsedTask:
    """
    Build a ParsedTask from the text following a checkbox.

    Args:
        body: Everything after ``[ ]``/``[x]`` on the line
        completed: Checkbox state
        section: Heading the line sits under
        line: 1-based line number

    Returns:
        ParsedTask with id and completion annotations stripped from the text
    """
    body = body.strip()

    priority = ""
    priority_match = PRIORITY_RE.search(body)
    if priority_match:
        priority = f"P{priority_match.group(1)}"

    tags = [match.group(1) for match in TAG_RE.finditer(body)]

    return ParsedTask(
        text=clean_task_text(body),
        id=extract_task_id(body),
        completed=completed,
        priority=priority,
        tags=tags,
        section=section,
        line=line,
        completed_date=extract_completed_date(body),
    )


def parse_tasks(content: str) -> List[ParsedTask]:
    """
    Parse all task lines from markdown content.

    Sections are tracked from ``## `` headings. Supports ``-``, ``*`` and
    ``+`` bullets.

    Args:
        content: Raw markdown

    Returns:
        Tasks in file order
    """
    tasks: List[ParsedTask] = []
    current_section = ""

    for index, line in enumerate(content.split('\n')):
        section_match = SECTION_RE.match(line)
        if section_match:
            current_section = section_match.group(1).strip()
            continue

        match = TASK_RE.match(line.strip())
        if not match:
            continue

        completed = match.group(2) in ('x', 'X')
        tasks.append(parse_task_text(match.group(3), completed, current_section, index + 1))

    return tasks


def ensure_task_id(task: ParsedTask) -> ParsedTask:
    """Give a task without an embedded id a content-derived one."""
    if not task.id:
        task.id = generate_task_id(task.text)
    return task


def format_task_line(
    text: str,
    completed: bool = False,
    task_id: str = "",
    completed_date: str = "",
    indent: str = "",
    bullet: str = "-",
) -> str:
    """
    Format a task into markdown line format.

    Args:
        text: Task text (any stale annotations are stripped first)
        completed: Checkbox state
        task_id: Id written as ``<!-- id: X -->``
        completed_date: Written as ``@completed(YYYY-MM-DD)`` when completed
        indent: Leading whitespace to keep
        bullet: List marker to keep

    Returns:
        Formatted markdown task line without a newline
    """
    status_char = 'x' if completed else ' '
    parts = [f"{indent}{bullet} [{status_char}] {clean_task_text(text)}"]

    if task_id:
        parts.append(f"<!-- id: {task_id} -->")

    if completed and completed_date:
        parts.append(f"@completed({completed_date})")

    return ' '.join(parts)


def split_task_line(line: str) -> Optional[dict]:
    """Split a raw task line into indent, bullet, checkbox, body and newline.

    Returns None for non-task lines.
    """
    match = TASK_LINE_RE.match(line)
    if not match:
        return None
    return {
        'indent': match.group(1),
        'bullet': match.group(2),
        'completed': match.group(3) in ('x', 'X'),
        'body': match.group(4),
        'newline': match.group(5) or '',
    }
