"""
Tests for the to-do list renderer.
"""

from datetime import datetime, timedelta, timezone

import pytest

from jot_sync.core.models import TaskRecord, TodoState
from jot_sync.render.todo_list import display_section, order_sections, render_todo_list


T0 = datetime(2026, 2, 1, 8, 0, tzinfo=timezone.utc)


def _state(*records):
    state = TodoState()
    for record in records:
        state.tasks[record.id] = record
    return state


@pytest.mark.unit
def test_order_sections_dates_descending_then_encounter_order():
    names = ["Inbox", "2026-02-01", "Someday", "2026-02-10", "Work"]
    assert order_sections(names) == ["2026-02-10", "2026-02-01", "Inbox", "Someday", "Work"]


@pytest.mark.unit
def test_invalid_dates_are_named_sections():
    assert order_sections(["2026-13-45", "2026-01-01"]) == ["2026-01-01", "2026-13-45"]


@pytest.mark.unit
def test_display_section():
    assert display_section(TaskRecord(id="a", text="a")) == "Tasks"
    assert display_section(TaskRecord(id="a", text="a", section="Work")) == "Work"
    done = TaskRecord(id="a", text="a", section="Work", completed=True, completed_date="2026-02-10")
    assert display_section(done) == "2026-02-10"


@pytest.mark.unit
def test_render_groups_and_orders_tasks():
    state = _state(
        TaskRecord(id="b2", text="Second", section="Work", created_at=T0 + timedelta(hours=1)),
        TaskRecord(id="a1", text="First", section="Work", created_at=T0),
        TaskRecord(id="d1", text="Done", section="Work", completed=True,
                   completed_date="2026-02-10", created_at=T0),
        TaskRecord(id="n1", text="Loose", created_at=T0),
    )
    expected = (
        "# To-Do List\n"
        "\n"
        "## 2026-02-10\n"
        "\n"
        "- [x] Done <!-- id: d1 --> @completed(2026-02-10)\n"
        "\n"
        "## Work\n"
        "\n"
        "- [ ] First <!-- id: a1 -->\n"
        "- [ ] Second <!-- id: b2 -->\n"
        "\n"
        "## Tasks\n"
        "\n"
        "- [ ] Loose <!-- id: n1 -->\n"
        "\n"
    )
    assert render_todo_list(state) == expected


@pytest.mark.unit
def test_render_without_completed_tasks():
    state = _state(
        TaskRecord(id="a1", text="Open", created_at=T0),
        TaskRecord(id="d1", text="Done", completed=True, completed_date="2026-02-10", created_at=T0),
    )
    content = render_todo_list(state, include_completed=False)
    assert "Done" not in content
    assert "- [ ] Open <!-- id: a1 -->" in content


@pytest.mark.unit
def test_render_hides_archived_tasks():
    state = _state(
        TaskRecord(id="d1", text="Archived", completed=True, completed_date="2026-02-02",
                   completed_at=T0 + timedelta(days=1), created_at=T0),
        TaskRecord(id="d2", text="Fresh", completed=True, completed_date="2026-02-10",
                   completed_at=T0 + timedelta(days=9), created_at=T0),
    )
    state.last_archive = T0 + timedelta(days=5)
    content = render_todo_list(state)
    assert "Archived" not in content
    assert "Fresh" in content


@pytest.mark.unit
def test_render_empty_store():
    assert render_todo_list(TodoState()) == "# To-Do List\n\n"
