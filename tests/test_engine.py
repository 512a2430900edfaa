"""
Tests for the in-memory reconciliation engine.
"""

from datetime import datetime, timezone

import pytest

from jot_sync.core.models import TaskRecord, TodoState
from jot_sync.markdown.parser import ParsedTask, generate_task_id
from jot_sync.sync.engine import PHASE_CHANGES_COMPUTED, PHASE_CONFLICT_CHECKED, SyncEngine


NOW = datetime(2026, 2, 10, 9, 30, tzinfo=timezone.utc)
CREATED = datetime(2026, 2, 1, 8, 0, tzinfo=timezone.utc)


def _state(*records):
    state = TodoState()
    for record in records:
        state.tasks[record.id] = record
    return state


@pytest.fixture
def engine():
    return SyncEngine()


@pytest.mark.unit
class TestReconcile:

    def test_added_from_journal_marks_list_dirty(self, engine):
        state = TodoState()
        result = engine.reconcile(state, [ParsedTask(text="Review proposal", id="abc123")], [], now=NOW)
        assert result.applied_from_journal == 1
        assert result.list_dirty
        assert result.state_updated
        assert state.tasks["abc123"].created_date == "2026-02-10"
        assert [d.text for d in result.details["daily_added"]] == ["Review proposal"]

    def test_list_change_to_journal_task_marks_journal_dirty(self, engine):
        state = _state(TaskRecord(id="abc123", text="Review", created_at=CREATED, created_date="2026-02-01"))
        journal = [ParsedTask(text="Review", id="abc123")]
        todo = [ParsedTask(text="Review", id="abc123", completed=True)]
        result = engine.reconcile(state, journal, todo, now=NOW)
        assert result.applied_from_list == 1
        assert result.journal_dirty
        assert state.tasks["abc123"].completed_date == "2026-02-10"
        assert state.tasks["abc123"].created_date == "2026-02-01"
        assert result.details["todo_updated"][0].details == "marked complete"

    def test_list_change_to_other_task_leaves_journal_clean(self, engine):
        state = _state(TaskRecord(id="t1", text="Only in list"))
        result = engine.reconcile(state, [], [ParsedTask(text="Only in list, edited", id="t1")], now=NOW)
        assert result.applied_from_list == 1
        assert not result.journal_dirty

    def test_conflict_leaves_store_untouched(self, engine):
        state = _state(TaskRecord(id="abc123", text="Original"))
        before = state.to_dict()
        result = engine.reconcile(
            state,
            [ParsedTask(text="Journal version", id="abc123"), ParsedTask(text="Unrelated new", id="new1")],
            [ParsedTask(text="List version", id="abc123")],
            now=NOW,
        )
        assert list(result.conflicts) == ["abc123"]
        assert not result.state_updated
        assert state.to_dict() == before

    def test_phases_are_reported_before_the_store_changes(self, engine):
        state = TodoState()
        seen = []

        def on_phase(phase):
            seen.append((phase, dict(state.tasks)))

        engine.reconcile(state, [ParsedTask(text="Review proposal", id="abc123")], [],
                         now=NOW, on_phase=on_phase)

        assert [phase for phase, _ in seen] == [PHASE_CHANGES_COMPUTED, PHASE_CONFLICT_CHECKED]
        assert all(tasks == {} for _, tasks in seen)
        assert "abc123" in state.tasks

    def test_conflict_check_is_reported_when_aborting(self, engine):
        state = _state(TaskRecord(id="abc123", text="Original"))
        seen = []
        result = engine.reconcile(
            state,
            [ParsedTask(text="Journal version", id="abc123")],
            [ParsedTask(text="List version", id="abc123")],
            now=NOW,
            on_phase=seen.append,
        )
        assert result.has_conflicts
        assert seen == [PHASE_CHANGES_COMPUTED, PHASE_CONFLICT_CHECKED]

    def test_tag_only_divergence_is_merged(self, engine):
        state = _state(TaskRecord(id="m1", text="Plan", created_at=CREATED, created_date="2026-02-01"))
        result = engine.reconcile(
            state,
            [ParsedTask(text="Plan", id="m1", tags=["a"], priority="P1")],
            [ParsedTask(text="Plan", id="m1", tags=["b"], priority="P2")],
            now=NOW,
        )
        assert result.merged == 1
        assert result.journal_dirty and result.list_dirty
        record = state.tasks["m1"]
        assert record.tags == ["a", "b"]
        assert record.priority == "P1"
        assert record.source == "merged"
        assert record.created_date == "2026-02-01"

    def test_same_new_task_in_both_sources_merges(self, engine):
        state = TodoState()
        result = engine.reconcile(
            state,
            [ParsedTask(text="Both", id="b1", tags=["x"])],
            [ParsedTask(text="Both", id="b1", tags=["y"])],
            now=NOW,
        )
        assert result.merged == 1
        assert state.tasks["b1"].tags == ["x", "y"]

    def test_unmergeable_new_task_is_skipped(self, engine):
        state = TodoState()
        result = engine.reconcile(
            state,
            [ParsedTask(text="Both", id="b1", completed=True)],
            [ParsedTask(text="Both", id="b1")],
            now=NOW,
        )
        assert result.skipped == 1
        assert result.skipped_ids == ["b1"]
        assert "b1" not in state.tasks

    def test_id_less_task_gets_generated_id(self, engine):
        state = TodoState()
        engine.reconcile(state, [ParsedTask(text="No id yet")], [], now=NOW)
        assert list(state.tasks) == [generate_task_id("No id yet")]

    def test_deletion_removes_open_task_and_keeps_completed(self, engine):
        state = _state(
            TaskRecord(id="open1", text="Gone"),
            TaskRecord(id="done1", text="History", completed=True, completed_date="2026-02-01"),
        )
        result = engine.reconcile(state, [], [], now=NOW)
        assert result.deleted_ids == ["open1"]
        assert result.retained_completed == ["done1"]
        assert list(state.tasks) == ["done1"]
        assert result.details["deleted"][0].from_text == "Gone"

    def test_second_reconcile_is_a_no_op(self, engine):
        state = TodoState()
        journal = [ParsedTask(text="Review", id="abc123")]
        engine.reconcile(state, journal, [], now=NOW)
        result = engine.reconcile(state, journal, [ParsedTask(text="Review", id="abc123")], now=NOW)
        assert not result.state_updated
        assert result.total_changes == 0
