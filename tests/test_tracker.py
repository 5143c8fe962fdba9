#!/usr/bin/env python3
"""
Tests for the step progress tracker.
"""

from unittest.mock import Mock

from scribe.tutoring.progress import ProgressStore
from scribe.tutoring.state import Progress
from scribe.tutoring.steps import compile_transcript
from scribe.tutoring.tracker import StepProgressTracker


TWO_STEPS = 'mkdir -p src\ntouch src/index.ts'
FOUR_STEPS = 'mkdir a\nmkdir b\nmkdir c\nmkdir d'


class TestStepProgressTracker:
    """Tests for load/advance/clear"""

    def test_advance_scenario(self):
        """Test advancing through a two-step plan"""
        tracker = StepProgressTracker(compile_transcript(TWO_STEPS))
        assert tracker.total == 2

        assert tracker.advance() is True
        assert tracker.index == 1
        assert tracker.completed is False

        assert tracker.advance() is False
        assert tracker.index == 1
        assert tracker.completed is True
        assert tracker.load() is None

    def test_load_is_idempotent(self):
        tracker = StepProgressTracker(compile_transcript(TWO_STEPS))
        first = tracker.load()
        second = tracker.load()
        assert first is second
        assert first.text == 'mkdir -p src'

    def test_clear_keeps_cursor(self):
        tracker = StepProgressTracker(compile_transcript(TWO_STEPS))
        step = tracker.load()
        tracker.clear()
        assert tracker.current is None
        assert tracker.index == 0
        assert tracker.load() is step

    def test_advance_drops_cached_step(self):
        tracker = StepProgressTracker(compile_transcript(TWO_STEPS))
        tracker.load()
        tracker.advance()
        assert tracker.current is None
        assert tracker.load().text == 'touch src/index.ts'

    def test_out_of_range_index_loads_nothing(self):
        tracker = StepProgressTracker(compile_transcript(TWO_STEPS), index=5)
        assert tracker.load() is None
        tracker.index = -1
        assert tracker.load() is None

    def test_empty_plan(self):
        tracker = StepProgressTracker(compile_transcript(''))
        assert tracker.load() is None
        assert tracker.advance() is False
        assert tracker.completed

    def test_advance_persists_only_the_cursor(self):
        store = Mock()
        tracker = StepProgressTracker(compile_transcript(TWO_STEPS), store)
        tracker.advance()
        store.update.assert_called_once_with(current_step_index=1)

    def test_reset_for_segment(self):
        store = Mock()
        tracker = StepProgressTracker(compile_transcript(TWO_STEPS), store)
        tracker.advance()
        tracker.advance()

        tracker.reset_for_segment(compile_transcript(FOUR_STEPS))
        assert tracker.index == 0
        assert not tracker.completed
        assert tracker.total == 4
        store.update.assert_called_with(current_step_index=0, total_steps=4)

    def test_replace_plan_keeps_cursor_in_range(self):
        tracker = StepProgressTracker(compile_transcript(FOUR_STEPS), index=2)
        tracker.replace_plan(compile_transcript('mkdir x\nmkdir y\nmkdir z'))
        assert tracker.index == 2
        assert tracker.load().text == 'mkdir z'

    def test_replace_plan_shorter_than_cursor(self):
        tracker = StepProgressTracker(compile_transcript(FOUR_STEPS), index=3)
        tracker.replace_plan(compile_transcript(TWO_STEPS))
        assert tracker.completed
        assert tracker.load() is None


class TestResume:
    """Tests for resuming from a persisted progress record"""

    def _progress(self, index, passed):
        return Progress(
            current_segment_id='seg',
            current_step_index=index,
            code_written=passed,
            syntax_verified=passed,
            code_reviewed=passed,
            checked_step_index=index if passed else None,
        )

    def test_resume_at_recorded_step(self):
        tracker = StepProgressTracker(compile_transcript(FOUR_STEPS))
        tracker.resume(self._progress(2, passed=False))
        assert tracker.index == 2
        assert tracker.load().text == 'mkdir c'

    def test_resume_moves_past_finished_step(self):
        """Test that a step with all checks passed is not replayed"""
        tracker = StepProgressTracker(compile_transcript(FOUR_STEPS))
        tracker.resume(self._progress(1, passed=True))
        assert tracker.index == 2
        assert not tracker.completed

    def test_resume_finished_last_step_completes(self):
        tracker = StepProgressTracker(compile_transcript(FOUR_STEPS))
        tracker.resume(self._progress(3, passed=True))
        assert tracker.index == 3
        assert tracker.completed

    def test_resume_partial_checks_stays(self):
        tracker = StepProgressTracker(compile_transcript(FOUR_STEPS))
        progress = self._progress(1, passed=False)
        progress.code_written = True
        progress.syntax_verified = True
        tracker.resume(progress)
        assert tracker.index == 1

    def test_resume_out_of_range(self):
        tracker = StepProgressTracker(compile_transcript(TWO_STEPS))
        tracker.resume(self._progress(9, passed=True))
        assert tracker.load() is None

    def test_resume_across_processes(self, tmp_path):
        """Test that an advanced cursor survives a fresh store and tracker"""
        store = ProgressStore(str(tmp_path))
        store.create('seg', 0, total_steps=4)
        tracker = StepProgressTracker(compile_transcript(FOUR_STEPS), store)
        tracker.advance()
        store.update(code_written=True, syntax_verified=True, code_reviewed=True)
        store.mark_step_checked()

        fresh_store = ProgressStore(str(tmp_path))
        fresh = StepProgressTracker(compile_transcript(FOUR_STEPS), fresh_store)
        fresh.resume(fresh_store.load())
        assert fresh.index == 2
        assert fresh_store.current.current_step_index == 2
        assert fresh_store.current.code_written is True
        assert not fresh_store.current.checks_passed

    def test_checks_from_earlier_step_do_not_skip(self):
        tracker = StepProgressTracker(compile_transcript(FOUR_STEPS))
        progress = self._progress(2, passed=True)
        progress.checked_step_index = 1
        tracker.resume(progress)
        assert tracker.index == 2

    def test_advance_keeps_segment_checkpoints(self, tmp_path):
        store = ProgressStore(str(tmp_path))
        store.create('seg', 0, total_steps=4)
        store.update(code_written=True, syntax_verified=True, code_reviewed=True)
        tracker = StepProgressTracker(compile_transcript(FOUR_STEPS), store)
        tracker.advance()

        loaded = ProgressStore(str(tmp_path)).load()
        assert loaded.current_step_index == 1
        assert loaded.code_written and loaded.syntax_verified and loaded.code_reviewed
