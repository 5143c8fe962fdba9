#!/usr/bin/env python3
"""
Tests for the input mode controller.
"""

from unittest.mock import Mock

from scribe.tutoring.modes import ModeController, parse_mode
from scribe.tutoring.state import Mode


class TestMode:
    """Tests for the Mode enum"""

    def test_cycle_order(self):
        assert Mode.GUIDED.next() == Mode.FREEFORM
        assert Mode.FREEFORM.next() == Mode.DISCUSS
        assert Mode.DISCUSS.next() == Mode.GUIDED

    def test_parse_mode(self):
        assert parse_mode('guided') == Mode.GUIDED
        assert parse_mode('Discuss') == Mode.DISCUSS
        assert parse_mode('chat') == Mode.DISCUSS
        assert parse_mode('free') == Mode.FREEFORM
        assert parse_mode(None) == Mode.GUIDED
        assert parse_mode('nonsense', Mode.FREEFORM) == Mode.FREEFORM


class TestModeController:
    """Tests for ModeController transitions"""

    def test_default_is_guided(self):
        modes = ModeController()
        assert modes.mode == Mode.GUIDED
        assert modes.is_guided

    def test_full_cycle(self):
        modes = ModeController()
        assert modes.cycle() == Mode.FREEFORM
        assert modes.cycle() == Mode.DISCUSS
        assert modes.is_discuss
        assert modes.cycle() == Mode.GUIDED

    def test_leaving_guided_clears_step(self):
        tracker = Mock()
        modes = ModeController(tracker=tracker)
        modes.cycle()
        tracker.clear.assert_called_once()
        tracker.load.assert_not_called()

    def test_entering_guided_loads_step(self):
        tracker = Mock()
        modes = ModeController(Mode.DISCUSS, tracker=tracker)
        modes.cycle()
        tracker.load.assert_called_once()

    def test_freeform_to_discuss_touches_nothing(self):
        tracker = Mock()
        modes = ModeController(Mode.FREEFORM, tracker=tracker)
        modes.cycle()
        tracker.load.assert_not_called()
        tracker.clear.assert_not_called()

    def test_set_same_mode_is_noop(self):
        tracker = Mock()
        modes = ModeController(tracker=tracker)
        assert modes.set(Mode.GUIDED) == Mode.GUIDED
        tracker.load.assert_not_called()
        tracker.clear.assert_not_called()

    def test_footer_names_mode(self):
        modes = ModeController(Mode.FREEFORM)
        assert modes.footer() == '⏵⏵ freeform mode (shift+tab to cycle)'
        assert modes.info()['color'] == 'yellow'
