#!/usr/bin/env python3
"""
Tests for the tutor agent loop, prompts, and segment lifecycle.
"""

from unittest.mock import MagicMock, Mock

from scribe.tutoring.agent import MAX_TOOL_ROUNDS, TutorAgent
from scribe.tutoring.call_queue import Done, TextChunk, ToolEnd, ToolStart
from scribe.tutoring.lifecycle import SegmentLifecycle, missing_checkpoints, should_complete_segment
from scribe.tutoring.progress import ProgressStore, SessionStore
from scribe.tutoring.prompts import AgentContext, build_resume_context, build_system_prompt
from scribe.tutoring.state import Progress, SessionState
from scribe.tutoring.tools import ToolExecutor, ToolResult


def run(agent, message='start', history=None, context=None):
    return list(agent.run_turn(message, history or [], context))


class TestTutorAgent:
    """Tests for TutorAgent.run_turn"""

    def _context(self, curriculum):
        return AgentContext(curriculum=curriculum, segment=curriculum.segments[0], segment_index=0)

    def test_text_only_turn(self, curriculum, scripted_llm):
        llm = scripted_llm([(['Let us ', 'begin.'], [])])
        agent = TutorAgent(llm, ToolExecutor(curriculum.working_directory))
        events = run(agent, context=self._context(curriculum))

        assert events[:2] == [TextChunk('Let us '), TextChunk('begin.')]
        done = events[-1]
        assert isinstance(done, Done)
        assert done.result.text == 'Let us begin.'
        assert not done.result.segment_completed
        assert done.result.history[0] == {'role': 'user', 'content': 'start'}
        assert done.result.history[1]['role'] == 'assistant'

    def test_tool_round_trip(self, curriculum, tmp_path, scripted_llm):
        (tmp_path / 'a.txt').write_text('hello')
        llm = scripted_llm([
            (['Reading.'], [('read_file', {'filepath': 'a.txt'})]),
            (['Looks good.'], []),
        ])
        agent = TutorAgent(llm, ToolExecutor(str(tmp_path)))
        events = run(agent, context=self._context(curriculum))

        assert ToolStart('read_file') in events
        assert ToolEnd('read_file', True) in events
        history = events[-1].result.history
        tool_message = history[2]
        assert tool_message['role'] == 'user'
        assert tool_message['content'][0]['type'] == 'tool_result'
        assert tool_message['content'][0]['content'] == 'hello'
        assert tool_message['content'][0]['is_error'] is False
        assert events[-1].result.text == 'Reading.Looks good.'
        assert len(llm.calls) == 2

    def test_unknown_tool_reported_as_error(self, curriculum, scripted_llm):
        llm = scripted_llm([([], [('format_disk', {})]), (['Sorry.'], [])])
        agent = TutorAgent(llm, ToolExecutor(curriculum.working_directory))
        events = run(agent, context=self._context(curriculum))

        assert ToolEnd('format_disk', False) in events
        result_block = events[-1].result.history[2]['content'][0]
        assert result_block['is_error'] is True

    def test_segment_completion(self, curriculum, scripted_llm):
        llm = scripted_llm([
            (['Great work!'], [('mark_segment_complete', {'summary': 'Project scaffolded'})]),
            ([], []),
        ])
        agent = TutorAgent(llm, ToolExecutor(curriculum.working_directory))
        result = run(agent, context=self._context(curriculum))[-1].result

        assert result.segment_completed
        assert result.summary == 'Project scaffolded'

    def test_tool_rounds_are_bounded(self, curriculum, scripted_llm):
        tools = Mock()
        tools.execute.return_value = ToolResult(True, 'ok')
        llm = scripted_llm([([], [('read_file', {'filepath': 'x'})])] * (MAX_TOOL_ROUNDS + 3))
        agent = TutorAgent(llm, tools)
        events = run(agent, context=self._context(curriculum))

        assert len(llm.calls) == MAX_TOOL_ROUNDS
        assert isinstance(events[-1], Done)

    def test_history_is_extended_not_mutated(self, curriculum, scripted_llm):
        history = [{'role': 'user', 'content': 'earlier'}, {'role': 'assistant', 'content': 'reply'}]
        llm = scripted_llm([(['ok'], [])])
        agent = TutorAgent(llm, ToolExecutor(curriculum.working_directory))
        result = run(agent, 'next', history, self._context(curriculum))[-1].result

        assert len(history) == 2
        assert result.history[:2] == history
        assert result.history[2] == {'role': 'user', 'content': 'next'}

    def test_generate_summary_fallback(self, curriculum):
        llm = MagicMock()
        llm.create.side_effect = RuntimeError('offline')
        agent = TutorAgent(llm, Mock())
        assert agent.generate_summary(self._context(curriculum)) == 'Completed: Project setup'

    def test_generate_summary(self, curriculum, scripted_llm):
        agent = TutorAgent(scripted_llm(summary='  Made the folders.  '), Mock())
        assert agent.generate_summary(self._context(curriculum)) == 'Made the folders.'


class TestPrompts:
    """Tests for system prompt assembly"""

    def test_system_prompt_includes_segment(self, curriculum):
        context = AgentContext(
            curriculum=curriculum,
            segment=curriculum.segments[0],
            segment_index=0,
            step_index=1,
            total_steps=2,
            previous_summary='Installed tools',
        )
        prompt = build_system_prompt(context)
        assert 'Project setup' in prompt
        assert 'mkdir src' in prompt
        assert 'Installed tools' in prompt
        assert 'step 2 of 2' in prompt

    def test_resume_context(self):
        assert build_resume_context(None) == ''
        assert build_resume_context(Progress(current_segment_id='s')) == ''

        progress = Progress(
            current_segment_id='s',
            completed_steps=['Created directory: mkdir src'],
            code_written=True,
            last_tutor_message='Now create the file',
        )
        text = build_resume_context(progress)
        assert '1. Created directory: mkdir src' in text
        assert 'Now create the file' in text


class TestSegmentLifecycle:
    """Tests for segment completion"""

    def test_checkpoints(self):
        progress = Progress(current_segment_id='s', code_written=True, syntax_verified=True)
        assert missing_checkpoints(progress) == ['code_reviewed', 'committed']
        assert not should_complete_segment(progress)
        assert should_complete_segment(progress, {'code_reviewed': False, 'committed': False})
        progress.code_reviewed = True
        progress.committed = True
        assert should_complete_segment(progress)

    def test_complete_moves_to_next_segment(self, tmp_path, curriculum):
        session_store = SessionStore(tmp_path / 'state.json')
        progress_store = ProgressStore(str(tmp_path))
        progress_store.create('seg-1', 0)
        display = Mock()
        state = SessionState(curriculum_path='c.json')

        lifecycle = SegmentLifecycle(session_store, progress_store, display)
        transition = lifecycle.complete_segment(curriculum, state, curriculum.segments[0], 'Scaffolded')

        assert not transition.curriculum_complete
        assert transition.next_segment.id == 'seg-2'
        assert transition.history == []
        assert state.current_segment_index == 1
        assert state.completed_segments == ['seg-1']
        assert state.previous_segment_summary == 'Scaffolded'
        assert session_store.load().current_segment_index == 1
        assert progress_store.load().current_segment_id == 'seg-2'
        display.segment_complete.assert_called_once()
        display.segment_header.assert_called_once()

    def test_complete_last_segment(self, tmp_path, curriculum):
        session_store = SessionStore(tmp_path / 'state.json')
        display = Mock()
        state = SessionState(curriculum_path='c.json', current_segment_index=1, completed_segments=['seg-1'])

        lifecycle = SegmentLifecycle(session_store, ProgressStore(str(tmp_path)), display)
        transition = lifecycle.complete_segment(curriculum, state, curriculum.segments[1], 'Done')

        assert transition.curriculum_complete
        display.curriculum_complete.assert_called_once_with(curriculum)
