#!/usr/bin/env python3
"""
The per-turn tutoring loop.

Each turn reads input in the current mode's shape, runs it through the
command dispatcher, sends the result to the tutor, and moves the step
cursor once a typed step has been fully handled.
"""

import logging
import time
from typing import Any, Dict, List, Optional

from .call_queue import CallQueue, ShutdownHooks
from .curriculum import Curriculum, Segment, load_curriculum
from .dispatcher import CommandDispatcher, DispatchOutcome
from .lifecycle import SegmentLifecycle, missing_checkpoints, should_complete_segment
from .modes import ModeController
from .progress import ProgressStore, SessionStore
from .prompts import AgentContext
from .state import AgentCallError, CurriculumError, Mode, SessionState, TurnInput
from .steps import compile_transcript
from .tracker import StepProgressTracker


logger = logging.getLogger(__name__)

EXIT_WORDS = ('exit', 'quit')
CONTINUE_MESSAGE = '(user pressed Enter to continue)'
NO_STEP_HINT = 'Press Enter to continue, or type a question'


class SessionLoop:
    """Composes tracker, dispatcher, modes, and the call queue into turns"""

    def __init__(
        self,
        curriculum: Curriculum,
        state: SessionState,
        session_store: SessionStore,
        progress_store: ProgressStore,
        call_queue: CallQueue,
        inputs,
        display,
        dispatcher: CommandDispatcher = None,
        modes: ModeController = None,
        watcher=None,
        curriculum_path: str = None,
    ):
        self.curriculum = curriculum
        self.state = state
        self.session_store = session_store
        self.progress_store = progress_store
        self.call_queue = call_queue
        self.inputs = inputs
        self.display = display
        self.dispatcher = dispatcher or CommandDispatcher(curriculum.working_directory, progress_store)
        self.modes = modes or ModeController()
        self.watcher = watcher
        self.curriculum_path = curriculum_path or state.curriculum_path
        self.lifecycle = SegmentLifecycle(session_store, progress_store, display)

        self.segment: Optional[Segment] = None
        self.tracker: Optional[StepProgressTracker] = None
        self.history: List[Dict[str, Any]] = []
        self.finished = False
        self.resumed = False
        self._pending_text = ''
        self._step_awaiting_heredoc = False
        self._last_save = time.monotonic()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def run(self):
        """Start the session and loop until the learner leaves or the curriculum ends"""
        try:
            self.start()
            while not self.finished:
                self.run_turn()
        except KeyboardInterrupt:
            self.call_queue.flush_and_exit()
        except EOFError:
            self.save()
        finally:
            if self.watcher is not None:
                self.watcher.stop()
            self.call_queue.close()

    def start(self):
        """Load or create progress, position the cursor, and open the conversation"""
        segment = self.curriculum.get_segment(self.state.current_segment_index)
        if segment is None:
            self.display.curriculum_complete(self.curriculum)
            self.finished = True
            return
        self.segment = segment

        progress = self.progress_store.load()
        self.resumed = progress is not None and progress.current_segment_id == segment.id
        if self.progress_store.upgraded_from is not None:
            self.display.warning('Upgraded an older progress file; your place is kept.')

        plan = compile_transcript(segment.reference_transcript)
        self.tracker = StepProgressTracker(plan, self.progress_store)
        self.modes.tracker = self.tracker

        if self.resumed:
            self.tracker.resume(progress)
            if progress.total_steps != plan.total:
                self.progress_store.update(total_steps=plan.total)
        else:
            self.progress_store.create(segment.id, self.state.current_segment_index, plan.total)
            self.tracker.reset_for_segment(plan)

        self.call_queue.install_interrupt_handler(ShutdownHooks(
            save_progress=self.progress_store.flush,
            save_state=self._save_state,
            restore_terminal=self.inputs.restore_terminal,
            notify=self.display.notice,
        ))
        if self.watcher is not None:
            self.watcher.start()

        self.display.welcome(self.curriculum, resumed=self.resumed)
        self.display.segment_header(self.curriculum, segment, self.state.current_segment_index)
        self._warn_incomplete_plan()
        logger.info('Session started on segment %s (resumed=%s)', segment.id, self.resumed)

        self._send('resume' if self.resumed else 'start', resuming=self.resumed)
        self._after_turn()

    def save(self):
        """Persist progress and session state"""
        self.progress_store.flush()
        self._save_state()

    def _save_state(self):
        now = time.monotonic()
        self.state.total_minutes_spent += int((now - self._last_save) // 60)
        self._last_save = now
        self.session_store.save(self.state)

    # =========================================================================
    # Turns
    # =========================================================================

    def run_turn(self):
        """Read one input, act on it, and talk to the tutor"""
        self._check_curriculum_changes()
        turn = self.read_input()

        if turn.kind == 'mode_switch':
            self._switch_mode(turn)
            return

        text = turn.text
        stripped = text.strip()

        if not self.dispatcher.collecting:
            if stripped.lower() in EXIT_WORDS:
                self.save()
                self.display.notice('Progress saved. See you next time.')
                self.finished = True
                return
            if not stripped:
                self._send(CONTINUE_MESSAGE)
                self._after_turn()
                return
            if turn.kind == 'question':
                self._send(stripped)
                self._after_turn()
                return

        if '\n' in text:
            outcome = self.dispatcher.submit_block(text)
        else:
            outcome = self.dispatcher.handle(text)

        if outcome.kind in ('heredoc_started', 'heredoc_line'):
            if turn.step_submitted:
                # Typed step ends inside an open heredoc; it finishes with the delimiter
                self._step_awaiting_heredoc = True
            return

        step_done = turn.step_submitted or (outcome.kind == 'executed' and self._step_awaiting_heredoc)
        if outcome.kind == 'executed':
            self._step_awaiting_heredoc = False

        segment_changed = self._send(self._message_for(outcome, text))
        if step_done and not segment_changed:
            self.tracker.advance()
        self._after_turn()

    def read_input(self) -> TurnInput:
        """One read of input in the shape the current mode calls for"""
        if self.dispatcher.collecting:
            return self.inputs.continuation()

        pending, self._pending_text = self._pending_text, ''
        mode = self.modes.mode

        if mode == Mode.DISCUSS:
            turn = self.inputs.freeform(default=pending)
            self.tracker.clear()
            return turn

        if mode == Mode.FREEFORM:
            step = self.tracker.plan.get(self.tracker.index) if not self.tracker.completed else None
            turn = self.inputs.freeform(expected=step.text if step else None, default=pending)
            self.tracker.clear()
            return turn

        step = self.tracker.load()
        if step is not None:
            turn = self.inputs.guided_step(step)
            self.tracker.clear()
            return turn
        return self.inputs.freeform(hint=NO_STEP_HINT, default=pending)

    def _switch_mode(self, turn: TurnInput):
        if self.dispatcher.collecting:
            self.dispatcher.reset_heredoc()
            self._step_awaiting_heredoc = False
            self.display.notice('Heredoc cancelled.')
            return
        self._pending_text = turn.text
        self.modes.cycle()
        info = self.modes.info()
        self.display.mode_changed(info['label'], info['description'])

    def _message_for(self, outcome: DispatchOutcome, text: str) -> str:
        if outcome.kind != 'executed':
            return text
        result = outcome.result
        self.display.command_result(result)
        if outcome.heredoc:
            status = 'Success' if result.success else f'Error: {result.output}'
            return f'I ran a heredoc command to create/modify a file:\n{result.command}\nResult: {status}'
        return result.message_for_agent

    def _after_turn(self):
        if self.finished or self.tracker is None:
            return
        if self.modes.is_guided:
            self.tracker.load()
        elif self.modes.is_discuss:
            self.tracker.clear()

    # =========================================================================
    # Tutor calls
    # =========================================================================

    def _send(self, message: str, resuming: bool = False) -> bool:
        """Send a message through the call queue. Returns True if the segment changed."""
        try:
            result = self.call_queue.call(message, self.history, self._context(resuming))
        except AgentCallError:
            return False

        self.history = result.history
        if result.text and self.progress_store.current is not None:
            self.progress_store.update(last_tutor_message=result.text)

        if result.segment_completed:
            self._complete_segment(result.summary)
            return True
        return False

    def _context(self, resuming: bool = False) -> AgentContext:
        """Context for one call; the progress record only rides along when resuming"""
        return AgentContext(
            curriculum=self.curriculum,
            segment=self.segment,
            segment_index=self.state.current_segment_index,
            step_index=self.tracker.index if self.tracker else 0,
            total_steps=self.tracker.total if self.tracker else 0,
            previous_summary=self.state.previous_segment_summary,
            progress=self.progress_store.current if resuming else None,
        )

    def _complete_segment(self, summary: Optional[str]):
        summary = summary or f'Completed: {self.segment.title}'
        progress = self.progress_store.current
        if progress is not None and not should_complete_segment(progress, self.segment.checkpoints):
            outstanding = missing_checkpoints(progress, self.segment.checkpoints)
            missing = ', '.join(flag.replace('_', ' ') for flag in outstanding)
            logger.warning('Segment %s completed with checkpoints outstanding: %s', self.segment.id, missing)
            self.display.warning(f'Segment finished without: {missing}')
        transition = self.lifecycle.complete_segment(self.curriculum, self.state, self.segment, summary)
        if transition.curriculum_complete:
            self.finished = True
            return

        self.segment = transition.next_segment
        self.history = transition.history
        self.dispatcher.reset_heredoc()
        self._step_awaiting_heredoc = False
        self.tracker.reset_for_segment(compile_transcript(self.segment.reference_transcript))
        self._warn_incomplete_plan()
        self._send('start')

    # =========================================================================
    # Curriculum edits
    # =========================================================================

    def _check_curriculum_changes(self):
        """Pick up edits to the curriculum file between turns"""
        if self.watcher is None or not self.watcher.consume_change():
            return
        try:
            curriculum = load_curriculum(self.curriculum_path)
        except CurriculumError as e:
            logger.warning('Ignoring curriculum change: %s', e)
            self.display.warning(f'Curriculum file changed but could not be read: {e}')
            return

        self.curriculum = curriculum
        segment = curriculum.get_segment(self.state.current_segment_index)
        if segment is None or segment.id != self.segment.id:
            return
        if segment.reference_transcript != self.segment.reference_transcript:
            self.tracker.replace_plan(compile_transcript(segment.reference_transcript))
            self.display.notice('Lesson plan updated.')
            logger.info('Recompiled steps for segment %s', segment.id)
        self.segment = segment

    def _warn_incomplete_plan(self):
        if self.tracker.plan.has_incomplete_step:
            self.display.warning('This lesson has a heredoc with no closing delimiter; type it to finish.')
