#!/usr/bin/env python3
"""
Guided typing widgets.

The expected text is shown above an input line. Correctly typed characters
turn green as the learner goes; a wrong character stays red until it is
deleted. Single steps submit on Enter only once the line matches exactly.
Multi-line steps (heredocs, code blocks) are typed one line at a time with
the whole block scrolling in a viewport above the input.
"""

from typing import Callable, List, Optional

from rich.text import Text

from ..tutoring.state import Step, StepKind, TurnInput
from ..tutoring.typing_match import TypingSession, looks_like_question
from .terminal import (
    BACKSPACE, CTRL_D, ENTER, SHIFT_TAB, DOWN, UP,
    BaseRenderer, KeyReader,
)
from .viewport import CONTINUATION_INDENT, ScrollableViewer, ViewportRenderer, tail_fit, wrap_row


PROMPT = '› '

STYLE_CORRECT = 'green'
STYLE_WRONG = 'bold red'
STYLE_PENDING = 'yellow'
STYLE_DONE = 'dim green'
STYLE_UPCOMING = 'dim'


def styled_target(session: TypingSession) -> Text:
    """Expected text coloured by how far the learner has typed it"""
    text = Text()
    styles = {'correct': STYLE_CORRECT, 'wrong': STYLE_WRONG, 'pending': STYLE_PENDING}
    for char, state in zip(session.expected, session.char_states()):
        text.append(char, style=styles[state])
    return text


def styled_input(session: TypingSession, prefix: str, width: int) -> Text:
    """Input line: correct prefix in green, anything after it in red"""
    shown = tail_fit(prefix + session.input, width)
    cut = len(prefix) + len(session.input) - len(shown)
    good_end = len(prefix) + session.correct_prefix_len - cut

    text = Text()
    for i, char in enumerate(shown):
        if i < len(prefix) - cut:
            text.append(char, style='dim')
        elif i < good_end:
            text.append(char, style=STYLE_CORRECT)
        else:
            text.append(char, style=STYLE_WRONG)
    return text


def typeable_lines(step: Step) -> List[str]:
    """Code lines of a multi-line step with leading and trailing blanks dropped"""
    lines = [line.code for line in step.lines or ()]
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    return lines


class GuidedInput:
    """Raw-mode typing against a step"""

    def __init__(
        self,
        renderer: BaseRenderer,
        keys: KeyReader,
        footer: Callable[[], str],
        viewer: ScrollableViewer = None,
    ):
        self.renderer = renderer
        self.keys = keys
        self.footer = footer
        self.viewer = viewer or ScrollableViewer()

    def read(self, step: Step) -> TurnInput:
        """Type one step, picking the widget by step shape"""
        if step.is_multiline and typeable_lines(step):
            return self.read_block(step)
        return self.read_line(step)

    # =========================================================================
    # Single line
    # =========================================================================

    def read_line(self, step: Step) -> TurnInput:
        session = TypingSession(step.text)
        view = ViewportRenderer(self.renderer)
        notice = ''

        self.viewer.reset()
        self.viewer.start_resize_listener()
        try:
            with self.keys.raw_mode():
                while True:
                    rows, cursor_row = self._line_rows(step, session, notice)
                    view.draw(rows, cursor_row)
                    notice = ''

                    key = self.keys.read_key()
                    if key == SHIFT_TAB:
                        view.collapse()
                        return TurnInput.mode_switch(session.input)
                    if key == ENTER:
                        if session.is_complete:
                            view.collapse([Text.assemble((PROMPT, 'dim'), (session.input, STYLE_CORRECT))])
                            return TurnInput(session.input, step_submitted=True)
                        notice = "doesn't match yet"
                    elif key == BACKSPACE:
                        session.feed_backspace()
                    elif key == CTRL_D:
                        view.collapse()
                        raise EOFError
                    elif len(key) == 1:
                        session.feed_char(key)
        finally:
            self.viewer.stop_resize_listener()

    def _line_rows(self, step: Step, session: TypingSession, notice: str):
        width = self.renderer.width
        rows: List[Text] = []
        if step.comment:
            rows.append(Text(tail_fit(f'# {step.comment}', width), style='dim'))

        target_rows = wrap_row(styled_target(session), width)
        if len(target_rows) > self.viewer.viewport_height:
            # Keep the row holding the typing tip in view
            self.viewer.total_lines = len(target_rows)
            tip_row = self._row_of_offset(session.correct_prefix_len, width)
            self.viewer.ensure_line_visible(min(tip_row, len(target_rows) - 1))
            start, end = self.viewer.visible_range()
            target_rows = target_rows[start:end]
        rows.extend(target_rows)

        rows.append(Text('─' * max(1, width - 1), style='dim'))
        cursor_row = len(rows)
        rows.append(styled_input(session, PROMPT, width))
        rows.append(Text('─' * max(1, width - 1), style='dim'))
        rows.append(self._footer_row(width, f'{session.accuracy}%', notice))
        return rows, cursor_row

    @staticmethod
    def _row_of_offset(offset: int, width: int) -> int:
        limit = max(CONTINUATION_INDENT + 1, width - 1)
        if offset < limit:
            return 0
        step = limit - CONTINUATION_INDENT
        return 1 + (offset - limit) // step

    # =========================================================================
    # Multi-line
    # =========================================================================

    def read_block(self, step: Step) -> TurnInput:
        lines = typeable_lines(step)
        done: List[str] = []
        view = ViewportRenderer(self.renderer)
        session: Optional[TypingSession] = None
        notice = ''
        follow = True

        self.viewer.reset()
        self.viewer.start_resize_listener()
        try:
            with self.keys.raw_mode():
                while True:
                    # Blank lines inside the block complete themselves
                    while len(done) < len(lines) and not lines[len(done)].strip():
                        done.append(lines[len(done)])
                    if len(done) == len(lines):
                        view.collapse([self._block_summary(step, len(lines))])
                        return TurnInput(self._submitted_text(step, done), step_submitted=True)

                    if session is None:
                        session = TypingSession(lines[len(done)])
                    rows, cursor_row = self._block_rows(step, lines, done, session, notice, follow)
                    view.draw(rows, cursor_row)
                    notice = ''
                    follow = True

                    key = self.keys.read_key()
                    if key == SHIFT_TAB:
                        view.collapse()
                        return TurnInput.mode_switch(session.input)
                    if key == ENTER:
                        if looks_like_question(session.input, session.expected):
                            view.collapse([Text.assemble((PROMPT, 'dim'), session.input)])
                            return TurnInput.question(session.input.strip())
                        if session.is_complete:
                            done.append(session.input)
                            session = None
                        else:
                            notice = "line doesn't match yet"
                    elif key == BACKSPACE:
                        session.feed_backspace()
                    elif key == UP:
                        self.viewer.scroll_up()
                        follow = False
                    elif key == DOWN:
                        self.viewer.scroll_down()
                        follow = False
                    elif key == CTRL_D:
                        view.collapse()
                        raise EOFError
                    elif len(key) == 1:
                        session.feed_char(key)
        finally:
            self.viewer.stop_resize_listener()

    def _block_rows(self, step, lines, done, session, notice, follow):
        width = self.renderer.width
        code_rows: List[Text] = []
        current_first_row = 0

        for i, code in enumerate(lines):
            if i < len(done):
                row = Text.assemble(('✓ ', STYLE_DONE), (code, STYLE_DONE))
            elif i == len(done):
                current_first_row = len(code_rows)
                row = Text.assemble(('› ', 'bold')) + styled_target(session)
            else:
                row = Text('  ' + code, style=STYLE_UPCOMING)
            code_rows.extend(wrap_row(row, width))

        self.viewer.total_lines = len(code_rows)
        if follow:
            self.viewer.ensure_line_visible(current_first_row)
        start, end = self.viewer.visible_range()

        header = step.opener if step.kind == StepKind.HEREDOC else f'# {step.comment}'
        if self.viewer.has_more_above:
            header += f'  ↑ {self.viewer.lines_above} more'
        rows: List[Text] = [Text(tail_fit(header, width), style='dim')]
        rows.extend(code_rows[start:end])

        rule = '─' * max(1, width - 1)
        if self.viewer.has_more_below:
            label = f'── ↓ {self.viewer.lines_below} more '
            rule = (label + rule)[:max(1, width - 1)]
        rows.append(Text(rule, style='dim'))

        cursor_row = len(rows)
        prefix = f'{len(done) + 1}/{len(lines)} {PROMPT}'
        rows.append(styled_input(session, prefix, width))
        rows.append(Text('─' * max(1, width - 1), style='dim'))
        rows.append(self._footer_row(width, f'{session.accuracy}%', notice))
        return rows, cursor_row

    def _block_summary(self, step: Step, count: int) -> Text:
        if step.kind == StepKind.HEREDOC:
            return Text.assemble(('✓ ', 'green'), (f'{step.target_file} ({count} lines)', 'dim'))
        return Text.assemble(('✓ ', 'green'), (f'{count} lines typed', 'dim'))

    @staticmethod
    def _submitted_text(step: Step, typed: List[str]) -> str:
        """What the block submits: a heredoc runs whole, code goes to the tutor as typed"""
        if step.kind == StepKind.HEREDOC:
            return step.text
        return '\n'.join(typed)

    def _footer_row(self, width: int, status: str, notice: str) -> Text:
        text = Text(self.footer(), style='dim cyan')
        text.append(f'  {status}', style='dim')
        if notice:
            text.append(f'  {notice}', style='yellow')
        text.truncate(max(1, width - 1))
        return text
