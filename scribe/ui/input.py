#!/usr/bin/env python3
"""
Input strategies per mode.

Guided typing reads raw keys; freeform and discuss input goes through a
prompt_toolkit session with a toolbar naming the mode and Shift+Tab bound
to cycle it. Off a TTY everything degrades to plain line reads.
"""

import sys
from pathlib import Path
from typing import Callable, Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.history import FileHistory
from prompt_toolkit.key_binding import KeyBindings
from rich.console import Console
from rich.text import Text

from ..tutoring.state import Step, TurnInput
from .guided import GuidedInput
from .terminal import ConsoleRenderer, KeyReader


class _ModeSwitch:
    """Prompt result marking a Shift+Tab exit, carrying the typed text"""

    def __init__(self, text: str):
        self.text = text


class TerminalInput:
    """Reads one turn of learner input in the shape the current mode needs"""

    def __init__(
        self,
        console: Console,
        footer: Callable[[], str],
        escape_timeout: float = 0.05,
        history_path: Path = None,
        interactive: Optional[bool] = None,
    ):
        self.console = console
        self.footer = footer
        if interactive is None:
            interactive = sys.stdin.isatty() and sys.stdout.isatty()
        self.interactive = interactive

        self.keys: Optional[KeyReader] = None
        self.guided: Optional[GuidedInput] = None
        self.prompt_session: Optional[PromptSession] = None

        if self.interactive:
            self.keys = KeyReader(escape_timeout=escape_timeout)
            self.guided = GuidedInput(ConsoleRenderer(console), self.keys, footer)

            kwargs = {'key_bindings': self._key_bindings(), 'auto_suggest': AutoSuggestFromHistory()}
            if history_path is not None:
                history_path.parent.mkdir(parents=True, exist_ok=True)
                kwargs['history'] = FileHistory(str(history_path))
            self.prompt_session = PromptSession(**kwargs)

    def _key_bindings(self) -> KeyBindings:
        kb = KeyBindings()

        @kb.add('s-tab')
        def _(event):
            event.app.exit(result=_ModeSwitch(event.current_buffer.text))

        return kb

    def _toolbar(self):
        return HTML(f'<b>{self.footer()}</b>')

    # =========================================================================
    # Strategies
    # =========================================================================

    def guided_step(self, step: Step) -> TurnInput:
        """Type a step under character-level checking"""
        if not self.interactive:
            self.console.print(Text(f'  Type: {step.text}', style='dim'))
            return self._plain_line()
        return self.guided.read(step)

    def freeform(self, expected: Optional[str] = None, hint: Optional[str] = None, default: str = '') -> TurnInput:
        """Free text, with the expected step or a hint shown above the prompt"""
        if expected:
            self.console.print('[dim]Expected:[/dim]')
            for line in expected.split('\n'):
                self.console.print(f'  {line}', style='cyan', markup=False, highlight=False)
        if hint:
            self.console.print(f'[dim]{hint}[/dim]')

        if not self.interactive:
            return self._plain_line()

        result = self.prompt_session.prompt(
            HTML('<ansigreen>› </ansigreen>'),
            default=default,
            bottom_toolbar=self._toolbar,
        )
        if isinstance(result, _ModeSwitch):
            return TurnInput.mode_switch(result.text)
        return TurnInput(result)

    def continuation(self) -> TurnInput:
        """One heredoc body line, read verbatim"""
        if not self.interactive:
            return self._plain_line(prompt='> ')
        result = self.prompt_session.prompt('> ')
        if isinstance(result, _ModeSwitch):
            return TurnInput.mode_switch(result.text)
        return TurnInput(result)

    def restore_terminal(self):
        """Leave raw mode if a guided read was interrupted"""
        if self.keys is not None:
            self.keys.restore()

    def _plain_line(self, prompt: str = '› ') -> TurnInput:
        return TurnInput(self.console.input(prompt))
