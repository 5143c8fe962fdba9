#!/usr/bin/env python3
"""
Console output for the tutoring session.
"""

from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.status import Status
from rich.text import Text

from ..tutoring.call_queue import CallDisplay
from ..tutoring.curriculum import Curriculum, Segment
from ..tutoring.dispatcher import CommandResult


TOOL_LABELS = {
    'verify_syntax': 'Checking syntax',
    'conduct_code_review': 'Reviewing code',
    'run_git_command': 'Running git',
    'mark_segment_complete': 'Completing segment',
    'read_file': 'Reading file',
}


class TutorDisplay(CallDisplay):
    """Everything the session prints, outside the guided typing region"""

    def __init__(self, console: Console = None):
        self.console = console or Console()
        self._status: Optional[Status] = None
        self._streaming = False

    # =========================================================================
    # Call display
    # =========================================================================

    def start_loading(self):
        if self._status is None:
            self._status = self.console.status('[dim]Thinking...[/dim]', spinner='dots')
            self._status.start()

    def stop_loading(self):
        if self._status is not None:
            self._status.stop()
            self._status = None

    def show_text(self, text: str):
        if not self._streaming:
            self.console.print()
            self._streaming = True
        self.console.print(text, end='', markup=False, highlight=False)

    def tool_started(self, name: str):
        self._end_stream()
        label = TOOL_LABELS.get(name, name)
        self.console.print(f'[dim]  ⎿ {label}...[/dim]')

    def tool_finished(self, name: str, success: bool):
        if not success:
            self.console.print(f'[dim yellow]  ⎿ {TOOL_LABELS.get(name, name)} reported a problem[/dim yellow]')

    def show_error(self, message: str):
        self._end_stream()
        self.console.print(f'[red]Error: {message}[/red]')

    def set_running(self, running: bool):
        if not running:
            self._end_stream()

    def _end_stream(self):
        if self._streaming:
            self.console.print()
            self._streaming = False

    # =========================================================================
    # Session output
    # =========================================================================

    def welcome(self, curriculum: Curriculum, resumed: bool = False):
        title = f'[bold blue]Scribe[/bold blue] - {curriculum.project_name}'
        body = curriculum.project_goal or 'Build it one line at a time.'
        if resumed:
            body += '\n\n[green]Welcome back! Picking up where you left off.[/green]'
        body += "\n\n[dim]shift+tab cycles guided / freeform / discuss. Type 'exit' to save and quit.[/dim]"
        self.console.print(Panel(f'{title}\n\n{body}', border_style='blue'))

    def segment_header(self, curriculum: Curriculum, segment: Segment, index: int):
        self.console.print()
        self.console.print(
            f'[bold cyan]Segment {index + 1}/{len(curriculum.segments)}:[/bold cyan] {segment.title}'
        )
        if segment.target_file:
            self.console.print(f'[dim]Target: {segment.target_file}[/dim]')

    def segment_complete(self, segment: Segment, summary: str):
        self.console.print()
        self.console.print(Panel(
            f'[bold green]✓ {segment.title}[/bold green]\n\n{summary}',
            title='Segment complete',
            border_style='green',
        ))

    def curriculum_complete(self, curriculum: Curriculum):
        self.console.print(Panel(
            f'[bold green]You built {curriculum.project_name}![/bold green]\n\n'
            'Every segment is done. Your code is in:\n'
            f'{curriculum.working_directory}',
            title='Curriculum complete',
            border_style='green',
        ))

    def command_result(self, result: CommandResult):
        first_line = result.command.split('\n')[0]
        if result.success:
            self.console.print(Text.assemble(('✓ ', 'green'), (first_line, 'dim')))
        else:
            self.console.print(Text.assemble(('✗ ', 'red'), (first_line, 'dim')))
        if result.output:
            self.console.print(Text(result.output, style='dim'))

    def notice(self, message: str):
        self.console.print(f'[dim]{message}[/dim]')

    def warning(self, message: str):
        self.console.print(f'[yellow]{message}[/yellow]')

    def mode_changed(self, label: str, description: str):
        self.console.print(f'[dim]⏵⏵ {label} mode: {description}[/dim]')
