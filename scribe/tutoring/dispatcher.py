#!/usr/bin/env python3
"""
Shell command dispatcher.

Recognizes shell-like input, collects heredoc bodies line by line, runs
accepted commands in the project directory, and classifies the outcome for
the progress record and for the tutor.
"""

import logging
import re
import subprocess
from dataclasses import dataclass, field
from typing import List, Optional

from .steps import RECOGNIZED_COMMANDS


logger = logging.getLogger(__name__)

HEREDOC_TAIL = re.compile(r"""<<\s*['"]?(\w+)['"]?\s*$""")
FILE_TARGET = re.compile(r'(?:cat|echo.*?|printf.*?)\s*>>?\s*(\S+)')

DEFAULT_TIMEOUT = 120


@dataclass
class CommandResult:
    """Outcome of one shell execution"""
    command: str
    success: bool
    output: str = ''
    returncode: int = 0

    @property
    def message_for_agent(self) -> str:
        """How the run is reported to the tutor"""
        if self.success:
            return f'I ran: {self.command}\nOutput: {self.output or "(success)"}'
        return f'I ran: {self.command}\nError: {self.output}'


@dataclass
class HeredocState:
    """An open heredoc waiting for its delimiter"""
    delimiter: str
    opening_line: str
    collected_lines: List[str] = field(default_factory=list)

    def command_text(self) -> str:
        return '\n'.join([self.opening_line] + self.collected_lines + [self.delimiter])


@dataclass
class DispatchOutcome:
    """What the dispatcher did with one line of input"""
    kind: str                               # prose|heredoc_started|heredoc_line|executed
    result: Optional[CommandResult] = None
    heredoc: bool = False                   # executed command was a heredoc


def is_shell_command(text: str) -> bool:
    """True when the first token is a known shell program"""
    tokens = text.strip().split()
    return bool(tokens) and tokens[0] in RECOGNIZED_COMMANDS


def heredoc_delimiter(text: str) -> Optional[str]:
    """Delimiter captured from an end-of-line heredoc redirection"""
    match = HEREDOC_TAIL.search(text.strip())
    return match.group(1) if match else None


def extract_file_name(command: str) -> str:
    """Target file of a redirecting command, or 'file' when none is found"""
    match = FILE_TARGET.search(command)
    return match.group(1) if match else 'file'


class CommandDispatcher:
    """Idle / collecting-heredoc state machine over learner input"""

    def __init__(self, working_dir: str, progress_store=None, timeout: int = DEFAULT_TIMEOUT):
        self.working_dir = working_dir
        self.progress = progress_store
        self.timeout = timeout
        self.heredoc: Optional[HeredocState] = None

    @property
    def collecting(self) -> bool:
        return self.heredoc is not None

    # =========================================================================
    # State machine
    # =========================================================================

    def handle(self, text: str) -> DispatchOutcome:
        """Feed one line of input through the state machine"""
        if self.collecting:
            if text.strip() == self.heredoc.delimiter:
                result = self.complete_heredoc()
                return DispatchOutcome(kind='executed', result=result, heredoc=True)
            self.heredoc.collected_lines.append(text)
            return DispatchOutcome(kind='heredoc_line')

        if not is_shell_command(text):
            return DispatchOutcome(kind='prose')

        delimiter = heredoc_delimiter(text)
        if delimiter:
            self.start_heredoc(text.strip(), delimiter)
            return DispatchOutcome(kind='heredoc_started')

        return DispatchOutcome(kind='executed', result=self.execute_and_track(text.strip()))

    def submit_block(self, text: str) -> DispatchOutcome:
        """Feed a multi-line block, returning the outcome of its last line"""
        outcome = DispatchOutcome(kind='prose')
        for line in text.split('\n'):
            outcome = self.handle(line)
            if outcome.kind == 'prose':
                # A block that is not shell input goes to the tutor whole
                return outcome
        return outcome

    def start_heredoc(self, opening_line: str, delimiter: str):
        self.heredoc = HeredocState(delimiter=delimiter, opening_line=opening_line)
        logger.debug('Collecting heredoc until %s', delimiter)

    def reset_heredoc(self):
        """Abandon an open heredoc without running it"""
        if self.heredoc is not None:
            logger.info('Abandoned heredoc for %s', self.heredoc.opening_line)
        self.heredoc = None

    def complete_heredoc(self) -> CommandResult:
        """Run opener, body, and delimiter as one command and return to idle"""
        command = self.heredoc.command_text()
        opening = self.heredoc.opening_line
        self.heredoc = None

        result = self.execute(command)
        if result.success:
            file_name = extract_file_name(opening)
            self._record(
                note=f'Created file: {file_name}',
                code_written=True,
                last_user_action=f'Created file: {file_name}',
            )
        else:
            self._record(last_user_action=f'Failed: {opening}')
        return result

    # =========================================================================
    # Execution
    # =========================================================================

    def execute(self, command: str) -> CommandResult:
        """Run a command in the project directory; never raises"""
        logger.info('Running: %s', command.split('\n')[0])
        try:
            proc = subprocess.run(
                command,
                shell=True,
                cwd=self.working_dir,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            logger.warning('Command timed out after %ss', self.timeout)
            return CommandResult(command, False, f'Command timed out after {self.timeout} seconds', -1)
        except Exception as e:
            logger.warning('Command failed to start: %s', e)
            return CommandResult(command, False, str(e), -1)

        if proc.returncode == 0:
            return CommandResult(command, True, proc.stdout.strip(), 0)

        output = proc.stderr.strip() or proc.stdout.strip() or f'Command exited with status {proc.returncode}'
        logger.info('Command exited with status %d', proc.returncode)
        return CommandResult(command, False, output, proc.returncode)

    def execute_and_track(self, command: str) -> CommandResult:
        """Run a command and record what it did in the progress record"""
        result = self.execute(command)

        if not result.success:
            self._record(last_user_action=f'Failed: {command}')
            return result

        updates = {'last_user_action': command}
        note = None

        if re.search(r'cat\s*>', command) or '>> ' in command or re.search(r'echo.*>', command):
            note = f'Created/modified file: {extract_file_name(command)}'
            updates['code_written'] = True
        elif command.startswith('touch '):
            note = f"Created file: {command[len('touch '):].strip()}"
            updates['code_written'] = True
        elif command.startswith('git commit'):
            note = 'Committed code to git'
            updates['committed'] = True
        elif command.startswith('mkdir'):
            note = f'Created directory: {command}'

        self._record(note=note, **updates)
        return result

    def _record(self, note: str = None, **updates):
        if self.progress is None or self.progress.current is None:
            return
        if updates:
            self.progress.update(**updates)
        if note:
            self.progress.add_completed_step(note)
