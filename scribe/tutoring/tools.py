#!/usr/bin/env python3
"""
Tools the tutor can call.

A small fixed set: verify syntax, record a code review, run a restricted git
command, mark the segment complete, and read a project file. Outcomes update
the progress record. Names outside the set are refused, never executed.
"""

import json
import logging
import re
import shlex
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional


logger = logging.getLogger(__name__)

GIT_PREFIX = 'git '
SHELL_METACHARACTERS = re.compile(r'[;&|`$<>\n\r]')
REVIEW_PASSING_SCORE = 7


TOOL_DEFINITIONS: List[Dict[str, Any]] = [
    {
        'name': 'verify_syntax',
        'description': 'Check a file for syntax errors. Call this first after the learner writes a file.',
        'input_schema': {
            'type': 'object',
            'properties': {
                'filepath': {'type': 'string', 'description': 'Path to the file, relative to the project'},
            },
            'required': ['filepath'],
        },
    },
    {
        'name': 'conduct_code_review',
        'description': 'Record a review of the code against engineering standards. Call after verify_syntax passes.',
        'input_schema': {
            'type': 'object',
            'properties': {
                'readability_score': {'type': 'integer', 'minimum': 1, 'maximum': 10,
                                      'description': 'Readability score 1-10'},
                'maintainability_issue': {'type': 'string',
                                          'description': 'Specific maintainability issue found, or "none"'},
                'edge_case_missed': {'type': 'string', 'description': 'Edge case the learner forgot to handle'},
            },
            'required': ['readability_score', 'maintainability_issue'],
        },
    },
    {
        'name': 'run_git_command',
        'description': 'Run a git command in the project. Only commands starting with "git" are allowed.',
        'input_schema': {
            'type': 'object',
            'properties': {
                'command': {'type': 'string', 'description': 'The git command to run'},
            },
            'required': ['command'],
        },
    },
    {
        'name': 'mark_segment_complete',
        'description': 'Call when the code passes syntax and review AND the learner has committed.',
        'input_schema': {
            'type': 'object',
            'properties': {
                'summary': {'type': 'string', 'description': 'Summary of what the learner achieved'},
                'next_hint': {'type': 'string', 'description': 'Hint for the next segment'},
            },
            'required': ['summary'],
        },
    },
    {
        'name': 'read_file',
        'description': 'Read a file from the project to see what the learner wrote.',
        'input_schema': {
            'type': 'object',
            'properties': {
                'filepath': {'type': 'string', 'description': 'Path to the file, relative to the project'},
            },
            'required': ['filepath'],
        },
    },
]

TOOL_NAMES = frozenset(tool['name'] for tool in TOOL_DEFINITIONS)


@dataclass
class ToolResult:
    """Outcome of one tool call"""
    success: bool
    output: str
    segment_completed: bool = False
    summary: Optional[str] = None

    @classmethod
    def error(cls, message: str) -> 'ToolResult':
        return cls(success=False, output=message)


def read_text_file(path: str) -> str:
    """Default file-read capability"""
    with open(path, 'r') as f:
        return f.read()


def check_git_command(command: str) -> Optional[str]:
    """Reason a git command is refused, or None when it is allowed"""
    trimmed = command.strip()
    if not trimmed.startswith(GIT_PREFIX):
        return 'Only git commands are allowed'
    if SHELL_METACHARACTERS.search(trimmed):
        return 'Special characters (; & | ` $ < > newline) are not allowed'
    return None


def syntax_check_command(filepath: str) -> Optional[List[str]]:
    """Checker argv for a file, by extension; None when no checker applies"""
    suffix = Path(filepath).suffix.lower()
    if suffix == '.py':
        return [sys.executable, '-m', 'py_compile', filepath]
    if suffix in ('.ts', '.tsx'):
        return ['npx', 'tsc', '--noEmit', filepath]
    if suffix in ('.js', '.mjs', '.cjs'):
        return ['node', '--check', filepath]
    return None


class ToolExecutor:
    """Runs tool calls against one project directory"""

    def __init__(
        self,
        working_dir: str,
        progress_store=None,
        read_file: Callable[[str], str] = read_text_file,
        timeout: int = 120,
    ):
        self.working_dir = Path(working_dir)
        self.progress = progress_store
        self.read_file_fn = read_file
        self.timeout = timeout

    def execute(self, name: str, tool_input: Dict[str, Any]) -> ToolResult:
        """Dispatch one tool call; unknown names are refused"""
        if name not in TOOL_NAMES:
            logger.warning('Refused unknown tool: %s', name)
            return ToolResult.error(f'Unknown tool: {name}')

        logger.info('Tool call: %s', name)
        handler = getattr(self, f'_tool_{name}')
        try:
            return handler(**tool_input)
        except TypeError as e:
            return ToolResult.error(f'Invalid input for {name}: {e}')

    # =========================================================================
    # Tools
    # =========================================================================

    def _tool_verify_syntax(self, filepath: str) -> ToolResult:
        path = self._resolve(filepath)
        if path is None:
            return ToolResult.error(f'Path is outside the project: {filepath}')
        if not path.exists():
            return ToolResult(False, json.dumps({'success': False, 'error': f'File not found: {filepath}'}))

        argv = syntax_check_command(str(path))
        if argv is None:
            return ToolResult(True, json.dumps({'success': True, 'note': 'No syntax checker for this file type'}))

        try:
            proc = subprocess.run(
                argv,
                cwd=str(self.working_dir),
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            return ToolResult(False, json.dumps({'success': False, 'error': 'Syntax check timed out'}))
        except Exception as e:
            return ToolResult(False, json.dumps({'success': False, 'error': str(e)}))

        if proc.returncode != 0:
            error = proc.stderr.strip() or proc.stdout.strip()
            return ToolResult(False, json.dumps({'success': False, 'error': error}))

        self._update(syntax_verified=True)
        return ToolResult(True, json.dumps({'success': True}))

    def _tool_conduct_code_review(
        self,
        readability_score: int,
        maintainability_issue: str,
        edge_case_missed: str = None,
    ) -> ToolResult:
        passes = readability_score >= REVIEW_PASSING_SCORE and 'none' in maintainability_issue.lower()
        if passes:
            self._update(code_reviewed=True)
            if self.progress is not None and self.progress.current is not None:
                self.progress.mark_step_checked()
        review = {
            'readability_score': readability_score,
            'maintainability_issue': maintainability_issue,
            'edge_case_missed': edge_case_missed,
            'passes': passes,
        }
        return ToolResult(True, json.dumps(review))

    def _tool_run_git_command(self, command: str) -> ToolResult:
        refusal = check_git_command(command)
        if refusal:
            logger.warning('Refused git command: %s', command)
            return ToolResult.error(refusal)

        trimmed = command.strip()
        try:
            proc = subprocess.run(
                shlex.split(trimmed),
                cwd=str(self.working_dir),
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            return ToolResult.error('Git command timed out')
        except Exception as e:
            return ToolResult.error(str(e))

        if proc.returncode != 0:
            return ToolResult.error(proc.stderr.strip() or proc.stdout.strip() or 'Git command failed')

        if trimmed.startswith('git commit'):
            self._update(note='Committed code to git', committed=True)
        return ToolResult(True, proc.stdout.strip() or 'Command executed successfully')

    def _tool_mark_segment_complete(self, summary: str, next_hint: str = None) -> ToolResult:
        output = json.dumps({'completed': True, 'summary': summary, 'next_hint': next_hint})
        return ToolResult(True, output, segment_completed=True, summary=summary)

    def _tool_read_file(self, filepath: str) -> ToolResult:
        path = self._resolve(filepath)
        if path is None:
            return ToolResult.error(f'Path is outside the project: {filepath}')
        try:
            return ToolResult(True, self.read_file_fn(str(path)))
        except (IOError, OSError, UnicodeDecodeError) as e:
            return ToolResult.error(f'Error reading file: {e}')

    # =========================================================================
    # Helpers
    # =========================================================================

    def _resolve(self, filepath: str) -> Optional[Path]:
        """Absolute path inside the project, or None if it escapes"""
        root = self.working_dir.resolve()
        path = (root / filepath).resolve()
        if path != root and root not in path.parents:
            return None
        return path

    def _update(self, note: str = None, **fields):
        if self.progress is None or self.progress.current is None:
            return
        self.progress.update(**fields)
        if note:
            self.progress.add_completed_step(note)
