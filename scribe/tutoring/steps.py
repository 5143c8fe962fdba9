#!/usr/bin/env python3
"""
Step plan compiler.
Turns a reference transcript of shell commands and file-creation blocks
into the ordered list of steps the learner types one at a time.
"""

import re
from typing import List, Optional, Tuple

from .state import Step, StepKind, StepLine, StepPlan


# Programs whose lines are treated as standalone shell commands
RECOGNIZED_COMMANDS = (
    'mkdir', 'cat', 'echo', 'touch', 'git', 'npm', 'npx', 'node', 'tsc',
    'cd', 'ls', 'pwd', 'chmod', 'rm', 'mv', 'cp',
    'python', 'python3', 'pip', 'pytest', 'grep', 'find',
)

HEREDOC_OPENER = re.compile(r"""^cat\s+>\s*(\S+)\s*<<\s*['"]?(\w+)['"]?$""")


def is_command_line(line: str) -> bool:
    """True when the line starts with a recognized program"""
    stripped = line.strip()
    return any(stripped == cmd or stripped.startswith(cmd + ' ') for cmd in RECOGNIZED_COMMANDS)


def match_heredoc_opener(line: str) -> Optional[Tuple[str, str]]:
    """Return (target_file, delimiter) when the line opens a heredoc"""
    match = HEREDOC_OPENER.match(line.strip())
    if match:
        return match.group(1), match.group(2)
    return None


def describe_command(command: str) -> str:
    """Best-effort one-line annotation for a shell command"""
    command = command.strip()

    if command.startswith('mkdir'):
        target = re.sub(r'^mkdir\s+(-p\s+)?', '', command)
        return f'creates directory {target}'
    if command.startswith('touch'):
        return f"creates file {command[len('touch'):].strip()}"
    if command.startswith('npm init'):
        return 'initializes npm project'
    if command.startswith('npm install') or command.startswith('npm i '):
        return 'installs dependencies'
    if command.startswith('npm run'):
        return 'runs npm script'
    if command.startswith('pip install'):
        return 'installs dependencies'
    if command.startswith('git init'):
        return 'initializes git repository'
    if command.startswith('git add'):
        return 'stages changes'
    if command.startswith('git commit'):
        return 'commits changes'
    if command.startswith('git push'):
        return 'pushes to remote'
    if command.startswith('npx'):
        return 'runs package command'
    if command.startswith('tsc'):
        return 'compiles TypeScript'
    if command.startswith('node'):
        return 'runs JavaScript'
    if command.startswith('python'):
        return 'runs Python'
    if command.startswith('pytest'):
        return 'runs the tests'
    if command.startswith('cd'):
        return 'changes directory'
    return 'run this command'


def compile_transcript(transcript: str) -> StepPlan:
    """
    Compile a reference transcript into a StepPlan.

    Single left-to-right scan: heredoc blocks become one step each, recognized
    commands become one step each, and runs of other non-blank lines become
    code blocks. Never raises; an unterminated heredoc swallows the rest of
    the input and is marked as not terminated.
    """
    lines = transcript.split('\n') if transcript else []
    steps: List[Step] = []
    i = 0

    while i < len(lines):
        line = lines[i]
        trimmed = line.strip()

        if not trimmed:
            i += 1
            continue

        heredoc = match_heredoc_opener(trimmed)
        if heredoc:
            step, i = _collect_heredoc(lines, i, heredoc)
            steps.append(step)
            continue

        if is_command_line(trimmed):
            steps.append(Step(
                kind=StepKind.COMMAND,
                text=trimmed,
                comment=describe_command(trimmed),
                line_number=i + 1,
            ))
            i += 1
            continue

        step, i = _collect_code_block(lines, i)
        steps.append(step)

    return StepPlan(steps=tuple(steps), source=transcript)


def _collect_heredoc(lines: List[str], start: int, heredoc: Tuple[str, str]) -> Tuple[Step, int]:
    """Collect a heredoc block beginning at start; returns (step, next index)"""
    target_file, delimiter = heredoc
    opener = lines[start].strip()
    body: List[str] = []
    i = start + 1
    terminated = False

    while i < len(lines):
        if lines[i].strip() == delimiter:
            terminated = True
            i += 1
            break
        body.append(lines[i])
        i += 1

    step_lines = tuple(
        StepLine(code=code, comment=f'creates {target_file}' if n == 0 else '')
        for n, code in enumerate(body)
    )
    text_parts = [opener] + body
    if terminated:
        text_parts.append(delimiter)

    step = Step(
        kind=StepKind.HEREDOC,
        text='\n'.join(text_parts),
        comment=f'creates {target_file}',
        lines=step_lines,
        line_number=start + 1,
        target_file=target_file,
        opener=opener,
        delimiter=delimiter,
        terminated=terminated,
    )
    return step, i


def _collect_code_block(lines: List[str], start: int) -> Tuple[Step, int]:
    """Group consecutive plain lines until a blank, command, or heredoc opener"""
    block: List[str] = []
    i = start

    while i < len(lines):
        trimmed = lines[i].strip()
        if not trimmed or is_command_line(trimmed) or match_heredoc_opener(trimmed):
            break
        block.append(lines[i].rstrip())
        i += 1

    if len(block) == 1:
        step = Step(
            kind=StepKind.CODE_BLOCK,
            text=block[0],
            comment='Type the code',
            line_number=start + 1,
        )
    else:
        step = Step(
            kind=StepKind.CODE_BLOCK,
            text='\n'.join(block),
            comment='Type each line of code',
            lines=tuple(
                StepLine(code=code, comment='Type the code' if n == 0 else '')
                for n, code in enumerate(block)
            ),
            line_number=start + 1,
        )
    return step, i
