#!/usr/bin/env python3
"""
System prompt templates for the type-along tutor.
"""

from dataclasses import dataclass
from typing import Optional

from .curriculum import Curriculum, Segment
from .state import Progress


@dataclass
class AgentContext:
    """Structured context sent with every tutor call"""
    curriculum: Curriculum
    segment: Segment
    segment_index: int
    step_index: int = 0
    total_steps: int = 0
    previous_summary: str = ''
    progress: Optional[Progress] = None      # only on the opening call of a resumed segment


TUTOR_SYSTEM_PROMPT = """You are a software engineering tutor for complete beginners.

## SINGLE TERMINAL

The learner types commands here. They execute and you see the results. When you see "I ran: [cmd]" it already ran.

## OUTPUT FORMAT

Never use markdown fences. Give commands plainly on their own line.

For simple commands:
1. One sentence on WHY first
2. The command alone on its own line, with nothing after it

For file creation (heredocs):
1. A short explanation of what the file is for
2. ONE block, with a # or // comment above each code line
3. Never show the block twice

After the learner types all lines, say "File created!" and give the next step.

## TEACHING STYLE

1. One command at a time
2. Brief explanation first
3. Wait for the learner to run it
4. When a command succeeds, give the next step immediately

## WORKFLOW

1. Explain what we are doing
2. Give the command or heredoc block
3. After a file is created: call verify_syntax
4. Then call conduct_code_review
5. If there are issues, explain the fix
6. Give the git commit command
7. After the commit: call mark_segment_complete
{previous_context}{progress_context}
## CURRENT SEGMENT

Project: {project_name}
Goal: {project_goal}
Segment {segment_number}/{segment_count}: {segment_title}
{step_line}
{segment_context}

## RULES
- The learner types all code; never write files for them
- Always verify_syntax first, then conduct_code_review
- Block the checkpoint if engineering standards are not met
- Keep responses under 3 sentences when possible
- Be direct, not chatty

WORKING DIRECTORY: {working_directory}
"""


BUILD_CONTEXT = """TYPE: BUILD

Target file: {target_file}

Reference transcript (what the learner should type):
{reference_transcript}

Explanation: {explanation}
"""


REFACTOR_CONTEXT = """TYPE: REFACTOR

Target file: {target_file}

Starting code:
{starting_code}

Reference transcript (the improved version):
{reference_transcript}

Explanation: {explanation}
"""


PREVIOUS_SEGMENT = """
## PREVIOUS SEGMENT
{summary}
"""


RESUME_CONTEXT = """
## RESUMING SESSION

The learner is resuming this segment. Already done:
{completed}

Progress status:
- Code written: {code_written}
- Syntax verified: {syntax_verified}
- Code reviewed: {code_reviewed}
- Committed: {committed}
{last_message}
Continue from where they left off. Do not repeat completed steps. Acknowledge they are back and guide them to the next step.
"""


SUMMARY_PROMPT = """Summarize in two sentences what the learner built in this segment, for context in the next one.

Segment: {title}
Reference transcript:
{reference_transcript}"""


def _yes(flag: bool) -> str:
    return 'Yes' if flag else 'Not yet'


def build_resume_context(progress: Optional[Progress]) -> str:
    """Resume block, or empty when nothing has been done yet"""
    if progress is None or not progress.completed_steps:
        return ''
    completed = '\n'.join(f'{i}. {step}' for i, step in enumerate(progress.completed_steps, 1))
    last_message = ''
    if progress.last_tutor_message:
        last_message = f'Your last message to them: "{progress.last_tutor_message[:200]}..."\n'
    return RESUME_CONTEXT.format(
        completed=completed,
        code_written=_yes(progress.code_written),
        syntax_verified=_yes(progress.syntax_verified),
        code_reviewed=_yes(progress.code_reviewed),
        committed=_yes(progress.committed),
        last_message=last_message,
    )


def build_system_prompt(context: AgentContext) -> str:
    """Full system prompt for one tutor call"""
    segment = context.segment
    template = REFACTOR_CONTEXT if segment.kind == 'refactor' else BUILD_CONTEXT
    segment_context = template.format(
        target_file=segment.target_file or '(not specified)',
        reference_transcript=segment.reference_transcript,
        starting_code=segment.starting_code,
        explanation=segment.explanation,
    )

    previous_context = ''
    if context.previous_summary:
        previous_context = PREVIOUS_SEGMENT.format(summary=context.previous_summary)

    step_line = ''
    if context.total_steps:
        step_line = f'Learner is on step {min(context.step_index + 1, context.total_steps)} of {context.total_steps}\n'

    return TUTOR_SYSTEM_PROMPT.format(
        previous_context=previous_context,
        progress_context=build_resume_context(context.progress),
        project_name=context.curriculum.project_name,
        project_goal=context.curriculum.project_goal,
        segment_number=context.segment_index + 1,
        segment_count=len(context.curriculum.segments),
        segment_title=segment.title,
        step_line=step_line,
        segment_context=segment_context,
        working_directory=context.curriculum.working_directory,
    )
