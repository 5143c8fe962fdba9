#!/usr/bin/env python3
"""
Type-along tutoring runtime.

A segment's reference transcript is compiled into steps the learner types
one at a time, in one of three input modes:
- Guided (default): type the expected step, checked character by character
- Freeform: the expected step is a hint, anything can be typed
- Discuss: plain conversation with the tutor
"""

from .state import (
    Mode,
    StepKind,
    Step,
    StepLine,
    StepPlan,
    Progress,
    SessionState,
    TurnInput,
    ScribeError,
    CurriculumError,
    ProgressError,
    AgentCallError,
)
from .steps import compile_transcript
from .typing_match import TypingSession, looks_like_question
from .tracker import StepProgressTracker
from .progress import ProgressStore, SessionStore
from .dispatcher import CommandDispatcher, CommandResult
from .modes import ModeController
from .call_queue import CallQueue
from .curriculum import Curriculum, Segment, load_curriculum
from .session import SessionLoop

__all__ = [
    'Mode',
    'StepKind',
    'Step',
    'StepLine',
    'StepPlan',
    'Progress',
    'SessionState',
    'TurnInput',
    'ScribeError',
    'CurriculumError',
    'ProgressError',
    'AgentCallError',
    'compile_transcript',
    'TypingSession',
    'looks_like_question',
    'StepProgressTracker',
    'ProgressStore',
    'SessionStore',
    'CommandDispatcher',
    'CommandResult',
    'ModeController',
    'CallQueue',
    'Curriculum',
    'Segment',
    'load_curriculum',
    'SessionLoop',
]
