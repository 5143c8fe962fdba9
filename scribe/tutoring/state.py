#!/usr/bin/env python3
"""
State for the type-along tutoring runtime.
Holds the step plan values, the durable progress record, session state,
input modes, and the exception types shared across the tutoring package.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple


PROGRESS_VERSION = 2


class ScribeError(Exception):
    """Base error for the tutoring runtime"""


class CurriculumError(ScribeError):
    """Curriculum file missing, unreadable, or malformed"""


class ProgressError(ScribeError):
    """Progress update attempted without a progress record"""


class AgentCallError(ScribeError):
    """A call to the tutor service failed"""


class Mode(Enum):
    """Input modes, in cycle order"""
    GUIDED = 'guided'        # Type the expected step, checked per character
    FREEFORM = 'freeform'    # Expected step shown as a hint, any text accepted
    DISCUSS = 'discuss'      # Plain conversation, no expected code

    def next(self) -> 'Mode':
        """The mode that follows this one in the cycle"""
        order = list(Mode)
        return order[(order.index(self) + 1) % len(order)]


class StepKind(Enum):
    """Kinds of typeable steps"""
    COMMAND = 'command'
    HEREDOC = 'heredoc'
    CODE_BLOCK = 'code_block'


@dataclass(frozen=True)
class StepLine:
    """One annotated line of a multi-line step"""
    code: str
    comment: str = ''


@dataclass(frozen=True)
class Step:
    """A single typeable unit of a reference transcript"""
    kind: StepKind
    text: str
    comment: str
    lines: Optional[Tuple[StepLine, ...]] = None
    line_number: int = 0
    target_file: str = ''          # Heredoc only
    opener: str = ''               # Heredoc only, e.g. "cat > f << 'EOF'"
    delimiter: str = ''            # Heredoc only
    terminated: bool = True        # False for a heredoc cut off by end of input

    @property
    def is_multiline(self) -> bool:
        return self.lines is not None

    @property
    def incomplete(self) -> bool:
        return self.kind == StepKind.HEREDOC and not self.terminated


@dataclass(frozen=True)
class StepPlan:
    """Ordered, immutable sequence of steps compiled from one transcript"""
    steps: Tuple[Step, ...] = ()
    source: str = ''

    @property
    def total(self) -> int:
        return len(self.steps)

    def get(self, index: int) -> Optional[Step]:
        """Step at index, or None when out of range"""
        if 0 <= index < len(self.steps):
            return self.steps[index]
        return None

    @property
    def has_incomplete_step(self) -> bool:
        return any(step.incomplete for step in self.steps)


def _now() -> str:
    return datetime.now().isoformat()


@dataclass
class Progress:
    """Durable per-project record of where the session is"""
    current_segment_id: str
    current_segment_index: int = 0
    version: int = PROGRESS_VERSION
    completed_steps: List[str] = field(default_factory=list)
    current_step: Optional[str] = None
    last_tutor_message: str = ''
    last_user_action: str = ''
    code_written: bool = False
    syntax_verified: bool = False
    code_reviewed: bool = False
    committed: bool = False
    current_step_index: int = 0
    total_steps: int = 0
    checked_step_index: Optional[int] = None     # step whose code passed write, verify, review
    started_at: str = field(default_factory=_now)
    last_updated_at: str = field(default_factory=_now)

    # Legacy camelCase keys written by version 1 progress files
    LEGACY_KEYS = {
        'currentSegmentId': 'current_segment_id',
        'currentSegmentIndex': 'current_segment_index',
        'completedSteps': 'completed_steps',
        'currentStep': 'current_step',
        'lastTutorMessage': 'last_tutor_message',
        'lastUserAction': 'last_user_action',
        'codeWritten': 'code_written',
        'syntaxVerified': 'syntax_verified',
        'codeReviewed': 'code_reviewed',
        'currentGoldenStep': 'current_step_index',
        'totalGoldenSteps': 'total_steps',
        'currentStepIndex': 'current_step_index',
        'totalSteps': 'total_steps',
        'startedAt': 'started_at',
        'lastUpdatedAt': 'last_updated_at',
    }

    @property
    def checks_passed(self) -> bool:
        """Code for the current step was written, verified, and reviewed"""
        return self.checked_step_index is not None and self.checked_step_index == self.current_step_index

    def to_dict(self) -> Dict:
        return {
            'version': self.version,
            'current_segment_id': self.current_segment_id,
            'current_segment_index': self.current_segment_index,
            'completed_steps': list(self.completed_steps),
            'current_step': self.current_step,
            'last_tutor_message': self.last_tutor_message,
            'last_user_action': self.last_user_action,
            'code_written': self.code_written,
            'syntax_verified': self.syntax_verified,
            'code_reviewed': self.code_reviewed,
            'committed': self.committed,
            'current_step_index': self.current_step_index,
            'total_steps': self.total_steps,
            'checked_step_index': self.checked_step_index,
            'started_at': self.started_at,
            'last_updated_at': self.last_updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Progress':
        """Build from any on-disk version; unknown keys are ignored, missing ones default"""
        normalized = {}
        for key, value in data.items():
            normalized[cls.LEGACY_KEYS.get(key, key)] = value

        known = set(cls.__dataclass_fields__)
        kwargs = {k: v for k, v in normalized.items() if k in known}
        kwargs.setdefault('current_segment_id', '')
        if 'checked_step_index' not in kwargs and all(
            kwargs.get(flag) for flag in ('code_written', 'syntax_verified', 'code_reviewed')
        ):
            # Older records kept the checks per step
            kwargs['checked_step_index'] = kwargs.get('current_step_index', 0)
        kwargs['version'] = PROGRESS_VERSION
        return cls(**kwargs)


@dataclass
class SessionState:
    """Which curriculum is active and how far through it the learner is"""
    curriculum_path: str = ''
    current_segment_index: int = 0
    completed_segments: List[str] = field(default_factory=list)
    total_minutes_spent: int = 0
    last_accessed_at: str = field(default_factory=_now)
    previous_segment_summary: str = ''

    def to_dict(self) -> Dict:
        return {
            'curriculum_path': self.curriculum_path,
            'current_segment_index': self.current_segment_index,
            'completed_segments': list(self.completed_segments),
            'total_minutes_spent': self.total_minutes_spent,
            'last_accessed_at': self.last_accessed_at,
            'previous_segment_summary': self.previous_segment_summary,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'SessionState':
        known = set(cls.__dataclass_fields__)
        return cls(**{k: v for k, v in data.items() if k in known})

    def touch(self):
        """Record access time"""
        self.last_accessed_at = _now()


@dataclass
class TurnInput:
    """What one read of user input produced"""
    text: str
    kind: str = 'submitted'     # submitted|question|mode_switch
    step_submitted: bool = False  # True when a guided step was typed to completion

    @classmethod
    def mode_switch(cls, pending: str = '') -> 'TurnInput':
        """Input ended because the user cycled the mode"""
        return cls(text=pending, kind='mode_switch')

    @classmethod
    def question(cls, text: str) -> 'TurnInput':
        """Input ended early with a natural-language question"""
        return cls(text=text, kind='question')
