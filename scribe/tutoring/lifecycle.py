#!/usr/bin/env python3
"""
Segment lifecycle.
Moves session state and the progress record from one segment to the next.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .agent import prune_history
from .curriculum import Curriculum, Segment
from .progress import ProgressStore, SessionStore
from .state import Progress, SessionState


logger = logging.getLogger(__name__)

CHECKPOINT_FLAGS = ('code_written', 'syntax_verified', 'code_reviewed', 'committed')


def missing_checkpoints(progress: Progress, required: Optional[Dict[str, bool]] = None) -> List[str]:
    """Checkpoint flags the segment requires that are not set yet"""
    required = required or {}
    return [flag for flag in CHECKPOINT_FLAGS if required.get(flag, True) and not getattr(progress, flag)]


def should_complete_segment(progress: Progress, required: Optional[Dict[str, bool]] = None) -> bool:
    """Every checkpoint the segment requires is done"""
    return not missing_checkpoints(progress, required)


@dataclass
class SegmentTransition:
    """Result of completing a segment"""
    curriculum_complete: bool
    next_segment: Optional[Segment] = None
    next_index: int = 0
    progress: Optional[Progress] = None
    history: List[Dict[str, Any]] = field(default_factory=list)


class SegmentLifecycle:
    """Completes segments and sets up the next one"""

    def __init__(self, session_store: SessionStore, progress_store: ProgressStore, display=None):
        self.session_store = session_store
        self.progress_store = progress_store
        self.display = display

    def complete_segment(
        self,
        curriculum: Curriculum,
        state: SessionState,
        segment: Segment,
        summary: str,
    ) -> SegmentTransition:
        """Record the finished segment and prepare whatever comes next"""
        if segment.id not in state.completed_segments:
            state.completed_segments.append(segment.id)
        state.current_segment_index += 1
        state.previous_segment_summary = summary
        self.session_store.save(state)
        logger.info('Segment %s completed', segment.id)

        if self.display:
            self.display.segment_complete(segment, summary)

        next_segment = curriculum.get_segment(state.current_segment_index)
        if next_segment is None or curriculum.is_complete(state.completed_segments):
            logger.info('Curriculum %s completed', curriculum.id)
            if self.display:
                self.display.curriculum_complete(curriculum)
            return SegmentTransition(curriculum_complete=True, next_index=state.current_segment_index)

        progress = self.progress_store.create(next_segment.id, state.current_segment_index)
        if self.display:
            self.display.segment_header(curriculum, next_segment, state.current_segment_index)

        return SegmentTransition(
            curriculum_complete=False,
            next_segment=next_segment,
            next_index=state.current_segment_index,
            progress=progress,
            history=prune_history(summary),
        )
