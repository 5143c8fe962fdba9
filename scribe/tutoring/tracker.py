#!/usr/bin/env python3
"""
Step progress tracker.
A single integer cursor into the current segment's StepPlan. The cursor
always names the step still to be completed, never the step just finished.
"""

import logging
from typing import Optional

from .state import Progress, Step, StepPlan


logger = logging.getLogger(__name__)


class StepProgressTracker:
    """Load, advance, clear, and resume over a StepPlan"""

    def __init__(self, plan: StepPlan, store=None, index: int = 0):
        self.plan = plan
        self.store = store
        self.index = index
        self.loaded_index = -1
        self.completed = False
        self._cached: Optional[Step] = None

    @property
    def total(self) -> int:
        return self.plan.total

    @property
    def current(self) -> Optional[Step]:
        """The loaded step, or None when nothing is loaded"""
        return self._cached

    def load(self) -> Optional[Step]:
        """Load the step at the cursor; a repeat load returns the cached step"""
        if self.completed or self.index < 0 or self.index >= self.total:
            return None
        if self.index == self.loaded_index and self._cached is not None:
            return self._cached

        self._cached = self.plan.get(self.index)
        self.loaded_index = self.index
        logger.debug('Loaded step %d/%d', self.index + 1, self.total)
        return self._cached

    def advance(self) -> bool:
        """Move past the current step. Returns False once the plan is completed."""
        if self.completed:
            return False

        if self.index < self.total - 1:
            self.index += 1
            self.loaded_index = -1
            self._cached = None
            self._persist(current_step_index=self.index)
            logger.debug('Advanced to step %d/%d', self.index + 1, self.total)
            return True

        self.completed = True
        self._cached = None
        logger.debug('All %d steps completed', self.total)
        return False

    def clear(self):
        """Drop the cached step without moving the cursor"""
        self._cached = None

    def reset_for_segment(self, plan: StepPlan):
        """Start over on a freshly compiled plan for a new segment"""
        self.plan = plan
        self.index = 0
        self.loaded_index = -1
        self.completed = False
        self._cached = None
        self._persist(current_step_index=0, total_steps=plan.total)

    def replace_plan(self, plan: StepPlan):
        """Swap in a recompiled plan for the same segment, keeping the cursor when in range"""
        self.plan = plan
        self.loaded_index = -1
        self._cached = None
        if self.index >= plan.total:
            self.index = max(0, plan.total - 1)
            self.completed = True
        self._persist(total_steps=plan.total)

    def resume(self, progress: Progress):
        """
        Position the cursor from a persisted progress record.

        When the code for the recorded step was already written, verified, and
        reviewed, that step is finished: move past it, or mark the plan
        completed if it was the last one.
        """
        index = progress.current_step_index
        if index < 0 or index >= self.total:
            logger.warning('Resumed step index %d is outside the plan (%d steps)', index, self.total)

        self.index = index
        self.loaded_index = -1
        self.completed = False
        self._cached = None

        if not 0 <= index < self.total:
            return

        if progress.checks_passed:
            logger.info('Step %d already finished, moving past it', index + 1)
            self.advance()

    def _persist(self, **fields):
        if self.store is not None:
            self.store.update(**fields)
