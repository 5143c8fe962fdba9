#!/usr/bin/env python3
"""
Input mode controller.

Three mutually exclusive input strategies, cycled with Shift+Tab:
- Guided (default): type the expected step, checked character by character
- Freeform: the expected step is shown as a hint, any text is accepted
- Discuss: plain conversation with the tutor, no expected code
"""

import logging
from typing import Dict, Optional

from .state import Mode


logger = logging.getLogger(__name__)


MODE_INFO: Dict[Mode, Dict[str, str]] = {
    Mode.GUIDED: {
        'label': 'guided',
        'description': 'Type the code shown, character by character',
        'color': 'green',
    },
    Mode.FREEFORM: {
        'label': 'freeform',
        'description': 'Write it your own way; the expected code is a hint',
        'color': 'yellow',
    },
    Mode.DISCUSS: {
        'label': 'discuss',
        'description': 'Ask questions and talk it through',
        'color': 'magenta',
    },
}


def parse_mode(value: Optional[str], default: Mode = Mode.GUIDED) -> Mode:
    """Mode from a name, accepting a few aliases"""
    if not value:
        return default
    aliases = {
        'guided': Mode.GUIDED,
        'tutor': Mode.GUIDED,
        'freeform': Mode.FREEFORM,
        'free': Mode.FREEFORM,
        'block': Mode.FREEFORM,
        'discuss': Mode.DISCUSS,
        'chat': Mode.DISCUSS,
    }
    return aliases.get(value.strip().lower(), default)


class ModeController:
    """Holds the current mode and applies transition side effects to the tracker"""

    def __init__(self, mode: Mode = Mode.GUIDED, tracker=None):
        self._mode = mode
        self.tracker = tracker

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def is_guided(self) -> bool:
        return self._mode == Mode.GUIDED

    @property
    def is_discuss(self) -> bool:
        return self._mode == Mode.DISCUSS

    def cycle(self) -> Mode:
        """Move to the next mode in order"""
        return self.set(self._mode.next())

    def set(self, mode: Mode) -> Mode:
        """Switch to a mode; entering guided loads the step, leaving it clears"""
        old = self._mode
        if mode == old:
            return mode

        self._mode = mode
        logger.debug('Mode %s -> %s', old.value, mode.value)

        if self.tracker is not None:
            if mode == Mode.GUIDED:
                self.tracker.load()
            elif old == Mode.GUIDED:
                self.tracker.clear()

        return mode

    def info(self, mode: Mode = None) -> Dict[str, str]:
        return MODE_INFO[mode or self._mode]

    def footer(self) -> str:
        """Status line text naming the mode"""
        info = self.info()
        return f"⏵⏵ {info['label']} mode (shift+tab to cycle)"
