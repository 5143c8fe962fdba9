#!/usr/bin/env python3
"""
Terminal primitives: the renderer seam used by the viewport, a rich-backed
renderer, and a raw-mode key reader.

The renderer only ever moves the cursor relative to where it is. Absolute
positioning breaks as soon as the terminal scrolls.
"""

import codecs
import os
import select
import shutil
import sys
import termios
import tty
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Optional, Tuple, Union

from rich.console import Console
from rich.control import Control, ControlType
from rich.text import Text


# Normalized key names
ENTER = 'ENTER'
BACKSPACE = 'BACKSPACE'
TAB = 'TAB'
SHIFT_TAB = 'SHIFT_TAB'
ESC = 'ESC'
UP = 'UP'
DOWN = 'DOWN'
LEFT = 'LEFT'
RIGHT = 'RIGHT'
CTRL_D = 'CTRL_D'
UNKNOWN = 'UNKNOWN'

CSI_KEYS = {
    'A': UP,
    'B': DOWN,
    'C': RIGHT,
    'D': LEFT,
    'Z': SHIFT_TAB,
}


def terminal_size() -> Tuple[int, int]:
    """(columns, rows), with a sane fallback off a TTY"""
    size = shutil.get_terminal_size((80, 24))
    return size.columns, size.lines


# =============================================================================
# Renderers
# =============================================================================

class BaseRenderer(ABC):
    """Relative-motion drawing surface"""

    @abstractmethod
    def move_up(self, n: int):
        pass

    @abstractmethod
    def move_down(self, n: int):
        pass

    @abstractmethod
    def clear_line(self):
        """Erase the whole current line and return to column 0"""
        pass

    @abstractmethod
    def write(self, text: Union[str, Text]):
        """Write text at the cursor without a newline"""
        pass

    @abstractmethod
    def newline(self):
        pass

    def flush(self):
        pass

    @property
    def width(self) -> int:
        return terminal_size()[0]


class ConsoleRenderer(BaseRenderer):
    """Renderer over a rich Console"""

    def __init__(self, console: Console = None):
        self.console = console or Console()

    def move_up(self, n: int):
        if n > 0:
            self.console.control(Control.move(y=-n))

    def move_down(self, n: int):
        if n > 0:
            self.console.control(Control.move(y=n))

    def clear_line(self):
        self.console.control(
            Control((ControlType.ERASE_IN_LINE, 2)),
            Control.move_to_column(0),
        )

    def write(self, text: Union[str, Text]):
        if isinstance(text, Text):
            self.console.print(text, end='', soft_wrap=True, highlight=False)
        else:
            self.console.print(text, end='', soft_wrap=True, highlight=False, markup=False)

    def newline(self):
        # Raw mode turns off output post-processing, so "\n" alone keeps the column
        self.console.control(Control.move_to_column(0))
        self.console.print()

    def flush(self):
        self.console.file.flush()

    @property
    def width(self) -> int:
        return self.console.width


# =============================================================================
# Keys
# =============================================================================

class KeyReader:
    """Reads one normalized key at a time from a TTY in raw mode"""

    def __init__(self, stream=None, escape_timeout: float = 0.05):
        self.stream = stream or sys.stdin
        self.escape_timeout = escape_timeout
        self._saved = None
        self._decoder = codecs.getincrementaldecoder('utf-8')(errors='replace')

    @property
    def fd(self) -> int:
        return self.stream.fileno()

    @contextmanager
    def raw_mode(self):
        """Raw mode for the duration of the block, always restored on exit"""
        self._saved = termios.tcgetattr(self.fd)
        try:
            tty.setraw(self.fd)
            yield self
        finally:
            self.restore()

    def restore(self):
        """Put the terminal back the way it was; safe to call more than once"""
        if self._saved is not None:
            saved, self._saved = self._saved, None
            termios.tcsetattr(self.fd, termios.TCSADRAIN, saved)

    def read_key(self) -> str:
        """
        Block for one key.

        Returns a key name constant or a single printable character. Ctrl-C
        raises KeyboardInterrupt, since raw mode swallows the signal.
        """
        data = self._read_byte()
        if data == b'\x1b':
            return self._read_escape()
        if data in (b'\r', b'\n'):
            return ENTER
        if data in (b'\x7f', b'\x08'):
            return BACKSPACE
        if data == b'\t':
            return TAB
        if data == b'\x03':
            raise KeyboardInterrupt
        if data == b'\x04':
            return CTRL_D

        char = self._decoder.decode(data)
        while not char:
            char = self._decoder.decode(self._read_byte())
        if not char.isprintable():
            return UNKNOWN
        return char

    def _read_escape(self) -> str:
        """Tell a lone Escape from the start of an arrow/shift-tab sequence"""
        nxt = self._read_byte(self.escape_timeout)
        if nxt is None:
            return ESC
        if nxt not in (b'[', b'O'):
            return UNKNOWN

        seq = ''
        while len(seq) < 8:
            byte = self._read_byte(self.escape_timeout)
            if byte is None:
                return UNKNOWN
            ch = byte.decode('latin-1')
            seq += ch
            if '@' <= ch <= '~':
                break
        return CSI_KEYS.get(seq[-1:], UNKNOWN) if len(seq) == 1 else UNKNOWN

    def _read_byte(self, timeout: Optional[float] = None) -> Optional[bytes]:
        if timeout is not None:
            ready, _, _ = select.select([self.fd], [], [], timeout)
            if not ready:
                return None
        data = os.read(self.fd, 1)
        if not data:
            raise EOFError
        return data
