#!/usr/bin/env python3
"""
Fixed-region redraw and scrolling for the guided typing display.

ViewportRenderer owns a block of terminal rows and repaints it in place
after every keystroke using relative cursor motion only. ScrollableViewer
decides which slice of long content (a big heredoc, say) fits in the rows
the terminal has.
"""

import signal
from typing import Callable, List, Optional, Sequence, Tuple, Union

from rich.text import Text

from .terminal import BaseRenderer, terminal_size


Row = Union[str, Text]

UI_CHROME_LINES = 6
MIN_VIEWPORT_HEIGHT = 3
CONTINUATION_INDENT = 4


def viewport_height_for(rows: int) -> int:
    """Rows left for content once the chrome is drawn, never below the floor"""
    return max(MIN_VIEWPORT_HEIGHT, rows - UI_CHROME_LINES)


def wrap_row(row: Row, width: int, indent: int = CONTINUATION_INDENT) -> List[Text]:
    """
    Split a row into physical rows no wider than width - 1.

    Continuation rows are indented so wrapped code reads as one line. The
    last column is left free so the terminal never auto-wraps on its own.
    """
    text = row if isinstance(row, Text) else Text(row)
    limit = max(indent + 1, width - 1)
    if len(text) <= limit:
        return [text]

    offsets = [limit]
    step = limit - indent
    while offsets[-1] + step < len(text):
        offsets.append(offsets[-1] + step)
    parts = text.divide(offsets)

    wrapped = [parts[0]]
    for part in parts[1:]:
        wrapped.append(Text(' ' * indent) + part)
    return wrapped


def tail_fit(text: str, width: int) -> str:
    """Keep the end of text visible on one row, marking the cut"""
    limit = max(2, width - 1)
    if len(text) <= limit:
        return text
    return '…' + text[-(limit - 1):]


class ScrollableViewer:
    """Scroll state of content taller than the viewport"""

    def __init__(self, viewport_height: Optional[int] = None):
        self.offset = 0
        self._total_lines = 0
        self._resize_callback: Optional[Callable[[], None]] = None
        self._previous_handler = None
        if viewport_height is None:
            self.update_viewport_height()
        else:
            self.viewport_height = max(MIN_VIEWPORT_HEIGHT, viewport_height)

    @property
    def total_lines(self) -> int:
        return self._total_lines

    @total_lines.setter
    def total_lines(self, count: int):
        self._total_lines = max(0, count)
        # Shrinking content never leaves the window past the end
        self.offset = min(self.offset, max(0, self._total_lines - self.viewport_height))

    @property
    def has_more_above(self) -> bool:
        return self.offset > 0

    @property
    def has_more_below(self) -> bool:
        return self.offset + self.viewport_height < self._total_lines

    @property
    def lines_above(self) -> int:
        return self.offset

    @property
    def lines_below(self) -> int:
        return max(0, self._total_lines - self.offset - self.viewport_height)

    def update_viewport_height(self, rows: Optional[int] = None):
        """Recompute height from the terminal (or a given row count)"""
        if rows is None:
            rows = terminal_size()[1]
        self.viewport_height = viewport_height_for(rows)
        self.total_lines = self._total_lines

    def scroll_up(self, n: int = 1) -> bool:
        new_offset = max(0, self.offset - n)
        if new_offset != self.offset:
            self.offset = new_offset
            return True
        return False

    def scroll_down(self, n: int = 1) -> bool:
        max_offset = max(0, self._total_lines - self.viewport_height)
        new_offset = min(max_offset, self.offset + n)
        if new_offset != self.offset:
            self.offset = new_offset
            return True
        return False

    def ensure_line_visible(self, index: int) -> bool:
        """Scroll the minimum needed to show line index. Returns whether it scrolled."""
        if index < self.offset:
            self.offset = max(0, index)
            return True
        if index >= self.offset + self.viewport_height:
            self.offset = index - self.viewport_height + 1
            return True
        return False

    def reset(self):
        self.offset = 0
        self._total_lines = 0

    def visible_range(self) -> Tuple[int, int]:
        """(start, end) line indices, end exclusive"""
        return self.offset, min(self.offset + self.viewport_height, self._total_lines)

    def start_resize_listener(self, on_resize: Callable[[], None] = None):
        """Track SIGWINCH; the handler only refreshes cached dimensions"""
        self._resize_callback = on_resize

        def handle(signum, frame):
            self.update_viewport_height()
            if self._resize_callback:
                self._resize_callback()

        self._previous_handler = signal.signal(signal.SIGWINCH, handle)

    def stop_resize_listener(self):
        if self._previous_handler is not None:
            signal.signal(signal.SIGWINCH, self._previous_handler)
            self._previous_handler = None
        self._resize_callback = None


class ViewportRenderer:
    """Repaints a block of rows in place with relative cursor motion"""

    def __init__(self, renderer: BaseRenderer):
        self.renderer = renderer
        self.height = 0
        self.cursor_row = 0
        self.active = False

    def reserve(self, height: int):
        """Emit blank rows so the region fits above the terminal bottom, then return to its top"""
        height = max(1, height)
        for _ in range(height - 1):
            self.renderer.newline()
        self.renderer.move_up(height - 1)
        self.height = height
        self.cursor_row = 0
        self.active = True

    def draw(self, rows: Sequence[Row], cursor_row: Optional[int] = None):
        """
        Repaint the region with rows and park the cursor at the end of cursor_row.

        Rows must already fit the terminal width. The region grows when given
        more rows than before; extra old rows are blanked, not released.
        """
        rows = list(rows) or ['']
        if cursor_row is None:
            cursor_row = len(rows) - 1
        cursor_row = max(0, min(cursor_row, len(rows) - 1))

        if not self.active:
            self.reserve(len(rows))
        elif len(rows) > self.height:
            self._goto(self.height - 1)
            for _ in range(len(rows) - self.height):
                self.renderer.newline()
            self.cursor_row = len(rows) - 1
            self.height = len(rows)

        self._goto(0)
        for i in range(self.height):
            if i:
                self.renderer.move_down(1)
                self.cursor_row = i
            self.renderer.clear_line()
            if i < len(rows):
                self.renderer.write(rows[i])

        self._goto(cursor_row)
        self.renderer.clear_line()
        self.renderer.write(rows[cursor_row])
        self.renderer.flush()

    def collapse(self, rows: Sequence[Row] = ()):
        """Blank the region, write rows from its top, and leave the cursor on a fresh line below"""
        if not self.active:
            for row in rows:
                self.renderer.write(row)
                self.renderer.newline()
            return

        self._goto(0)
        for i in range(self.height):
            if i:
                self.renderer.move_down(1)
                self.cursor_row = i
            self.renderer.clear_line()
        self._goto(0)
        for row in rows:
            self.renderer.clear_line()
            self.renderer.write(row)
            self.renderer.newline()
        self.renderer.flush()
        self.active = False
        self.height = 0
        self.cursor_row = 0

    def _goto(self, row: int):
        delta = row - self.cursor_row
        if delta < 0:
            self.renderer.move_up(-delta)
        elif delta > 0:
            self.renderer.move_down(delta)
        self.cursor_row = row
