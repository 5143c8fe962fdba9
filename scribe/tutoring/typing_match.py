#!/usr/bin/env python3
"""
Character-level typing match.
Tracks a live input buffer against an expected string with exact-prefix
semantics: a character only earns credit when typed at the tip of the
correct prefix and equal to the expected character there.
"""

import re
from dataclasses import dataclass
from typing import List


QUESTION_PATTERNS = (
    re.compile(r"^(what|why|how|when|where|which|who|can|could|would|should|is|are|does|do|will)\s", re.I),
    re.compile(r"\?$"),
    re.compile(r"^(help|explain|tell me|show me|i don't understand|i'm confused|what's|what is)", re.I),
    re.compile(r"^(wait|hold on|stop|actually)", re.I),
)

CODE_CHARS = re.compile(r"[{}();=<>\[\]`\"']")
PLAIN_WORDS = re.compile(r"^[a-zA-Z\s.,!?'-]+$")


@dataclass
class TypingSession:
    """Typing state for one step; discarded when the step is submitted or abandoned"""
    expected: str
    input: str = ''
    correct_prefix_len: int = 0

    def feed_char(self, char: str) -> int:
        """Append a character and return the correct-prefix length"""
        self.input += char
        tip = self.correct_prefix_len
        if (len(self.input) == tip + 1
                and tip < len(self.expected)
                and char == self.expected[tip]):
            self.correct_prefix_len += 1
        return self.correct_prefix_len

    def feed_backspace(self) -> int:
        """Delete the last character and return the correct-prefix length"""
        if not self.input:
            return self.correct_prefix_len
        if len(self.input) == self.correct_prefix_len:
            self.correct_prefix_len -= 1
        self.input = self.input[:-1]
        return self.correct_prefix_len

    def reset(self, text: str = ''):
        """Replace the buffer, recomputing credit from scratch"""
        self.input = ''
        self.correct_prefix_len = 0
        for char in text:
            self.feed_char(char)

    @property
    def accuracy(self) -> int:
        """Percentage of the expected text typed correctly"""
        if not self.expected:
            return 100
        return round(self.correct_prefix_len / len(self.expected) * 100)

    @property
    def is_complete(self) -> bool:
        return self.input == self.expected

    @property
    def has_error(self) -> bool:
        """Buffer contains characters past the correct prefix"""
        return len(self.input) > self.correct_prefix_len

    def char_states(self) -> List[str]:
        """Per-position state of the expected text: correct, wrong, or pending"""
        states = []
        for i in range(len(self.expected)):
            if i < self.correct_prefix_len:
                states.append('correct')
            elif i < len(self.input):
                states.append('wrong')
            else:
                states.append('pending')
        return states


def looks_like_question(text: str, expected: str = '') -> bool:
    """
    Heuristic for "the learner typed a question instead of code".

    Question words, a trailing question mark, or a request for help count;
    so do three or more plain words with no code punctuation. Text equal to
    the expected line never counts.
    """
    stripped = text.strip()
    if not stripped:
        return False
    if expected and stripped == expected.strip():
        return False

    lowered = stripped.lower()
    expected_words = expected.strip().lower().split()
    if expected_words and lowered.split()[0] == expected_words[0]:
        # An attempt at the expected line, typos and all
        return False
    if any(pattern.search(lowered) for pattern in QUESTION_PATTERNS):
        return True

    return (not CODE_CHARS.search(stripped)
            and bool(PLAIN_WORDS.match(lowered))
            and len(lowered.split()) >= 3)
