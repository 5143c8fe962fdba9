#!/usr/bin/env python3
"""
Shared fixtures: a recording renderer, a scripted LLM client, and a small
curriculum on disk.
"""

import json
from typing import List

import pytest
from rich.text import Text

from scribe.llm import BaseLLMClient, LLMResponse, LLMTurn, ToolCall
from scribe.tutoring.curriculum import Curriculum, Segment
from scribe.ui.terminal import BaseRenderer


class RecordingRenderer(BaseRenderer):
    """Renderer that records every operation instead of touching a terminal"""

    def __init__(self, width: int = 80):
        self._width = width
        self.ops: List[tuple] = []

    def move_up(self, n):
        self.ops.append(('up', n))

    def move_down(self, n):
        self.ops.append(('down', n))

    def clear_line(self):
        self.ops.append(('clear',))

    def write(self, text):
        self.ops.append(('write', text.plain if isinstance(text, Text) else text))

    def newline(self):
        self.ops.append(('newline',))

    def flush(self):
        self.ops.append(('flush',))

    @property
    def width(self):
        return self._width

    def writes(self) -> List[str]:
        return [op[1] for op in self.ops if op[0] == 'write']

    def net_vertical(self) -> int:
        """Net rows moved, counting newlines as one down"""
        total = 0
        for op in self.ops:
            if op[0] == 'up':
                total -= op[1]
            elif op[0] == 'down':
                total += op[1]
            elif op[0] == 'newline':
                total += 1
        return total


class ScriptedLLM(BaseLLMClient):
    """
    LLM client that plays back scripted turns.

    Each turn is a list of text chunks plus an optional list of
    (name, input) tool calls.
    """

    def __init__(self, turns=None, summary='Built the thing.'):
        self.turns = list(turns or [])
        self.summary = summary
        self.calls: List[dict] = []

    def create(self, system, messages, max_tokens=500):
        return LLMResponse(content=self.summary, model='scripted')

    def stream_turn(self, system, messages, tools, max_tokens=2048):
        self.calls.append({'system': system, 'messages': list(messages)})
        chunks, tool_specs = self.turns.pop(0) if self.turns else (['ok'], [])

        for chunk in chunks:
            yield chunk

        content = [{'type': 'text', 'text': ''.join(chunks)}] if chunks else []
        tool_calls = []
        for n, (name, tool_input) in enumerate(tool_specs or []):
            call = ToolCall(id=f'tool_{len(self.calls)}_{n}', name=name, input=tool_input)
            tool_calls.append(call)
            content.append({'type': 'tool_use', 'id': call.id, 'name': name, 'input': tool_input})
        yield LLMTurn(
            content=content,
            tool_calls=tool_calls,
            stop_reason='tool_use' if tool_calls else 'end_turn',
        )


@pytest.fixture
def renderer():
    return RecordingRenderer()


@pytest.fixture
def segment():
    return Segment(
        id='seg-1',
        title='Project setup',
        reference_transcript='mkdir src\ntouch src/index.ts',
        target_file='src/index.ts',
    )


@pytest.fixture
def curriculum(tmp_path, segment):
    second = Segment(
        id='seg-2',
        title='Hello world',
        reference_transcript="cat > hello.py << 'EOF'\nprint('hello')\nEOF",
        target_file='hello.py',
    )
    return Curriculum(
        id='demo',
        project_name='demo',
        project_goal='Learn the basics',
        working_directory=str(tmp_path),
        segments=[segment, second],
    )


@pytest.fixture
def curriculum_file(tmp_path, curriculum):
    path = tmp_path / 'curriculum.json'
    data = curriculum.to_dict()
    data['working_directory'] = 'project'
    path.write_text(json.dumps(data))
    return path


@pytest.fixture
def scripted_llm():
    """Factory for ScriptedLLM clients"""
    return ScriptedLLM
