#!/usr/bin/env python3
"""
LLM client for the tutor.
Wraps the Anthropic messages API behind a small interface so the agent loop
can be driven by a scripted client in tests.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Generator, List, Optional, Union

from .config import get_api_key, get_config_value


DEFAULT_MODEL = "claude-sonnet-4-20250514"


@dataclass
class LLMResponse:
    """Response from a one-shot completion"""
    content: str
    model: str
    usage: Optional[Dict[str, int]] = None


@dataclass
class ToolCall:
    """A tool invocation requested by the model"""
    id: str
    name: str
    input: Dict[str, Any] = field(default_factory=dict)


@dataclass
class LLMTurn:
    """Final state of one streamed model turn"""
    content: List[Dict[str, Any]]            # assistant content blocks, as message dicts
    tool_calls: List[ToolCall] = field(default_factory=list)
    stop_reason: str = 'end_turn'

    @property
    def text(self) -> str:
        return ''.join(block.get('text', '') for block in self.content if block.get('type') == 'text')


class BaseLLMClient(ABC):
    """Abstract base class for LLM clients"""

    @abstractmethod
    def create(
        self,
        system: str,
        messages: List[Dict[str, Any]],
        max_tokens: int = 500,
    ) -> LLMResponse:
        """Create a completion"""
        pass

    @abstractmethod
    def stream_turn(
        self,
        system: str,
        messages: List[Dict[str, Any]],
        tools: List[Dict[str, Any]],
        max_tokens: int = 2048,
    ) -> Generator[Union[str, LLMTurn], None, None]:
        """Stream text chunks, then yield one LLMTurn"""
        pass


class AnthropicClient(BaseLLMClient):
    """Anthropic Claude client"""

    def __init__(self, api_key: str, model: str = None):
        from anthropic import Anthropic
        self.client = Anthropic(api_key=api_key)
        self.model = model or DEFAULT_MODEL

    def create(
        self,
        system: str,
        messages: List[Dict[str, Any]],
        max_tokens: int = 500,
    ) -> LLMResponse:
        response = self.client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            system=system,
            messages=messages,
        )
        text = ''.join(block.text for block in response.content if block.type == 'text')
        return LLMResponse(
            content=text,
            model=self.model,
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            }
        )

    def stream_turn(
        self,
        system: str,
        messages: List[Dict[str, Any]],
        tools: List[Dict[str, Any]],
        max_tokens: int = 2048,
    ) -> Generator[Union[str, LLMTurn], None, None]:
        with self.client.messages.stream(
            model=self.model,
            max_tokens=max_tokens,
            system=system,
            tools=tools,
            messages=messages,
        ) as stream:
            for text in stream.text_stream:
                yield text
            final = stream.get_final_message()

        content = []
        tool_calls = []
        for block in final.content:
            if block.type == 'text':
                content.append({'type': 'text', 'text': block.text})
            elif block.type == 'tool_use':
                content.append({'type': 'tool_use', 'id': block.id, 'name': block.name, 'input': block.input})
                tool_calls.append(ToolCall(id=block.id, name=block.name, input=dict(block.input or {})))

        yield LLMTurn(content=content, tool_calls=tool_calls, stop_reason=final.stop_reason or 'end_turn')


def create_llm_client(model: str = None) -> Optional[BaseLLMClient]:
    """
    Create the tutor's LLM client from configuration.

    Returns:
        Client instance, or None when no API key is configured.
    """
    api_key = get_api_key()
    if not api_key:
        return None
    return AnthropicClient(api_key=api_key, model=model or get_config_value('model', DEFAULT_MODEL))
