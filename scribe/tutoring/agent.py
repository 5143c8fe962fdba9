#!/usr/bin/env python3
"""
Tutor agent turn runner.

One turn sends the learner's message with the running history, streams the
reply, runs any tool calls the model makes, and loops until the model stops
asking for tools. The turn is a generator of call-queue events.
"""

import logging
from typing import Any, Dict, Iterator, List

from ..llm import BaseLLMClient, LLMTurn
from .call_queue import AgentEvent, AgentResult, Done, TextChunk, ToolEnd, ToolStart
from .prompts import SUMMARY_PROMPT, AgentContext, build_system_prompt
from .tools import TOOL_DEFINITIONS, ToolExecutor


logger = logging.getLogger(__name__)

MAX_TOOL_ROUNDS = 8


def prune_history(summary: str = '') -> List[Dict[str, Any]]:
    """History for a new segment; the summary travels in the system prompt instead"""
    return []


class TutorAgent:
    """Runs tutor turns against an LLM client and a tool executor"""

    def __init__(self, llm: BaseLLMClient, tools: ToolExecutor, max_tokens: int = 2048):
        self.llm = llm
        self.tools = tools
        self.max_tokens = max_tokens

    def run_turn(
        self,
        message: str,
        history: List[Dict[str, Any]],
        context: AgentContext,
    ) -> Iterator[AgentEvent]:
        """Stream one turn as TextChunk/ToolStart/ToolEnd events, ending with Done"""
        messages = list(history) + [{'role': 'user', 'content': message}]
        system = build_system_prompt(context)
        text_parts: List[str] = []
        segment_completed = False
        summary = None

        for _ in range(MAX_TOOL_ROUNDS):
            turn = None
            for item in self.llm.stream_turn(system, messages, TOOL_DEFINITIONS, self.max_tokens):
                if isinstance(item, LLMTurn):
                    turn = item
                else:
                    text_parts.append(item)
                    yield TextChunk(item)

            if turn is None:
                break
            messages.append({'role': 'assistant', 'content': turn.content})

            if not turn.tool_calls:
                break

            results = []
            for call in turn.tool_calls:
                yield ToolStart(call.name)
                outcome = self.tools.execute(call.name, call.input)
                yield ToolEnd(call.name, outcome.success)

                if outcome.segment_completed:
                    segment_completed = True
                    summary = outcome.summary
                results.append({
                    'type': 'tool_result',
                    'tool_use_id': call.id,
                    'content': outcome.output,
                    'is_error': not outcome.success,
                })
            messages.append({'role': 'user', 'content': results})
        else:
            logger.warning('Stopped after %d tool rounds', MAX_TOOL_ROUNDS)

        if segment_completed and not summary:
            summary = self.generate_summary(context)

        yield Done(AgentResult(
            history=messages,
            text=''.join(text_parts),
            segment_completed=segment_completed,
            summary=summary,
        ))

    def generate_summary(self, context: AgentContext) -> str:
        """Two-sentence summary of the finished segment, with a plain fallback"""
        segment = context.segment
        prompt = SUMMARY_PROMPT.format(title=segment.title, reference_transcript=segment.reference_transcript)
        try:
            response = self.llm.create(
                system='You write brief progress summaries.',
                messages=[{'role': 'user', 'content': prompt}],
                max_tokens=200,
            )
            if response.content.strip():
                return response.content.strip()
        except Exception as e:
            logger.warning('Summary generation failed: %s', e)
        return f'Completed: {segment.title}'

