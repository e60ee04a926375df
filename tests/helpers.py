"""
Shared test doubles.
"""

import asyncio
import json
from typing import Any, Callable

from relay.llm import Model, StreamChunk


def tool_call(name: str, arguments: Any = None, call_id: str | None = None) -> dict:
    """Build an OpenAI-format tool call."""
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, str):
        arguments = json.dumps(arguments)
    return {
        "id": call_id or f"call_{name}",
        "type": "function",
        "function": {"name": name, "arguments": arguments},
    }


class ScriptedModel(Model):
    """
    Mock model that replays scripted responses, one per call.

    Each response is one of:
    - str: a text message
    - dict: a single tool call
    - list[dict]: several tool calls in one response
    - list[StreamChunk]: raw chunks, yielded as-is
    - callable(messages, tools) -> any of the above
    The last response repeats once the script runs out.
    """

    id: str = "test/scripted"
    name: str = "scripted"

    def __init__(self, responses: list[Any], delay: float = 0.0, **data: Any):
        super().__init__(**data)
        self._responses = list(responses)
        self._delay = delay
        self._calls: list[dict[str, Any]] = []

    @property
    def calls(self) -> list[dict[str, Any]]:
        return self._calls

    def _chunks(self, response: Any) -> list[StreamChunk]:
        if isinstance(response, str):
            return [StreamChunk(content=response)]
        if isinstance(response, dict):
            return [StreamChunk(tool_calls=[response])]
        if isinstance(response, list) and response and isinstance(response[0], StreamChunk):
            return list(response)
        if isinstance(response, list):
            return [StreamChunk(tool_calls=list(response))]
        return []

    async def arun_stream(self, messages, tools=None, output_schema=None):
        index = len(self._calls)
        self._calls.append({"messages": messages, "tools": tools, "output_schema": output_schema})
        if self._delay:
            await asyncio.sleep(self._delay)

        response = self._responses[min(index, len(self._responses) - 1)]
        if callable(response):
            response = response(messages, tools)

        for chunk in self._chunks(response):
            yield chunk
        yield StreamChunk(
            usage={"input_tokens": 5, "output_tokens": 5, "total_tokens": 10},
            finish_reason="tool_calls" if not isinstance(response, str) else "stop",
        )


def last_user_message(messages: list[dict]) -> str:
    for message in reversed(messages):
        if message.get("role") == "user":
            return message.get("content") or ""
    return ""


def echo_system_prompt(messages: list[dict], tools: Any) -> str:
    """Response callable: answer with the agent's own instructions."""
    for message in messages:
        if message.get("role") == "system":
            return f"[{message['content']}]"
    return "[no instructions]"


ResponseFn = Callable[[list[dict], Any], Any]

__all__ = ["ScriptedModel", "tool_call", "last_user_message", "echo_system_prompt", "ResponseFn"]
