"""
Run items - the ordered record of what happened during a run.

Every item names the agent that produced it and can be converted back into
an LLM message so the next turn (or the next agent) sees it as history.
"""

import json
from datetime import datetime
from typing import Annotated, Any, Literal, Union
from uuid import uuid4

from pydantic import BaseModel, Field

from .models import MessageRole


class _ItemBase(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    agent_name: str
    created_at: datetime = Field(default_factory=datetime.now)


class MessageOutputItem(_ItemBase):
    """A text message produced by an agent."""

    type: Literal["message_output"] = "message_output"
    content: str


class ToolCallItem(_ItemBase):
    """A tool call requested by the model."""

    type: Literal["tool_call"] = "tool_call"
    call_id: str
    tool_name: str
    arguments: str = "{}"


class ToolCallOutputItem(_ItemBase):
    """The result of a tool call, as shown to the model."""

    type: Literal["tool_call_output"] = "tool_call_output"
    call_id: str
    tool_name: str
    content: str
    output: Any = None
    is_error: bool = False


class HandoffCallItem(_ItemBase):
    """A handoff requested by the model."""

    type: Literal["handoff_call"] = "handoff_call"
    call_id: str
    tool_name: str
    arguments: str = "{}"


class HandoffOutputItem(_ItemBase):
    """A completed transfer of control from one agent to another."""

    type: Literal["handoff_output"] = "handoff_output"
    call_id: str
    tool_name: str
    source_agent_name: str
    target_agent_name: str

    @property
    def content(self) -> str:
        return json.dumps({"assistant": self.target_agent_name})


RunItem = Annotated[
    Union[
        MessageOutputItem,
        ToolCallItem,
        ToolCallOutputItem,
        HandoffCallItem,
        HandoffOutputItem,
    ],
    Field(discriminator="type"),
]


def _tool_call_dict(call_id: str, name: str, arguments: str) -> dict[str, Any]:
    return {
        "id": call_id,
        "type": "function",
        "function": {"name": name, "arguments": arguments},
    }


def items_to_messages(items: list[RunItem]) -> list[dict[str, Any]]:
    """
    Convert run items to OpenAI-format messages.

    Consecutive assistant output (text and tool calls) is merged into a single
    assistant message so tool results always follow the message that
    requested them.
    """
    messages: list[dict[str, Any]] = []
    pending: dict[str, Any] | None = None

    def flush() -> None:
        nonlocal pending
        if pending is not None:
            messages.append(pending)
            pending = None

    for item in items:
        if isinstance(item, MessageOutputItem):
            if pending is not None and pending.get("tool_calls"):
                flush()
            if pending is None:
                pending = {"role": MessageRole.ASSISTANT.value, "content": item.content}
            else:
                pending["content"] = (pending.get("content") or "") + item.content
        elif isinstance(item, (ToolCallItem, HandoffCallItem)):
            if pending is None:
                pending = {"role": MessageRole.ASSISTANT.value, "content": None}
            pending.setdefault("tool_calls", []).append(
                _tool_call_dict(item.call_id, item.tool_name, item.arguments)
            )
        elif isinstance(item, (ToolCallOutputItem, HandoffOutputItem)):
            flush()
            messages.append(
                {
                    "role": MessageRole.TOOL.value,
                    "tool_call_id": item.call_id,
                    "name": item.tool_name,
                    "content": item.content,
                }
            )
        else:
            raise TypeError(f"Unknown run item: {type(item).__name__}")

    flush()
    return messages


def input_to_messages(input: str | list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Normalize run input (plain string or message history) to a message list."""
    if isinstance(input, str):
        return [{"role": MessageRole.USER.value, "content": input}]
    return [dict(message) for message in input]


__all__ = [
    "MessageOutputItem",
    "ToolCallItem",
    "ToolCallOutputItem",
    "HandoffCallItem",
    "HandoffOutputItem",
    "RunItem",
    "items_to_messages",
    "input_to_messages",
]
