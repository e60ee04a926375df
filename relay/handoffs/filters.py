"""
Common handoff input filters.
"""

from typing import Any

from relay.domain.items import (
    HandoffCallItem,
    HandoffOutputItem,
    ToolCallItem,
    ToolCallOutputItem,
)

from .handoff import HandoffInputData

_TOOL_ITEM_TYPES = (ToolCallItem, ToolCallOutputItem, HandoffCallItem, HandoffOutputItem)


def _strip_tool_messages(history: tuple[dict[str, Any], ...]) -> tuple[dict[str, Any], ...]:
    kept = []
    for message in history:
        if message.get("role") == "tool":
            continue
        if message.get("tool_calls"):
            if not message.get("content"):
                continue
            message = {k: v for k, v in message.items() if k != "tool_calls"}
        kept.append(message)
    return tuple(kept)


def remove_all_tools(data: HandoffInputData) -> HandoffInputData:
    """Drop every tool call, tool result and handoff from the history."""
    history = data.input_history
    if not isinstance(history, str):
        history = _strip_tool_messages(history)
    return data.clone(
        input_history=history,
        pre_handoff_items=tuple(i for i in data.pre_handoff_items if not isinstance(i, _TOOL_ITEM_TYPES)),
        new_items=tuple(i for i in data.new_items if not isinstance(i, _TOOL_ITEM_TYPES)),
    )


__all__ = ["remove_all_tools"]
