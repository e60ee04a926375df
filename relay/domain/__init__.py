"""
Domain module - Pure domain models with no runtime dependencies.
"""

from .events import (
    RunEvent,
    RunEventType,
    create_agent_updated_event,
    create_item_event,
    create_run_failed_event,
)
from .items import (
    HandoffCallItem,
    HandoffOutputItem,
    MessageOutputItem,
    RunItem,
    ToolCallItem,
    ToolCallOutputItem,
    input_to_messages,
    items_to_messages,
)
from .models import MessageRole, RunStatus, Usage
from .tools import ToolResult

__all__ = [
    # Models
    "MessageRole",
    "RunStatus",
    "Usage",
    "ToolResult",
    # Items
    "RunItem",
    "MessageOutputItem",
    "ToolCallItem",
    "ToolCallOutputItem",
    "HandoffCallItem",
    "HandoffOutputItem",
    "items_to_messages",
    "input_to_messages",
    # Events
    "RunEvent",
    "RunEventType",
    "create_agent_updated_event",
    "create_item_event",
    "create_run_failed_event",
]
