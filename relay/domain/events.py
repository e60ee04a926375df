"""
Event protocol for streamed runs.

RunResultStreaming.stream_events() yields these in the order the runtime
produces them.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from .items import RunItem


class RunEventType(str, Enum):
    """Event types for streamed runs"""

    # Run-level events
    RUN_STARTED = "run_started"
    RUN_COMPLETED = "run_completed"
    RUN_FAILED = "run_failed"

    # Agent changed (start of run and after every handoff)
    AGENT_UPDATED = "agent_updated"

    # Incremental model output
    TEXT_DELTA = "text_delta"
    TOOL_CALL_DELTA = "tool_call_delta"

    # A run item was produced (final snapshot)
    ITEM_CREATED = "item_created"


class RunEvent(BaseModel):
    """
    Unified event for streamed runs.

    - TEXT_DELTA / TOOL_CALL_DELTA carry `delta` / `tool_calls`
    - ITEM_CREATED carries the finished `item`
    - RUN_* and AGENT_UPDATED carry `data`
    """

    type: RunEventType
    run_id: str
    timestamp: datetime = Field(default_factory=datetime.now)
    agent_name: str | None = None
    turn: int | None = None

    delta: str | None = None
    tool_calls: list[dict] | None = None
    item: RunItem | None = None
    data: dict[str, Any] | None = None


def create_agent_updated_event(run_id: str, agent_name: str, turn: int | None = None) -> RunEvent:
    return RunEvent(
        type=RunEventType.AGENT_UPDATED,
        run_id=run_id,
        agent_name=agent_name,
        turn=turn,
        data={"agent_name": agent_name},
    )


def create_item_event(run_id: str, item: RunItem, turn: int | None = None) -> RunEvent:
    return RunEvent(
        type=RunEventType.ITEM_CREATED,
        run_id=run_id,
        agent_name=item.agent_name,
        turn=turn,
        item=item,
    )


def create_run_failed_event(run_id: str, error: BaseException, agent_name: str | None = None) -> RunEvent:
    return RunEvent(
        type=RunEventType.RUN_FAILED,
        run_id=run_id,
        agent_name=agent_name,
        data={"error": str(error), "error_type": type(error).__name__},
    )


__all__ = [
    "RunEventType",
    "RunEvent",
    "create_agent_updated_event",
    "create_item_event",
    "create_run_failed_event",
]
