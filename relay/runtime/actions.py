"""
Model actions - what a model response asks the runtime to do.

Every response is classified into exactly one action:
- ToolCallsAction: run the requested tools, then invoke the model again
- HandoffAction: run any accompanying tools, then switch agents
- FinalMessageAction: the run is complete, pending output guardrails
- InvalidAction: the response cannot be interpreted
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Union

from pydantic import ValidationError

if TYPE_CHECKING:
    from relay.agent import Agent
    from relay.handoffs import Handoff
    from relay.llm import ModelResponse


@dataclass(frozen=True)
class ToolCallsAction:
    tool_calls: list[dict[str, Any]]


@dataclass(frozen=True)
class HandoffAction:
    handoff_call: dict[str, Any]
    handoff: "Handoff"
    # Tool calls in the same response; executed before the handoff
    tool_calls: list[dict[str, Any]] = field(default_factory=list)
    # Further handoff calls in the same response; answered with a rejection
    rejected_calls: list[dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class FinalMessageAction:
    content: str
    output: Any


@dataclass(frozen=True)
class InvalidAction:
    reason: str


ModelAction = Union[ToolCallsAction, HandoffAction, FinalMessageAction, InvalidAction]


def _call_name(tool_call: dict[str, Any]) -> str:
    return tool_call.get("function", {}).get("name") or ""


def classify_response(
    response: "ModelResponse",
    agent: "Agent",
    tool_names: set[str],
    handoffs: dict[str, "Handoff"],
) -> ModelAction:
    """
    Classify a model response into a ModelAction.

    Args:
        response: Complete model response
        agent: Agent that produced it
        tool_names: Names of the agent's function tools
        handoffs: The agent's handoffs, keyed by tool name

    Returns:
        ModelAction
    """
    function_calls: list[dict[str, Any]] = []
    handoff_calls: list[dict[str, Any]] = []

    for tool_call in response.tool_calls:
        name = _call_name(tool_call)
        if name in handoffs:
            handoff_calls.append(tool_call)
        elif name in tool_names:
            function_calls.append(tool_call)
        else:
            return InvalidAction(f"Tool '{name}' not found in agent '{agent.name}'")

    if handoff_calls:
        first = handoff_calls[0]
        return HandoffAction(
            handoff_call=first,
            handoff=handoffs[_call_name(first)],
            tool_calls=function_calls,
            rejected_calls=handoff_calls[1:],
        )

    if function_calls:
        return ToolCallsAction(function_calls)

    if response.content is None or not response.content.strip():
        return InvalidAction(f"Agent '{agent.name}' produced neither a message nor a tool call")

    if agent.output_type is None:
        return FinalMessageAction(content=response.content, output=response.content)

    try:
        output = agent.output_type.model_validate_json(response.content)
    except ValidationError as e:
        return InvalidAction(
            f"Agent '{agent.name}' output does not match {agent.output_type.__name__}: {e}"
        )
    return FinalMessageAction(content=response.content, output=output)


__all__ = [
    "ToolCallsAction",
    "HandoffAction",
    "FinalMessageAction",
    "InvalidAction",
    "ModelAction",
    "classify_response",
]
